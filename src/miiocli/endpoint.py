#!/usr/bin/env python3
"""Device endpoint and retry policy configuration.

Both are immutable and validated at construction. Times are in seconds.
"""

from __future__ import annotations

from dataclasses import dataclass

from miiocli.client_constants import (
    DEFAULT_ATTEMPTS,
    DEFAULT_DELAY,
    DEFAULT_TIMEOUT,
    MIIO_PORT,
)
from miiocli.errors import ValidationError

TOKEN_SIZE: int = 16


@dataclass(frozen=True)
class DeviceEndpoint:
    """
    Address and shared secret of a single device.

    Attributes:
        address: Dotted-quad IPv4 address.
        token: 16-byte device token.
        port: UDP port of the device.
    """

    address: str
    token: bytes
    port: int = MIIO_PORT

    def __post_init__(self) -> None:
        if len(self.token) != TOKEN_SIZE:
            raise ValidationError(
                f"Token must be {TOKEN_SIZE} bytes, got {len(self.token)}"
            )

    def __repr__(self) -> str:
        return f"DeviceEndpoint(address={self.address!r}, port={self.port})"


@dataclass(frozen=True)
class RetryPolicy:
    """
    Bounded retry configuration.

    Attributes:
        attempts: Total tries per handshake or call, at least 1.
        delay: Constant wait between attempts in seconds.
        timeout: Response wait per attempt in seconds.
    """

    attempts: int = DEFAULT_ATTEMPTS
    delay: float = DEFAULT_DELAY
    timeout: float = DEFAULT_TIMEOUT

    def __post_init__(self) -> None:
        if self.attempts < 1:
            raise ValidationError(f"attempts must be at least 1, got {self.attempts}")
        if self.delay < 0:
            raise ValidationError(f"delay must not be negative, got {self.delay}")
        if self.timeout <= 0:
            raise ValidationError(f"timeout must be positive, got {self.timeout}")
