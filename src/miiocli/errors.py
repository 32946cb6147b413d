#!/usr/bin/env python3
"""Error taxonomy for miio-cli.

Every failure surfaced to callers is a MiioError subclass tagged with an
ErrorKind. The CLI dispatches on the kind, never on the class name.

Hierarchy:
    MiioError (base)
    ├── ConnectError - handshake or socket failure
    ├── ResponseTimeoutError - no response within the timeout
    ├── ProtocolError - malformed packet, bad checksum or wrong token
    ├── ValidationError - bad user input, raised before any I/O
    ├── DeviceError - device answered with an error object
    └── RpcError - terminal failure after all attempts
"""

from __future__ import annotations

import enum


class ErrorKind(enum.Enum):
    """Closed set of error kinds. Values are the display names."""

    CONNECT = "ConnectError"
    TIMEOUT = "TimeoutError"
    PROTOCOL = "ProtocolError"
    VALIDATION = "ValidationError"
    DEVICE = "DeviceError"


class MiioError(Exception):
    """Base exception for miio-cli.

    Attributes:
        kind: ErrorKind tag used for dispatch.
        message: Human readable description.
    """

    kind: ErrorKind

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ConnectError(MiioError):
    """Device unreachable or handshake failed."""

    kind = ErrorKind.CONNECT


class ResponseTimeoutError(MiioError):
    """No response arrived within the timeout."""

    kind = ErrorKind.TIMEOUT


class ProtocolError(MiioError):
    """Response present but malformed or failing integrity checks."""

    kind = ErrorKind.PROTOCOL


class ValidationError(MiioError):
    """Malformed user input."""

    kind = ErrorKind.VALIDATION


class DeviceError(MiioError):
    """Error object returned by the device.

    Attributes:
        code: Error code reported by the device, if any.
    """

    kind = ErrorKind.DEVICE

    def __init__(self, message: str, code: int | None = None) -> None:
        super().__init__(message)
        self.code = code


class RpcError(MiioError):
    """Call failed after all attempts.

    Carries the kind and message of the last observed error so callers can
    tell a timeout from a protocol failure.

    Attributes:
        cause: The last error raised by the transport.
        attempts: Number of attempts made.
    """

    def __init__(self, cause: MiioError, attempts: int) -> None:
        super().__init__(cause.message)
        self.kind = cause.kind
        self.cause = cause
        self.attempts = attempts


class StaleResponseError(ProtocolError):
    """Response to an earlier request on the same session.

    Raised when a late or duplicated answer arrives after its request was
    given up. Transport drops these and keeps waiting.
    """
