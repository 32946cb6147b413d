#!/usr/bin/env python3
"""Bounded retry around the single device Transport.

This module provides RetryingClient, the only place that retries. Both the
handshake and each call are driven by tenacity with a fixed number of
attempts and a constant delay between them. Attempts run strictly one
after another and only the last error is surfaced.
"""

from __future__ import annotations

import asyncio
import enum
import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any

from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_fixed,
)

from miiocli.errors import ConnectError, ProtocolError, ResponseTimeoutError, RpcError
from miiocli.rpc import RpcRequest
from miiocli.transport import Transport

if TYPE_CHECKING:
    from miiocli.endpoint import DeviceEndpoint, RetryPolicy
    from miiocli.rpc import RpcResponse
    from miiocli.session import Session

logger = logging.getLogger(__name__)

# Errors worth another attempt. Device error responses are answers and
# are never retried.
RETRYABLE_ERRORS: tuple[type[Exception], ...] = (
    ConnectError,
    ResponseTimeoutError,
    ProtocolError,
)

Sleep = Callable[[float], Awaitable[Any]]


class CallState(enum.Enum):
    """Progress of the most recent call."""

    IDLE = "idle"
    ATTEMPTING = "attempting"
    SUCCEEDED = "succeeded"
    EXHAUSTED = "exhausted"


def build_retrying(
    policy: RetryPolicy,
    retry_on: type[Exception] | tuple[type[Exception], ...],
    sleep: Sleep = asyncio.sleep,
) -> AsyncRetrying:
    """
    Create a tenacity controller for one handshake or call.

    Args:
        policy: Attempts and constant delay to apply.
        retry_on: Exception types that trigger another attempt.
        sleep: Coroutine used to wait between attempts.

    Returns:
        An AsyncRetrying that re-raises the last error when exhausted.
    """
    return AsyncRetrying(
        stop=stop_after_attempt(policy.attempts),
        wait=wait_fixed(policy.delay),
        retry=retry_if_exception_type(retry_on),
        reraise=True,
        sleep=sleep,
        before_sleep=before_sleep_log(logger, logging.WARNING),
    )


class RetryingClient:
    """
    Resilient RPC client for one device.

    Owns its Transport and Session exclusively. Use connect() to build one
    and destroy() (or ``async with``) to release the socket.

    Attributes:
        policy: Retry configuration.
        session: Session established by the handshake.
        state: CallState of the most recent call.
    """

    def __init__(
        self,
        transport: Transport,
        session: Session,
        policy: RetryPolicy,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.policy = policy
        self.session = session
        self.state = CallState.IDLE
        self._transport = transport
        self._sleep = sleep

    @classmethod
    async def connect(
        cls,
        endpoint: DeviceEndpoint,
        policy: RetryPolicy,
        sleep: Sleep = asyncio.sleep,
        transport: Transport | None = None,
    ) -> RetryingClient:
        """
        Handshake with the device, retrying on ConnectError.

        Args:
            endpoint: Device address and token.
            policy: Retry configuration.
            sleep: Coroutine used to wait between attempts.
            transport: Transport to use, a new one by default.

        Returns:
            A connected RetryingClient.

        Raises:
            ConnectError: The last handshake error once attempts run out.
        """
        transport = transport or Transport(endpoint)
        retrying = build_retrying(policy, ConnectError, sleep)
        try:
            session = await retrying(transport.open, policy.timeout)
        except Exception:
            transport.close()
            raise
        return cls(transport, session, policy, sleep)

    async def call(self, method: str, params: list[Any] | None = None) -> RpcResponse:
        """
        Invoke a remote method with bounded retries.

        The request takes one sequence number, reused by every attempt.

        Args:
            method: Remote method name, e.g. "miIO.info".
            params: Positional parameters.

        Returns:
            The first successful RpcResponse.

        Raises:
            RpcError: Wrapping the last error once attempts run out.
            RuntimeError: If another call on this client is in flight.
        """
        if self.state is CallState.ATTEMPTING:
            raise RuntimeError("A call is already in flight on this client")
        request = RpcRequest(method, list(params or []))
        request_id = self.session.allocate()
        attempts = 0

        async def attempt() -> RpcResponse:
            nonlocal attempts
            attempts += 1
            return await self._transport.send(
                self.session, request, self.policy.timeout, request_id=request_id
            )

        self.state = CallState.ATTEMPTING
        try:
            response = await build_retrying(self.policy, RETRYABLE_ERRORS, self._sleep)(attempt)
        except RETRYABLE_ERRORS as e:
            self.state = CallState.EXHAUSTED
            logger.debug("%s failed after %d attempts", method, attempts)
            raise RpcError(e, attempts) from e
        except BaseException:
            self.state = CallState.EXHAUSTED
            raise
        self.state = CallState.SUCCEEDED
        return response

    def destroy(self) -> None:
        """Release the session and socket. Safe to call twice."""
        self._transport.close()

    async def __aenter__(self) -> RetryingClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        self.destroy()
