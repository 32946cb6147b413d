#!/usr/bin/env python3
"""One-shot device call used by the CLI.

Connects, performs a single call and always releases the device socket,
on success and on failure alike.

See client_retry.py for the retry handling.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from miiocli.client_retry import RetryingClient

if TYPE_CHECKING:
    from miiocli.endpoint import DeviceEndpoint, RetryPolicy


async def run_call(
    endpoint: DeviceEndpoint,
    policy: RetryPolicy,
    method: str,
    params: list[Any],
) -> Any:
    """Run a single remote call against a device.

    Args:
        endpoint: Device address and token.
        policy: Retry configuration for both handshake and call.
        method: Remote method name.
        params: Positional parameters.

    Returns:
        The result payload returned by the device.

    Raises:
        ConnectError: If the handshake fails on every attempt.
        RpcError: If the call fails on every attempt.
        DeviceError: If the device answers with an error.
    """
    client = await RetryingClient.connect(endpoint, policy)
    async with client:
        response = await client.call(method, params)
    return response.unwrap()
