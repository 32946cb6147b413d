#!/usr/bin/env python3
"""JSON-RPC style request and response bodies.

Requests are encoded as {"id", "method", "params"}. Devices answer with
{"id", "result"} or {"id", "error"}. The id is the session sequence number
and must match the pending request.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

from miiocli.errors import DeviceError, ErrorKind, ProtocolError, StaleResponseError


@dataclass(frozen=True)
class RpcRequest:
    """A named remote call with positional parameters."""

    method: str
    params: list[Any] = field(default_factory=list)


@dataclass(frozen=True)
class RpcFailure:
    """Error descriptor returned by the device."""

    kind: ErrorKind
    message: str
    code: int | None = None


@dataclass(frozen=True)
class RpcResponse:
    """
    Outcome of a call: either a result or a failure descriptor.

    Attributes:
        request_id: Sequence number of the request answered.
        result: Result payload on success.
        error: Failure descriptor when the device reported an error.
    """

    request_id: int
    result: Any = None
    error: RpcFailure | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> Any:
        """
        Return the result payload.

        Raises:
            DeviceError: If the device answered with an error.
        """
        if self.error is not None:
            raise DeviceError(self.error.message, self.error.code)
        return self.result


def encode_request(request: RpcRequest, request_id: int) -> bytes:
    """
    Serialize a request body.

    Args:
        request: The call to encode.
        request_id: Sequence number to correlate the response.

    Returns:
        Compact UTF-8 JSON bytes.
    """
    body = {"id": request_id, "method": request.method, "params": list(request.params)}
    return json.dumps(body, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def decode_response(body: bytes, expected_id: int) -> RpcResponse:
    """
    Parse a response body and correlate it with the pending request.

    Args:
        body: Decrypted payload, possibly NUL terminated.
        expected_id: Sequence number of the pending request.

    Returns:
        The RpcResponse.

    Raises:
        StaleResponseError: If the id belongs to an earlier request.
        ProtocolError: On invalid JSON, missing id or any other id.
    """
    message = _load_object(body)
    if "id" not in message:
        raise ProtocolError("Response has no id")
    response_id = message["id"]
    if _is_sequence(response_id) and response_id < expected_id:
        raise StaleResponseError(
            f"Response id {response_id} is older than request id {expected_id}"
        )
    if response_id != expected_id:
        raise ProtocolError(
            f"Response id {message['id']} does not match request id {expected_id}"
        )
    error = message.get("error")
    if error is not None:
        return RpcResponse(expected_id, error=_failure(error))
    return RpcResponse(expected_id, result=message.get("result"))


def _load_object(body: bytes) -> dict[str, Any]:
    try:
        message = json.loads(body.rstrip(b"\x00").decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ProtocolError(f"Invalid JSON payload: {e}") from e
    if not isinstance(message, dict):
        raise ProtocolError("Payload is not a JSON object")
    return message


def _is_sequence(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _failure(error: Any) -> RpcFailure:
    if isinstance(error, dict):
        return RpcFailure(
            kind=ErrorKind.DEVICE,
            message=str(error.get("message", "unknown error")),
            code=error.get("code"),
        )
    return RpcFailure(kind=ErrorKind.DEVICE, message=str(error))
