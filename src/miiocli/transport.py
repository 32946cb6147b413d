#!/usr/bin/env python3
"""Single device request/response exchange over UDP.

Transport owns the datagram socket and the Session for one device. It
performs exactly one exchange per call and never retries; retrying is the
job of RetryingClient in client_retry.py.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from miiocli.datagram import DatagramQueue
from miiocli.errors import ConnectError, ProtocolError, ResponseTimeoutError, StaleResponseError
from miiocli.protocol import HELLO_PACKET, decode_packet, encode_packet, parse_hello_response
from miiocli.rpc import decode_response, encode_request
from miiocli.session import Session

if TYPE_CHECKING:
    from miiocli.endpoint import DeviceEndpoint
    from miiocli.rpc import RpcRequest, RpcResponse

logger = logging.getLogger(__name__)


class Transport:
    """
    Socket and session owner for a single device.

    Attributes:
        endpoint: The device address and token.
        session: Session from the last handshake, or None.
    """

    def __init__(self, endpoint: DeviceEndpoint) -> None:
        self.endpoint = endpoint
        self.session: Session | None = None
        self._socket: asyncio.DatagramTransport | None = None
        self._protocol: DatagramQueue | None = None

    @property
    def closed(self) -> bool:
        return self._socket is None

    async def open(self, timeout: float) -> Session:
        """
        Handshake with the device and establish a Session.

        An existing session is reused without a new handshake.

        Args:
            timeout: Seconds to wait for the hello response.

        Returns:
            The established Session.

        Raises:
            ConnectError: On socket failure, timeout or malformed response.
        """
        if self.session is not None:
            return self.session
        protocol = await self._ensure_socket()
        protocol.discard_pending()

        logger.debug("Sending hello to %s", self._peer())
        try:
            self._sendto(HELLO_PACKET)
            packet = await protocol.receive(timeout)
        except asyncio.TimeoutError as e:
            raise ConnectError(
                f"No handshake response from {self._peer()} within {timeout:g}s"
            ) from e
        except OSError as e:
            raise ConnectError(f"Handshake with {self._peer()} failed: {e}") from e

        try:
            header = parse_hello_response(packet)
        except ProtocolError as e:
            raise ConnectError(f"Malformed handshake response: {e.message}") from e

        self.session = Session(device_id=header.device_id, stamp=header.stamp)
        logger.debug("Handshake done: device_id=%s stamp=%s", header.device_id, header.stamp)
        return self.session

    async def send(
        self,
        session: Session,
        request: RpcRequest,
        timeout: float,
        request_id: int | None = None,
    ) -> RpcResponse:
        """
        Send one request and wait for its response.

        Answers to earlier requests that arrive late are dropped and the
        wait continues until the timeout.

        Args:
            session: Session returned by open().
            request: The call to make.
            timeout: Seconds to wait for the response.
            request_id: Sequence number to send. A new one is taken from
                the session when omitted; retries pass the same id again.

        Returns:
            The correlated RpcResponse.

        Raises:
            ConnectError: If the transport is closed or the socket fails.
            ResponseTimeoutError: If no response arrives in time.
            ProtocolError: On a response that fails verification or correlation.
        """
        if self._protocol is None or session is not self.session:
            raise ConnectError("Transport is closed")
        if request_id is None:
            request_id = session.allocate()
        token = self.endpoint.token
        packet = encode_packet(
            session.device_id,
            session.current_stamp(),
            token,
            encode_request(request, request_id),
        )

        dropped = self._protocol.discard_pending()
        if dropped:
            logger.debug("Discarded %d stale packets", dropped)

        logger.debug("Sending %s id=%s to %s", request.method, request_id, self._peer())
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        try:
            self._sendto(packet)
        except OSError as e:
            raise ConnectError(f"Socket error talking to {self._peer()}: {e}") from e
        while True:
            try:
                data = await self._protocol.receive(max(deadline - loop.time(), 0))
            except asyncio.TimeoutError as e:
                raise ResponseTimeoutError(
                    f"No response to {request.method} within {timeout:g}s"
                ) from e
            except OSError as e:
                raise ConnectError(f"Socket error talking to {self._peer()}: {e}") from e

            header, body = decode_packet(data, token)
            if header.device_id != session.device_id:
                raise ProtocolError(
                    f"Response from device {header.device_id}, expected {session.device_id}"
                )
            try:
                return decode_response(body, request_id)
            except StaleResponseError as e:
                logger.debug("Dropped late packet: %s", e.message)

    def close(self) -> None:
        """Release the socket and discard the session. Safe to call twice."""
        if self._socket is not None:
            logger.debug("Closing socket to %s", self._peer())
            self._socket.close()
        self._socket = None
        self._protocol = None
        self.session = None

    async def _ensure_socket(self) -> DatagramQueue:
        if self._protocol is not None:
            return self._protocol
        loop = asyncio.get_running_loop()
        try:
            self._socket, self._protocol = await loop.create_datagram_endpoint(
                DatagramQueue,
                remote_addr=(self.endpoint.address, self.endpoint.port),
            )
        except OSError as e:
            raise ConnectError(f"Cannot open socket to {self._peer()}: {e}") from e
        return self._protocol

    def _sendto(self, packet: bytes) -> None:
        assert self._socket is not None
        self._socket.sendto(packet)

    def _peer(self) -> str:
        return f"{self.endpoint.address}:{self.endpoint.port}"
