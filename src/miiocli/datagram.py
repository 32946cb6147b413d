#!/usr/bin/env python3
"""asyncio datagram protocol feeding received packets into a queue.

Transport owns one DatagramQueue per device socket and awaits packets from
it with a timeout.
"""

from __future__ import annotations

import asyncio
import logging

logger = logging.getLogger(__name__)

# Queued to wake a pending receive when the socket reports an error.
_WAKEUP: bytes = b""


class DatagramQueue(asyncio.DatagramProtocol):
    """Collect datagrams from the connected peer.

    Socket errors reported by the event loop are stored and raised from the
    pending or next receive.
    """

    def __init__(self) -> None:
        self.packets: asyncio.Queue[bytes] = asyncio.Queue()
        self.error: Exception | None = None

    def datagram_received(self, data: bytes, addr: tuple[str, int]) -> None:
        logger.debug("Received %d bytes from %s:%s", len(data), addr[0], addr[1])
        self.packets.put_nowait(data)

    def error_received(self, exc: Exception) -> None:
        logger.debug("Socket error: %s", exc)
        self.error = exc
        self.packets.put_nowait(_WAKEUP)

    def discard_pending(self) -> int:
        """Drop queued packets and any stored error.

        Returns:
            Number of packets dropped.
        """
        dropped = 0
        while not self.packets.empty():
            if self.packets.get_nowait():
                dropped += 1
        self.error = None
        return dropped

    async def receive(self, timeout: float) -> bytes:
        """
        Wait for the next datagram.

        Args:
            timeout: Seconds to wait.

        Returns:
            The datagram bytes.

        Raises:
            asyncio.TimeoutError: If nothing arrives in time.
            OSError: If the socket reported an error.
        """
        self._raise_pending_error()
        data = await asyncio.wait_for(self.packets.get(), timeout=timeout)
        self._raise_pending_error()
        return data

    def _raise_pending_error(self) -> None:
        if self.error is not None:
            error, self.error = self.error, None
            raise error
