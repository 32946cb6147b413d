#!/usr/bin/env python3
"""Per-device session state established by the handshake.

The device id and stamp come from the hello response. The stamp sent with
each request is the handshake stamp plus whole seconds elapsed since then.
The sequence counter doubles as the JSON request id. Every request takes
a fresh id whether or not it succeeds, so ids never repeat on a session.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field


@dataclass
class Session:
    """
    Correlation state for one device.

    Attributes:
        device_id: Device identifier from the handshake.
        stamp: Device stamp at handshake time.
        sequence: Id the next request will take.
        handshake_time: Local monotonic time of the handshake.
    """

    device_id: int
    stamp: int
    sequence: int = 1
    handshake_time: float = field(default_factory=time.monotonic)

    def current_stamp(self) -> int:
        """Return the device stamp adjusted for time since the handshake."""
        elapsed = int(time.monotonic() - self.handshake_time)
        return (self.stamp + elapsed) & 0xFFFFFFFF

    def allocate(self) -> int:
        """Take the next sequence number for a new request."""
        request_id = self.sequence
        self.sequence += 1
        return request_id
