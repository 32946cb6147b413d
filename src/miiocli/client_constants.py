#!/usr/bin/env python3
"""Constants for client connection and retry configuration.

These defaults match the CLI option defaults and the miIO protocol port.
"""

# UDP port miIO devices listen on.
MIIO_PORT: int = 54321

# Number of attempts per handshake or call. 1 means no retry.
DEFAULT_ATTEMPTS: int = 1

# Constant delay between attempts in seconds.
DEFAULT_DELAY: float = 1.0

# Response wait timeout per attempt in seconds.
DEFAULT_TIMEOUT: float = 5.0
