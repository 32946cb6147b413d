#!/usr/bin/env python3
"""Validation of user supplied device parameters.

All checks run before any socket is opened so that malformed input never
reaches the network.
"""

from __future__ import annotations

import json
import re
from typing import Any

from miiocli.errors import ValidationError

TOKEN_PATTERN = re.compile(r"^[a-f0-9]{32}$", re.IGNORECASE)

_OCTET = r"([0-9]|[1-9][0-9]|1[0-9]{2}|2[0-4][0-9]|25[0-5])"
ADDRESS_PATTERN = re.compile(rf"^({_OCTET}\.){{3}}{_OCTET}$")


def parse_token(text: str) -> bytes:
    """
    Parse a device token given as 32 hex digits.

    Args:
        text: Token string, case-insensitive.

    Returns:
        The 16 raw token bytes.

    Raises:
        ValidationError: If text is not exactly 32 hex digits.
    """
    if not TOKEN_PATTERN.match(text):
        raise ValidationError(f'Invalid token "{text}", expected 32 hex digits')
    return bytes.fromhex(text)


def parse_address(text: str) -> str:
    """
    Check that text is a dotted-quad IPv4 address.

    Raises:
        ValidationError: If text is not a valid IPv4 address.
    """
    if not ADDRESS_PATTERN.match(text):
        raise ValidationError(f'Invalid IP address "{text}"')
    return text


def parse_args(text: str) -> list[Any]:
    """
    Decode call arguments given as a JSON array.

    Args:
        text: JSON encoded array, e.g. '["power", "mode"]'.

    Returns:
        The decoded list, order preserved.

    Raises:
        ValidationError: If text is not valid JSON or not an array.
    """
    try:
        value = json.loads(text)
    except json.JSONDecodeError as e:
        raise ValidationError(f"Invalid args: {e}") from e
    if not isinstance(value, list):
        raise ValidationError("Invalid args: expected a JSON array")
    return value
