#!/usr/bin/env python3
"""Formatting of call results and errors for the terminal."""

from __future__ import annotations

import json
from typing import Any

from miiocli.errors import ErrorKind, MiioError

ADDRESS_HINT: str = "Please, check that provided IP address is correct!"
TOKEN_HINT: str = "Please, check that provided token is correct!"


def format_result(result: Any) -> str:
    """Render a result payload as indented JSON."""
    return json.dumps(result, indent=2, ensure_ascii=False)


def format_error(error: MiioError) -> str:
    """Render an error as "<Kind>: <message>"."""
    return f"{error.kind.value}: {error.message}"


def hint_for(kind: ErrorKind) -> str | None:
    """
    Return the follow-up hint for an error kind, if any.

    Connectivity failures point at the address, integrity failures at the
    token.
    """
    if kind is ErrorKind.CONNECT:
        return ADDRESS_HINT
    if kind is ErrorKind.PROTOCOL:
        return TOKEN_HINT
    if kind in (ErrorKind.TIMEOUT, ErrorKind.VALIDATION, ErrorKind.DEVICE):
        return None
    raise ValueError(f"Unhandled error kind: {kind}")
