"""CLI handling for miio-cli.

This module provides the command-line interface, handling argument parsing
and validation via click, logging configuration, and dispatching the call
to the device.

Usage:
    miio-cli --token TOKEN --address ADDRESS [OPTIONS] CALL [ARGS]
"""

import sys
from typing import Any

import click

from miiocli.client_constants import DEFAULT_ATTEMPTS, DEFAULT_DELAY, DEFAULT_TIMEOUT
from miiocli.endpoint import DeviceEndpoint, RetryPolicy
from miiocli.main_logging import configure_logging
from miiocli.main_options import validated
from miiocli.validation import parse_address, parse_args, parse_token


@click.command()
@click.argument("call")
@click.argument("args", default="[]", callback=validated(parse_args))
@click.option(
    "--token",
    "-t",
    required=True,
    envvar="MIIO_TOKEN",
    callback=validated(parse_token),
    help="Device token (32 hex digits)",
)
@click.option(
    "--address",
    "-a",
    required=True,
    envvar="MIIO_ADDRESS",
    callback=validated(parse_address),
    help="Device IP address",
)
@click.option(
    "--attempts",
    "-c",
    type=click.IntRange(min=1),
    default=DEFAULT_ATTEMPTS,
    show_default=True,
    help="Retry attempts count",
)
@click.option(
    "--delay",
    "-d",
    type=click.FloatRange(min=0),
    default=DEFAULT_DELAY,
    show_default=True,
    help="Retry delay (seconds)",
)
@click.option(
    "--timeout",
    "-l",
    type=click.FloatRange(min=0, min_open=True),
    default=DEFAULT_TIMEOUT,
    show_default=True,
    help="Response wait timeout (seconds)",
)
@click.option(
    "--verbose",
    is_flag=True,
    help="Enable DEBUG-level logging",
)
def main(
    call: str,
    args: list[Any],
    token: bytes,
    address: str,
    attempts: int,
    delay: float,
    timeout: float,
    verbose: bool,
) -> None:
    """Execute device command CALL with ARGS given as a JSON array.

    Examples of CALL: "miIO.info", "get_props", "set_props", "get_properties".
    """
    configure_logging(verbose)

    endpoint = DeviceEndpoint(address=address, token=token)
    policy = RetryPolicy(attempts=attempts, delay=delay, timeout=timeout)
    _run_call(endpoint, policy, call, args)


def _run_call(endpoint: DeviceEndpoint, policy: RetryPolicy, call: str, args: list[Any]) -> None:
    """Run the call and print its result or error.

    Args:
        endpoint: Device address and token.
        policy: Retry configuration.
        call: Remote method name.
        args: Positional parameters.
    """
    import asyncio
    from miiocli.client import run_call
    from miiocli.errors import MiioError
    from miiocli.output import format_error, format_result, hint_for

    try:
        result = asyncio.run(run_call(endpoint, policy, call, args))
    except MiioError as e:
        click.echo(format_error(e), err=True)
        hint = hint_for(e.kind)
        if hint:
            click.echo(hint, err=True)
        sys.exit(1)
    click.echo(format_result(result))
