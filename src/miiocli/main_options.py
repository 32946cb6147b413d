"""Click option helpers for parameter validation."""
from collections.abc import Callable
from typing import Any

import click

from miiocli.errors import ValidationError


def validated(parse: Callable[[str], Any]) -> Callable[[click.Context, click.Parameter, Any], Any]:
    """Wrap a parser raising ValidationError as a click callback.

    Args:
        parse: Function converting the raw string value.

    Returns:
        A callback raising click.BadParameter on invalid input.
    """

    def callback(ctx: click.Context, param: click.Parameter, value: Any) -> Any:
        if value is None:
            return value
        try:
            return parse(value)
        except ValidationError as e:
            raise click.BadParameter(e.message, ctx=ctx, param=param) from e

    return callback
