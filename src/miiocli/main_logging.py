"""Logging setup for the miio-cli command.

Package loggers (miiocli.transport, miiocli.client_retry, ...) log packets
and handshakes at DEBUG and retries at WARNING. --verbose lowers only the
package logger to DEBUG so asyncio and other libraries stay quiet.
"""
import logging

PACKAGE_LOGGER: str = "miiocli"

LOG_FORMAT: str = "%(levelname)s %(name)s: %(message)s"


def configure_logging(verbose: bool) -> None:
    """Route package log records to stderr.

    Args:
        verbose: If True, show packet-level DEBUG records from this package.
    """
    logging.basicConfig(
        level=logging.WARNING,
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler()],
    )
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    package_logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
