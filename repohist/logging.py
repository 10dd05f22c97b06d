"""Logging setup for the repohist CLI.

Library modules log through ``logging.getLogger(__name__)``, which already
falls under the ``repohist`` hierarchy. The CLI configures the root handler
once per invocation.
"""

import logging
import sys


def setup_logging(verbose: bool = False) -> None:
    """
    Send repohist logs to stderr.

    Records the backends drop and best-effort failures show up as warnings
    and errors by default; ``-v`` adds the argv of every backend command.
    Standard output stays reserved for history, annotation and file content.

    Args:
        verbose: Log at DEBUG instead of WARNING
    """
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(name)s: %(levelname)s: %(message)s",
        stream=sys.stderr,
    )


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger under ``repohist`` by short component name.

    Args:
        name: Short component name (e.g., "cli")
    """
    return logging.getLogger(f"repohist.{name}")
