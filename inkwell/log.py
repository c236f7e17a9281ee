"""Console logging for the Inkwell CLI.

Library modules log through ``logging.getLogger(__name__)``. The CLI routes
those records to the terminal with ``click.echo``, coloured by level.
"""

from __future__ import annotations

import logging

import click

LEVEL_STYLES = {
    logging.DEBUG: {"fg": "bright_black"},
    logging.INFO: {},
    logging.WARNING: {"fg": "yellow"},
    logging.ERROR: {"fg": "red"},
    logging.CRITICAL: {"fg": "red", "bold": True},
}


class ClickHandler(logging.Handler):
    """Writes log records through click, warnings and errors to stderr."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            message = self.format(record)
            style = LEVEL_STYLES.get(record.levelno, {})
            click.echo(
                click.style(message, **style),
                err=record.levelno >= logging.WARNING,
            )
        except Exception:
            self.handleError(record)


def configure_logging(verbose: bool = False) -> None:
    """Attach the click handler to the ``inkwell`` logger (idempotent)."""
    logger = logging.getLogger("inkwell")
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    for handler in list(logger.handlers):
        if isinstance(handler, ClickHandler):
            logger.removeHandler(handler)
    handler = ClickHandler()
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)
