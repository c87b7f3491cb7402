"""Rendering of ledger errors on the command line."""

import logging

import click

from phoneledger.domain.errors import (
    ConflictRetryExhaustedError,
    DomainError,
    PartialLookupFailureError,
)

logger = logging.getLogger(__name__)

_HINTS = {
    ConflictRetryExhaustedError: "Another writer kept changing the same balances; nothing was saved. Try again.",
    PartialLookupFailureError: "Nothing was changed. Rerun with --lenient-inventory to skip unresolved phones.",
}


def handle_domain_error(ctx: click.Context, error: DomainError | ValueError) -> None:
    """Print the error (and a hint for retryable failures) to stderr and exit 1."""
    logger.info("Command %s failed: %s", ctx.command_path, error)
    click.echo(f"Error: {error}", err=True)
    for error_type, hint in _HINTS.items():
        if isinstance(error, error_type):
            click.echo(hint, err=True)
    ctx.exit(1)
