"""
Operator confirmation prompts for the sweep.
"""

from __future__ import annotations

import os
import sys

import typer


def is_interactive_mode() -> bool:
    """
    Check if we're running in interactive mode.

    Returns False if NO_INTERACTIVE env var is set or if not attached to a TTY.
    """
    if os.environ.get("NO_INTERACTIVE"):
        return False
    return sys.stdin.isatty() and sys.stdout.isatty()


def _ask(question: str, skip_confirmation: bool) -> bool:
    if skip_confirmation:
        return True

    if not is_interactive_mode():
        raise RuntimeError(
            "Cannot prompt for confirmation in non-interactive mode. "
            "Use --yes to skip confirmation."
        )

    try:
        return typer.confirm(question, default=False)
    except (KeyboardInterrupt, EOFError, typer.Abort):
        typer.echo("\nCancelled by user.")
        return False


def confirm_scan_total(total_btc: float, utxo_count: int, skip_confirmation: bool = False) -> bool:
    """
    Show what the scan found and ask whether to build the transaction.

    The operator should compare the total against their wallet software;
    a lower figure here means some outputs were not found by the scan.
    """
    typer.echo(f"{total_btc:.8f}BTC found across {utxo_count} UTXO's.")
    typer.echo(
        "Please double check this agrees with your wallet. If there is more in your "
        "wallet there may be some UTXO's that haven't been detected."
    )
    return _ask("Do you want to continue?", skip_confirmation)


def confirm_broadcast(skip_confirmation: bool = False) -> bool:
    return _ask(
        "Transaction is ready to be broadcast. Do you want to broadcast it?", skip_confirmation
    )
