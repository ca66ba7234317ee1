"""
Error taxonomy for the sweep engine.

The engine raises, the CLI reports. Nothing here is retried: every error aborts
the current run before any funds move.
"""

from __future__ import annotations


class SweepError(Exception):
    """Base class for all sweep failures."""


class ConfigurationError(SweepError):
    """The configured satpoint or addresses do not match the wallet."""


class DescriptorParseError(SweepError, ValueError):
    """A descriptor does not have the expected single-key taproot shape."""

    def __init__(self, descriptor: str, reason: str = "unexpected descriptor shape"):
        self.descriptor = descriptor
        self.reason = reason
        super().__init__(f"Failed to parse descriptor {descriptor!r}: {reason}")


class InsufficientFundsError(SweepError):
    """The fee-funding output cannot cover the transaction fee."""

    def __init__(self, fee: int, available: int):
        self.fee = fee
        self.available = available
        super().__init__(
            f"Not enough funds. Transaction has fee of {fee}, "
            f"but you only have {available} for fees"
        )


class NodeRPCError(SweepError):
    """Bitcoin Core answered with an RPC error payload."""

    def __init__(self, method: str, code: int | str, message: str):
        self.method = method
        self.code = code
        super().__init__(f"RPC error {code} in {method}: {message}")


class BroadcastError(SweepError):
    """The relay refused the transaction or could not be reached."""

    def __init__(self, message: str, status_code: int | None = None, body: str = ""):
        self.status_code = status_code
        self.body = body
        super().__init__(message)
