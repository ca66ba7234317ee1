"""
Base node backend interface.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any


@dataclass
class WalletUnspent:
    """An output from the node wallet's own index (``listunspent``)."""

    txid: str
    vout: int
    address: str
    amount: float  # BTC, as reported
    parent_descs: list[str] = field(default_factory=list)


@dataclass
class ScanResult:
    """One ``scantxoutset`` answer."""

    total_amount: float  # BTC, as reported
    unspents: list[dict[str, Any]] = field(default_factory=list)


class NodeBackend(ABC):
    """
    Read-only view of a node: the UTXO set and the wallet's indexed outputs.
    """

    @abstractmethod
    async def scan_descriptors(self, descriptors: Sequence[str | dict[str, Any]]) -> ScanResult:
        """Scan the UTXO set for outputs matching the given descriptors"""

    @abstractmethod
    async def list_unspent(self) -> list[WalletUnspent]:
        """List outputs the node wallet already tracks"""

    async def close(self) -> None:
        """Close backend connection"""
        pass
