"""
Collection of the wallet's spendable outputs.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass, field

from loguru import logger

from dustsweep.backends.base import NodeBackend, ScanResult, WalletUnspent
from dustsweep.constants import SATS_PER_BTC
from dustsweep.descriptors import parse_account_template, scan_descriptor
from dustsweep.errors import ConfigurationError
from dustsweep.models import Satpoint, ScannedUTXO
from dustsweep.wallet.keys import KeyDeriver


def btc_to_sats(btc: float) -> int:
    """
    Convert BTC to satoshis safely.

    Uses round() instead of int() to avoid floating point precision errors
    that can truncate values (e.g. 0.0003 * 1e8 = 29999.999...).
    """
    return round(btc * SATS_PER_BTC)


@dataclass
class UtxoCatalog:
    """Deduplicated set of scanned outputs, amounts in sats."""

    utxos: list[ScannedUTXO] = field(default_factory=list)

    @classmethod
    def from_scan_results(cls, results: Iterable[ScanResult]) -> UtxoCatalog:
        seen: dict[tuple[str, int], ScannedUTXO] = {}
        for result in results:
            for entry in result.unspents:
                key = (entry["txid"], entry["vout"])
                if key in seen:
                    continue
                seen[key] = ScannedUTXO(
                    txid=entry["txid"],
                    vout=entry["vout"],
                    value=btc_to_sats(entry["amount"]),
                    desc=entry.get("desc", ""),
                    scanned_script=entry.get("scriptPubKey", ""),
                    height=entry.get("height"),
                )
        return cls(utxos=list(seen.values()))

    @property
    def total_value(self) -> int:
        return sum(utxo.value for utxo in self.utxos)

    def find(self, satpoint: Satpoint) -> ScannedUTXO | None:
        return next((utxo for utxo in self.utxos if utxo.matches(satpoint)), None)

    def __len__(self) -> int:
        return len(self.utxos)

    def __iter__(self) -> Iterator[ScannedUTXO]:
        return iter(self.utxos)


async def scan_wallet(backend: NodeBackend, template: str, addresses_to_scan: int) -> UtxoCatalog:
    """Scan receive and change chains of an account template."""
    results = []
    for chain in (0, 1):
        descriptor = scan_descriptor(template, chain)
        results.append(
            await backend.scan_descriptors([{"desc": descriptor, "range": addresses_to_scan}])
        )

    catalog = UtxoCatalog.from_scan_results(results)
    logger.info(f"Found {len(catalog)} UTXOs worth {catalog.total_value} sats")
    return catalog


def discover_account_template(
    unspent: Sequence[WalletUnspent], keys: KeyDeriver, addresses_to_scan: int
) -> str:
    """
    Find the account's range descriptor from the node wallet.

    Walks derived addresses in receive/change order until one of them is
    found among the wallet's unspent outputs, then takes its first parent
    descriptor.
    """
    by_address: dict[str, WalletUnspent] = {}
    for entry in unspent:
        if entry.address:
            by_address.setdefault(entry.address, entry)

    for i in range(2 * addresses_to_scan):
        address = keys.address_for(chain=i % 2, index=i // 2)
        entry = by_address.get(address)
        if entry is None:
            continue

        if not entry.parent_descs:
            raise ConfigurationError(f"Node reports no parent descriptor for {address}")
        logger.debug(f"Matched wallet address at chain {i % 2} index {i // 2}")
        return parse_account_template(entry.parent_descs[0])

    raise ConfigurationError(
        f"None of the first {addresses_to_scan} receive/change addresses of this mnemonic "
        "hold funds in the node wallet. Check the mnemonic and network."
    )
