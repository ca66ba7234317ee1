"""
Test configuration for dustsweep tests.
"""

from __future__ import annotations

from collections.abc import Callable

import pytest
from coincurve import PublicKeyXOnly

from dustsweep.models import NetworkType, Satpoint, ScannedUTXO
from dustsweep.wallet.bip32 import HDKey
from dustsweep.wallet.keys import KeyDeriver

# BIP173 example P2WPKH address, not derived from the test mnemonic
EXTERNAL_ADDRESS = "bc1qw508d6qejxtdg4y5r3zarvary0c5xw7kv8f3t4"

FEE_TXID = "ff" * 32


@pytest.fixture
def sample_mnemonic() -> str:
    """Test mnemonic (not for production use!)."""
    return (
        "abandon abandon abandon abandon abandon abandon "
        "abandon abandon abandon abandon abandon about"
    )


@pytest.fixture
def master_key(sample_mnemonic: str) -> HDKey:
    return HDKey.from_mnemonic(sample_mnemonic)


@pytest.fixture
def keys(master_key: HDKey) -> KeyDeriver:
    return KeyDeriver(master_key, NetworkType.MAINNET)


@pytest.fixture
def external_address() -> str:
    return EXTERNAL_ADDRESS


@pytest.fixture
def refund_address(master_key: HDKey) -> str:
    return KeyDeriver(master_key).address_for(chain=1, index=0)


@pytest.fixture
def fee_satpoint() -> Satpoint:
    return Satpoint(txid=FEE_TXID, vout=0)


def output_descriptor(chain: int, index: int, account: int = 0) -> str:
    return f"tr([73c5da0a/86'/0'/{account}'/{chain}/{index}]{'ab' * 32})#qwer1234"


@pytest.fixture
def make_utxo() -> Callable[..., ScannedUTXO]:
    """Factory for scanned outputs whose keys derive from the test mnemonic."""

    def _make(value: int, n: int, chain: int = 0, index: int | None = None) -> ScannedUTXO:
        return ScannedUTXO(
            txid=f"{n:064x}",
            vout=n % 3,
            value=value,
            desc=output_descriptor(chain, n if index is None else index),
        )

    return _make


@pytest.fixture
def fee_utxo() -> ScannedUTXO:
    return ScannedUTXO(txid=FEE_TXID, vout=0, value=10_000, desc=output_descriptor(1, 5))


@pytest.fixture
def dust_utxos(make_utxo: Callable[..., ScannedUTXO]) -> list[ScannedUTXO]:
    return [make_utxo(1000, 1), make_utxo(2000, 2), make_utxo(3000, 3)]


@pytest.fixture
def verify_schnorr() -> Callable[[bytes, bytes, bytes], bool]:
    """BIP340 verification of a key-path signature against an output key."""

    def _verify(output_key: bytes, sighash: bytes, signature: bytes) -> bool:
        return PublicKeyXOnly(output_key).verify(signature[:64], sighash)

    return _verify
