"""
Key derivation, taproot addresses and transaction signing.
"""

from dustsweep.wallet.bip32 import HDKey, mnemonic_to_seed
from dustsweep.wallet.keys import DerivedKey, KeyDeriver
from dustsweep.wallet.signing import Transaction, TxInput, TxOutput

__all__ = [
    "DerivedKey",
    "HDKey",
    "KeyDeriver",
    "Transaction",
    "TxInput",
    "TxOutput",
    "mnemonic_to_seed",
]
