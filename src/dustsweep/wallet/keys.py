"""
Per-path taproot key derivation with an explicit cache.
"""

from __future__ import annotations

from dataclasses import dataclass

from coincurve import PrivateKey
from loguru import logger

from dustsweep.constants import TAPROOT_PURPOSE
from dustsweep.models import NetworkType
from dustsweep.wallet.address import xonly_to_p2tr_address, xonly_to_p2tr_script
from dustsweep.wallet.bip32 import HDKey, taproot_tweak_private_key, xonly


@dataclass(frozen=True)
class DerivedKey:
    """Everything needed to spend one BIP86 output."""

    path: str
    internal_key: bytes  # x-only, untweaked
    signing_key: PrivateKey  # tweaked, signs the key path
    output_key: bytes  # x-only, tweaked
    script_pubkey: bytes

    def address(self, network: NetworkType | str = "mainnet") -> str:
        return xonly_to_p2tr_address(self.output_key, network)


class KeyDeriver:
    """
    Derives BIP86 keys below ``m/86'/{coin}'`` and memoizes them by suffix.

    The suffix is ``account'/chain/index``. One instance lives for one run;
    both build passes must go through the same instance so a given address
    always maps to the same key.
    """

    def __init__(self, master_key: HDKey, network: NetworkType | str = "mainnet"):
        self.master_key = master_key
        self.network = NetworkType(network)
        self.root_path = f"m/{TAPROOT_PURPOSE}'/{self.network.coin_type}'"
        self._cache: dict[str, DerivedKey] = {}

    def __len__(self) -> int:
        return len(self._cache)

    def __contains__(self, suffix: object) -> bool:
        return suffix in self._cache

    def derive_and_cache(self, suffix: str) -> DerivedKey:
        cached = self._cache.get(suffix)
        if cached is not None:
            return cached

        path = f"{self.root_path}/{suffix}"
        child = self.master_key.derive(path)
        signing_key = taproot_tweak_private_key(child.private_key)
        output_key = xonly(signing_key.public_key)

        derived = DerivedKey(
            path=path,
            internal_key=child.get_xonly_public_key(),
            signing_key=signing_key,
            output_key=output_key,
            script_pubkey=xonly_to_p2tr_script(output_key),
        )
        self._cache[suffix] = derived
        logger.trace(f"Derived key for {path}")
        return derived

    def address_for(self, chain: int, index: int, account: int = 0) -> str:
        return self.derive_and_cache(f"{account}'/{chain}/{index}").address(self.network)
