"""
Core data models.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel, Field, field_validator

from dustsweep.constants import COIN_TYPE_MAINNET, COIN_TYPE_TESTNET


class NetworkType(str, Enum):
    MAINNET = "mainnet"
    TESTNET = "testnet"
    SIGNET = "signet"
    REGTEST = "regtest"

    @property
    def coin_type(self) -> int:
        """SLIP-44 coin type: 0 on mainnet, 1 on every test network."""
        return COIN_TYPE_MAINNET if self == NetworkType.MAINNET else COIN_TYPE_TESTNET

    @property
    def hrp(self) -> str:
        """Bech32 human-readable part."""
        if self == NetworkType.MAINNET:
            return "bc"
        if self == NetworkType.REGTEST:
            return "bcrt"
        return "tb"


_TXID_RE = re.compile(r"^[0-9a-fA-F]{64}$")


class Satpoint(BaseModel):
    """Reference to a transaction output, written as ``txid:vout``."""

    txid: str
    vout: int = Field(..., ge=0)

    model_config = {"frozen": True}

    @field_validator("txid")
    @classmethod
    def validate_txid(cls, v: str) -> str:
        if not _TXID_RE.match(v):
            raise ValueError(f"Invalid txid: {v!r}")
        return v.lower()

    @classmethod
    def parse(cls, value: str) -> Satpoint:
        txid, sep, vout = value.strip().rpartition(":")
        if not sep or not vout.isdigit():
            raise ValueError(f"Satpoint must look like txid:vout, got {value!r}")
        return cls(txid=txid, vout=int(vout))

    def __str__(self) -> str:
        return f"{self.txid}:{self.vout}"


@dataclass
class ScannedUTXO:
    """
    An unspent output found by a descriptor scan.

    ``path`` and ``script_pubkey`` are attached once the descriptor has been
    matched to a derivation path; they stay ``None`` until then.
    """

    txid: str
    vout: int
    value: int  # sats
    desc: str
    scanned_script: str = ""  # scriptPubKey hex as reported by the node
    height: int | None = None
    path: str | None = None
    script_pubkey: bytes | None = None

    @property
    def outpoint(self) -> str:
        return f"{self.txid}:{self.vout}"

    def matches(self, satpoint: Satpoint) -> bool:
        return self.txid.lower() == satpoint.txid and self.vout == satpoint.vout
