"""
Transaction model and BIP341 key-path signing.
"""

from __future__ import annotations

import hashlib
import struct
from dataclasses import dataclass, field

from coincurve import PrivateKey

from dustsweep.constants import RBF_SEQUENCE, TX_LOCKTIME, TX_VERSION
from dustsweep.wallet.bip32 import tagged_hash

SIGHASH_DEFAULT = 0x00
SIGHASH_ALL = 0x01


class TransactionSigningError(Exception):
    pass


@dataclass
class TxInput:
    txid: str  # RPC byte order
    vout: int
    value: int
    script_pubkey: bytes
    sequence: int = RBF_SEQUENCE
    witness: list[bytes] = field(default_factory=list)


@dataclass
class TxOutput:
    value: int
    script_pubkey: bytes
    address: str = ""


def hash256(data: bytes) -> bytes:
    return hashlib.sha256(hashlib.sha256(data).digest()).digest()


def encode_varint(value: int) -> bytes:
    if value < 0xFD:
        return bytes([value])
    if value <= 0xFFFF:
        return b"\xfd" + value.to_bytes(2, "little")
    if value <= 0xFFFFFFFF:
        return b"\xfe" + value.to_bytes(4, "little")
    return b"\xff" + value.to_bytes(8, "little")


def serialize_outpoint(txid: str, vout: int) -> bytes:
    """Serialize outpoint (txid:vout)."""
    # txid is in RPC format (big-endian), need to reverse for raw tx
    return bytes.fromhex(txid)[::-1] + struct.pack("<I", vout)


def serialize_output(out: TxOutput) -> bytes:
    return struct.pack("<q", out.value) + encode_varint(len(out.script_pubkey)) + out.script_pubkey


@dataclass
class Transaction:
    inputs: list[TxInput]
    outputs: list[TxOutput]
    version: int = TX_VERSION
    locktime: int = TX_LOCKTIME

    @property
    def has_witness(self) -> bool:
        return any(inp.witness for inp in self.inputs)

    def serialize(self, include_witness: bool = True) -> bytes:
        with_witness = include_witness and self.has_witness

        parts = [struct.pack("<I", self.version)]
        if with_witness:
            parts.append(bytes([0x00, 0x01]))  # SegWit marker and flag

        parts.append(encode_varint(len(self.inputs)))
        for inp in self.inputs:
            parts.append(serialize_outpoint(inp.txid, inp.vout))
            parts.append(bytes([0x00]))  # empty scriptSig
            parts.append(struct.pack("<I", inp.sequence))

        parts.append(encode_varint(len(self.outputs)))
        parts.extend(serialize_output(out) for out in self.outputs)

        if with_witness:
            for inp in self.inputs:
                parts.append(encode_varint(len(inp.witness)))
                for item in inp.witness:
                    parts.append(encode_varint(len(item)) + item)

        parts.append(struct.pack("<I", self.locktime))
        return b"".join(parts)

    def to_hex(self) -> str:
        return self.serialize().hex()

    @property
    def txid(self) -> str:
        """Double SHA256 of the non-witness serialization, RPC byte order."""
        return hash256(self.serialize(include_witness=False))[::-1].hex()

    @property
    def weight(self) -> int:
        return len(self.serialize(include_witness=False)) * 3 + len(self.serialize())

    @property
    def vsize(self) -> int:
        return (self.weight + 3) // 4

    @property
    def input_value(self) -> int:
        return sum(inp.value for inp in self.inputs)

    @property
    def output_value(self) -> int:
        return sum(out.value for out in self.outputs)

    @property
    def fee(self) -> int:
        return self.input_value - self.output_value

    @property
    def fee_rate(self) -> float:
        """Fee in sat/vB."""
        return self.fee / self.vsize


@dataclass(frozen=True)
class TaprootSharedFields:
    """Per-transaction hashes every BIP341 sighash commits to."""

    sha_prevouts: bytes
    sha_amounts: bytes
    sha_scriptpubkeys: bytes
    sha_sequences: bytes
    sha_outputs: bytes

    @classmethod
    def from_tx(cls, tx: Transaction) -> TaprootSharedFields:
        return cls(
            sha_prevouts=hashlib.sha256(
                b"".join(serialize_outpoint(inp.txid, inp.vout) for inp in tx.inputs)
            ).digest(),
            sha_amounts=hashlib.sha256(
                b"".join(struct.pack("<q", inp.value) for inp in tx.inputs)
            ).digest(),
            sha_scriptpubkeys=hashlib.sha256(
                b"".join(
                    encode_varint(len(inp.script_pubkey)) + inp.script_pubkey for inp in tx.inputs
                )
            ).digest(),
            sha_sequences=hashlib.sha256(
                b"".join(struct.pack("<I", inp.sequence) for inp in tx.inputs)
            ).digest(),
            sha_outputs=hashlib.sha256(
                b"".join(serialize_output(out) for out in tx.outputs)
            ).digest(),
        )


def compute_sighash_taproot(
    tx: Transaction,
    input_index: int,
    hash_type: int = SIGHASH_DEFAULT,
    shared: TaprootSharedFields | None = None,
) -> bytes:
    """
    BIP341 signature hash for a key-path spend.

    Only SIGHASH_DEFAULT and SIGHASH_ALL are supported; both commit to every
    input and output. Pass ``shared`` when signing several inputs of the same
    transaction so the per-transaction hashes are computed once.
    """
    if hash_type not in (SIGHASH_DEFAULT, SIGHASH_ALL):
        raise TransactionSigningError(f"Unsupported sighash type: {hash_type:#x}")
    if not 0 <= input_index < len(tx.inputs):
        raise TransactionSigningError("Input index out of range")

    if shared is None:
        shared = TaprootSharedFields.from_tx(tx)

    spend_type = 0x00  # key path, no annex

    msg = (
        bytes([0x00])  # epoch
        + bytes([hash_type])
        + struct.pack("<I", tx.version)
        + struct.pack("<I", tx.locktime)
        + shared.sha_prevouts
        + shared.sha_amounts
        + shared.sha_scriptpubkeys
        + shared.sha_sequences
        + shared.sha_outputs
        + bytes([spend_type])
        + struct.pack("<I", input_index)
    )
    return tagged_hash("TapSighash", msg)


def sign_taproot_input(
    tx: Transaction,
    input_index: int,
    private_key: PrivateKey,
    hash_type: int = SIGHASH_DEFAULT,
    shared: TaprootSharedFields | None = None,
) -> bytes:
    """Sign a P2TR key-path input with an already tweaked key.

    Returns the 64-byte BIP340 signature, with the sighash byte appended
    unless the type is SIGHASH_DEFAULT.
    """
    sighash = compute_sighash_taproot(tx, input_index, hash_type, shared)
    signature = private_key.sign_schnorr(sighash)
    if hash_type == SIGHASH_DEFAULT:
        return signature
    return signature + bytes([hash_type])
