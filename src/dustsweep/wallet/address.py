"""
Bitcoin address encoding and decoding.

Segwit v0 addresses use bech32 (BIP173), taproot addresses bech32m (BIP350).
Legacy base58 addresses are only decoded, so they can be used as destinations.
"""

from __future__ import annotations

import base58

from dustsweep.models import NetworkType

CHARSET = "qpzry9x8gf2tvdw0s3jn54khce6mua7l"
BECH32_CONST = 1
BECH32M_CONST = 0x2BC830A3


def bech32_polymod(values: list[int]) -> int:
    """Bech32 checksum polymod"""
    gen = [0x3B6A57B2, 0x26508E6D, 0x1EA119FA, 0x3D4233DD, 0x2A1462B3]
    chk = 1
    for v in values:
        b = chk >> 25
        chk = (chk & 0x1FFFFFF) << 5 ^ v
        for i in range(5):
            chk ^= gen[i] if ((b >> i) & 1) else 0
    return chk


def bech32_hrp_expand(hrp: str) -> list[int]:
    """Expand HRP for bech32"""
    return [ord(x) >> 5 for x in hrp] + [0] + [ord(x) & 31 for x in hrp]


def bech32_create_checksum(hrp: str, data: list[int], const: int = BECH32_CONST) -> list[int]:
    """Create bech32 (or bech32m, with BECH32M_CONST) checksum"""
    values = bech32_hrp_expand(hrp) + data
    polymod = bech32_polymod(values + [0, 0, 0, 0, 0, 0]) ^ const
    return [(polymod >> 5 * (5 - i)) & 31 for i in range(6)]


def bech32_encode(hrp: str, data: list[int], const: int = BECH32_CONST) -> str:
    """Encode bech32 string"""
    combined = data + bech32_create_checksum(hrp, data, const)
    return hrp + "1" + "".join([CHARSET[d] for d in combined])


def bech32_decode(bech: str) -> tuple[str, list[int], int]:
    """
    Decode a bech32/bech32m string.

    Returns (hrp, data without checksum, checksum constant).
    """
    if bech.lower() != bech and bech.upper() != bech:
        raise ValueError("Mixed case in bech32 string")
    bech = bech.lower()
    pos = bech.rfind("1")
    if pos < 1 or pos + 7 > len(bech) or len(bech) > 90:
        raise ValueError("Invalid bech32 separator position or length")
    if any(ord(c) < 33 or ord(c) > 126 for c in bech):
        raise ValueError("Invalid character in bech32 string")

    hrp = bech[:pos]
    try:
        data = [CHARSET.index(c) for c in bech[pos + 1 :]]
    except ValueError:
        raise ValueError("Invalid bech32 data character") from None

    const = bech32_polymod(bech32_hrp_expand(hrp) + data)
    if const not in (BECH32_CONST, BECH32M_CONST):
        raise ValueError("Invalid bech32 checksum")

    return hrp, data[:-6], const


def convertbits(data: bytes | list[int], frombits: int, tobits: int, pad: bool = True) -> list[int]:
    """Convert between bit groups"""
    acc = 0
    bits = 0
    ret = []
    maxv = (1 << tobits) - 1
    max_acc = (1 << (frombits + tobits - 1)) - 1

    for value in data:
        if value < 0 or (value >> frombits):
            raise ValueError("Invalid value for bit conversion")
        acc = ((acc << frombits) | value) & max_acc
        bits += frombits
        while bits >= tobits:
            bits -= tobits
            ret.append((acc >> bits) & maxv)

    if pad:
        if bits:
            ret.append((acc << (tobits - bits)) & maxv)
    elif bits >= frombits or ((acc << (tobits - bits)) & maxv):
        raise ValueError("Invalid bits")

    return ret


def encode_segwit_address(hrp: str, witver: int, witprog: bytes) -> str:
    const = BECH32_CONST if witver == 0 else BECH32M_CONST
    return bech32_encode(hrp, [witver] + convertbits(witprog, 8, 5), const)


def decode_segwit_address(hrp: str, address: str) -> tuple[int, bytes]:
    """Decode a segwit address, returning (witness version, witness program)."""
    hrpgot, data, const = bech32_decode(address)
    if hrpgot != hrp:
        raise ValueError(f"Address {address} is not for network prefix {hrp!r}")
    if not data:
        raise ValueError("Empty witness data")

    witver = data[0]
    witprog = bytes(convertbits(data[1:], 5, 8, False))

    if witver > 16 or len(witprog) < 2 or len(witprog) > 40:
        raise ValueError(f"Invalid witness program: {address}")
    if witver == 0 and len(witprog) not in (20, 32):
        raise ValueError(f"Invalid v0 witness program length: {len(witprog)}")
    if (witver == 0) != (const == BECH32_CONST):
        raise ValueError(f"Wrong checksum variant for witness version {witver}")

    return witver, witprog


def xonly_to_p2tr_script(output_key: bytes) -> bytes:
    """Create P2TR scriptPubKey (OP_1 <32-byte-output-key>)"""
    if len(output_key) != 32:
        raise ValueError(f"Invalid x-only key length: {len(output_key)}")
    return bytes([0x51, 0x20]) + output_key


def xonly_to_p2tr_address(output_key: bytes, network: NetworkType | str = "mainnet") -> str:
    """Convert a tweaked x-only output key to a bech32m P2TR address."""
    if len(output_key) != 32:
        raise ValueError(f"Invalid x-only key length: {len(output_key)}")
    return encode_segwit_address(NetworkType(network).hrp, 1, output_key)


def address_to_scriptpubkey(address: str, network: NetworkType | str = "mainnet") -> bytes:
    """
    Convert a Bitcoin address to scriptPubKey.

    Supports:
    - P2WPKH / P2WSH (bc1q..., tb1q..., bcrt1q...)
    - P2TR (bc1p..., tb1p..., bcrt1p...)
    - P2PKH (1..., m..., n...)
    - P2SH (3..., 2...)
    """
    net = NetworkType(network)

    if address.lower().startswith(net.hrp + "1"):
        witver, witprog = decode_segwit_address(net.hrp, address)
        # OP_0 or OP_1..OP_16, then the program push
        opcode = 0x00 if witver == 0 else 0x50 + witver
        return bytes([opcode, len(witprog)]) + witprog

    try:
        decoded = base58.b58decode_check(address)
    except ValueError as e:
        raise ValueError(f"Invalid address {address}: {e}") from e

    version = decoded[0]
    payload = decoded[1:]
    if len(payload) != 20:
        raise ValueError(f"Invalid base58 payload length: {len(payload)}")

    mainnet = net == NetworkType.MAINNET
    if version == (0x00 if mainnet else 0x6F):
        # P2PKH: OP_DUP OP_HASH160 <20-byte-pubkeyhash> OP_EQUALVERIFY OP_CHECKSIG
        return bytes([0x76, 0xA9, 0x14]) + payload + bytes([0x88, 0xAC])
    if version == (0x05 if mainnet else 0xC4):
        # P2SH: OP_HASH160 <20-byte-scripthash> OP_EQUAL
        return bytes([0xA9, 0x14]) + payload + bytes([0x87])

    raise ValueError(f"Unknown address version {version} for {net.value}")
