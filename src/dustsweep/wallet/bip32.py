"""
BIP32 HD key derivation with the BIP86/BIP341 taproot key-path tweak.
"""

from __future__ import annotations

import hashlib
import hmac
import unicodedata

from coincurve import PrivateKey, PublicKey

# secp256k1 curve order
SECP256K1_N = int("FFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141", 16)


def tagged_hash(tag: str, msg: bytes) -> bytes:
    """BIP340 tagged hash: SHA256(SHA256(tag) || SHA256(tag) || msg)"""
    tag_hash = hashlib.sha256(tag.encode()).digest()
    return hashlib.sha256(tag_hash + tag_hash + msg).digest()


class HDKey:
    """
    Hierarchical Deterministic Key for Bitcoin.
    Implements BIP32 private derivation.
    """

    def __init__(self, private_key: PrivateKey, chain_code: bytes, depth: int = 0):
        self._private_key = private_key
        self._public_key = private_key.public_key
        self.chain_code = chain_code
        self.depth = depth

    @property
    def private_key(self) -> PrivateKey:
        """Return the coincurve PrivateKey instance."""
        return self._private_key

    @property
    def public_key(self) -> PublicKey:
        """Return the coincurve PublicKey instance."""
        return self._public_key

    @classmethod
    def from_seed(cls, seed: bytes) -> HDKey:
        """Create master HD key from seed"""
        hmac_result = hmac.new(b"Bitcoin seed", seed, hashlib.sha512).digest()
        key_bytes = hmac_result[:32]
        chain_code = hmac_result[32:]

        private_key = PrivateKey(key_bytes)

        return cls(private_key, chain_code, depth=0)

    @classmethod
    def from_mnemonic(cls, mnemonic: str, passphrase: str = "") -> HDKey:
        return cls.from_seed(mnemonic_to_seed(mnemonic, passphrase))

    def derive(self, path: str) -> HDKey:
        """
        Derive child key from path notation (e.g., "m/86'/0'/0'/0/0")
        ' or h indicates hardened derivation
        """
        if not path.startswith("m"):
            raise ValueError("Path must start with 'm'")

        parts = path.split("/")[1:]
        key = self

        for part in parts:
            if not part:
                continue

            hardened = part.endswith(("'", "h", "H"))
            index = int(part.rstrip("'hH"))

            if hardened:
                index += 0x80000000

            key = key._derive_child(index)

        return key

    def _derive_child(self, index: int) -> HDKey:
        """Derive a child key at the given index"""
        hardened = index >= 0x80000000

        if hardened:
            priv_bytes = self._private_key.secret
            data = b"\x00" + priv_bytes + index.to_bytes(4, "big")
        else:
            pub_bytes = self._public_key.format(compressed=True)
            data = pub_bytes + index.to_bytes(4, "big")

        hmac_result = hmac.new(self.chain_code, data, hashlib.sha512).digest()
        key_offset = hmac_result[:32]
        child_chain = hmac_result[32:]

        parent_key_int = int.from_bytes(self._private_key.secret, "big")
        offset_int = int.from_bytes(key_offset, "big")

        if offset_int >= SECP256K1_N:
            raise ValueError("Invalid child key")

        child_key_int = (parent_key_int + offset_int) % SECP256K1_N

        if child_key_int == 0:
            raise ValueError("Invalid child key")

        child_private_key = PrivateKey(child_key_int.to_bytes(32, "big"))

        return HDKey(child_private_key, child_chain, depth=self.depth + 1)

    def get_xonly_public_key(self) -> bytes:
        """32-byte x-only public key (BIP340)"""
        return xonly(self._public_key)


def xonly(public_key: PublicKey) -> bytes:
    return public_key.format(compressed=True)[1:]


def has_even_y(public_key: PublicKey) -> bool:
    return public_key.format(compressed=True)[0] == 0x02


def taproot_tweak_private_key(private_key: PrivateKey) -> PrivateKey:
    """
    Apply the BIP341 key-path tweak to an internal private key.

    The secret is negated first when the internal point has an odd Y so the
    tweak is added to the even-Y lift, as BIP86 outputs commit to. BIP86 keys
    have no script tree, so the tweak is ``tagged_hash("TapTweak", xonly(P))``.
    """
    public_key = private_key.public_key
    secret = int.from_bytes(private_key.secret, "big")
    if not has_even_y(public_key):
        secret = SECP256K1_N - secret

    tweak = int.from_bytes(tagged_hash("TapTweak", xonly(public_key)), "big")
    if tweak >= SECP256K1_N:
        raise ValueError("Tweak exceeds curve order")

    tweaked = (secret + tweak) % SECP256K1_N
    if tweaked == 0:
        raise ValueError("Tweaked key is zero")

    return PrivateKey(tweaked.to_bytes(32, "big"))


def mnemonic_to_seed(mnemonic: str, passphrase: str = "") -> bytes:
    """
    Convert BIP39 mnemonic to seed.
    The mnemonic checksum is not validated; the phrase is used as given.
    """
    mnemonic_bytes = unicodedata.normalize("NFKD", " ".join(mnemonic.split())).encode("utf-8")
    salt = unicodedata.normalize("NFKD", "mnemonic" + passphrase).encode("utf-8")

    return hashlib.pbkdf2_hmac("sha512", mnemonic_bytes, salt, 2048, dklen=64)
