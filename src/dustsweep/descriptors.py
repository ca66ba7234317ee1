"""
Output descriptor parsing for single-key taproot wallets.

Two descriptor shapes are understood:

- per-output, as reported by ``scantxoutset`` for each unspent:
  ``tr([d34db33f/86'/0'/0'/1/7]<xonly-key>)#checksum``
- parent/range, as listed in ``parent_descs`` by ``listunspent``:
  ``tr([d34db33f/86'/0'/0']xpub.../0/*)#checksum``

Anything else raises :class:`DescriptorParseError`. Without the key origin the
signing key cannot be rebuilt, so callers treat a parse failure as fatal.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from dustsweep.errors import DescriptorParseError

OUTPUT_DESC_RE = re.compile(
    r"^tr\(\[(?P<origin>[^\]]*)\](?P<key>[^)]+)\)(?:#(?P<checksum>[a-z0-9]{8}))?$"
)
PARENT_DESC_RE = re.compile(
    r"^(?P<prefix>tr\((?:\[[^\]]*\])?[^/)]+)/\d+/\*\)(?:#(?P<checksum>[a-z0-9]{8}))?$"
)

_FINGERPRINT_RE = re.compile(r"^[0-9a-fA-F]{8}$")
_SEGMENT_RE = re.compile(r"^(?P<index>\d+)(?P<hardened>['hH]?)$")

HARDENED_LIMIT = 0x80000000


@dataclass(frozen=True)
class PathSegment:
    index: int
    hardened: bool

    def __str__(self) -> str:
        return f"{self.index}'" if self.hardened else str(self.index)


@dataclass(frozen=True)
class KeyOrigin:
    """Fingerprint and derivation path from a ``[fingerprint/path]`` block."""

    fingerprint: str
    path: tuple[PathSegment, ...]

    @property
    def suffix(self) -> str:
        """
        The ``account'/chain/index`` part used to derive the key.

        The account defaults to ``0'`` when the origin only carries
        ``chain/index``.
        """
        chain, index = self.path[-2], self.path[-1]
        account = self.path[-3] if len(self.path) >= 3 else PathSegment(0, True)
        return f"{account}/{chain}/{index}"


def _parse_segment(descriptor: str, raw: str) -> PathSegment:
    match = _SEGMENT_RE.match(raw)
    if not match:
        raise DescriptorParseError(descriptor, f"invalid path segment {raw!r}")
    index = int(match.group("index"))
    if index >= HARDENED_LIMIT:
        raise DescriptorParseError(descriptor, f"path index out of range: {raw!r}")
    return PathSegment(index=index, hardened=bool(match.group("hardened")))


def parse_key_origin(descriptor: str) -> KeyOrigin:
    """Parse the key origin of a per-output ``tr(...)`` descriptor."""
    match = OUTPUT_DESC_RE.match(descriptor.strip())
    if not match:
        raise DescriptorParseError(descriptor)

    fingerprint, *raw_segments = match.group("origin").split("/")
    if not _FINGERPRINT_RE.match(fingerprint):
        raise DescriptorParseError(descriptor, f"invalid fingerprint {fingerprint!r}")
    if len(raw_segments) < 2:
        raise DescriptorParseError(descriptor, "key origin has no chain/index")

    path = tuple(_parse_segment(descriptor, raw) for raw in raw_segments)

    if path[-1].hardened or path[-2].hardened:
        raise DescriptorParseError(descriptor, "chain and index must not be hardened")
    if len(path) >= 3 and not path[-3].hardened:
        raise DescriptorParseError(descriptor, "account must be hardened")

    return KeyOrigin(fingerprint=fingerprint.lower(), path=path)


def parse_output_suffix(descriptor: str) -> str:
    """Return the ``account'/chain/index`` derivation suffix of a descriptor."""
    return parse_key_origin(descriptor).suffix


def parse_account_template(parent_descriptor: str) -> str:
    """
    Strip the trailing ``/chain/*)`` and checksum from a range descriptor.

    The result can be completed with :func:`scan_descriptor` for either chain.
    """
    match = PARENT_DESC_RE.match(parent_descriptor.strip())
    if not match:
        raise DescriptorParseError(parent_descriptor, "not a ranged tr() descriptor")
    return match.group("prefix")


def scan_descriptor(template: str, chain: int) -> str:
    """Build the ranged scan descriptor for ``chain`` (0 receive, 1 change)."""
    return f"{template}/{chain}/*)"
