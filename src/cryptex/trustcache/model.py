from __future__ import annotations

import struct
import uuid
from dataclasses import dataclass
from typing import Iterable, List, Tuple, Union

from ..img4.container import wrap_im4p
from ..obs.prom import observe_trust_cache
from ..utils.logging import get_logger

log = get_logger()

# Layout (little-endian):
#   0x00  u32  version
#   0x04  16B  identifier
#   0x14  u32  entry count
#   0x18  entries: 20B hash + u16 flag
TRUST_CACHE_VERSION = 1
HASH_LEN = 20
IDENTIFIER_LEN = 16
ENTRY_LEN = HASH_LEN + 2
HEADER_LEN = 4 + 16 + 4

# Flag attached to entries derived from code-signing hashes. Opaque.
CDHASH_FLAG = 2

_HEADER = struct.Struct("<I16sI")
_FLAG = struct.Struct("<H")


class TrustCacheFormatError(ValueError):
    pass


@dataclass(frozen=True)
class TrustCacheEntry:
    hash: bytes
    flag: int = CDHASH_FLAG

    def __post_init__(self):
        assert isinstance(self.hash, bytes) and len(self.hash) == HASH_LEN, "trust cache hash must be 20 bytes"
        assert 0 <= self.flag <= 0xFFFF, "trust cache flag must fit in 16 bits"

    def to_bytes(self) -> bytes:
        return self.hash + _FLAG.pack(self.flag)


def canonical_entries(items: Iterable[Union[bytes, TrustCacheEntry]]) -> List[TrustCacheEntry]:
    """Deduplicate (first occurrence wins) and sort ascending by hash bytes.

    Bare bytes must be exactly 20 bytes and get the code-signing flag.
    """
    seen = set()
    out: List[TrustCacheEntry] = []
    for item in items:
        entry = item if isinstance(item, TrustCacheEntry) else TrustCacheEntry(bytes(item))
        if entry.hash in seen:
            continue
        seen.add(entry.hash)
        out.append(entry)
    # bytes compare as unsigned, byte 0 first
    out.sort(key=lambda e: e.hash)
    return out


@dataclass(frozen=True)
class TrustCache:
    identifier: bytes
    entries: Tuple[TrustCacheEntry, ...]
    version: int = TRUST_CACHE_VERSION

    def __post_init__(self):
        assert isinstance(self.identifier, bytes) and len(self.identifier) == IDENTIFIER_LEN, "trust cache identifier must be 16 bytes"

    @classmethod
    def build(cls, items: Iterable[Union[bytes, TrustCacheEntry]]) -> "TrustCache":
        items = list(items)
        entries = canonical_entries(items)
        dropped = len(items) - len(entries)
        if dropped:
            log.info("trust cache: dropped %d duplicate hash(es)", dropped)
        observe_trust_cache(len(entries))
        return cls(identifier=uuid.uuid4().bytes, entries=tuple(entries))

    def to_bytes(self) -> bytes:
        parts = [_HEADER.pack(self.version, self.identifier, len(self.entries))]
        parts.extend(e.to_bytes() for e in self.entries)
        return b"".join(parts)

    @classmethod
    def from_bytes(cls, buf: bytes) -> "TrustCache":
        if len(buf) < HEADER_LEN:
            raise TrustCacheFormatError("truncated trust cache header")
        version, identifier, count = _HEADER.unpack_from(buf, 0)
        if version != TRUST_CACHE_VERSION:
            raise TrustCacheFormatError(f"unsupported trust cache version {version}")
        if len(buf) != HEADER_LEN + count * ENTRY_LEN:
            raise TrustCacheFormatError("trust cache length does not match entry count")
        entries = []
        for off in range(HEADER_LEN, len(buf), ENTRY_LEN):
            (flag,) = _FLAG.unpack_from(buf, off + HASH_LEN)
            entries.append(TrustCacheEntry(buf[off:off + HASH_LEN], flag))
        return cls(identifier=identifier, entries=tuple(entries), version=version)


def build_trust_cache(hashes: Iterable[Union[bytes, TrustCacheEntry]], wrap_in_im4p: bool = False) -> bytes:
    tc = TrustCache.build(hashes).to_bytes()
    log.info("trust cache: built %d bytes", len(tc))
    if wrap_in_im4p:
        return wrap_im4p(tc)
    return tc
