"""IM4P envelope for cryptex payloads.

The writer is hand-assembled so the output is bit-exact with what the
installer expects: every length field uses the DER long form
(0x80 | n, then n big-endian bytes) even where the short form would do.

    30 8n <outer len>                    SEQUENCE
      16 04 "IM4P"                       IA5String  container kind
      16 04 "ltrs"                       IA5String  payload type
      16 04 "cptx"                       IA5String  description
      04 8m <inner len> <payload>        OCTET STRING

The reader goes through asn1crypto, which accepts the non-minimal
long-form lengths above.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

from asn1crypto import core

from ..utils.logging import get_logger

log = get_logger()

IM4P_TAG = b"IM4P"
TRUST_CACHE_TYPE = b"ltrs"
CRYPTEX_DESCRIPTION = b"cptx"

DER_SEQUENCE = 0x30
DER_IA5STRING = 0x16
DER_OCTET_STRING = 0x04
DER_LONG_FORM = 0x80

# 3 tag records (2-byte header + 4 bytes) + 2-byte OCTET STRING header
_FIXED_OVERHEAD = 3 * (2 + 4) + 2

MAX_LENGTH = 0xFFFFFFFF


class ContainerFormatError(ValueError):
    pass


def count_bytes(n: int) -> int:
    """Minimal number of big-endian bytes for a 32-bit length (at least 1)."""
    assert 0 <= n <= MAX_LENGTH
    if n >> 24:
        return 4
    if n >> 16:
        return 3
    if n >> 8:
        return 2
    return 1


def length_widths(payload_len: int) -> Tuple[int, int]:
    """Return (count_inner, count_outer) for a payload of the given length."""
    count_inner = count_bytes(payload_len)
    count_outer = count_bytes(payload_len + _FIXED_OVERHEAD + count_inner)
    return count_inner, count_outer


def _long_form(n: int, width: int) -> bytes:
    return bytes([DER_LONG_FORM | width]) + n.to_bytes(width, "big")


def wrap_im4p(payload: bytes) -> bytes:
    payload_len = len(payload)
    if payload_len + _FIXED_OVERHEAD + 4 > MAX_LENGTH:
        raise ValueError("payload too large for a 32-bit IM4P length")
    count_inner, count_outer = length_widths(payload_len)
    outer_len = payload_len + _FIXED_OVERHEAD + count_inner

    out = bytearray([DER_SEQUENCE])
    out += _long_form(outer_len, count_outer)
    for tag in (IM4P_TAG, TRUST_CACHE_TYPE, CRYPTEX_DESCRIPTION):
        out += bytes([DER_IA5STRING, len(tag)]) + tag
    out.append(DER_OCTET_STRING)
    out += _long_form(payload_len, count_inner)
    out += payload
    log.debug("im4p: wrapped %d byte payload (%d bytes total)", payload_len, len(out))
    return bytes(out)


class _IM4P(core.Sequence):
    _fields = [
        ("magic", core.IA5String),
        ("type", core.IA5String),
        ("description", core.IA5String),
        ("data", core.OctetString),
    ]


@dataclass(frozen=True)
class Im4p:
    tag: str
    type: str
    description: str
    payload: bytes


def read_im4p(buf: bytes) -> Im4p:
    try:
        native = _IM4P.load(bytes(buf), strict=True).native
    except Exception as e:
        raise ContainerFormatError("invalid IM4P envelope") from e
    if native["magic"] != IM4P_TAG.decode("ascii"):
        raise ContainerFormatError(f"unexpected container tag {native['magic']!r}")
    return Im4p(
        tag=native["magic"],
        type=native["type"],
        description=native["description"],
        payload=native["data"],
    )
