"""Decoder for the signing server's reply.

The body is form-encoded status fields with an XML property list glued
onto the end:

    STATUS=0&MESSAGE=SUCCESS&REQUEST_STRING=<?xml ...

Parsing stops at the first mismatch; see ``tss.errors`` for the branches.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Dict
from urllib.parse import unquote

from ..plist.document import DocumentError, loads_document
from .errors import (
    BadReplyStart,
    BadStatus,
    DecodeFailure,
    EmptyReply,
    InvalidStatus,
    NoBody,
    NoSignatureInReply,
    ReplyNotADocument,
)

TICKET_KEY = "ApImg4Ticket"

# DOTALL: the trailing property list spans lines
REPLY_RE = re.compile(
    r"^STATUS=(\d+)&MESSAGE=([A-Za-z0-9_\-%]*)(?:&REQUEST_STRING=(.*))?$",
    re.DOTALL,
)


_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1


def _parse_status(raw: str) -> int:
    # the server speaks ASCII decimal in a signed 64-bit field
    if not raw.isascii():
        raise InvalidStatus(raw)
    status = int(raw)
    if not _INT64_MIN <= status <= _INT64_MAX:
        raise InvalidStatus(raw)
    return status


@dataclass(frozen=True)
class SigningReply:
    status: int
    message: str
    document: Dict[str, Any]
    ticket: bytes


def parse_reply(body: bytes, encoding: str = "utf-8") -> SigningReply:
    if not body:
        raise EmptyReply()
    try:
        text = body.decode(encoding)
    except (UnicodeDecodeError, LookupError) as e:
        raise DecodeFailure(encoding) from e

    m = REPLY_RE.match(text)
    if m is None:
        raise BadReplyStart()
    raw_status, raw_message, request_string = m.groups()
    status = _parse_status(raw_status)
    if status != 0:
        raise BadStatus(status, raw_message)
    if request_string is None:
        raise NoBody()

    try:
        document = loads_document(request_string.encode("utf-8"))
    except DocumentError as e:
        raise ReplyNotADocument() from e
    ticket = document.get(TICKET_KEY)
    if not isinstance(ticket, bytes):
        raise NoSignatureInReply(TICKET_KEY)
    return SigningReply(status=status, message=unquote(raw_message), document=document, ticket=ticket)


def extract_ticket(body: bytes, encoding: str = "utf-8") -> bytes:
    return parse_reply(body, encoding).ticket
