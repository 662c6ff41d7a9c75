from __future__ import annotations

import plistlib

import pytest

from cryptex.tss.errors import (
    BadReplyStart,
    BadStatus,
    DecodeFailure,
    EmptyReply,
    InvalidStatus,
    NoBody,
    NoSignatureInReply,
    ReplyNotADocument,
)
from cryptex.tss.reply import extract_ticket, parse_reply

TICKET = b"\x30\x82\x01\x00IM4M-ticket\x00\xff"


def _ok_reply(doc: dict, message: str = "SUCCESS") -> bytes:
    body = plistlib.dumps(doc, fmt=plistlib.FMT_XML).decode()
    return f"STATUS=0&MESSAGE={message}&REQUEST_STRING={body}".encode()


def test_ticket_extracted():
    reply = parse_reply(_ok_reply({"ApImg4Ticket": TICKET, "@ServerVersion": "3.0"}))
    assert reply.status == 0
    assert reply.ticket == TICKET
    assert reply.document["@ServerVersion"] == "3.0"
    assert extract_ticket(_ok_reply({"ApImg4Ticket": TICKET})) == TICKET


def test_message_is_percent_decoded_on_success():
    reply = parse_reply(_ok_reply({"ApImg4Ticket": TICKET}, message="All%20good"))
    assert reply.message == "All good"


def test_status_zero_without_body():
    with pytest.raises(NoBody):
        parse_reply(b"STATUS=0&MESSAGE=OK")


def test_status_zero_without_body_trailing_newline():
    with pytest.raises(NoBody):
        parse_reply(b"STATUS=0&MESSAGE=OK\n")


def test_non_zero_status():
    with pytest.raises(BadStatus) as ei:
        parse_reply(b"STATUS=1&MESSAGE=UnknownError")
    assert ei.value.code == 1
    assert ei.value.message == "UnknownError"
    assert ei.value.transient is True


def test_non_zero_status_message_kept_encoded():
    with pytest.raises(BadStatus) as ei:
        parse_reply(b"STATUS=94&MESSAGE=This%20device%20isn%27t%20eligible&REQUEST_STRING=")
    assert ei.value.code == 94
    assert ei.value.message == "This%20device%20isn%27t%20eligible"


@pytest.mark.parametrize(
    "body",
    [
        b"STATUS=99999999999999999999&MESSAGE=x",
        b"STATUS=9223372036854775808&MESSAGE=x",
        "STATUS=\u0661&MESSAGE=x".encode("utf-8"),
        "STATUS=\u0660&MESSAGE=OK".encode("utf-8"),
    ],
)
def test_status_outside_ascii_int64_is_invalid(body: bytes):
    with pytest.raises(InvalidStatus) as ei:
        parse_reply(body)
    assert ei.value.transient is False


def test_largest_int64_status_is_a_refusal():
    with pytest.raises(BadStatus) as ei:
        parse_reply(b"STATUS=9223372036854775807&MESSAGE=x")
    assert ei.value.code == 2**63 - 1


def test_empty_reply():
    with pytest.raises(EmptyReply):
        parse_reply(b"")


def test_undecodable_reply():
    with pytest.raises(DecodeFailure) as ei:
        parse_reply(b"STATUS=0&MESSAGE=\xff\xfe")
    assert ei.value.transient is False


def test_unknown_encoding_is_a_decode_failure():
    with pytest.raises(DecodeFailure):
        parse_reply(b"STATUS=0&MESSAGE=OK", encoding="no-such-codec")


@pytest.mark.parametrize("body", [
    b"<html>502 Bad Gateway</html>",
    b"MESSAGE=OK&STATUS=0",
    b"STATUS=&MESSAGE=OK",
    b"STATUS=0&MESSAGE=not allowed",
    b" STATUS=0&MESSAGE=OK",
])
def test_bad_reply_start(body: bytes):
    with pytest.raises(BadReplyStart):
        parse_reply(body)


def test_body_not_a_property_list():
    with pytest.raises(ReplyNotADocument):
        parse_reply(b"STATUS=0&MESSAGE=OK&REQUEST_STRING=<not a plist")


def test_body_property_list_not_a_dictionary():
    arr = plistlib.dumps([1, 2], fmt=plistlib.FMT_XML)
    with pytest.raises(ReplyNotADocument):
        parse_reply(b"STATUS=0&MESSAGE=OK&REQUEST_STRING=" + arr)


def test_missing_ticket_key():
    with pytest.raises(NoSignatureInReply):
        parse_reply(_ok_reply({"BBTicket": TICKET}))


def test_ticket_of_wrong_type():
    with pytest.raises(NoSignatureInReply):
        parse_reply(_ok_reply({"ApImg4Ticket": "base64-text-not-data"}))
