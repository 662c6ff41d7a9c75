"""Signing-exchange failures.

Each reply-parse branch has its own class so callers can tell a transient
refusal (non-zero status, transport failure) from a reply that will never
parse. Nothing here is retried internally.
"""
from __future__ import annotations


class SigningError(Exception):
    transient = False


class EmptyReply(SigningError):
    def __init__(self):
        super().__init__("signing server returned an empty reply")


class DecodeFailure(SigningError):
    def __init__(self, encoding: str):
        super().__init__(f"reply is not valid {encoding} text")
        self.encoding = encoding


class BadReplyStart(SigningError):
    def __init__(self):
        super().__init__("reply does not match STATUS=...&MESSAGE=...")


class InvalidStatus(SigningError):
    def __init__(self, raw: str):
        super().__init__(f"reply status is not a 64-bit decimal integer: {raw!r}")
        self.raw = raw


class BadStatus(SigningError):
    transient = True

    def __init__(self, code: int, message: str):
        super().__init__(f"signing refused with status {code}: {message}")
        self.code = code
        self.message = message


class NoBody(SigningError):
    def __init__(self):
        super().__init__("successful reply carries no REQUEST_STRING")


class ReplyNotADocument(SigningError):
    def __init__(self):
        super().__init__("REQUEST_STRING is not a property list dictionary")


class NoSignatureInReply(SigningError):
    def __init__(self, key: str):
        super().__init__(f"reply has no {key} data")
        self.key = key


class TransportError(SigningError):
    transient = True


__all__ = [
    "SigningError",
    "EmptyReply",
    "DecodeFailure",
    "BadReplyStart",
    "InvalidStatus",
    "BadStatus",
    "NoBody",
    "ReplyNotADocument",
    "NoSignatureInReply",
    "TransportError",
]
