import hashlib

SHA384_LEN = 48


def sha384(data: bytes) -> bytes:
    return hashlib.sha384(data).digest()