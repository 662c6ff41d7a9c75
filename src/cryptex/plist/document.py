from __future__ import annotations

import plistlib
from typing import Any, Dict, Mapping, Union

# Leaf and container types a document may carry:
#   str | bool | int | bytes | nested mapping of str -> Value
Value = Union[str, bool, int, bytes, Dict[str, "Value"]]
Document = Dict[str, Value]


class DocumentError(ValueError):
    """Raised when bytes do not decode to a property-list dictionary."""


def validate_document(obj: Any) -> None:
    if isinstance(obj, (str, bool, int, bytes)):
        return
    if isinstance(obj, dict):
        for k, v in obj.items():
            if not isinstance(k, str):
                raise TypeError(f"document keys must be str, got {type(k).__name__}")
            validate_document(v)
        return
    raise TypeError(f"unsupported document value: {type(obj).__name__}")


def dumps_document(doc: Mapping[str, Value]) -> bytes:
    """Encode a document as an XML property list with sorted keys.

    Sorted keys make the output deterministic, which matters wherever
    the encoded bytes are hashed (the info descriptor).
    """
    doc = dict(doc)
    validate_document(doc)
    return plistlib.dumps(doc, fmt=plistlib.FMT_XML, sort_keys=True)


def loads_document(data: bytes) -> Dict[str, Any]:
    """Decode XML or binary property-list bytes into a dict."""
    try:
        obj = plistlib.loads(data)
    except Exception as e:
        raise DocumentError("not a property list") from e
    if not isinstance(obj, dict):
        raise DocumentError("property list top level must be a dictionary")
    return obj
