from __future__ import annotations

import plistlib

import pytest

from cryptex.plist.document import DocumentError, dumps_document, loads_document, validate_document


def test_keys_are_sorted_and_output_stable():
    a = dumps_document({"b": 1, "a": {"z": b"\x00", "y": True}})
    b = dumps_document({"a": {"y": True, "z": b"\x00"}, "b": 1})
    assert a == b
    assert a.index(b"<key>a</key>") < a.index(b"<key>b</key>")


@pytest.mark.parametrize("bad", [
    {"v": 1.5},
    {"v": [1, 2]},
    {"v": None},
    {1: "int key"},
    {"nested": {"f": 0.1}},
])
def test_unsupported_values_rejected(bad):
    with pytest.raises(TypeError):
        validate_document(bad)


def test_loads_binary_plist():
    assert loads_document(plistlib.dumps({"k": b"v"}, fmt=plistlib.FMT_BINARY)) == {"k": b"v"}


@pytest.mark.parametrize("data", [b"", b"not xml", plistlib.dumps(["list"])])
def test_loads_rejects_non_dictionaries(data):
    with pytest.raises(DocumentError):
        loads_document(data)
