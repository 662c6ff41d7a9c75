from __future__ import annotations

import subprocess
from pathlib import Path
from typing import Dict, Optional

import pytest

from cryptex.trustcache import scan
from cryptex.trustcache.model import TrustCache
from cryptex.trustcache.scan import (
    CodesignToolInspector,
    DirectoryNotFound,
    DirectoryUnreadable,
    NotADirectory,
    build_trust_cache_from_path,
    collect_entries,
)


class FakeInspector:
    def __init__(self, hashes: Dict[str, bytes]):
        self.hashes = hashes
        self.seen: list[str] = []

    def cdhash(self, path: str) -> Optional[bytes]:
        self.seen.append(path)
        return self.hashes.get(Path(path).name)


def _tree(root: Path) -> None:
    (root / "usr" / "bin").mkdir(parents=True)
    (root / "usr" / "bin" / "tool").write_bytes(b"signed")
    (root / "usr" / "lib").mkdir()
    (root / "usr" / "lib" / "libx.dylib").write_bytes(b"signed")
    (root / "usr" / "lib" / "copy.dylib").write_bytes(b"signed")
    (root / "README").write_text("unsigned")


def test_collects_signed_files_recursively(tmp_path: Path):
    _tree(tmp_path)
    sha256_cdhash = bytes(range(32))
    insp = FakeInspector({
        "tool": b"\x10" * 20,
        "libx.dylib": sha256_cdhash,
        "copy.dylib": sha256_cdhash,
    })
    entries = collect_entries(str(tmp_path), insp)

    assert len(insp.seen) == 4
    assert {e.hash for e in entries} == {b"\x10" * 20, sha256_cdhash[:20]}
    assert all(e.flag == 2 for e in entries)

    tc = TrustCache.from_bytes(build_trust_cache_from_path(str(tmp_path), inspector=insp))
    assert [e.hash for e in tc.entries] == [sha256_cdhash[:20], b"\x10" * 20]


def test_short_hashes_are_skipped(tmp_path: Path):
    (tmp_path / "a").write_bytes(b"x")
    assert collect_entries(str(tmp_path), FakeInspector({"a": b"\x01" * 8})) == []


def test_missing_directory(tmp_path: Path):
    with pytest.raises(DirectoryNotFound):
        build_trust_cache_from_path(str(tmp_path / "nope"), inspector=FakeInspector({}))


def test_path_is_a_file(tmp_path: Path):
    f = tmp_path / "file"
    f.write_bytes(b"x")
    with pytest.raises(NotADirectory):
        build_trust_cache_from_path(str(f), inspector=FakeInspector({}))


def test_unreadable_directory_aborts(tmp_path: Path, monkeypatch):
    def failing_walk(top, onerror=None):
        onerror(PermissionError(13, "Permission denied", str(top)))
        return iter(())

    monkeypatch.setattr(scan.os, "walk", failing_walk)
    with pytest.raises(DirectoryUnreadable):
        collect_entries(str(tmp_path), FakeInspector({}))


def test_codesign_inspector_parses_cdhash(monkeypatch):
    monkeypatch.setattr(scan.shutil, "which", lambda name: "/usr/bin/codesign")
    calls = []

    def fake_run(cmd, capture_output, text):
        calls.append(cmd)
        if cmd[-1] == "/signed":
            err = "Executable=/signed\nCDHash=" + "ab" * 20 + "\nSignature size=4442\n"
            return subprocess.CompletedProcess(cmd, 0, stdout="", stderr=err)
        return subprocess.CompletedProcess(cmd, 1, stdout="", stderr="code object is not signed at all\n")

    monkeypatch.setattr(scan.subprocess, "run", fake_run)
    insp = CodesignToolInspector()
    assert insp.cdhash("/signed") == b"\xab" * 20
    assert insp.cdhash("/unsigned") is None
    assert calls[0][:3] == ["/usr/bin/codesign", "--display", "--verbose=3"]


def test_codesign_inspector_requires_tool(monkeypatch):
    monkeypatch.setattr(scan.shutil, "which", lambda name: None)
    with pytest.raises(RuntimeError):
        CodesignToolInspector()
