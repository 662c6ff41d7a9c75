from __future__ import annotations

import os
import shutil
import subprocess
from dataclasses import dataclass
from typing import List, Optional, Protocol, runtime_checkable

from ..config import CFG
from ..utils.logging import get_logger
from .model import CDHASH_FLAG, HASH_LEN, TrustCacheEntry, build_trust_cache

log = get_logger()


class DirectoryError(Exception):
    def __init__(self, path: str, reason: str):
        super().__init__(f"{reason}: {path}")
        self.path = path


class DirectoryNotFound(DirectoryError):
    def __init__(self, path: str):
        super().__init__(path, "directory does not exist")


class NotADirectory(DirectoryError):
    def __init__(self, path: str):
        super().__init__(path, "not a directory")


class DirectoryUnreadable(DirectoryError):
    def __init__(self, path: str):
        super().__init__(path, "cannot read directory")


@runtime_checkable
class CodeSignInspector(Protocol):
    def cdhash(self, path: str) -> Optional[bytes]: ...


@dataclass
class CodesignToolInspector:
    """Reads the primary CDHash by running the platform codesign tool.

    ``codesign --display --verbose=3`` prints ``CDHash=<hex>`` on stderr for
    signed files and exits non-zero for unsigned ones.
    """

    binary: str = CFG.codesign_bin

    def __post_init__(self):
        resolved = shutil.which(self.binary)
        if resolved is None:
            raise RuntimeError(f"{self.binary} not available")
        self.binary = resolved

    def cdhash(self, path: str) -> Optional[bytes]:
        proc = subprocess.run(
            [self.binary, "--display", "--verbose=3", path],
            capture_output=True,
            text=True,
        )
        if proc.returncode != 0:
            return None
        for line in (proc.stderr + proc.stdout).splitlines():
            if line.startswith("CDHash="):
                try:
                    return bytes.fromhex(line[len("CDHash="):].strip())
                except ValueError:
                    return None
        return None


def _walk_files(root: str) -> List[str]:
    def _raise(err: OSError):
        raise DirectoryUnreadable(err.filename or root) from err

    files: List[str] = []
    for dirpath, _dirnames, filenames in os.walk(root, onerror=_raise):
        for name in filenames:
            path = os.path.join(dirpath, name)
            if os.path.isfile(path):
                files.append(path)
    return sorted(files)


def collect_entries(path: str, inspector: Optional[CodeSignInspector] = None) -> List[TrustCacheEntry]:
    if not os.path.exists(path):
        raise DirectoryNotFound(path)
    if not os.path.isdir(path):
        raise NotADirectory(path)
    if not os.access(path, os.R_OK | os.X_OK):
        raise DirectoryUnreadable(path)
    inspector = inspector or CodesignToolInspector()

    entries: List[TrustCacheEntry] = []
    files = _walk_files(path)
    for f in files:
        cdhash = inspector.cdhash(f)
        if cdhash is None:
            continue
        if len(cdhash) < HASH_LEN:
            log.warning("scan: short cdhash (%d bytes) for %s, skipped", len(cdhash), f)
            continue
        entries.append(TrustCacheEntry(cdhash[:HASH_LEN], CDHASH_FLAG))
    log.info("scan: %d file(s) under %s, %d signed", len(files), path, len(entries))
    return entries


def build_trust_cache_from_path(
    path: str,
    wrap_in_im4p: bool = False,
    inspector: Optional[CodeSignInspector] = None,
) -> bytes:
    return build_trust_cache(collect_entries(path, inspector), wrap_in_im4p=wrap_in_im4p)
