"""On-disk cryptex bundle: a directory holding four fixed-name files.

    ltrs  trust cache (raw or IM4P-wrapped)
    c411  info descriptor (property list)
    im4m  signing ticket
    cpxd  disk image
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

from .artifact import DigestedArtifact
from .config import CFG
from .trustcache.scan import CodeSignInspector, build_trust_cache_from_path
from .tss.client import SigningClient
from .tss.device import DeviceIdentity, DeviceTransport
from .utils.logging import get_logger

log = get_logger()

TRUST_CACHE_NAME = "ltrs"
INFO_PLIST_NAME = "c411"
SIGNATURE_NAME = "im4m"
CRYPTEX_NAME = "cpxd"

BUNDLE_FILES = (TRUST_CACHE_NAME, INFO_PLIST_NAME, SIGNATURE_NAME, CRYPTEX_NAME)


class BundleError(Exception):
    pass


class BundleNotFound(BundleError):
    def __init__(self, path: str):
        super().__init__(f"bundle directory does not exist: {path}")
        self.path = path


class BundleIncomplete(BundleError):
    def __init__(self, path: str, missing: List[str]):
        super().__init__(f"bundle {path} is missing {', '.join(missing)}")
        self.path = path
        self.missing = missing


@dataclass(frozen=True)
class CryptexBundle:
    trust_cache: bytes
    info_plist: bytes
    signature: bytes
    cryptex: bytes


def write_bundle(path: str | os.PathLike, bundle: CryptexBundle) -> Path:
    p = Path(path)
    p.mkdir(parents=True, exist_ok=True)
    (p / TRUST_CACHE_NAME).write_bytes(bundle.trust_cache)
    (p / INFO_PLIST_NAME).write_bytes(bundle.info_plist)
    (p / SIGNATURE_NAME).write_bytes(bundle.signature)
    (p / CRYPTEX_NAME).write_bytes(bundle.cryptex)
    log.info("bundle: wrote %s", p)
    return p


def read_bundle(path: str | os.PathLike) -> CryptexBundle:
    p = Path(path)
    if not p.is_dir():
        raise BundleNotFound(str(p))
    missing = [name for name in BUNDLE_FILES if not (p / name).is_file()]
    if missing:
        raise BundleIncomplete(str(p), missing)
    return CryptexBundle(
        trust_cache=(p / TRUST_CACHE_NAME).read_bytes(),
        info_plist=(p / INFO_PLIST_NAME).read_bytes(),
        signature=(p / SIGNATURE_NAME).read_bytes(),
        cryptex=(p / CRYPTEX_NAME).read_bytes(),
    )


def install_bundle(device: DeviceTransport, path: str | os.PathLike) -> Dict[str, Any]:
    b = read_bundle(path)
    log.info("bundle: installing %s", path)
    return device.install_cryptex(
        trust_cache=b.trust_cache,
        info_plist=b.info_plist,
        signature=b.signature,
        cryptex=b.cryptex,
    )


def prepare_bundle(
    source_dir: str,
    dmg: bytes,
    identifier: str,
    version: str,
    device: DeviceIdentity,
    client: Optional[SigningClient] = None,
    inspector: Optional[CodeSignInspector] = None,
    wrap_in_im4p: Optional[bool] = None,
) -> CryptexBundle:
    """Scan, build the trust cache, digest everything and fetch a ticket."""
    if wrap_in_im4p is None:
        wrap_in_im4p = CFG.wrap_trust_cache
    trust_cache = build_trust_cache_from_path(source_dir, wrap_in_im4p=wrap_in_im4p, inspector=inspector)
    artifact = DigestedArtifact.from_artifacts(identifier, version, dmg, trust_cache)
    ticket = (client or SigningClient()).sign(artifact, device)
    return CryptexBundle(
        trust_cache=trust_cache,
        info_plist=artifact.info_plist,
        signature=ticket,
        cryptex=dmg,
    )
