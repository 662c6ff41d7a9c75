from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .crypto.digest import SHA384_LEN, sha384
from .plist.document import dumps_document


def create_info_plist(identifier: str, version: str) -> bytes:
    return dumps_document({"CFBundleIdentifier": identifier, "CFBundleVersion": version})


@dataclass(frozen=True)
class DigestedArtifact:
    """Identity and SHA-384 digests of one cryptex.

    ``info_plist`` is only set when the info descriptor was synthesized here.
    """

    identifier: str
    version: str
    info_plist_digest: bytes
    dmg_digest: bytes
    trust_cache_digest: bytes
    info_plist: Optional[bytes] = None

    def __post_init__(self):
        for name in ("info_plist_digest", "dmg_digest", "trust_cache_digest"):
            if len(getattr(self, name)) != SHA384_LEN:
                raise ValueError(f"{name} must be {SHA384_LEN} bytes")

    @classmethod
    def from_artifacts(cls, identifier: str, version: str, dmg: bytes, trust_cache: bytes) -> "DigestedArtifact":
        plist = create_info_plist(identifier, version)
        return cls(
            identifier=identifier,
            version=version,
            info_plist_digest=sha384(plist),
            dmg_digest=sha384(dmg),
            trust_cache_digest=sha384(trust_cache),
            info_plist=plist,
        )
