from __future__ import annotations

from typing import Any, Dict

from ..artifact import DigestedArtifact
from .device import DeviceIdentity

HOST_PLATFORM = "mac"
VERSION_INFO = "libauthinstall-850.0.1.0.1"
SEP_NONCE = bytes(20)


def _record(digest: bytes, device: DeviceIdentity, **extra: Any) -> Dict[str, Any]:
    rec: Dict[str, Any] = {"Digest": digest}
    rec.update(extra)
    rec["EPRO"] = device.production_mode
    rec["ESEC"] = device.security_mode
    rec["Trusted"] = True
    return rec


def build_signing_request(artifact: DigestedArtifact, device: DeviceIdentity) -> Dict[str, Any]:
    """Assemble the TSS request document for one cryptex and one device."""
    return {
        "@ApImg4Ticket": True,
        "@BBTicket": True,
        "@HostPlatformInfo": HOST_PLATFORM,
        "@VersionInfo": VERSION_INFO,
        "Ap,CryptexInfoPlist": _record(artifact.info_plist_digest, device),
        "ApBoardID": device.board_id,
        "ApChipID": device.chip_id,
        "ApECID": device.ecid,
        "ApNonce": device.nonce,
        "ApProductionMode": device.production_mode,
        "ApSecurityDomain": device.security_domain,
        "ApSecurityMode": device.security_mode,
        "CryptexDMG": _record(artifact.dmg_digest, device, Name=artifact.identifier),
        "LoadableTrustCache": _record(artifact.trust_cache_digest, device),
        "SepNonce": SEP_NONCE,
    }
