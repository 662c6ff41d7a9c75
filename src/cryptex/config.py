import os

from dotenv import load_dotenv
from pydantic import BaseModel

load_dotenv()

VERSION = "0.1.0"

# Signing authority endpoint; the reply grammar is handled in tss/reply.py
DEFAULT_TSS_URL = "http://gs.apple.com/TSS/controller?action=2"


class CryptexConfig(BaseModel):
    tss_url: str = os.getenv("CRYPTEX_TSS_URL", DEFAULT_TSS_URL)
    user_agent: str = os.getenv("CRYPTEX_USER_AGENT", f"cryptex/{VERSION}")
    # Transport-level timeout only. None disables it.
    tss_timeout_s: float | None = float(os.getenv("CRYPTEX_TSS_TIMEOUT", "60")) or None

    wrap_trust_cache: bool = os.getenv("CRYPTEX_WRAP_TRUST_CACHE", "true").lower() == "true"
    codesign_bin: str = os.getenv("CRYPTEX_CODESIGN_BIN", "codesign")

    log_level: str = os.getenv("CRYPTEX_LOG_LEVEL", "INFO").upper()


CFG = CryptexConfig()


def load_config() -> CryptexConfig:
    return CFG
