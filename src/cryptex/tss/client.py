from __future__ import annotations

import time
from typing import Optional

import httpx

from ..artifact import DigestedArtifact
from ..config import load_config
from ..obs.prom import observe_signing
from ..plist.document import dumps_document
from ..utils.logging import get_logger
from .device import DeviceIdentity
from .errors import SigningError, TransportError
from .reply import extract_ticket
from .request import build_signing_request

log = get_logger()

CONTENT_TYPE = 'text/xml; charset="utf-8"'


class SigningClient:
    """One blocking POST per ``sign`` call; no retries.

    Pass ``client`` to reuse a connection pool or to inject a transport
    (tests use ``httpx.MockTransport``). The reply lives on the call stack,
    so concurrent ``sign`` calls do not share state.
    """

    def __init__(
        self,
        url: Optional[str] = None,
        user_agent: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.Client] = None,
    ):
        cfg = load_config()
        self.url = url or cfg.tss_url
        self.user_agent = user_agent or cfg.user_agent
        self.timeout = timeout if timeout is not None else cfg.tss_timeout_s
        self._client = client

    def _post(self, body: bytes) -> httpx.Response:
        headers = {"Content-Type": CONTENT_TYPE, "User-Agent": self.user_agent}
        if self._client is not None:
            return self._client.post(self.url, content=body, headers=headers, timeout=self.timeout)
        with httpx.Client(timeout=self.timeout) as s:
            return s.post(self.url, content=body, headers=headers)

    def sign(self, artifact: DigestedArtifact, device: DeviceIdentity) -> bytes:
        body = dumps_document(build_signing_request(artifact, device))
        log.info("tss: requesting ticket for %s %s from %s", artifact.identifier, artifact.version, self.url)
        started = time.monotonic()
        outcome = "error"
        try:
            try:
                resp = self._post(body)
            except httpx.HTTPError as e:
                raise TransportError(f"signing request failed: {e}") from e
            ticket = extract_ticket(resp.content, resp.encoding or "utf-8")
            outcome = "ok"
        except SigningError as e:
            outcome = type(e).__name__
            log.warning("tss: %s", e)
            raise
        finally:
            observe_signing(outcome, (time.monotonic() - started) * 1000.0)
        log.info("tss: received %d byte ticket", len(ticket))
        return ticket
