"""Prometheus instrumentation for trust-cache builds and signing exchanges.

Uses a private registry so embedding applications decide whether and where to expose it.
Outcome labels are bounded by the signing error taxonomy.
"""
from __future__ import annotations

from prometheus_client import (
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
    CONTENT_TYPE_LATEST,
)

REGISTRY = CollectorRegistry()

TRUSTCACHE_BUILDS = Counter(
    "cryptex_trustcache_builds_total",
    "Trust caches built.",
    registry=REGISTRY,
)
TRUSTCACHE_ENTRIES = Histogram(
    "cryptex_trustcache_entries",
    "Entries per built trust cache (after deduplication).",
    buckets=(1, 8, 32, 128, 512, 1024, 4096, 16384),
    registry=REGISTRY,
)
TSS_REQUESTS = Counter(
    "cryptex_tss_requests_total",
    "Signing exchanges by outcome (ok, a SigningError class name, or error).",
    ["outcome"],
    registry=REGISTRY,
)
TSS_LATENCY = Histogram(
    "cryptex_tss_latency_ms",
    "Signing exchange round trip (ms).",
    buckets=(50, 100, 250, 500, 1000, 2000, 5000, 10000, 30000),
    registry=REGISTRY,
)


def observe_trust_cache(entries: int) -> None:
    TRUSTCACHE_BUILDS.inc()
    TRUSTCACHE_ENTRIES.observe(entries)


def observe_signing(outcome: str, latency_ms: float) -> None:
    TSS_REQUESTS.labels(outcome=outcome).inc()
    TSS_LATENCY.observe(latency_ms)


def prometheus_latest() -> tuple[bytes, str]:
    return generate_latest(REGISTRY), CONTENT_TYPE_LATEST
