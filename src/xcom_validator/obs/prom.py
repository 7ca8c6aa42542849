"""Prometheus instrumentation for the validator server.

Labels are kept low-cardinality: routes are OpenAPI templates, reasons are a
fixed vocabulary.
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

AUTH_RESULTS = Counter(
    "xcom_auth_results_total",
    "Authentication pipeline outcomes.",
    ["result", "reason"],
    registry=REGISTRY,
)
REJECTIONS = Counter(
    "xcom_request_rejections_total",
    "Requests rejected before reaching a handler, by pipeline stage.",
    ["stage", "request_part"],
    registry=REGISTRY,
)
HTTP_RESPONSES = Counter(
    "xcom_http_responses_total",
    "HTTP responses by route template and status code.",
    ["route", "code"],
    registry=REGISTRY,
)
LAT_HIST = Histogram(
    "xcom_request_latency_ms",
    "Request processing latency (ms).",
    ["route"],
    buckets=(1, 2, 5, 10, 25, 50, 100, 250, 500, 1000, 2000),
    registry=REGISTRY,
)


def observe_auth(*, verified: bool, reason: str) -> None:
    AUTH_RESULTS.labels(result="ok" if verified else "fail", reason=reason).inc()


def observe_rejection(*, stage: str, request_part: str | None) -> None:
    REJECTIONS.labels(stage=stage, request_part=request_part or "none").inc()


def observe_response(*, route: str, http_status: int, latency_ms: float) -> None:
    HTTP_RESPONSES.labels(route=route, code=str(http_status)).inc()
    LAT_HIST.labels(route=route).observe(latency_ms)


def prometheus_latest() -> tuple[bytes, str]:
    return generate_latest(REGISTRY), CONTENT_TYPE_LATEST
