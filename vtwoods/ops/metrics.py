import time
from contextlib import contextmanager

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    Counter,
    Histogram,
    generate_latest,
)


CHAT_REQUESTS_TOTAL = Counter("chat_requests_total", "Total number of chat requests")
CHAT_ERRORS_TOTAL = Counter(
    "chat_errors_total",
    "Total number of failed chat requests",
    ["reason"],
)
SCOPE_DECISIONS_TOTAL = Counter(
    "scope_decisions_total",
    "Total number of scope decisions by outcome",
    ["decision"],
)
RELEVANCE_BLOCKS_TOTAL = Counter(
    "relevance_blocks_total",
    "Total number of requests refused by the retrieval relevance check",
    ["verdict"],
)

CHAT_LATENCY_SECONDS = Histogram("chat_seconds", "End-to-end chat latency in seconds")
RELEVANCE_LATENCY_SECONDS = Histogram(
    "relevance_seconds",
    "Relevance pre-check latency in seconds",
)
GENERATE_LATENCY_SECONDS = Histogram(
    "generate_seconds",
    "Hosted generation latency in seconds",
)


@contextmanager
def timer():
    start = time.time()
    yield lambda: time.time() - start


def observe_chat_latency(sec: float) -> None:
    CHAT_LATENCY_SECONDS.observe(sec)


def observe_relevance_latency(sec: float) -> None:
    RELEVANCE_LATENCY_SECONDS.observe(sec)


def observe_generate_latency(sec: float) -> None:
    GENERATE_LATENCY_SECONDS.observe(sec)


def inc_chat_requests() -> None:
    CHAT_REQUESTS_TOTAL.inc()


def inc_chat_error(error_type: str) -> None:
    CHAT_ERRORS_TOTAL.labels(reason=error_type).inc()


def inc_scope_decision(decision: str) -> None:
    SCOPE_DECISIONS_TOTAL.labels(decision=decision).inc()


def inc_relevance_block(verdict: str) -> None:
    RELEVANCE_BLOCKS_TOTAL.labels(verdict=verdict).inc()


def render_metrics() -> bytes:
    return generate_latest()


def metrics_content_type() -> str:
    return CONTENT_TYPE_LATEST
