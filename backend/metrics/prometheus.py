"""Prometheus metrics for CHE processing.

Request-level metrics come from prometheus-fastapi-instrumentator; these add
codec-level counters on the same default registry, so they show up on
/metrics too.
"""

from prometheus_client import Counter, Gauge, Histogram

UPLOADS_TOTAL = Counter("che_uploads_total", "Parsed CHE uploads", ["kind"])

PARSE_FAILURES_TOTAL = Counter("che_parse_failures_total", "Uploads rejected by the parser")

GENERATIONS_TOTAL = Counter("che_generations_total", "Generated CHE files", ["format"])

BLOCKS_DROPPED_TOTAL = Counter(
    "che_blocks_dropped_total", "Program blocks dropped because the block table was full"
)

VERIFY_FAILURES_TOTAL = Counter(
    "che_verify_failures_total", "Generated tournament files that failed the re-parse check"
)

ACTIVE_SESSIONS = Gauge("che_active_sessions", "Current in-memory sessions")

GENERATION_DURATION = Histogram(
    "che_generation_duration_seconds",
    "Time spent building a CHE file",
    ["format"],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0],
)


def record_upload(kind: str):
    UPLOADS_TOTAL.labels(kind=kind).inc()


def record_parse_failure():
    PARSE_FAILURES_TOTAL.inc()


def record_generation(fmt: str, seconds: float, dropped_blocks: int = 0):
    GENERATIONS_TOTAL.labels(format=fmt).inc()
    GENERATION_DURATION.labels(format=fmt).observe(seconds)
    if dropped_blocks:
        BLOCKS_DROPPED_TOTAL.inc(dropped_blocks)


def record_verify_failure():
    VERIFY_FAILURES_TOTAL.inc()


def set_active_sessions(count: int):
    ACTIVE_SESSIONS.set(count)
