"""Prometheus metrics for transfer attempts.

Module purpose and system role:
    - Count transfer outcomes and gas-estimation fallbacks.
    - Track how long destination confirmation takes.

Integration points and dependencies:
    - ``prometheus_client`` collectors on the default registry.
    - CLIs call :func:`start_metrics_server` when ``--metrics-port`` is given.
"""

from __future__ import annotations

from prometheus_client import Counter, Histogram, start_http_server

TRANSFER_OUTCOMES = Counter(
    "transfer_outcomes_total", "Transfer attempts by terminal status", ["status"]
)
GAS_FALLBACKS = Counter(
    "gas_estimate_fallback_total", "Submissions that used the fixed fallback gas limit"
)
SUBMISSION_RETRIES = Counter(
    "submission_retries_total", "Broadcast attempts retried after a transport error"
)
CONFIRMATION_SECONDS = Histogram(
    "confirmation_seconds",
    "Time from source inclusion to observed destination balance change",
    buckets=(1, 2, 5, 10, 20, 30, 60, 90, 120, 180),
)
BATCH_CANCELLED = Counter("batch_cancelled_total", "Batches stopped by an operator")


def record_outcome(status: str) -> None:
    TRANSFER_OUTCOMES.labels(status=status).inc()


def record_gas_fallback() -> None:
    GAS_FALLBACKS.inc()


def record_retry() -> None:
    SUBMISSION_RETRIES.inc()


def record_confirmation(seconds: float) -> None:
    CONFIRMATION_SECONDS.observe(seconds)


def record_cancel() -> None:
    BATCH_CANCELLED.inc()


def start_metrics_server(port: int, addr: str = "0.0.0.0") -> None:
    """Expose the default registry on ``addr:port``."""

    start_http_server(port, addr=addr)
