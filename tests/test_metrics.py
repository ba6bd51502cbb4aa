"""Tests for the Prometheus collectors."""

import pytest
from prometheus_client import REGISTRY

from funding import metrics


def _value(name, **labels):
    return REGISTRY.get_sample_value(name, labels) or 0.0


def test_outcome_counter_by_status() -> None:
    before = _value("transfer_outcomes_total", status="timed_out")
    metrics.record_outcome("timed_out")
    metrics.record_outcome("timed_out")
    assert _value("transfer_outcomes_total", status="timed_out") == before + 2


def test_confirmation_histogram() -> None:
    count = _value("confirmation_seconds_count")
    total = _value("confirmation_seconds_sum")
    metrics.record_confirmation(4.0)
    assert _value("confirmation_seconds_count") == count + 1
    assert _value("confirmation_seconds_sum") == total + 4.0
    assert _value("confirmation_seconds_bucket", le="5.0") >= 1


def test_retry_counter() -> None:
    before = _value("submission_retries_total")
    metrics.record_retry()
    assert _value("submission_retries_total") == before + 1


def test_start_metrics_server(monkeypatch: pytest.MonkeyPatch) -> None:
    calls = []
    monkeypatch.setattr(metrics, "start_http_server", lambda port, addr: calls.append((port, addr)))
    metrics.start_metrics_server(9105)
    assert calls == [(9105, "0.0.0.0")]
