"""Tests for sink metrics."""

from prometheus_client import REGISTRY

from dynamo_sink.common import metrics


def _sample(name, **labels):
    return REGISTRY.get_sample_value(name, labels) or 0.0


def test_items_written_per_table():
    before = _sample("dynamo_sink_items_written_total", table="metrics_t")

    metrics.record_items_written("metrics_t", 3)

    assert _sample("dynamo_sink_items_written_total", table="metrics_t") == before + 3


def test_write_call_counts_and_latency():
    before = _sample("dynamo_sink_write_calls_total", mode="batch", status="unprocessed")
    observed = _sample("dynamo_sink_write_duration_seconds_count", mode="batch")

    metrics.record_write_call("batch", "unprocessed", 0.02)

    assert (
        _sample("dynamo_sink_write_calls_total", mode="batch", status="unprocessed")
        == before + 1
    )
    assert _sample("dynamo_sink_write_duration_seconds_count", mode="batch") == observed + 1


def test_retry_budget_gauge():
    metrics.record_retry("metrics-task", 4)
    assert _sample("dynamo_sink_remaining_retries", task="metrics-task") == 4

    metrics.record_dropped("metrics-task", 10)
    assert _sample("dynamo_sink_remaining_retries", task="metrics-task") == 0

    metrics.update_remaining_retries("metrics-task", 7)
    assert _sample("dynamo_sink_remaining_retries", task="metrics-task") == 7


def test_retry_budget_gauge_per_task():
    metrics.update_remaining_retries("metrics-a", 3)
    metrics.record_retry("metrics-b", 1)

    assert _sample("dynamo_sink_remaining_retries", task="metrics-a") == 3
    assert _sample("dynamo_sink_remaining_retries", task="metrics-b") == 1
