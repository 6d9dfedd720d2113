"""
Prometheus metrics for the DynamoDB sink.

Provides instrumentation for:
- Items written per table
- Write calls by mode and status
- Throttling and retry-budget decisions
- Records dropped after the retry budget is exhausted
- Write latency
"""

from prometheus_client import Counter, Gauge, Histogram

items_written_total = Counter(
    "dynamo_sink_items_written_total",
    "Total number of items acknowledged by DynamoDB",
    ["table"],
)

write_calls_total = Counter(
    "dynamo_sink_write_calls_total",
    "Total number of DynamoDB write calls",
    ["mode", "status"],  # mode: single, batch; status: success, unprocessed, error
)

records_skipped_total = Counter(
    "dynamo_sink_records_skipped_total",
    "Records skipped in single mode after a per-record failure",
    ["topic", "reason"],  # reason: conversion, unknown
)

throttle_events_total = Counter(
    "dynamo_sink_throttle_events_total",
    "Invocations that ended in a throttling backoff",
)

retries_total = Counter(
    "dynamo_sink_retries_total",
    "Invocations that requested redelivery within the retry budget",
)

records_dropped_total = Counter(
    "dynamo_sink_records_dropped_total",
    "Records logged and dropped after the retry budget was exhausted",
)

remaining_retries = Gauge(
    "dynamo_sink_remaining_retries",
    "Retry budget left for the current failure streak",
    ["task"],  # one budget per task instance
)

write_duration_seconds = Histogram(
    "dynamo_sink_write_duration_seconds",
    "Time spent in DynamoDB write calls",
    ["mode"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)


def record_write_call(mode: str, status: str, duration_seconds: float) -> None:
    """
    Record one DynamoDB write call.

    Args:
        mode: "single" or "batch"
        status: "success", "unprocessed" or "error"
        duration_seconds: Wall time of the call
    """
    write_calls_total.labels(mode=mode, status=status).inc()
    write_duration_seconds.labels(mode=mode).observe(duration_seconds)


def record_items_written(table: str, count: int) -> None:
    """Record items acknowledged for a table."""
    items_written_total.labels(table=table).inc(count)


def record_skipped(topic: str, reason: str) -> None:
    """Record a record skipped in single mode."""
    records_skipped_total.labels(topic=topic, reason=reason).inc()


def record_throttle() -> None:
    throttle_events_total.inc()


def record_retry(task: str, budget_left: int) -> None:
    retries_total.inc()
    remaining_retries.labels(task=task).set(budget_left)


def record_dropped(task: str, count: int) -> None:
    records_dropped_total.inc(count)
    remaining_retries.labels(task=task).set(0)


def update_remaining_retries(task: str, budget_left: int) -> None:
    remaining_retries.labels(task=task).set(budget_left)


__all__ = [
    "items_written_total",
    "write_calls_total",
    "records_skipped_total",
    "throttle_events_total",
    "retries_total",
    "records_dropped_total",
    "remaining_retries",
    "write_duration_seconds",
    "record_write_call",
    "record_items_written",
    "record_skipped",
    "record_throttle",
    "record_retry",
    "record_dropped",
    "update_remaining_retries",
]
