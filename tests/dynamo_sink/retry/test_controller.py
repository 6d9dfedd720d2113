"""Tests for the retry budget."""

import logging

import pytest

from dynamo_sink.common.exceptions import (
    ConversionError,
    ThrottlingError,
    UnprocessedItemsError,
    WriteFailureError,
)
from dynamo_sink.retry.controller import Done, Retriable, RetryController, RetryState
from dynamo_sink.writers.executor import Fatal, PartialFailure, Rejected, Success, Throttled


def _rejected():
    return Rejected(WriteFailureError("rejected", context={"error_code": "ValidationException"}))


def _throttled():
    return Throttled(ThrottlingError("slow down", context={"error_code": "ThrottlingException"}))


@pytest.fixture
def records(make_record):
    return [make_record(offset=i) for i in (10, 11, 12)]


class TestRetryController:
    def test_budget_exhaustion_drops_range(self, records, caplog):
        controller = RetryController(max_retries=2, retry_backoff_ms=500)

        first = controller.handle(_rejected(), records)
        second = controller.handle(_rejected(), records)
        with caplog.at_level(logging.ERROR):
            third = controller.handle(_rejected(), records)

        assert first == Retriable(500, first.error)
        assert isinstance(second, Retriable)
        assert third == Done(dropped=True)
        assert "Unable to process this range from: orders-0@10 to: orders-0@12" in caplog.text

    def test_remaining_retries_decrement(self, records):
        controller = RetryController(max_retries=2, retry_backoff_ms=500)

        controller.handle(_rejected(), records)
        assert controller.remaining_retries == 1
        controller.handle(_rejected(), records)
        assert controller.remaining_retries == 0

    def test_partial_failure_consumes_budget(self, records):
        controller = RetryController(max_retries=1, retry_backoff_ms=100)
        outcome = PartialFailure(UnprocessedItemsError({"t": [{"PutRequest": {}}]}))

        assert isinstance(controller.handle(outcome, records), Retriable)
        assert controller.remaining_retries == 0

    def test_success_resets_budget(self, records):
        controller = RetryController(max_retries=2, retry_backoff_ms=500)
        controller.handle(_rejected(), records)

        assert controller.handle(Success(written=3), records) == Done()
        assert controller.remaining_retries == 2
        assert controller.state == RetryState.READY

    def test_throttling_leaves_budget_untouched(self, records):
        controller = RetryController(max_retries=2, retry_backoff_ms=750)

        for _ in range(10):
            result = controller.handle(_throttled(), records)
            assert isinstance(result, Retriable)
            assert result.backoff_ms == 750

        assert controller.remaining_retries == 2

    def test_throttling_retried_after_exhaustion(self, records):
        controller = RetryController(max_retries=0, retry_backoff_ms=500)
        controller.handle(_rejected(), records)

        assert isinstance(controller.handle(_throttled(), records), Retriable)

    def test_budget_stays_spent_until_success(self, records):
        controller = RetryController(max_retries=1, retry_backoff_ms=500)
        controller.handle(_rejected(), records)
        assert controller.handle(_rejected(), records) == Done(dropped=True)

        assert controller.handle(_rejected(), records) == Done(dropped=True)
        assert controller.remaining_retries == 0

        controller.handle(Success(), records)
        assert isinstance(controller.handle(_rejected(), records), Retriable)

    def test_zero_retries_drops_immediately(self, records):
        controller = RetryController(max_retries=0, retry_backoff_ms=500)

        assert controller.handle(_rejected(), records) == Done(dropped=True)

    def test_fatal_outcome_raises(self, records):
        controller = RetryController(max_retries=2, retry_backoff_ms=500)
        error = ConversionError("bad payload")

        with pytest.raises(ConversionError):
            controller.handle(Fatal(error), records)

        assert controller.remaining_retries == 2

    def test_state_transitions(self, records):
        controller = RetryController(max_retries=1, retry_backoff_ms=500)
        assert controller.state == RetryState.READY

        controller.handle(_rejected(), records)
        assert controller.state == RetryState.RETRYING

        controller.handle(_rejected(), records)
        assert controller.state == RetryState.EXHAUSTED

        controller.handle(Success(), records)
        assert controller.state == RetryState.READY

    def test_negative_budget_rejected(self):
        with pytest.raises(ValueError):
            RetryController(max_retries=-1, retry_backoff_ms=0)

    def test_unknown_outcome_rejected(self, records):
        controller = RetryController(max_retries=1, retry_backoff_ms=0)

        with pytest.raises(TypeError):
            controller.handle(object(), records)
