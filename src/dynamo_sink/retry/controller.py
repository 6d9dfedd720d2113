"""
Retry budget handling across sink invocations.

Throttling always asks the caller to back off and redeliver without touching
the budget. Rejected writes and unprocessed items consume one retry each;
once the budget is spent the affected record range is logged and the
invocation completes so the caller does not redeliver forever.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence, Union

from dynamo_sink.common import metrics
from dynamo_sink.common.exceptions import SinkError
from dynamo_sink.common.logging import LoggedClass
from dynamo_sink.schemas.records import SinkRecord
from dynamo_sink.writers.executor import (
    Fatal,
    PartialFailure,
    Rejected,
    Success,
    Throttled,
    WriteOutcome,
)


@dataclass(frozen=True)
class Done:
    """Invocation complete. ``dropped`` is set when records were given up on."""

    dropped: bool = False


@dataclass(frozen=True)
class Retriable:
    """Caller should wait ``backoff_ms`` and redeliver the same records."""

    backoff_ms: int
    error: Optional[SinkError] = None


PutResult = Union[Done, Retriable]


class RetryState(str, Enum):
    READY = "ready"
    RETRYING = "retrying"
    EXHAUSTED = "exhausted"


class RetryController(LoggedClass):
    """
    Owns the retry budget of one task instance.

    Invocations are serialized by the host, so the budget needs no locking.
    Each task instance holds its own controller; ``task_id`` labels its
    remaining-budget gauge.

    Usage:
        >>> controller = RetryController(max_retries=2, retry_backoff_ms=500)
        >>> result = controller.handle(executor.execute(records), records)
        >>> if isinstance(result, Retriable):
        ...     schedule_redelivery(records, delay_ms=result.backoff_ms)
    """

    def __init__(self, max_retries: int, retry_backoff_ms: int, task_id: str = "default"):
        if max_retries < 0:
            raise ValueError(f"max_retries must be non-negative, got {max_retries}")
        self.max_retries = max_retries
        self.retry_backoff_ms = retry_backoff_ms
        self.task_id = task_id
        self.remaining_retries = max_retries
        self._exhausted = False
        super().__init__()
        metrics.update_remaining_retries(task_id, max_retries)

    @property
    def state(self) -> RetryState:
        if self._exhausted:
            return RetryState.EXHAUSTED
        if self.remaining_retries == self.max_retries:
            return RetryState.READY
        return RetryState.RETRYING

    def reset(self) -> None:
        """Restore the full budget."""
        self.remaining_retries = self.max_retries
        self._exhausted = False
        metrics.update_remaining_retries(self.task_id, self.remaining_retries)

    def handle(self, outcome: WriteOutcome, records: Sequence[SinkRecord]) -> PutResult:
        """
        Turn a write outcome into the caller-visible result.

        Args:
            outcome: How the invocation's writes ended
            records: The invocation's records, for drop logging

        Returns:
            Done or Retriable

        Raises:
            SinkError: The conversion or configuration error of a Fatal outcome
        """
        if isinstance(outcome, Fatal):
            raise outcome.error

        if isinstance(outcome, Throttled):
            self._log(
                logging.DEBUG,
                "Write failed with limit/throughput exceeded; backing off",
                backoff_ms=self.retry_backoff_ms,
                error_code=outcome.error.context.get("error_code"),
            )
            metrics.record_throttle()
            return Retriable(self.retry_backoff_ms, outcome.error)

        if isinstance(outcome, (Rejected, PartialFailure)):
            return self._handle_write_failure(outcome.error, records)

        if isinstance(outcome, Success):
            self.reset()
            return Done()

        raise TypeError(f"Unexpected write outcome: {outcome!r}")

    def _handle_write_failure(
        self, error: SinkError, records: Sequence[SinkRecord]
    ) -> PutResult:
        self._log(
            logging.WARNING,
            f"Write failed, remaining_retries={self.remaining_retries}",
            remaining_retries=self.remaining_retries,
            error_category=error.category.value,
            error_message=str(error),
        )

        if self.remaining_retries == 0:
            first, last = records[0], records[-1]
            self._log(
                logging.ERROR,
                f"Unable to process this range from: {first.coordinates} "
                f"to: {last.coordinates}",
                first_record=first.coordinates,
                last_record=last.coordinates,
                record_count=len(records),
            )
            self._exhausted = True
            metrics.record_dropped(self.task_id, len(records))
            return Done(dropped=True)

        self.remaining_retries -= 1
        metrics.record_retry(self.task_id, self.remaining_retries)
        return Retriable(self.retry_backoff_ms, error)
