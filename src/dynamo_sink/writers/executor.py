"""
DynamoDB write execution for one sink invocation.

Single mode issues one PutItem per record; batch mode issues one
BatchWriteItem per partitioning pass. Either way the invocation ends in a
WriteOutcome that the retry controller turns into a caller-visible result.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, Sequence, Union

from botocore.exceptions import BotoCoreError, ClientError

from dynamo_sink.common import metrics
from dynamo_sink.common.exceptions import (
    ConfigurationError,
    ConversionError,
    SinkError,
    ThrottlingError,
    UnprocessedItemsError,
    WriteFailureError,
    wrap_backend_error,
)
from dynamo_sink.common.logging import LoggedClass, extract_record_context
from dynamo_sink.schemas.records import SinkRecord
from dynamo_sink.writers.attributes import Item
from dynamo_sink.writers.partitioner import BatchPartitioner, WriteBatch

MODE_SINGLE = "single"
MODE_BATCH = "batch"


@dataclass(frozen=True)
class Success:
    """Every record was written or deliberately skipped."""

    written: int = 0


@dataclass(frozen=True)
class PartialFailure:
    """A batch response reported unprocessed items; later batches were abandoned."""

    error: UnprocessedItemsError

    @property
    def unprocessed(self) -> Dict[str, Any]:
        return self.error.unprocessed


@dataclass(frozen=True)
class Throttled:
    """Backend signalled capacity or request limits."""

    error: ThrottlingError


@dataclass(frozen=True)
class Rejected:
    """Backend refused a write."""

    error: WriteFailureError


@dataclass(frozen=True)
class Fatal:
    """Conversion or configuration error; never retried."""

    error: SinkError


WriteOutcome = Union[Success, PartialFailure, Throttled, Rejected, Fatal]


class WriteExecutor(LoggedClass):
    """
    Sends the records of one invocation to DynamoDB.

    Usage:
        >>> executor = WriteExecutor(client, partitioner)
        >>> outcome = executor.execute(records)
        >>> isinstance(outcome, Success)
        True
    """

    def __init__(self, client: Any, partitioner: BatchPartitioner):
        self.client = client
        self.partitioner = partitioner
        super().__init__()

    @property
    def batch_size(self) -> int:
        return self.partitioner.batch_size

    def select_mode(self, records: Sequence[SinkRecord]) -> str:
        """Single mode for one record or batch_size 1, batch mode otherwise."""
        if len(records) == 1 or self.batch_size == 1:
            return MODE_SINGLE
        return MODE_BATCH

    def execute(self, records: Sequence[SinkRecord]) -> WriteOutcome:
        """
        Write all records of an invocation.

        Args:
            records: Records in delivery order

        Returns:
            WriteOutcome describing how the invocation ended
        """
        if not records:
            return Success()

        mode = self.select_mode(records)
        try:
            if mode == MODE_SINGLE:
                return Success(self._write_single(records))
            return Success(self._write_batches(records))
        except (ConversionError, ConfigurationError) as e:
            return Fatal(e)
        except ThrottlingError as e:
            return Throttled(e)
        except UnprocessedItemsError as e:
            return PartialFailure(e)
        except WriteFailureError as e:
            return Rejected(e)

    # -------------------------------------------------------------------------
    # Single mode
    # -------------------------------------------------------------------------

    def _write_single(self, records: Sequence[SinkRecord]) -> int:
        written = 0
        for record in records:
            ctx = extract_record_context(record)
            try:
                table = self.partitioner.table_name(record)
                item = self.partitioner.item_builder.build(record)
                self._put_item(table, item, record)
                written += 1
            except ConversionError as e:
                self._log(
                    logging.ERROR,
                    "Skipping record that could not be converted",
                    error_message=str(e),
                    **ctx,
                )
                metrics.record_skipped(record.topic, "conversion")
            except SinkError:
                raise
            except Exception as e:
                self._log_exception(e, "Unknown exception occurred, skipping record", **ctx)
                metrics.record_skipped(record.topic, "unknown")
        return written

    def _put_item(self, table: str, item: Item, record: SinkRecord) -> None:
        ctx = extract_record_context(record)
        start = time.perf_counter()
        try:
            self.client.put_item(TableName=table, Item=item)
        except (ClientError, BotoCoreError) as e:
            metrics.record_write_call(MODE_SINGLE, "error", time.perf_counter() - start)
            error = wrap_backend_error(e, context=dict(ctx, table=table))
            self._log_exception(
                error,
                "Exception in writing into DynamoDB",
                table=table,
                error_code=error.context.get("error_code"),
                **ctx,
            )
            raise error from e

        elapsed = time.perf_counter() - start
        metrics.record_write_call(MODE_SINGLE, "success", elapsed)
        metrics.record_items_written(table, 1)
        self._log(
            logging.DEBUG,
            "Wrote item",
            table=table,
            duration_ms=round(elapsed * 1000, 2),
            **ctx,
        )

    # -------------------------------------------------------------------------
    # Batch mode
    # -------------------------------------------------------------------------

    def _write_batches(self, records: Sequence[SinkRecord]) -> int:
        cursor = iter(records)
        written = 0
        while True:
            batch = self.partitioner.next_batch(cursor)
            if not batch:
                return written
            self._send_batch(batch)
            written += len(batch)

    def _send_batch(self, batch: WriteBatch) -> None:
        start = time.perf_counter()
        try:
            response = self.client.batch_write_item(
                RequestItems=batch.to_request_items()
            )
        except (ClientError, BotoCoreError) as e:
            metrics.record_write_call(MODE_BATCH, "error", time.perf_counter() - start)
            error = wrap_backend_error(e, context={"tables": batch.tables})
            self._log_exception(
                error,
                "Batch write into DynamoDB failed",
                tables=batch.tables,
                record_count=len(batch),
                error_code=error.context.get("error_code"),
            )
            raise error from e

        elapsed = time.perf_counter() - start
        unprocessed = {
            table: requests
            for table, requests in (response.get("UnprocessedItems") or {}).items()
            if requests
        }
        if unprocessed:
            metrics.record_write_call(MODE_BATCH, "unprocessed", elapsed)
            error = UnprocessedItemsError(unprocessed, context={"tables": batch.tables})
            self._log(
                logging.WARNING,
                "Batch write returned unprocessed items, abandoning remaining batches",
                tables=list(unprocessed),
                record_count=len(batch),
                unprocessed_count=error.unprocessed_count,
            )
            raise error

        metrics.record_write_call(MODE_BATCH, "success", elapsed)
        for table, items in batch.items_by_table.items():
            metrics.record_items_written(table, len(items))
        self._log(
            logging.DEBUG,
            "Batch write complete",
            tables=batch.tables,
            record_count=len(batch),
            duration_ms=round(elapsed * 1000, 2),
        )
