"""
Tests for WriteExecutor.

Tests cover:
- Mode selection
- Batch request shaping and partial failure handling
- Throttling and rejected writes
- Per-record skipping in single mode
"""

import dataclasses
import logging

import pytest
from botocore.exceptions import EndpointConnectionError

from dynamo_sink.common.exceptions import ConfigurationError, ConversionError
from dynamo_sink.schemas.records import Schema, SchemaType
from dynamo_sink.writers.executor import (
    MODE_BATCH,
    MODE_SINGLE,
    Fatal,
    PartialFailure,
    Rejected,
    Success,
    Throttled,
    WriteExecutor,
)
from dynamo_sink.writers.item_builder import ItemBuilder
from dynamo_sink.writers.partitioner import BatchPartitioner


@pytest.fixture
def executor_for(sink_config, mock_client):
    def _make(**overrides):
        config = dataclasses.replace(sink_config, **overrides)
        return WriteExecutor(mock_client, BatchPartitioner(config, ItemBuilder(config)))

    return _make


def _sent_items(call):
    return {
        table: [request["PutRequest"]["Item"] for request in requests]
        for table, requests in call.kwargs["RequestItems"].items()
    }


class TestModeSelection:
    def test_one_record_uses_single_mode(self, executor_for, make_record):
        executor = executor_for(batch_size=5)
        assert executor.select_mode([make_record()]) == MODE_SINGLE

    def test_batch_size_one_uses_single_mode(self, executor_for, make_record):
        executor = executor_for(batch_size=1)
        assert executor.select_mode([make_record(0), make_record(1)]) == MODE_SINGLE

    def test_many_records_use_batch_mode(self, executor_for, make_record):
        executor = executor_for(batch_size=5)
        assert executor.select_mode([make_record(0), make_record(1)]) == MODE_BATCH


class TestExecute:
    def test_empty_input_is_success(self, executor_for, mock_client):
        assert executor_for().execute([]) == Success()
        mock_client.put_item.assert_not_called()
        mock_client.batch_write_item.assert_not_called()

    def test_single_record_issues_one_put_item(self, executor_for, mock_client, make_record):
        executor = executor_for(batch_size=5)

        outcome = executor.execute([make_record(offset=3)])

        assert outcome == Success(written=1)
        mock_client.put_item.assert_called_once()
        kwargs = mock_client.put_item.call_args.kwargs
        assert kwargs["TableName"] == "data_orders"
        assert kwargs["Item"]["id"] == {"S": "order-3"}
        assert kwargs["Item"]["order_key"] == {"S": "order-3"}
        assert kwargs["Item"]["kafka_offset"] == {"N": "3"}
        mock_client.batch_write_item.assert_not_called()

    def test_batches_split_at_batch_size(self, executor_for, mock_client, make_record):
        executor = executor_for(batch_size=2)
        records = [make_record(offset=i) for i in range(5)]

        outcome = executor.execute(records)

        assert outcome == Success(written=5)
        calls = mock_client.batch_write_item.call_args_list
        assert len(calls) == 3
        sizes = [len(_sent_items(c)["data_orders"]) for c in calls]
        assert sizes == [2, 2, 1]
        offsets = [
            item["kafka_offset"]["N"] for c in calls for item in _sent_items(c)["data_orders"]
        ]
        assert offsets == ["0", "1", "2", "3", "4"]

    def test_batch_spanning_tables(self, executor_for, mock_client, make_record):
        executor = executor_for(batch_size=3)
        records = [
            make_record(offset=0, topic="orders"),
            make_record(offset=1, topic="refunds"),
            make_record(offset=2, topic="orders"),
        ]

        executor.execute(records)

        sent = _sent_items(mock_client.batch_write_item.call_args)
        assert list(sent) == ["data_orders", "data_refunds"]
        assert len(sent["data_orders"]) == 2

    def test_unprocessed_items_abort_remaining_batches(
        self, executor_for, mock_client, make_record
    ):
        leftover = {"data_orders": [{"PutRequest": {"Item": {"id": {"S": "order-1"}}}}]}
        mock_client.batch_write_item.return_value = {"UnprocessedItems": leftover}
        executor = executor_for(batch_size=2)

        outcome = executor.execute([make_record(offset=i) for i in range(5)])

        assert isinstance(outcome, PartialFailure)
        assert outcome.unprocessed == leftover
        assert outcome.error.unprocessed_count == 1
        assert mock_client.batch_write_item.call_count == 1

    def test_empty_unprocessed_tables_ignored(self, executor_for, mock_client, make_record):
        mock_client.batch_write_item.return_value = {"UnprocessedItems": {"data_orders": []}}
        executor = executor_for(batch_size=2)

        outcome = executor.execute([make_record(0), make_record(1)])

        assert outcome == Success(written=2)

    def test_batch_throttling(self, executor_for, mock_client, make_record, client_error):
        mock_client.batch_write_item.side_effect = client_error(
            "ProvisionedThroughputExceededException", "BatchWriteItem"
        )
        executor = executor_for(batch_size=2)

        outcome = executor.execute([make_record(offset=i) for i in range(4)])

        assert isinstance(outcome, Throttled)
        assert outcome.error.context["error_code"] == "ProvisionedThroughputExceededException"
        assert mock_client.batch_write_item.call_count == 1

    def test_single_throttling(self, executor_for, mock_client, make_record, client_error):
        mock_client.put_item.side_effect = client_error("LimitExceededException")
        executor = executor_for(batch_size=1)

        outcome = executor.execute([make_record(0), make_record(1)])

        assert isinstance(outcome, Throttled)
        assert mock_client.put_item.call_count == 1

    def test_rejected_write(self, executor_for, mock_client, make_record, client_error):
        mock_client.batch_write_item.side_effect = client_error(
            "ValidationException", "BatchWriteItem"
        )
        executor = executor_for(batch_size=2)

        outcome = executor.execute([make_record(offset=i) for i in range(4)])

        assert isinstance(outcome, Rejected)
        assert outcome.error.context["error_code"] == "ValidationException"
        assert mock_client.batch_write_item.call_count == 1

    def test_transport_failure_is_rejected(self, executor_for, mock_client, make_record):
        mock_client.put_item.side_effect = EndpointConnectionError(
            endpoint_url="http://localhost:8000"
        )
        executor = executor_for(batch_size=1)

        outcome = executor.execute([make_record()])

        assert isinstance(outcome, Rejected)


class TestSingleModeSkipping:
    def test_conversion_error_skips_record(
        self, executor_for, mock_client, make_record, caplog
    ):
        executor = executor_for(batch_size=1, top_value_attribute="v")
        bad = make_record(offset=0, value="x", value_schema=Schema(type=SchemaType.INT32))
        good = make_record(offset=1)

        with caplog.at_level(logging.ERROR):
            outcome = executor.execute([bad, good])

        assert outcome == Success(written=1)
        assert mock_client.put_item.call_count == 1
        assert mock_client.put_item.call_args.kwargs["Item"]["kafka_offset"] == {"N": "1"}
        assert "could not be converted" in caplog.text

    def test_unknown_error_skips_record(self, executor_for, mock_client, make_record):
        mock_client.put_item.side_effect = [RuntimeError("boom"), {}]
        executor = executor_for(batch_size=1)

        outcome = executor.execute([make_record(0), make_record(1)])

        assert outcome == Success(written=1)
        assert mock_client.put_item.call_count == 2

    def test_configuration_error_is_fatal(self, executor_for, mock_client, make_record):
        executor = executor_for(batch_size=1)

        outcome = executor.execute([make_record(value="not a map")])

        assert isinstance(outcome, Fatal)
        assert isinstance(outcome.error, ConfigurationError)
        mock_client.put_item.assert_not_called()


class TestBatchModeFatal:
    def test_conversion_error_is_fatal(self, executor_for, mock_client, make_record):
        executor = executor_for(batch_size=2, top_value_attribute="v")
        bad = make_record(offset=1, value="x", value_schema=Schema(type=SchemaType.INT32))

        outcome = executor.execute([make_record(offset=0), bad])

        assert isinstance(outcome, Fatal)
        assert isinstance(outcome.error, ConversionError)
        mock_client.batch_write_item.assert_not_called()

    def test_non_map_value_is_fatal(self, executor_for, mock_client, make_record):
        executor = executor_for(batch_size=2)

        outcome = executor.execute([make_record(0), make_record(1, value=17)])

        assert isinstance(outcome, Fatal)
        assert isinstance(outcome.error, ConfigurationError)
