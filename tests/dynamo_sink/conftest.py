"""
Pytest fixtures for dynamo_sink tests.

Provides fixtures for:
- Sink configuration
- A mocked low-level DynamoDB client
- Record and botocore error factories
"""

from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from dynamo_sink.config import SinkConfig
from dynamo_sink.schemas.records import SinkRecord


@pytest.fixture
def sink_config() -> SinkConfig:
    """Batch-mode configuration writing to data_<topic> tables."""
    return SinkConfig(
        region="us-east-1",
        table_format="data_${topic}",
        top_key_attribute="order_key",
        batch_size=2,
        max_retries=2,
        retry_backoff_ms=500,
    )


@pytest.fixture
def mock_client() -> MagicMock:
    """DynamoDB client whose writes all succeed."""
    client = MagicMock()
    client.put_item.return_value = {}
    client.batch_write_item.return_value = {"UnprocessedItems": {}}
    return client


@pytest.fixture
def make_record():
    """Factory for SinkRecords on a single partition."""

    def _make(offset: int = 0, topic: str = "orders", **kwargs) -> SinkRecord:
        kwargs.setdefault("key", f"order-{offset}")
        kwargs.setdefault("value", {"id": f"order-{offset}", "qty": offset})
        return SinkRecord(topic=topic, partition=0, offset=offset, **kwargs)

    return _make


@pytest.fixture
def client_error():
    """Factory for botocore ClientErrors with a given error code."""

    def _make(code: str, operation: str = "PutItem") -> ClientError:
        return ClientError(
            {"Error": {"Code": code, "Message": f"{code} raised by test"}},
            operation,
        )

    return _make
