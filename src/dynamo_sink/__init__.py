"""
dynamo_sink: writes Kafka-style sink records to DynamoDB tables.

Records are turned into items, grouped into per-table batches, and written
with throttling backoff and a bounded retry budget.
"""

__version__ = "0.1.0"

from dynamo_sink.common.log_setup import setup_logging
from dynamo_sink.config import SinkConfig
from dynamo_sink.retry.controller import Done, PutResult, Retriable
from dynamo_sink.schemas.records import Schema, SchemaType, SinkRecord
from dynamo_sink.task import DynamoSinkTask

__all__ = [
    "__version__",
    "Done",
    "DynamoSinkTask",
    "PutResult",
    "Retriable",
    "Schema",
    "SchemaType",
    "SinkConfig",
    "SinkRecord",
    "setup_logging",
]
