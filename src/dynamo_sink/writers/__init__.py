"""
DynamoDB writers for the sink.

Provides:
- Attribute conversion of record payloads
- Item assembly from records
- Per-table batch partitioning
- Single and batch write execution
"""

from dynamo_sink.writers.executor import (
    Fatal,
    PartialFailure,
    Rejected,
    Success,
    Throttled,
    WriteExecutor,
    WriteOutcome,
)
from dynamo_sink.writers.item_builder import ItemBuilder, ValueSource, top_attribute_name
from dynamo_sink.writers.partitioner import (
    BatchPartitioner,
    WriteBatch,
    resolve_table_name,
)

__all__ = [
    "BatchPartitioner",
    "Fatal",
    "ItemBuilder",
    "PartialFailure",
    "Rejected",
    "Success",
    "Throttled",
    "ValueSource",
    "WriteBatch",
    "WriteExecutor",
    "WriteOutcome",
    "resolve_table_name",
    "top_attribute_name",
]
