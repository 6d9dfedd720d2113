"""
Grouping of sink records into per-table batch write requests.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Iterator, List

from dynamo_sink.common.exceptions import ConfigurationError
from dynamo_sink.config import TOPIC_PLACEHOLDER, SinkConfig
from dynamo_sink.schemas.records import SinkRecord
from dynamo_sink.writers.attributes import Item
from dynamo_sink.writers.item_builder import ItemBuilder


def resolve_table_name(table_format: str, topic: str) -> str:
    """Substitute the record topic into the table name template.

    Args:
        table_format: Template containing the literal ``${topic}`` placeholder
        topic: Record topic

    Returns:
        Resolved table name, e.g. "data_${topic}" + "orders" -> "data_orders"

    Raises:
        ConfigurationError: If the resolved name is empty
    """
    table = table_format.replace(TOPIC_PLACEHOLDER, topic)
    if not table:
        raise ConfigurationError(
            f"table.format {table_format!r} resolved to an empty table name "
            f"for topic {topic!r}"
        )
    return table


@dataclass
class WriteBatch:
    """Items grouped by destination table, with the records that produced them.

    Tables keep first-seen order and items keep input order within a table.
    """

    items_by_table: Dict[str, List[Item]] = field(default_factory=dict)
    records: List[SinkRecord] = field(default_factory=list)

    def add(self, table: str, item: Item, record: SinkRecord) -> None:
        self.items_by_table.setdefault(table, []).append(item)
        self.records.append(record)

    @property
    def tables(self) -> List[str]:
        return list(self.items_by_table)

    def __len__(self) -> int:
        return len(self.records)

    def to_request_items(self) -> Dict[str, List[Dict[str, Any]]]:
        """Shape the batch as BatchWriteItem ``RequestItems``."""
        return {
            table: [{"PutRequest": {"Item": item}} for item in items]
            for table, items in self.items_by_table.items()
        }


class BatchPartitioner:
    """
    Pulls records off a shared cursor into batches of at most batch_size items.

    Usage:
        >>> partitioner = BatchPartitioner(config, ItemBuilder(config))
        >>> cursor = iter(records)
        >>> batch = partitioner.next_batch(cursor)   # cursor now past the batch
        >>> client.batch_write_item(RequestItems=batch.to_request_items())
    """

    def __init__(self, config: SinkConfig, item_builder: ItemBuilder):
        self.config = config
        self.item_builder = item_builder

    @property
    def batch_size(self) -> int:
        return self.config.batch_size

    def table_name(self, record: SinkRecord) -> str:
        return resolve_table_name(self.config.table_format, record.topic)

    def next_batch(self, cursor: Iterator[SinkRecord]) -> WriteBatch:
        """
        Take up to batch_size records from the cursor.

        Args:
            cursor: Forward-only iterator shared across calls

        Returns:
            WriteBatch; empty when the cursor is exhausted

        Raises:
            ConversionError: If a record cannot be converted
            ConfigurationError: If a table name or item cannot be resolved
        """
        batch = WriteBatch()
        while len(batch) < self.batch_size:
            record = next(cursor, None)
            if record is None:
                break
            table = self.table_name(record)
            batch.add(table, self.item_builder.build(record), record)
        return batch

    def partition(self, records: Iterable[SinkRecord]) -> Iterator[WriteBatch]:
        """Yield successive batches until the records are exhausted."""
        cursor = iter(records)
        while True:
            batch = self.next_batch(cursor)
            if not batch:
                return
            yield batch
