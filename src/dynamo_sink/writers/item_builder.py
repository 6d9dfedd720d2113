"""
Assembly of DynamoDB items from sink records.

Each item is built from the record value, the record key, and the record's
Kafka coordinates, in that order, so later sources win on attribute name
collisions.
"""

from enum import Enum
from typing import Any, Optional

from dynamo_sink.common.exceptions import ConfigurationError, ConversionError
from dynamo_sink.common.logging import LoggedClass, extract_record_context
from dynamo_sink.config import SinkConfig
from dynamo_sink.schemas.records import Schema, SinkRecord
from dynamo_sink.writers.attributes import (
    AttributeValue,
    Item,
    convert,
    decode_json_payload,
)


class ValueSource(str, Enum):
    """Part of a record an attribute value is taken from."""

    RECORD_KEY = "record_key"
    RECORD_VALUE = "record_value"


def top_attribute_name(source: ValueSource, config: SinkConfig) -> str:
    """Configured container attribute for a source; empty means merge."""
    if source == ValueSource.RECORD_KEY:
        return config.top_key_attribute
    return config.top_value_attribute


class ItemBuilder(LoggedClass):
    """
    Builds one DynamoDB item per sink record.

    Usage:
        >>> builder = ItemBuilder(config)
        >>> item = builder.build(record)
        >>> client.put_item(TableName="orders", Item=item)
    """

    def __init__(self, config: SinkConfig):
        self.config = config
        super().__init__()

    def build(self, record: SinkRecord) -> Item:
        """
        Build the item for a record.

        Args:
            record: Record to convert

        Returns:
            Mapping of attribute name to attribute value. May be empty when
            both key and value are ignored and no coordinate attributes are
            configured; the backend rejects such items.

        Raises:
            ConversionError: If the key or value cannot be converted
            ConfigurationError: If a non-map payload has no top attribute name
        """
        item: Item = {}

        if not self.config.ignore_record_value:
            self._insert(
                ValueSource.RECORD_VALUE, record, record.value_schema, record.value, item
            )
        if not self.config.ignore_record_key:
            self._insert(
                ValueSource.RECORD_KEY, record, record.key_schema, record.key, item
            )

        names = self.config.kafka_attributes
        if names is not None:
            item[names.topic] = {"S": record.topic}
            item[names.partition] = {"N": str(record.partition)}
            item[names.offset] = {"N": str(record.offset)}

        return item

    def _insert(
        self,
        source: ValueSource,
        record: SinkRecord,
        schema: Optional[Schema],
        payload: Any,
        item: Item,
    ) -> None:
        try:
            if schema is None and self.config.parse_json_values:
                payload = decode_json_payload(payload)
            attribute_value = convert(schema, payload)
        except ConversionError as e:
            e.context.setdefault("source", source.value)
            self._log_exception(
                e,
                f"Failed to convert {source.value}",
                **extract_record_context(record),
            )
            raise

        top_name = top_attribute_name(source, self.config)
        if top_name:
            item[top_name] = attribute_value
        elif "M" in attribute_value:
            item.update(attribute_value["M"])
        else:
            raise ConfigurationError(
                f"No top attribute name configured for {source.value}, and it "
                f"could not be converted to a map: {_type_tag(attribute_value)}",
                context=extract_record_context(record),
            )


def _type_tag(attribute_value: AttributeValue) -> str:
    return next(iter(attribute_value), "?")
