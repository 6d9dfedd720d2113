"""
Record schemas for the DynamoDB sink.

Contains Pydantic models for the records handed to the sink task and the
optional schemas describing their key and value payloads.
"""

from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class SchemaType(str, Enum):
    """Payload types a record schema can declare."""

    INT8 = "int8"
    INT16 = "int16"
    INT32 = "int32"
    INT64 = "int64"
    FLOAT32 = "float32"
    FLOAT64 = "float64"
    BOOLEAN = "boolean"
    STRING = "string"
    BYTES = "bytes"
    ARRAY = "array"
    MAP = "map"
    STRUCT = "struct"

    @property
    def is_integer(self) -> bool:
        return self in (
            SchemaType.INT8,
            SchemaType.INT16,
            SchemaType.INT32,
            SchemaType.INT64,
        )

    @property
    def is_float(self) -> bool:
        return self in (SchemaType.FLOAT32, SchemaType.FLOAT64)


class Schema(BaseModel):
    """Schema for a record key or value.

    Attributes:
        type: Declared payload type
        optional: Whether None is an acceptable value
        name: Optional schema name, used in error messages
        field_schemas: Field name -> schema, for STRUCT (declaration order kept)
        key_schema: Key schema, for MAP
        value_schema: Element schema for ARRAY, value schema for MAP

    Example:
        >>> order = Schema.struct({
        ...     "id": Schema(type=SchemaType.STRING),
        ...     "qty": Schema(type=SchemaType.INT32),
        ... })
    """

    model_config = ConfigDict(frozen=True)

    type: SchemaType
    optional: bool = False
    name: Optional[str] = None
    field_schemas: Optional[Dict[str, "Schema"]] = None
    key_schema: Optional["Schema"] = None
    value_schema: Optional["Schema"] = None

    @model_validator(mode="after")
    def validate_nested_schemas(self) -> "Schema":
        """Ensure container types declare what they contain."""
        if self.type == SchemaType.STRUCT and self.field_schemas is None:
            raise ValueError("struct schema requires field_schemas")
        if self.type == SchemaType.ARRAY and self.value_schema is None:
            raise ValueError("array schema requires value_schema")
        if self.type == SchemaType.MAP and (
            self.key_schema is None or self.value_schema is None
        ):
            raise ValueError("map schema requires key_schema and value_schema")
        return self

    @classmethod
    def struct(cls, field_schemas: Dict[str, "Schema"], **kwargs: Any) -> "Schema":
        return cls(type=SchemaType.STRUCT, field_schemas=field_schemas, **kwargs)

    @classmethod
    def array(cls, value_schema: "Schema", **kwargs: Any) -> "Schema":
        return cls(type=SchemaType.ARRAY, value_schema=value_schema, **kwargs)

    @classmethod
    def map(cls, key_schema: "Schema", value_schema: "Schema", **kwargs: Any) -> "Schema":
        return cls(
            type=SchemaType.MAP,
            key_schema=key_schema,
            value_schema=value_schema,
            **kwargs,
        )


Schema.model_rebuild()


class SinkRecord(BaseModel):
    """Immutable unit handed to the sink task.

    Topic, partition and offset identify the record for diagnostics and can be
    stored as item attributes. Key and value are arbitrary Python payloads,
    optionally described by a Schema.

    Example:
        >>> record = SinkRecord(
        ...     topic="orders",
        ...     partition=0,
        ...     offset=42,
        ...     key="order-42",
        ...     value={"id": "order-42", "qty": 3},
        ... )
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    topic: str = Field(..., description="Source topic", min_length=1)
    partition: int = Field(..., description="Source partition", ge=0)
    offset: int = Field(..., description="Offset within the partition", ge=0)
    key: Any = Field(default=None, description="Record key payload")
    value: Any = Field(default=None, description="Record value payload")
    key_schema: Optional[Schema] = None
    value_schema: Optional[Schema] = None

    @property
    def coordinates(self) -> str:
        """topic-partition@offset, for log lines."""
        return f"{self.topic}-{self.partition}@{self.offset}"

    @classmethod
    def from_consumer_record(
        cls,
        record: Any,
        key_schema: Optional[Schema] = None,
        value_schema: Optional[Schema] = None,
    ) -> "SinkRecord":
        """Adapt a Kafka client consumer record.

        Works with any object exposing topic, partition, offset, key and value
        attributes.
        """
        return cls(
            topic=record.topic,
            partition=record.partition,
            offset=record.offset,
            key=record.key,
            value=record.value,
            key_schema=key_schema,
            value_schema=value_schema,
        )
