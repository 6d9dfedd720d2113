"""
Conversion of record payloads into DynamoDB attribute values.

Schemaless payloads go through boto3's TypeSerializer after floats are turned
into Decimals. Schema-bearing payloads are converted field by field following
the declared types, so a mismatch surfaces as ConversionError instead of a
backend validation failure.
"""

import json
from decimal import Decimal
from typing import Any, Dict, Mapping, Optional

from boto3.dynamodb.types import TypeSerializer

from dynamo_sink.common.exceptions import ConversionError
from dynamo_sink.schemas.records import Schema, SchemaType

AttributeValue = Dict[str, Any]
Item = Dict[str, AttributeValue]

_serializer = TypeSerializer()


def convert(schema: Optional[Schema], value: Any) -> AttributeValue:
    """Convert a payload, schema-directed when a schema is present."""
    if schema is None:
        return to_attribute_value_schemaless(value)
    return to_attribute_value(schema, value)


def decode_json_payload(value: Any) -> Any:
    """Decode a str/bytes payload as JSON; other values pass through.

    Numbers with a fractional part decode to Decimal so they stay exact.

    Raises:
        ConversionError: If the payload is not valid JSON
    """
    if not isinstance(value, (str, bytes, bytearray)):
        return value
    try:
        return json.loads(value, parse_float=Decimal)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ConversionError(
            "Payload is not valid JSON", cause=e, context={"payload": repr(value)[:200]}
        ) from e


def to_attribute_value_schemaless(value: Any) -> AttributeValue:
    """Convert an untyped payload using boto3's TypeSerializer.

    Raises:
        ConversionError: For types DynamoDB cannot represent (non-string map
            keys, NaN/Infinity, empty sets, arbitrary objects)
    """
    try:
        return _serializer.serialize(_normalize(value))
    except (TypeError, ValueError, ArithmeticError) as e:
        raise ConversionError(
            f"Cannot convert {type(value).__name__} payload to an attribute value",
            cause=e,
        ) from e


def _normalize(value: Any) -> Any:
    if isinstance(value, bool) or value is None:
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    if isinstance(value, Mapping):
        normalized = {}
        for k, v in value.items():
            if not isinstance(k, str):
                raise TypeError(f"map keys must be strings, got {type(k).__name__}")
            normalized[k] = _normalize(v)
        return normalized
    if isinstance(value, (list, tuple)):
        return [_normalize(v) for v in value]
    if isinstance(value, (set, frozenset)):
        if not value:
            raise ValueError("empty sets cannot be stored")
        return {_normalize(v) for v in value}
    if isinstance(value, memoryview):
        return value.tobytes()
    return value


def to_attribute_value(schema: Schema, value: Any) -> AttributeValue:
    """Convert a payload following its declared schema.

    Raises:
        ConversionError: If the value does not match the schema
    """
    if value is None:
        if schema.optional:
            return {"NULL": True}
        raise ConversionError(_describe(schema, "null value for required"))

    t = schema.type

    if t.is_integer:
        if isinstance(value, bool) or not isinstance(value, int):
            raise _mismatch(schema, value)
        return {"N": str(value)}

    if t.is_float:
        if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
            raise _mismatch(schema, value)
        number = Decimal(str(value)) if isinstance(value, float) else Decimal(value)
        if not number.is_finite():
            raise ConversionError(_describe(schema, f"non-finite number {value!r} for"))
        return {"N": str(number)}

    if t == SchemaType.BOOLEAN:
        if not isinstance(value, bool):
            raise _mismatch(schema, value)
        return {"BOOL": value}

    if t == SchemaType.STRING:
        if not isinstance(value, str):
            raise _mismatch(schema, value)
        return {"S": value}

    if t == SchemaType.BYTES:
        if not isinstance(value, (bytes, bytearray, memoryview)):
            raise _mismatch(schema, value)
        return {"B": bytes(value)}

    if t == SchemaType.ARRAY:
        if not isinstance(value, (list, tuple)):
            raise _mismatch(schema, value)
        return {"L": [to_attribute_value(schema.value_schema, v) for v in value]}

    if t == SchemaType.MAP:
        if not isinstance(value, Mapping):
            raise _mismatch(schema, value)
        if schema.key_schema.type != SchemaType.STRING:
            raise ConversionError(
                _describe(schema, f"{schema.key_schema.type.value} keys unsupported in")
            )
        entries = {}
        for k, v in value.items():
            if not isinstance(k, str):
                raise _mismatch(schema.key_schema, k)
            entries[k] = to_attribute_value(schema.value_schema, v)
        return {"M": entries}

    # STRUCT
    if not isinstance(value, Mapping):
        raise _mismatch(schema, value)
    return {
        "M": {
            name: to_attribute_value(field_schema, value.get(name))
            for name, field_schema in schema.field_schemas.items()
        }
    }


def _describe(schema: Schema, prefix: str) -> str:
    label = schema.name or schema.type.value
    return f"{prefix} {label} schema"


def _mismatch(schema: Schema, value: Any) -> ConversionError:
    return ConversionError(
        _describe(schema, f"{type(value).__name__} value does not match"),
        context={"schema_type": schema.type.value},
    )
