"""Record and payload schemas for the DynamoDB sink."""

from dynamo_sink.schemas.records import Schema, SchemaType, SinkRecord

__all__ = ["Schema", "SchemaType", "SinkRecord"]
