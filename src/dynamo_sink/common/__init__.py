"""Common infrastructure shared across the sink: errors, logging, metrics."""

from dynamo_sink.common.exceptions import (
    ConfigurationError,
    ConversionError,
    ErrorCategory,
    SinkError,
    ThrottlingError,
    UnprocessedItemsError,
    WriteFailureError,
)

__all__ = [
    "ConfigurationError",
    "ConversionError",
    "ErrorCategory",
    "SinkError",
    "ThrottlingError",
    "UnprocessedItemsError",
    "WriteFailureError",
]
