"""
Retry handling for the DynamoDB sink.

Provides the retry-budget controller and the caller-visible put results.
"""

from dynamo_sink.retry.controller import (
    Done,
    PutResult,
    Retriable,
    RetryController,
    RetryState,
)

__all__ = [
    "Done",
    "PutResult",
    "Retriable",
    "RetryController",
    "RetryState",
]
