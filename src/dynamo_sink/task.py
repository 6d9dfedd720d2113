"""
DynamoDB sink task.

Lifecycle surface exposed to the hosting framework:
- start(props): load configuration and create the DynamoDB client
- put(records): write one bounded collection of records
- flush(offsets): no-op, writes are synchronous
- stop(): release the client
"""

import itertools
import logging
from typing import Any, Callable, Iterable, Mapping, Optional, Union

import boto3

from dynamo_sink.common.exceptions import ConfigurationError
from dynamo_sink.common.logging import LoggedClass
from dynamo_sink.config import SinkConfig
from dynamo_sink.retry.controller import Done, PutResult, RetryController
from dynamo_sink.schemas.records import SinkRecord
from dynamo_sink.writers.executor import WriteExecutor
from dynamo_sink.writers.item_builder import ItemBuilder
from dynamo_sink.writers.partitioner import BatchPartitioner

_task_ids = itertools.count()


def create_dynamodb_client(config: SinkConfig) -> Any:
    """
    Create a low-level DynamoDB client.

    Explicit credentials are used when both access key and secret are
    configured; otherwise boto3's default credential chain applies
    (environment, shared config, instance profile).
    """
    kwargs = {"region_name": config.region}
    if config.endpoint_url:
        kwargs["endpoint_url"] = config.endpoint_url
    if config.has_explicit_credentials:
        kwargs["aws_access_key_id"] = config.access_key_id
        kwargs["aws_secret_access_key"] = config.secret_key
    return boto3.client("dynamodb", **kwargs)


class DynamoSinkTask(LoggedClass):
    """
    Writes sink records to DynamoDB tables.

    One task instance owns one client and one retry budget. The host must
    not call put() concurrently on the same instance.

    Usage:
        >>> task = DynamoSinkTask()
        >>> task.start({"region": "us-east-1", "table.format": "data_${topic}",
        ...             "batch.size": "25"})
        >>> result = task.put(records)
        >>> if isinstance(result, Retriable):
        ...     redeliver_after(result.backoff_ms)
        >>> task.stop()
    """

    def __init__(
        self,
        client_factory: Optional[Callable[[SinkConfig], Any]] = None,
        task_id: Optional[str] = None,
    ):
        self.task_id = task_id or f"task-{next(_task_ids)}"
        self.config: Optional[SinkConfig] = None
        self.client: Any = None
        self._client_factory = client_factory or create_dynamodb_client
        self._executor: Optional[WriteExecutor] = None
        self._retry: Optional[RetryController] = None
        super().__init__()

    @property
    def remaining_retries(self) -> Optional[int]:
        return self._retry.remaining_retries if self._retry else None

    def start(self, props: Union[Mapping[str, str], SinkConfig]) -> None:
        """
        Configure the task and create the DynamoDB client.

        Args:
            props: Connector properties (dotted keys) or a SinkConfig

        Raises:
            ConfigurationError: If the configuration is invalid
        """
        config = props if isinstance(props, SinkConfig) else SinkConfig.from_props(props)

        self.config = config
        self.client = self._client_factory(config)

        partitioner = BatchPartitioner(config, ItemBuilder(config))
        self._executor = WriteExecutor(self.client, partitioner)
        self._retry = RetryController(
            config.max_retries, config.retry_backoff_ms, task_id=self.task_id
        )

        if (
            config.ignore_record_key
            and config.ignore_record_value
            and config.kafka_attributes is None
        ):
            self._log(
                logging.WARNING,
                "Record key, value and coordinates are all excluded; items will be empty",
            )

        self._log(
            logging.INFO,
            "DynamoDB sink task started",
            region=config.region,
            table_format=config.table_format,
            batch_size=config.batch_size,
            max_retries=config.max_retries,
            backoff_ms=config.retry_backoff_ms,
        )

    def put(self, records: Iterable[SinkRecord]) -> PutResult:
        """
        Write one invocation's records.

        Args:
            records: Bounded, ordered records

        Returns:
            Done when the records were written (or dropped after the retry
            budget ran out), Retriable when the caller should back off and
            redeliver the same records

        Raises:
            ConversionError: If a record cannot be converted in batch mode
            ConfigurationError: If the task is not started or an item cannot
                be shaped with the configured attribute names
        """
        records = list(records)
        if not records:
            return Done()
        if self._executor is None or self._retry is None:
            raise ConfigurationError("put() called before start()")

        outcome = self._executor.execute(records)
        return self._retry.handle(outcome, records)

    def flush(self, offsets: Optional[Mapping[Any, Any]] = None) -> None:
        """Writes complete inside put(); nothing is buffered."""

    def stop(self) -> None:
        """Release the DynamoDB client. Safe to call more than once.

        A failure while closing is logged; the task is released regardless.
        """
        client, self.client = self.client, None
        self._executor = None
        if client is None:
            return
        try:
            client.close()
        except Exception as e:
            self._log_exception(e, "Failed to close DynamoDB client", level=logging.WARNING)
        self._log(logging.INFO, "DynamoDB sink task stopped")

    def version(self) -> str:
        from dynamo_sink import __version__

        return __version__
