"""
Structured logging helpers for dynamo_sink.

Context travels on the LogRecord through ``extra`` so that JSONFormatter
can emit record coordinates, tables and retry state as separate fields.
"""

import logging
from typing import Any, Dict, Optional

# Backend error messages can embed whole items; keep log lines bounded.
MAX_ERROR_MESSAGE_LENGTH = 500

# Attributes of sink components worth attaching to every line they log.
INSTANCE_CONTEXT_ATTRS = ("table_format", "batch_size", "max_retries")


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def log_with_context(
    logger: logging.Logger,
    level: int,
    msg: str,
    **context: Any,
) -> None:
    """
    Emit ``msg`` with structured context.

    Example:
        log_with_context(
            logger, logging.DEBUG, "Batch write complete",
            tables=["data_orders"],
            record_count=25,
        )
    """
    logger.log(level, msg, extra=context)


def _error_fields(exc: BaseException) -> Dict[str, Any]:
    fields: Dict[str, Any] = {}

    category = getattr(exc, "category", None)
    if category is not None:
        fields["error_category"] = getattr(category, "value", str(category))

    text = str(exc)
    if len(text) > MAX_ERROR_MESSAGE_LENGTH:
        text = text[:MAX_ERROR_MESSAGE_LENGTH] + "..."
    fields["error_message"] = text
    return fields


def log_exception(
    logger: logging.Logger,
    exc: BaseException,
    msg: str,
    level: int = logging.ERROR,
    include_traceback: bool = True,
    **context: Any,
) -> None:
    """
    Log a failure with its error category and a bounded error message.

    SinkError subclasses contribute ``error_category``; an explicit
    ``error_category`` in ``context`` takes precedence.

    Args:
        logger: Target logger
        exc: The failure being reported
        msg: What the component was doing when it failed
        level: Defaults to ERROR
        include_traceback: Attach ``exc`` as exc_info
        **context: Record coordinates, table names, etc.
    """
    fields = _error_fields(exc)
    fields.update(context)
    exc_info = exc if include_traceback else None
    logger.log(level, msg, exc_info=exc_info, extra=fields)


def extract_record_context(record: Any) -> Dict[str, Any]:
    """
    Topic, partition and offset of a record, for ``extra``.

    Attributes that are missing or None are left out.
    """
    if record is None:
        return {}
    coordinates = (
        (attr, getattr(record, attr, None)) for attr in ("topic", "partition", "offset")
    )
    return {attr: value for attr, value in coordinates if value is not None}


def _extract_instance_context(obj: Any) -> Dict[str, Any]:
    values = ((attr, getattr(obj, attr, None)) for attr in INSTANCE_CONTEXT_ATTRS)
    return {attr: value for attr, value in values if value is not None}


class LoggedClass:
    """
    Mixin giving sink components a module logger and context-aware helpers.

    Lines logged through ``_log``/``_log_exception`` carry the component's
    ``table_format``, ``batch_size`` and ``max_retries`` when it has them.
    Set ``log_component`` to log under a child of the module logger.

    Example:
        class WriteExecutor(LoggedClass):
            def __init__(self, client, partitioner):
                self.client = client
                self.partitioner = partitioner
                super().__init__()
    """

    log_component: Optional[str] = None

    def __init__(self) -> None:
        name = type(self).__module__
        if self.log_component:
            name = f"{name}.{self.log_component}"
        self._logger = get_logger(name)

    def _context(self, extra: Dict[str, Any]) -> Dict[str, Any]:
        context = _extract_instance_context(self)
        context.update(extra)
        return context

    def _log(self, level: int, msg: str, **extra: Any) -> None:
        log_with_context(self._logger, level, msg, **self._context(extra))

    def _log_exception(
        self,
        exc: BaseException,
        msg: str,
        level: int = logging.ERROR,
        **extra: Any,
    ) -> None:
        log_exception(self._logger, exc, msg, level=level, **self._context(extra))
