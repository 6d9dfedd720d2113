"""
Logging setup for processes hosting the DynamoDB sink.

File output is JSON lines (one object per log call, context fields from
``extra`` promoted to keys); console output is a single readable line with
record coordinates appended when present.
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict, Optional

DEFAULT_LOG_DIR = Path("logs")
DEFAULT_MAX_BYTES = 10 * 1024 * 1024
DEFAULT_BACKUP_COUNT = 5
DEFAULT_CONSOLE_LEVEL = logging.INFO
DEFAULT_FILE_LEVEL = logging.DEBUG

# AWS SDK and HTTP pool loggers are chatty at DEBUG.
NOISY_LOGGERS = [
    "boto3",
    "botocore",
    "urllib3",
    "s3transfer",
]

PLAIN_FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s [%(filename)s:%(lineno)d] %(message)s"
CONSOLE_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


class JSONFormatter(logging.Formatter):
    """One JSON object per line; known ``extra`` fields become top-level keys."""

    EXTRA_FIELDS = [
        # coordinates
        "topic",
        "partition",
        "offset",
        "first_record",
        "last_record",
        # writes
        "table",
        "tables",
        "record_count",
        "item_count",
        "unprocessed_count",
        "batch_size",
        "mode",
        "duration_ms",
        # retry budget
        "remaining_retries",
        "max_retries",
        "backoff_ms",
        # failures
        "error_category",
        "error_message",
        "error_code",
        # task configuration
        "table_format",
        "region",
    ]

    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, tz=timezone.utc)
        entry: Dict[str, Any] = {
            "ts": created.isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }

        if record.levelno == logging.DEBUG or record.levelno >= logging.ERROR:
            entry["file"] = f"{record.filename}:{record.lineno}"

        entry.update(
            (name, getattr(record, name))
            for name in self.EXTRA_FIELDS
            if getattr(record, name, None) is not None
        )

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str, ensure_ascii=False)


class ConsoleFormatter(logging.Formatter):
    """Readable single-line format; appends ``[topic-partition@offset]``."""

    def __init__(self) -> None:
        super().__init__(CONSOLE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    def formatMessage(self, record: logging.LogRecord) -> str:
        line = super().formatMessage(record)
        topic = getattr(record, "topic", None)
        if topic is None:
            return line
        partition = getattr(record, "partition", "?")
        offset = getattr(record, "offset", "?")
        return f"{line} [{topic}-{partition}@{offset}]"


def get_log_file_path(log_dir: Path, name: str, instance_id: Optional[str] = None) -> Path:
    """
    Daily log file location.

    Layout: ``{log_dir}/{YYYY-MM-DD}/{name}_{YYYYMMDD}[_{instance_id}].log``
    """
    today = datetime.now()
    stem = [name, today.strftime("%Y%m%d")]
    if instance_id:
        stem.append(instance_id)
    return log_dir / today.strftime("%Y-%m-%d") / ("_".join(stem) + ".log")


def _file_handler(
    path: Path,
    level: int,
    json_format: bool,
    max_bytes: int,
    backup_count: int,
) -> logging.Handler:
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
    )
    handler.setLevel(level)
    handler.setFormatter(JSONFormatter() if json_format else logging.Formatter(PLAIN_FILE_FORMAT))
    return handler


def _console_handler(level: int) -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(ConsoleFormatter())
    return handler


def setup_logging(
    name: str = "dynamo_sink",
    log_dir: Optional[Path] = None,
    json_format: bool = True,
    console_level: int = DEFAULT_CONSOLE_LEVEL,
    file_level: int = DEFAULT_FILE_LEVEL,
    max_bytes: int = DEFAULT_MAX_BYTES,
    backup_count: int = DEFAULT_BACKUP_COUNT,
    suppress_noisy: bool = True,
    use_instance_id: bool = True,
    file_logging: bool = True,
) -> logging.Logger:
    """
    Replace the root logger's handlers with console and rotating file output.

    Processes hosting DynamoSinkTask call this once at startup, before
    start(); the task itself never configures handlers. Calling it again reconfigures from scratch rather than stacking handlers.

    Args:
        name: Name of the returned logger and prefix of the log file
        log_dir: Root of the dated log folders (default: ./logs)
        json_format: JSON lines in the file; plain text otherwise
        console_level: Threshold for stdout
        file_level: Threshold for the log file
        max_bytes: Rotation size of the log file
        backup_count: Rotated files kept
        suppress_noisy: Raise AWS SDK and urllib3 loggers to WARNING
        use_instance_id: Add ``p<pid>`` to the file name so several task
            processes can share a log directory
        file_logging: Set False for console-only output

    Returns:
        The logger called ``name``
    """
    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for handler in list(root.handlers):
        root.removeHandler(handler)

    log_file = None
    if file_logging:
        instance_id = f"p{os.getpid()}" if use_instance_id else None
        log_file = get_log_file_path(log_dir or DEFAULT_LOG_DIR, name, instance_id)
        root.addHandler(_file_handler(log_file, file_level, json_format, max_bytes, backup_count))

    root.addHandler(_console_handler(console_level))

    if suppress_noisy:
        for noisy in NOISY_LOGGERS:
            logging.getLogger(noisy).setLevel(logging.WARNING)

    logger = logging.getLogger(name)
    logger.debug("Logging configured", extra={"mode": "json" if json_format else "text"})
    if log_file is not None:
        logger.debug(f"Writing log file {log_file}")
    return logger
