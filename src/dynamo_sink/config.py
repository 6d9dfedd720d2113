"""DynamoDB sink configuration from connector properties, environment, or YAML."""

import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Mapping, NamedTuple, Optional

import yaml

from dynamo_sink.common.exceptions import ConfigurationError

# Default config path: config.yaml in the working directory
DEFAULT_CONFIG_PATH = Path("config.yaml")

TOPIC_PLACEHOLDER = "${topic}"

# BatchWriteItem accepts at most 25 put requests per call
MAX_BATCH_SIZE = 25

ENV_PREFIX = "DYNAMO_SINK_"


class KafkaCoordinateNames(NamedTuple):
    """Attribute names under which topic, partition and offset are stored."""

    topic: str
    partition: str
    offset: str


DEFAULT_KAFKA_ATTRIBUTES = KafkaCoordinateNames(
    "kafka_topic", "kafka_partition", "kafka_offset"
)

# Connector property key -> dataclass field
PROPERTY_KEYS = {
    "region": "region",
    "access.key.id": "access_key_id",
    "secret.key": "secret_key",
    "endpoint.url": "endpoint_url",
    "table.format": "table_format",
    "batch.size": "batch_size",
    "kafka.attributes": "kafka_attributes",
    "ignore.record.key": "ignore_record_key",
    "ignore.record.value": "ignore_record_value",
    "top.key.attribute": "top_key_attribute",
    "top.value.attribute": "top_value_attribute",
    "max.retries": "max_retries",
    "retry.backoff.ms": "retry_backoff_ms",
    "parse.json.values": "parse_json_values",
}


def _parse_bool(name: str, raw: Any) -> bool:
    if isinstance(raw, bool):
        return raw
    value = str(raw).strip().lower()
    if value in ("true", "1", "yes"):
        return True
    if value in ("false", "0", "no", ""):
        return False
    raise ConfigurationError(f"{name} must be a boolean, got {raw!r}")


def _parse_int(name: str, raw: Any) -> int:
    if isinstance(raw, bool):
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}")
    try:
        return int(str(raw).strip())
    except ValueError as e:
        raise ConfigurationError(
            f"{name} must be an integer, got {raw!r}", cause=e
        ) from e


def parse_kafka_attributes(raw: Any) -> Optional[KafkaCoordinateNames]:
    """Parse "topic,partition,offset" attribute names; empty disables them.

    Args:
        raw: Comma-separated string, a 3-item list, or None

    Returns:
        KafkaCoordinateNames, or None when coordinates should not be stored

    Raises:
        ConfigurationError: If not exactly three non-empty names are given
    """
    if raw is None or isinstance(raw, KafkaCoordinateNames):
        return raw
    if isinstance(raw, str):
        if not raw.strip():
            return None
        names = [name.strip() for name in raw.split(",")]
    else:
        names = [str(name).strip() for name in raw]
        if not names:
            return None

    if len(names) != 3 or not all(names):
        raise ConfigurationError(
            "kafka.attributes must name exactly three attributes "
            f"(topic,partition,offset), got {raw!r}"
        )
    return KafkaCoordinateNames(*names)


@dataclass
class SinkConfig:
    """DynamoDB sink task configuration.

    Build with SinkConfig.from_props() (connector-style dotted keys),
    SinkConfig.from_env(), or SinkConfig.load_config() (YAML + env).
    Timing values are in milliseconds.
    """

    # Connection
    region: str
    access_key_id: str = ""
    secret_key: str = ""
    endpoint_url: str = ""  # Local DynamoDB / LocalStack

    # Destination
    table_format: str = TOPIC_PLACEHOLDER
    batch_size: int = 1

    # Item shape
    kafka_attributes: Optional[KafkaCoordinateNames] = field(
        default_factory=lambda: DEFAULT_KAFKA_ATTRIBUTES
    )
    ignore_record_key: bool = False
    ignore_record_value: bool = False
    top_key_attribute: str = ""
    top_value_attribute: str = ""
    parse_json_values: bool = False

    # Retry configuration
    max_retries: int = 10
    retry_backoff_ms: int = 3000

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        """Check field values.

        Raises:
            ConfigurationError: If any value is out of range
        """
        if not self.region:
            raise ConfigurationError("region is required")
        if not self.table_format:
            raise ConfigurationError("table.format must not be empty")
        if not 1 <= self.batch_size <= MAX_BATCH_SIZE:
            raise ConfigurationError(
                f"batch.size must be between 1 and {MAX_BATCH_SIZE}, got {self.batch_size}"
            )
        if self.max_retries < 0:
            raise ConfigurationError(
                f"max.retries must be non-negative, got {self.max_retries}"
            )
        if self.retry_backoff_ms < 0:
            raise ConfigurationError(
                f"retry.backoff.ms must be non-negative, got {self.retry_backoff_ms}"
            )
        if bool(self.access_key_id) != bool(self.secret_key):
            raise ConfigurationError(
                "access.key.id and secret.key must be set together"
            )

    @property
    def has_explicit_credentials(self) -> bool:
        return bool(self.access_key_id and self.secret_key)

    @classmethod
    def from_dict(cls, values: Mapping[str, Any]) -> "SinkConfig":
        """Build from a mapping keyed by field name, coercing string values.

        Unknown keys are ignored.
        """
        known = {f.name: f for f in fields(cls)}
        kwargs: Dict[str, Any] = {}
        for name, raw in values.items():
            if name not in known or raw is None:
                continue
            if name == "kafka_attributes":
                kwargs[name] = parse_kafka_attributes(raw)
            elif name in ("batch_size", "max_retries", "retry_backoff_ms"):
                kwargs[name] = _parse_int(name, raw)
            elif name in (
                "ignore_record_key",
                "ignore_record_value",
                "parse_json_values",
            ):
                kwargs[name] = _parse_bool(name, raw)
            else:
                kwargs[name] = str(raw)

        if "region" not in kwargs:
            raise ConfigurationError("region is required")
        return cls(**kwargs)

    @classmethod
    def from_props(cls, props: Mapping[str, str]) -> "SinkConfig":
        """Load configuration from connector properties.

        Keys use the dotted connector names, e.g. ``table.format`` and
        ``batch.size``. See PROPERTY_KEYS for the full list.

        Raises:
            ConfigurationError: If required keys are missing or values invalid
        """
        values = {
            PROPERTY_KEYS[key]: value
            for key, value in props.items()
            if key in PROPERTY_KEYS
        }
        return cls.from_dict(values)

    @classmethod
    def from_env(cls) -> "SinkConfig":
        """Load configuration from environment variables.

        Required environment variables:
            DYNAMO_SINK_REGION: AWS region of the DynamoDB tables

        Optional environment variables (with defaults):
            DYNAMO_SINK_ACCESS_KEY_ID / DYNAMO_SINK_SECRET_KEY: "" (default chain)
            DYNAMO_SINK_ENDPOINT_URL: "" (AWS endpoint)
            DYNAMO_SINK_TABLE_FORMAT: ${topic}
            DYNAMO_SINK_BATCH_SIZE: 1
            DYNAMO_SINK_KAFKA_ATTRIBUTES: kafka_topic,kafka_partition,kafka_offset
            DYNAMO_SINK_IGNORE_RECORD_KEY: false
            DYNAMO_SINK_IGNORE_RECORD_VALUE: false
            DYNAMO_SINK_TOP_KEY_ATTRIBUTE: ""
            DYNAMO_SINK_TOP_VALUE_ATTRIBUTE: ""
            DYNAMO_SINK_MAX_RETRIES: 10
            DYNAMO_SINK_RETRY_BACKOFF_MS: 3000
            DYNAMO_SINK_PARSE_JSON_VALUES: false

        Raises:
            ConfigurationError: If DYNAMO_SINK_REGION is missing or values invalid
        """
        return cls.from_dict(_env_values())

    @classmethod
    def load_config(cls, config_path: Optional[Path] = None) -> "SinkConfig":
        """Load configuration from config.yaml and environment variables.

        Configuration priority (highest to lowest):
        1. Environment variables
        2. config.yaml file (under 'dynamo_sink:' key)
        3. Dataclass defaults
        """
        config_path = config_path or DEFAULT_CONFIG_PATH

        values: Dict[str, Any] = {}
        if config_path.exists():
            with open(config_path, "r") as f:
                yaml_data = yaml.safe_load(f) or {}
            values.update(yaml_data.get("dynamo_sink", {}) or {})

        values.update(_env_values())
        return cls.from_dict(values)


def _env_values() -> Dict[str, str]:
    values = {}
    for f in fields(SinkConfig):
        raw = os.getenv(f"{ENV_PREFIX}{f.name.upper()}")
        if raw is not None:
            values[f.name] = raw
    return values
