"""Exporter settings.

Uses Pydantic for validation with frozen (immutable) models. Invalid values
raise ConfigurationError. ``from_mapping`` accepts the collector-style keys
used in YAML configs; ``from_env`` reads the same keys from the environment.
"""

import os
from collections.abc import Mapping
from typing import Any, ClassVar
from urllib.parse import urlparse

from pydantic import (
    BaseModel,
    Field,
    ValidationError,
    ValidationInfo,
    field_validator,
    model_validator,
)

from otelarc.core.errors import ConfigurationError
from otelarc.core.models import SignalKind

DEFAULT_DATABASE = "default"
DEFAULT_TRACES_MEASUREMENT = "distributed_traces"
DEFAULT_LOGS_MEASUREMENT = "logs"
DEFAULT_TIMEOUT = 30.0


def _describe(error: ValidationError) -> str:
    problems = []
    for item in error.errors():
        loc = ".".join(str(part) for part in item["loc"])
        problems.append(f"{loc}: {item['msg']}" if loc else item["msg"])
    return "; ".join(problems)


class _Settings(BaseModel):
    """Frozen model that reports validation failures as ConfigurationError."""

    model_config = {"frozen": True, "extra": "forbid"}

    section: ClassVar[str] = "settings"

    def __init__(self, **data: Any) -> None:
        try:
            super().__init__(**data)
        except ValidationError as e:
            raise ConfigurationError(
                f"Invalid {type(self).section}: {_describe(e)}"
            ) from e


class RetrySettings(_Settings):
    """Backoff policy applied by the retrying transport."""

    section: ClassVar[str] = "retry_on_failure"

    enabled: bool = Field(
        default=True,
        description="Retry retryable failures at all",
    )
    initial_interval: float = Field(
        default=5.0,
        gt=0,
        allow_inf_nan=False,
        description="First wait in seconds",
    )
    max_interval: float = Field(
        default=30.0,
        gt=0,
        allow_inf_nan=False,
        description="Upper bound of a single wait in seconds",
    )
    max_elapsed_time: float = Field(
        default=300.0,
        gt=0,
        allow_inf_nan=False,
        description="Give up after this many seconds overall",
    )
    multiplier: float = Field(
        default=1.5,
        gt=0,
        allow_inf_nan=False,
        description="Growth factor between consecutive waits",
    )
    max_attempts: int | None = Field(
        default=None,
        ge=1,
        description="Cap on total attempts (None: time bound only)",
    )

    @model_validator(mode="after")
    def validate_interval_range(self) -> "RetrySettings":
        """Ensure initial_interval <= max_interval."""
        if self.max_interval < self.initial_interval:
            raise ValueError(
                f"max_interval ({self.max_interval}) must be >= "
                f"initial_interval ({self.initial_interval})"
            )
        return self

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> "RetrySettings":
        return cls(**mapping)


class ExporterConfig(_Settings):
    """Settings for an exporter instance.

    ``endpoint`` is the only required field. Empty strings behave like unset
    keys: measurements and the database fall back to their defaults and the
    optional overrides become None.
    """

    section: ClassVar[str] = "exporter config"

    endpoint: str = Field(description="Base URL of the columnar backend")
    auth_token: str | None = Field(
        default=None,
        description="Bearer token sent with every request",
    )
    database: str = Field(
        default=DEFAULT_DATABASE,
        description="Database used by every signal without its own override",
    )
    traces_database: str | None = None
    metrics_database: str | None = None
    logs_database: str | None = None
    traces_measurement: str = DEFAULT_TRACES_MEASUREMENT
    logs_measurement: str = DEFAULT_LOGS_MEASUREMENT
    include_metric_metadata: bool = Field(
        default=False,
        description="Add internal metadata labels to metric rows",
    )
    timeout: float = Field(
        default=DEFAULT_TIMEOUT,
        gt=0,
        allow_inf_nan=False,
        description="HTTP timeout in seconds",
    )
    retry: RetrySettings = Field(
        default_factory=RetrySettings,
        description="Backoff policy for retryable failures",
    )

    @field_validator("endpoint")
    @classmethod
    def validate_endpoint(cls, v: str) -> str:
        parsed = urlparse(v)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError(f"must be an http(s) URL, got {v!r}")
        return v.rstrip("/")

    @field_validator(
        "database", "traces_measurement", "logs_measurement", mode="before"
    )
    @classmethod
    def empty_means_default(cls, v: Any, info: ValidationInfo) -> Any:
        if v is None or v == "":
            return cls.model_fields[info.field_name].default
        return v

    @field_validator(
        "auth_token",
        "traces_database",
        "metrics_database",
        "logs_database",
        mode="before",
    )
    @classmethod
    def empty_means_unset(cls, v: Any) -> Any:
        return None if v == "" else v

    def database_for(self, signal: SignalKind) -> str:
        """Return the database a signal is written to."""
        override = {
            SignalKind.TRACES: self.traces_database,
            SignalKind.METRICS: self.metrics_database,
            SignalKind.LOGS: self.logs_database,
        }[signal]
        return override or self.database

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> "ExporterConfig":
        """Build a config from collector-style keys.

        The retry policy is read from ``retry_on_failure``.

        Raises:
            ConfigurationError: On unknown keys or invalid values.
        """
        values = dict(mapping)
        if "retry" in values:
            raise ConfigurationError(
                "Invalid exporter config: retry: use 'retry_on_failure'"
            )
        retry = values.pop("retry_on_failure", None)
        if retry is not None:
            if not isinstance(retry, Mapping):
                raise ConfigurationError("'retry_on_failure' must be a mapping")
            values["retry"] = RetrySettings.from_mapping(retry)
        return cls(**values)

    @classmethod
    def from_env(
        cls,
        prefix: str = "OTELARC_",
        environ: Mapping[str, str] | None = None,
    ) -> "ExporterConfig":
        """Build a config from environment variables.

        ``OTELARC_ENDPOINT`` maps to ``endpoint``, ``OTELARC_RETRY_ENABLED`` to
        ``retry_on_failure.enabled`` and so on.
        """
        env = os.environ if environ is None else environ
        values: dict[str, Any] = {}
        retry: dict[str, Any] = {}
        for key, value in env.items():
            if not key.startswith(prefix):
                continue
            name = key[len(prefix):].lower()
            if name.startswith("retry_"):
                retry[name[len("retry_"):]] = value
            else:
                values[name] = value
        if retry:
            values["retry_on_failure"] = retry
        return cls.from_mapping(values)
