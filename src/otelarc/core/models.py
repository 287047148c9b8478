"""Core domain models for columnar telemetry batches."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, TypeAlias

AttributeValue: TypeAlias = (
    str
    | int
    | float
    | bool
    | bytes
    | list["AttributeValue"]
    | dict[str, "AttributeValue"]
    | None
)
AttributeSet: TypeAlias = dict[str, AttributeValue]
Row: TypeAlias = dict[str, Any]


class SignalKind(str, Enum):
    """The three telemetry signals the exporter handles."""

    TRACES = "traces"
    METRICS = "metrics"
    LOGS = "logs"


class DeliveryStatus(str, Enum):
    """Outcome of handing one encoded batch to the transport."""

    SUCCESS = "success"
    RETRYABLE = "retryable"
    TERMINAL = "terminal"


@dataclass(frozen=True)
class ColumnarBatch:
    """A column-major batch bound for one measurement.

    Attributes:
        measurement: Destination table name.
        columns: Field name to values, every list the same length.
    """

    measurement: str
    columns: dict[str, list[Any]] = field(default_factory=dict)

    @property
    def row_count(self) -> int:
        """Number of logical rows (0 for a batch without columns)."""
        for values in self.columns.values():
            return len(values)
        return 0

    def to_payload(self) -> dict[str, Any]:
        """Return the wire shape understood by the write endpoint."""
        return {"m": self.measurement, "columns": self.columns}


@dataclass
class MetricBatch:
    """Rows accumulated for one sanitized metric name.

    Attributes:
        name: Measurement name the rows are routed to.
        times: Row timestamps in Unix milliseconds.
        values: Row values, always floats.
        labels: One label set per row.
    """

    name: str
    times: list[int] = field(default_factory=list)
    values: list[float] = field(default_factory=list)
    labels: list[AttributeSet] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.times)

    def append(self, time_ms: int, value: float, labels: AttributeSet) -> None:
        self.times.append(time_ms)
        self.values.append(value)
        self.labels.append(labels)


@dataclass(frozen=True)
class DeliveryResult:
    """What happened to one batch on its way to the backend.

    Attributes:
        signal: Signal the batch belongs to.
        measurement: Measurement the batch was routed to.
        status: Success, retryable failure or terminal failure.
        payload_size: Compressed payload size in bytes (0 if nothing was sent).
        row_count: Rows in the batch.
        error: The failure, when status is not SUCCESS.
    """

    signal: SignalKind
    measurement: str
    status: DeliveryStatus
    payload_size: int = 0
    row_count: int = 0
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.status is DeliveryStatus.SUCCESS
