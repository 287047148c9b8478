"""otelarc: OpenTelemetry to columnar batch exporter.

Flattens traces, metrics and logs into column-oriented batches, encodes them
with MessagePack + gzip and ships them to a columnar time-series backend.
"""

from otelarc.adapters.logging import ArcLogHandler
from otelarc.adapters.transport import (
    HttpTransport,
    InMemoryTransport,
    RetryingTransport,
)
from otelarc.core.attributes import attributes_to_map, merge_attributes
from otelarc.core.columnar import build_columnar_batch, rows_to_columnar
from otelarc.core.config import ExporterConfig, RetrySettings
from otelarc.core.encoding import decode_batch, encode_batch
from otelarc.core.errors import (
    ConfigurationError,
    DecodeError,
    EncodeError,
    ExportError,
    MetricsExportError,
    OtelArcError,
    RetryableTransportError,
    TerminalTransportError,
    TransportError,
)
from otelarc.core.logs import logs_to_batch
from otelarc.core.metrics import group_metrics, metrics_to_batches, sanitize_metric_name
from otelarc.core.models import (
    ColumnarBatch,
    DeliveryResult,
    DeliveryStatus,
    MetricBatch,
    SignalKind,
)
from otelarc.core.traces import traces_to_batch
from otelarc.exporter import ArcExporter

__all__ = [
    # Exporter
    "ArcExporter",
    "ExporterConfig",
    "RetrySettings",
    # Transports
    "HttpTransport",
    "InMemoryTransport",
    "RetryingTransport",
    # Logging
    "ArcLogHandler",
    # Transformation
    "attributes_to_map",
    "build_columnar_batch",
    "group_metrics",
    "logs_to_batch",
    "merge_attributes",
    "metrics_to_batches",
    "rows_to_columnar",
    "sanitize_metric_name",
    "traces_to_batch",
    # Codec
    "decode_batch",
    "encode_batch",
    # Models
    "ColumnarBatch",
    "DeliveryResult",
    "DeliveryStatus",
    "MetricBatch",
    "SignalKind",
    # Errors
    "ConfigurationError",
    "DecodeError",
    "EncodeError",
    "ExportError",
    "MetricsExportError",
    "OtelArcError",
    "RetryableTransportError",
    "TerminalTransportError",
    "TransportError",
]
