"""Metric explosion: turning OTLP metric points into flat labeled rows.

The destination tables hold one numeric ``value`` column, so every
multi-field point (histograms, summaries) is decomposed into several rows
that share the point's timestamp and labels and differ by a field-role
label. Each distinct sanitized metric name becomes its own measurement.
"""

import logging
from collections.abc import Iterator, Mapping
from typing import Any, NamedTuple

from opentelemetry.proto.collector.metrics.v1.metrics_service_pb2 import (
    ExportMetricsServiceRequest,
)
from opentelemetry.proto.metrics.v1.metrics_pb2 import (
    AggregationTemporality,
    HistogramDataPoint,
    Metric,
    MetricsData,
    NumberDataPoint,
    Sum,
    SummaryDataPoint,
)

from otelarc.core.attributes import attributes_to_map, merge_attributes
from otelarc.core.columnar import build_columnar_batch
from otelarc.core.models import AttributeSet, ColumnarBatch, MetricBatch

logger = logging.getLogger(__name__)

MetricsRequest = ExportMetricsServiceRequest | MetricsData

INF_BOUND = "+Inf"

_TEMPORALITY_NAMES = {
    AggregationTemporality.AGGREGATION_TEMPORALITY_UNSPECIFIED: "Unspecified",
    AggregationTemporality.AGGREGATION_TEMPORALITY_DELTA: "Delta",
    AggregationTemporality.AGGREGATION_TEMPORALITY_CUMULATIVE: "Cumulative",
}


class MetricRow(NamedTuple):
    """One flat observation produced from a metric data point."""

    time_ms: int
    value: float
    labels: AttributeSet


def nanos_to_millis(nanos: int) -> int:
    return nanos // 1_000_000


def _is_name_char(char: str) -> bool:
    return char.isascii() and (char.isalnum() or char == "_")


def sanitize_metric_name(name: str) -> str:
    """Convert a metric name into a measurement name.

    Every character outside ``[A-Za-z0-9_]`` (dots and dashes included)
    becomes an underscore, one for one, so the result has the same length
    as the input and sanitizing twice changes nothing.

    Example:
        ``"system.cpu.usage"`` -> ``"system_cpu_usage"``
    """
    return "".join(char if _is_name_char(char) else "_" for char in name)


def number_value(point: NumberDataPoint) -> float:
    """Return the point's value as a float, 0.0 when unset."""
    kind = point.WhichOneof("value")
    if kind == "as_double":
        return point.as_double
    if kind == "as_int":
        return float(point.as_int)
    return 0.0


def temporality_name(temporality: int) -> str:
    return _TEMPORALITY_NAMES.get(temporality, "Unspecified")


def sum_kind(sum_metric: Sum) -> str:
    """Classify a Sum as a ``counter`` (monotonic) or a ``gauge``."""
    return "counter" if sum_metric.is_monotonic else "gauge"


def _role_key(prefix: str, include_metric_metadata: bool) -> str:
    key = f"{prefix}_field"
    return f"_{key}" if include_metric_metadata else key


def _with_role(
    base: AttributeSet, role_key: str, role: str, **extra: Any
) -> AttributeSet:
    return {**base, role_key: role, **extra}


def _number_rows(
    points: Any,
    resource_attrs: AttributeSet,
    metadata: Mapping[str, Any] | None = None,
) -> Iterator[MetricRow]:
    for point in points:
        labels = merge_attributes(resource_attrs, attributes_to_map(point.attributes))
        if metadata:
            labels = {**labels, **metadata}
        yield MetricRow(
            nanos_to_millis(point.time_unix_nano), number_value(point), labels
        )


def explode_histogram_point(
    point: HistogramDataPoint,
    resource_attrs: AttributeSet,
    include_metric_metadata: bool = False,
) -> Iterator[MetricRow]:
    """Yield count, sum, min, max (when reported) and one row per bucket.

    Bucket rows carry ``le``: the explicit upper bound, or ``"+Inf"`` for the
    overflow bucket past the last bound.
    """
    time_ms = nanos_to_millis(point.time_unix_nano)
    base = merge_attributes(resource_attrs, attributes_to_map(point.attributes))
    role = _role_key("histogram", include_metric_metadata)

    yield MetricRow(time_ms, float(point.count), _with_role(base, role, "count"))
    yield MetricRow(time_ms, point.sum, _with_role(base, role, "sum"))
    if point.HasField("min"):
        yield MetricRow(time_ms, point.min, _with_role(base, role, "min"))
    if point.HasField("max"):
        yield MetricRow(time_ms, point.max, _with_role(base, role, "max"))

    bounds = point.explicit_bounds
    for index, bucket_count in enumerate(point.bucket_counts):
        le: float | str = bounds[index] if index < len(bounds) else INF_BOUND
        yield MetricRow(
            time_ms, float(bucket_count), _with_role(base, role, "bucket", le=le)
        )


def explode_summary_point(
    point: SummaryDataPoint,
    resource_attrs: AttributeSet,
    include_metric_metadata: bool = False,
) -> Iterator[MetricRow]:
    """Yield count, sum and one row per reported quantile."""
    time_ms = nanos_to_millis(point.time_unix_nano)
    base = merge_attributes(resource_attrs, attributes_to_map(point.attributes))
    role = _role_key("summary", include_metric_metadata)

    yield MetricRow(time_ms, float(point.count), _with_role(base, role, "count"))
    yield MetricRow(time_ms, point.sum, _with_role(base, role, "sum"))
    for quantile in point.quantile_values:
        yield MetricRow(
            time_ms,
            quantile.value,
            _with_role(base, role, "quantile", quantile=quantile.quantile),
        )


def explode_metric(
    metric: Metric,
    resource_attrs: AttributeSet,
    include_metric_metadata: bool = False,
) -> Iterator[MetricRow]:
    """Yield the flat rows for every data point of one metric.

    Args:
        metric: OTLP metric of any shape.
        resource_attrs: Attributes of the owning resource; point attributes
            override them.
        include_metric_metadata: Add internal metadata labels and use the
            underscore-prefixed field-role label names.
    """
    shape = metric.WhichOneof("data")
    if shape == "gauge":
        yield from _number_rows(metric.gauge.data_points, resource_attrs)
    elif shape == "sum":
        metadata = None
        if include_metric_metadata:
            metadata = {
                "_monotonic": metric.sum.is_monotonic,
                "_aggregation_temporality": temporality_name(
                    metric.sum.aggregation_temporality
                ),
            }
        yield from _number_rows(metric.sum.data_points, resource_attrs, metadata)
    elif shape == "histogram":
        for point in metric.histogram.data_points:
            yield from explode_histogram_point(
                point, resource_attrs, include_metric_metadata
            )
    elif shape == "summary":
        for point in metric.summary.data_points:
            yield from explode_summary_point(
                point, resource_attrs, include_metric_metadata
            )
    else:
        logger.debug(
            "Skipping metric %r with unsupported shape %s", metric.name, shape
        )


def group_metrics(
    request: MetricsRequest,
    include_metric_metadata: bool = False,
) -> dict[str, MetricBatch]:
    """Explode every metric in a request and group rows by measurement.

    Groups appear in the order their metric name was first seen; metrics
    that produced no rows do not get a group.
    """
    groups: dict[str, MetricBatch] = {}
    for resource_metrics in request.resource_metrics:
        resource_attrs = attributes_to_map(resource_metrics.resource.attributes)
        for scope_metrics in resource_metrics.scope_metrics:
            for metric in scope_metrics.metrics:
                name = sanitize_metric_name(metric.name)
                rows = explode_metric(metric, resource_attrs, include_metric_metadata)
                for row in rows:
                    if name not in groups:
                        groups[name] = MetricBatch(name=name)
                    groups[name].append(row.time_ms, row.value, row.labels)
    return groups


def metric_batch_to_columnar(batch: MetricBatch) -> ColumnarBatch:
    """Convert accumulated metric rows to ``time``, ``value`` and label columns."""
    return build_columnar_batch(
        batch.name,
        {"time": batch.times, "value": batch.values},
        batch.labels,
    )


def metrics_to_batches(
    request: MetricsRequest,
    include_metric_metadata: bool = False,
) -> list[ColumnarBatch]:
    """Build one ColumnarBatch per measurement group of a request."""
    return [
        metric_batch_to_columnar(batch)
        for batch in group_metrics(request, include_metric_metadata).values()
    ]
