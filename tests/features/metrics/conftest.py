"""BDD step definitions for metric explosion features."""

from dataclasses import dataclass, field
from typing import Any

import pytest
from opentelemetry.proto.metrics.v1.metrics_pb2 import Metric
from otlp_factories import (
    gauge_metric,
    histogram_metric,
    histogram_point,
    metrics_request,
    number_point,
    sum_metric,
    summary_metric,
    summary_point,
)
from pytest_bdd import given, parsers, then, when

from otelarc.adapters.transport.in_memory import InMemoryTransport
from otelarc.core.config import ExporterConfig, RetrySettings
from otelarc.core.errors import MetricsExportError, RetryableTransportError
from otelarc.core.metrics import metrics_to_batches
from otelarc.core.models import ColumnarBatch
from otelarc.exporter import ArcExporter


@dataclass
class MetricScenarioContext:
    """Shared state between steps in a metric scenario."""

    metrics: list[Metric] = field(default_factory=list)
    include_metadata: bool = False
    batches: dict[str, ColumnarBatch] = field(default_factory=dict)
    transport: InMemoryTransport = field(default_factory=InMemoryTransport)
    push_error: MetricsExportError | None = None


@pytest.fixture
def ctx() -> MetricScenarioContext:
    """Fresh scenario context for each test."""
    return MetricScenarioContext()


def _floats(csv: str) -> list[float]:
    return [float(item) for item in csv.split(",") if item]


def _cell(value: Any) -> str:
    return "" if value is None else str(value)


# === Given ===


@given(
    parsers.parse(
        'a histogram "{name}" with count {count:d}, sum {total:f}, '
        'bounds "{bounds}" and bucket counts "{counts}"'
    )
)
def step_histogram(
    ctx: MetricScenarioContext,
    name: str,
    count: int,
    total: float,
    bounds: str,
    counts: str,
) -> None:
    point = histogram_point(
        count, total, _floats(bounds), [int(c) for c in counts.split(",")]
    )
    ctx.metrics.append(histogram_metric(name, [point]))


@given(
    parsers.parse(
        'a summary "{name}" with count {count:d}, sum {total:f} '
        'and quantiles "{quantiles}"'
    )
)
def step_summary(
    ctx: MetricScenarioContext, name: str, count: int, total: float, quantiles: str
) -> None:
    pairs = [
        (float(q), float(v))
        for q, v in (item.split("=") for item in quantiles.split(","))
    ]
    ctx.metrics.append(summary_metric(name, [summary_point(count, total, pairs)]))


@given(parsers.parse('a gauge "{name}" with value {value:f}'))
def step_gauge(ctx: MetricScenarioContext, name: str, value: float) -> None:
    ctx.metrics.append(gauge_metric(name, [number_point(value)]))


@given(parsers.parse('a monotonic sum "{name}" with value {value:d}'))
def step_sum(ctx: MetricScenarioContext, name: str, value: int) -> None:
    ctx.metrics.append(sum_metric(name, [number_point(value)], monotonic=True))


@given("metric metadata is enabled")
def step_metadata(ctx: MetricScenarioContext) -> None:
    ctx.include_metadata = True


@given(
    parsers.parse(
        'the backend rejects measurement "{measurement}" with a retryable error'
    )
)
def step_reject(ctx: MetricScenarioContext, measurement: str) -> None:
    ctx.transport.fail_measurement(measurement, RetryableTransportError("503"))


# === When ===


@when("the metrics are exploded")
def step_explode(ctx: MetricScenarioContext) -> None:
    batches = metrics_to_batches(metrics_request(ctx.metrics), ctx.include_metadata)
    ctx.batches = {batch.measurement: batch for batch in batches}


@when("the metrics are pushed")
def step_push(ctx: MetricScenarioContext) -> None:
    config = ExporterConfig(
        endpoint="http://arc.test", retry=RetrySettings(enabled=False)
    )
    exporter = ArcExporter(config, transport=ctx.transport)
    try:
        exporter.push_metrics_sync(metrics_request(ctx.metrics))
    except MetricsExportError as e:
        ctx.push_error = e
    finally:
        exporter.close_sync()


# === Then ===


@then(parsers.parse('the measurement "{measurement}" has {n:d} rows'))
def step_row_count(ctx: MetricScenarioContext, measurement: str, n: int) -> None:
    assert ctx.batches[measurement].row_count == n


@then(parsers.parse('the "{column}" column of "{measurement}" is "{expected}"'))
def step_column(
    ctx: MetricScenarioContext, column: str, measurement: str, expected: str
) -> None:
    values = ctx.batches[measurement].columns[column]
    assert ",".join(_cell(value) for value in values) == expected


@then(parsers.parse("there is {n:d} measurement"))
def step_measurement_count(ctx: MetricScenarioContext, n: int) -> None:
    assert len(ctx.batches) == n


@then(parsers.parse('the push fails for "{measurement}" only'))
def step_push_failed(ctx: MetricScenarioContext, measurement: str) -> None:
    assert ctx.push_error is not None
    assert ctx.push_error.failed_measurements == [measurement]
    assert ctx.push_error.retryable


@then(parsers.parse('payloads were sent for "{measurements}"'))
def step_payloads_sent(ctx: MetricScenarioContext, measurements: str) -> None:
    assert [sent.measurement for sent in ctx.transport.sent] == measurements.split(",")
