"""Push a small sample of traces, metrics and logs to Arc.

Run with:
    OTELARC_ENDPOINT=http://localhost:8000 python examples/push_sample.py

Also attaches ArcLogHandler so the script's own log lines are exported.
"""

import asyncio
import logging
import os
import time

from opentelemetry.proto.collector.logs.v1.logs_service_pb2 import (
    ExportLogsServiceRequest,
)
from opentelemetry.proto.collector.metrics.v1.metrics_service_pb2 import (
    ExportMetricsServiceRequest,
)
from opentelemetry.proto.collector.trace.v1.trace_service_pb2 import (
    ExportTraceServiceRequest,
)
from opentelemetry.proto.common.v1.common_pb2 import AnyValue, KeyValue
from opentelemetry.proto.logs.v1.logs_pb2 import LogRecord, ResourceLogs, ScopeLogs
from opentelemetry.proto.metrics.v1.metrics_pb2 import (
    Gauge,
    Histogram,
    HistogramDataPoint,
    Metric,
    NumberDataPoint,
    ResourceMetrics,
    ScopeMetrics,
)
from opentelemetry.proto.resource.v1.resource_pb2 import Resource
from opentelemetry.proto.trace.v1.trace_pb2 import ResourceSpans, ScopeSpans, Span

from otelarc import ArcExporter, ArcLogHandler, ExporterConfig, MetricsExportError

logger = logging.getLogger("push_sample")

RESOURCE = Resource(
    attributes=[
        KeyValue(key="service.name", value=AnyValue(string_value="push-sample")),
        KeyValue(key="host.name", value=AnyValue(string_value="localhost")),
    ]
)


def sample_traces(now_ns: int) -> ExportTraceServiceRequest:
    span = Span(
        trace_id=os.urandom(16),
        span_id=os.urandom(8),
        name="GET /checkout",
        kind=Span.SpanKind.SPAN_KIND_SERVER,
        start_time_unix_nano=now_ns - 25_000_000,
        end_time_unix_nano=now_ns,
        attributes=[KeyValue(key="http.status_code", value=AnyValue(int_value=200))],
    )
    return ExportTraceServiceRequest(
        resource_spans=[
            ResourceSpans(resource=RESOURCE, scope_spans=[ScopeSpans(spans=[span])])
        ]
    )


def sample_metrics(now_ns: int) -> ExportMetricsServiceRequest:
    cpu = Metric(
        name="system.cpu.utilization",
        gauge=Gauge(
            data_points=[NumberDataPoint(time_unix_nano=now_ns, as_double=0.42)]
        ),
    )
    latency = Metric(
        name="http.server.duration",
        histogram=Histogram(
            data_points=[
                HistogramDataPoint(
                    time_unix_nano=now_ns,
                    count=6,
                    sum=0.31,
                    explicit_bounds=[0.01, 0.05, 0.1],
                    bucket_counts=[1, 3, 1, 1],
                )
            ]
        ),
    )
    return ExportMetricsServiceRequest(
        resource_metrics=[
            ResourceMetrics(
                resource=RESOURCE,
                scope_metrics=[ScopeMetrics(metrics=[cpu, latency])],
            )
        ]
    )


def sample_logs(now_ns: int) -> ExportLogsServiceRequest:
    record = LogRecord(
        time_unix_nano=now_ns,
        severity_text="INFO",
        severity_number=9,
        body=AnyValue(string_value="order placed"),
        attributes=[KeyValue(key="order.id", value=AnyValue(string_value="A-1001"))],
    )
    return ExportLogsServiceRequest(
        resource_logs=[
            ResourceLogs(
                resource=RESOURCE, scope_logs=[ScopeLogs(log_records=[record])]
            )
        ]
    )


async def push_all(config: ExporterConfig) -> None:
    async with ArcExporter(config) as exporter:
        await _push_samples(exporter)


async def _push_samples(exporter: ArcExporter) -> None:
    now_ns = time.time_ns()
    result = await exporter.push_traces(sample_traces(now_ns))
    logger.info("traces: %s (%d bytes)", result.status.value, result.payload_size)
    try:
        results = await exporter.push_metrics(sample_metrics(now_ns))
    except MetricsExportError as e:
        logger.error("metrics failed for %s", ", ".join(e.failed_measurements))
    else:
        for measurement, outcome in results.items():
            logger.info("metrics %s: %s", measurement, outcome.status.value)
    result = await exporter.push_logs(sample_logs(now_ns))
    logger.info("logs: %s (%d bytes)", result.status.value, result.payload_size)


def main() -> None:
    logging.basicConfig(level=logging.INFO)
    config = ExporterConfig.from_env()

    asyncio.run(push_all(config))

    # The handler pushes synchronously, from outside any event loop
    handler_exporter = ArcExporter(config)
    logger.addHandler(ArcLogHandler(handler_exporter, service_name="push-sample"))
    logger.info("sample pushed")
    handler_exporter.close_sync()


if __name__ == "__main__":
    main()
