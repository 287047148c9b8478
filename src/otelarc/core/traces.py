"""Span rows and the traces measurement batch."""

from collections.abc import Iterator

from opentelemetry.proto.collector.trace.v1.trace_service_pb2 import (
    ExportTraceServiceRequest,
)
from opentelemetry.proto.trace.v1.trace_pb2 import Span, TracesData

from otelarc.core.attributes import (
    SERVICE_NAME_KEY,
    attributes_to_map,
    merge_attributes,
    service_name,
)
from otelarc.core.columnar import FieldRow, field_rows_to_batch
from otelarc.core.models import ColumnarBatch

TracesRequest = ExportTraceServiceRequest | TracesData

TRACE_COLUMNS = (
    "time",
    "trace_id",
    "span_id",
    "parent_span_id",
    "service_name",
    "operation_name",
    "span_kind",
    "duration_ns",
    "status_code",
    "status_message",
)

_SPAN_KINDS = {
    Span.SpanKind.SPAN_KIND_SERVER: "server",
    Span.SpanKind.SPAN_KIND_CLIENT: "client",
    Span.SpanKind.SPAN_KIND_PRODUCER: "producer",
    Span.SpanKind.SPAN_KIND_CONSUMER: "consumer",
    Span.SpanKind.SPAN_KIND_INTERNAL: "internal",
}


def span_kind_name(kind: int) -> str:
    return _SPAN_KINDS.get(kind, "unspecified")


def hex_id(raw: bytes) -> str:
    """Lower-case hex of a trace or span id; empty for absent or all-zero ids."""
    if not any(raw):
        return ""
    return raw.hex()


def span_rows(request: TracesRequest) -> Iterator[FieldRow]:
    """Yield one row per span, walking resource -> scope -> span."""
    for resource_spans in request.resource_spans:
        resource_attrs = attributes_to_map(resource_spans.resource.attributes)
        service = service_name(resource_attrs)
        for scope_spans in resource_spans.scope_spans:
            for span in scope_spans.spans:
                yield FieldRow(
                    fields={
                        "time": span.start_time_unix_nano // 1_000_000,
                        "trace_id": hex_id(span.trace_id),
                        "span_id": hex_id(span.span_id),
                        "parent_span_id": hex_id(span.parent_span_id),
                        "service_name": service,
                        "operation_name": span.name,
                        "span_kind": span_kind_name(span.kind),
                        # Not clamped: clock skew shows up as a negative duration.
                        "duration_ns": span.end_time_unix_nano
                        - span.start_time_unix_nano,
                        "status_code": int(span.status.code),
                        "status_message": span.status.message,
                    },
                    attributes=merge_attributes(
                        resource_attrs, attributes_to_map(span.attributes)
                    ),
                )


def traces_to_batch(request: TracesRequest, measurement: str) -> ColumnarBatch:
    """Build the traces ColumnarBatch for one request."""
    return field_rows_to_batch(
        measurement,
        TRACE_COLUMNS,
        list(span_rows(request)),
        excluded_keys=(SERVICE_NAME_KEY,),
    )
