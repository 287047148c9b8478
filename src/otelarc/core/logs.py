"""Log record rows and the logs measurement batch.

Resource attributes are merged under record attributes (record keys win).
``service.name`` is promoted to the fixed ``service_name`` column and left
out of the dynamic attribute columns.
"""

from collections.abc import Iterator

from opentelemetry.proto.collector.logs.v1.logs_service_pb2 import (
    ExportLogsServiceRequest,
)
from opentelemetry.proto.logs.v1.logs_pb2 import LogRecord, LogsData

from otelarc.core.attributes import (
    SERVICE_NAME_KEY,
    any_value_as_string,
    attributes_to_map,
    merge_attributes,
    service_name,
)
from otelarc.core.columnar import FieldRow, field_rows_to_batch
from otelarc.core.models import ColumnarBatch
from otelarc.core.traces import hex_id

LogsRequest = ExportLogsServiceRequest | LogsData

LOG_COLUMNS = (
    "time",
    "severity",
    "severity_number",
    "body",
    "trace_id",
    "span_id",
    "trace_flags",
    "service_name",
)


def log_time_millis(record: LogRecord) -> int:
    """Event time in milliseconds, falling back to the observed time."""
    nanos = record.time_unix_nano or record.observed_time_unix_nano
    return nanos // 1_000_000


def log_body(record: LogRecord) -> str:
    # Structured bodies are stored as compact JSON
    return any_value_as_string(record.body)


def log_rows(request: LogsRequest) -> Iterator[FieldRow]:
    """Yield one row per log record, walking resource -> scope -> record."""
    for resource_logs in request.resource_logs:
        resource_attrs = attributes_to_map(resource_logs.resource.attributes)
        service = service_name(resource_attrs)
        for scope_logs in resource_logs.scope_logs:
            for record in scope_logs.log_records:
                yield FieldRow(
                    fields={
                        "time": log_time_millis(record),
                        "severity": record.severity_text,
                        "severity_number": int(record.severity_number),
                        "body": log_body(record),
                        "trace_id": hex_id(record.trace_id),
                        "span_id": hex_id(record.span_id),
                        "trace_flags": record.flags,
                        "service_name": service,
                    },
                    attributes=merge_attributes(
                        resource_attrs, attributes_to_map(record.attributes)
                    ),
                )


def logs_to_batch(request: LogsRequest, measurement: str) -> ColumnarBatch:
    """Build the logs ColumnarBatch for one request."""
    return field_rows_to_batch(
        measurement,
        LOG_COLUMNS,
        list(log_rows(request)),
        excluded_keys=(SERVICE_NAME_KEY,),
    )
