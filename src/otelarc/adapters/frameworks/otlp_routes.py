"""OTLP/HTTP request handling shared by the framework adapters.

Decodes a protobuf export request, runs it through the exporter and maps
the outcome to an HTTP status. Framework adapters (ASGI, FastAPI) only
move bytes in and out.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any

from google.protobuf.message import DecodeError as ProtobufDecodeError
from opentelemetry.proto.collector.logs.v1.logs_service_pb2 import (
    ExportLogsServiceRequest,
    ExportLogsServiceResponse,
)
from opentelemetry.proto.collector.metrics.v1.metrics_service_pb2 import (
    ExportMetricsServiceRequest,
    ExportMetricsServiceResponse,
)
from opentelemetry.proto.collector.trace.v1.trace_service_pb2 import (
    ExportTraceServiceRequest,
    ExportTraceServiceResponse,
)

from otelarc.core.errors import ExportError, MetricsExportError
from otelarc.exporter import ArcExporter

logger = logging.getLogger(__name__)

PROTOBUF_CONTENT_TYPE = "application/x-protobuf"
JSON_CONTENT_TYPE = "application/json"

TRACES_PATH = "/v1/traces"
METRICS_PATH = "/v1/metrics"
LOGS_PATH = "/v1/logs"


@dataclass(frozen=True)
class OtlpRoute:
    """Request/response types and exporter method for one signal path."""

    request_type: Any
    response_type: Any
    push_method: str


ROUTES: dict[str, OtlpRoute] = {
    TRACES_PATH: OtlpRoute(
        ExportTraceServiceRequest, ExportTraceServiceResponse, "push_traces"
    ),
    METRICS_PATH: OtlpRoute(
        ExportMetricsServiceRequest, ExportMetricsServiceResponse, "push_metrics"
    ),
    LOGS_PATH: OtlpRoute(
        ExportLogsServiceRequest, ExportLogsServiceResponse, "push_logs"
    ),
}


@dataclass(frozen=True)
class ExportResponse:
    """HTTP response produced for an OTLP export request."""

    status: int
    content_type: str
    body: bytes


def _error(status: int, message: str) -> ExportResponse:
    return ExportResponse(
        status, JSON_CONTENT_TYPE, json.dumps({"error": message}).encode()
    )


def _is_protobuf(content_type: str | None) -> bool:
    if not content_type:
        return True
    return content_type.split(";")[0].strip().lower() == PROTOBUF_CONTENT_TYPE


async def handle_export(
    exporter: ArcExporter,
    path: str,
    body: bytes,
    content_type: str | None = None,
) -> ExportResponse:
    """Decode an OTLP/HTTP protobuf body, export it and build the response.

    Status codes:
    - 200: exported; body is the empty protobuf export response.
    - 400: body is not a valid protobuf export request.
    - 404: unknown path.
    - 415: content type other than application/x-protobuf.
    - 503: export failed but may succeed when resent.
    - 500: export failed for good.
    """
    route = ROUTES.get(path)
    if route is None:
        return _error(404, "Not Found")
    if not _is_protobuf(content_type):
        return _error(415, f"Unsupported content type: {content_type}")

    try:
        request = route.request_type.FromString(body)
    except ProtobufDecodeError as e:
        return _error(400, f"Invalid protobuf body: {e}")

    try:
        await getattr(exporter, route.push_method)(request)
    except (ExportError, MetricsExportError) as e:
        if e.retryable:
            logger.warning("Export for %s failed, client may retry: %s", path, e)
            return _error(503, str(e))
        logger.exception("Export for %s failed", path)
        return _error(500, str(e))

    return ExportResponse(
        200, PROTOBUF_CONTENT_TYPE, route.response_type().SerializeToString()
    )
