"""FastAPI adapter for OTLP/HTTP ingestion."""

from fastapi import APIRouter, Request, Response

from otelarc.adapters.frameworks.otlp_routes import (
    LOGS_PATH,
    METRICS_PATH,
    TRACES_PATH,
    handle_export,
)
from otelarc.exporter import ArcExporter


def create_otlp_router(exporter: ArcExporter) -> APIRouter:
    """Create a FastAPI router with /v1/traces, /v1/metrics and /v1/logs.

    Args:
        exporter: Exporter that receives the decoded requests.

    Returns:
        APIRouter with the three OTLP/HTTP endpoints configured.
    """
    router = APIRouter()

    async def _export(request: Request, path: str) -> Response:
        body = await request.body()
        result = await handle_export(
            exporter, path, body, request.headers.get("content-type")
        )
        return Response(
            content=result.body,
            status_code=result.status,
            media_type=result.content_type,
        )

    @router.post(TRACES_PATH)
    async def export_traces(request: Request) -> Response:
        """Accept an ExportTraceServiceRequest."""
        return await _export(request, TRACES_PATH)

    @router.post(METRICS_PATH)
    async def export_metrics(request: Request) -> Response:
        """Accept an ExportMetricsServiceRequest."""
        return await _export(request, METRICS_PATH)

    @router.post(LOGS_PATH)
    async def export_logs(request: Request) -> Response:
        """Accept an ExportLogsServiceRequest."""
        return await _export(request, LOGS_PATH)

    return router
