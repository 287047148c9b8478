"""Example FastAPI application that forwards OTLP/HTTP telemetry to Arc.

Run with:
    OTELARC_ENDPOINT=http://localhost:8000 OTELARC_AUTH_TOKEN=... \
        uvicorn examples.fastapi_receiver:app --port 4318

Endpoints:
    POST /v1/traces   - ExportTraceServiceRequest (application/x-protobuf)
    POST /v1/metrics  - ExportMetricsServiceRequest
    POST /v1/logs     - ExportLogsServiceRequest

Point an OpenTelemetry SDK or collector at http://localhost:4318 with the
OTLP/HTTP protobuf exporter.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from otelarc import ArcExporter, ExporterConfig
from otelarc.adapters.frameworks.fastapi import create_otlp_router

exporter = ArcExporter(ExporterConfig.from_env())


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    yield
    await exporter.aclose()


app = FastAPI(title="OTLP to Arc", lifespan=lifespan)
app.include_router(create_otlp_router(exporter))


@app.get("/healthz")
async def healthz() -> dict[str, str]:
    """Liveness probe."""
    return {"status": "ok"}
