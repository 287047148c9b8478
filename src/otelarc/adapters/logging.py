"""Python logging handler adapter for otelarc.

This adapter bridges Python's standard library logging module to the
exporter's logs path: each LogRecord becomes an OTLP log record and is
pushed as a logs batch.
"""

import asyncio
import logging
import threading
import traceback
from concurrent.futures import ThreadPoolExecutor

from opentelemetry.proto.collector.logs.v1.logs_service_pb2 import (
    ExportLogsServiceRequest,
)
from opentelemetry.proto.common.v1.common_pb2 import (
    AnyValue,
    InstrumentationScope,
    KeyValue,
)
from opentelemetry.proto.logs.v1.logs_pb2 import (
    LogRecord,
    ResourceLogs,
    ScopeLogs,
    SeverityNumber,
)
from opentelemetry.proto.resource.v1.resource_pb2 import Resource

from otelarc.core.attributes import SERVICE_NAME_KEY
from otelarc.exporter import ArcExporter

# Attributes every LogRecord carries; anything else came in through ``extra``.
# Formatters add "message" and "asctime" later.
_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {
    "message",
    "asctime",
}

DEFAULT_INCLUDE_ATTRS = ("module", "funcName", "lineno", "pathname")

SCOPE_NAME = "otelarc.logging"
_OWN_LOGGER = "otelarc"

Scalar = str | int | float | bool


def severity_number_for(levelno: int) -> int:
    """Map a logging level number to the OTLP severity number."""
    if levelno >= logging.CRITICAL:
        return SeverityNumber.SEVERITY_NUMBER_FATAL
    if levelno >= logging.ERROR:
        return SeverityNumber.SEVERITY_NUMBER_ERROR
    if levelno >= logging.WARNING:
        return SeverityNumber.SEVERITY_NUMBER_WARN
    if levelno >= logging.INFO:
        return SeverityNumber.SEVERITY_NUMBER_INFO
    if levelno >= logging.DEBUG:
        return SeverityNumber.SEVERITY_NUMBER_DEBUG
    return SeverityNumber.SEVERITY_NUMBER_TRACE


def _any_value(value: Scalar) -> AnyValue:
    if isinstance(value, bool):
        return AnyValue(bool_value=value)
    if isinstance(value, int):
        return AnyValue(int_value=value)
    if isinstance(value, float):
        return AnyValue(double_value=value)
    return AnyValue(string_value=str(value))


def _in_running_loop() -> bool:
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return False
    return True


class ArcLogHandler(logging.Handler):
    """Logging handler that exports log records through an ArcExporter.

    Example:
        ```python
        exporter = ArcExporter(ExporterConfig(endpoint="http://arc:8000"))
        handler = ArcLogHandler(exporter, service_name="billing")
        logging.getLogger().addHandler(handler)
        ```

    Records are pushed synchronously through the exporter's sync wrappers.
    Records logged while an event loop is running in the calling thread are
    handed to a single worker thread instead; ``flush`` waits for them.
    Records logged while this handler is exporting (for example httpx's
    request log lines) are dropped. Export failures go through
    ``handleError``.
    """

    def __init__(
        self,
        exporter: ArcExporter,
        service_name: str | None = None,
        include_attrs: list[str] | None = None,
        level: int = logging.NOTSET,
    ) -> None:
        """Initialize the handler with an exporter.

        Args:
            exporter: Exporter whose logs path receives the records.
            service_name: Value of the ``service.name`` resource attribute.
            include_attrs: LogRecord attributes exported as log attributes.
                Defaults to module, funcName, lineno and pathname.
            level: Minimum level handled.
        """
        super().__init__(level)
        self._exporter = exporter
        self._service_name = service_name
        self._include_attrs = tuple(
            DEFAULT_INCLUDE_ATTRS if include_attrs is None else include_attrs
        )
        self._local = threading.local()
        self._export_lock = threading.Lock()
        self._worker: ThreadPoolExecutor | None = None

    def _attributes(self, record: logging.LogRecord) -> dict[str, Scalar]:
        attributes: dict[str, Scalar] = {}
        for name in self._include_attrs:
            value = getattr(record, name, None)
            if isinstance(value, Scalar):
                attributes[name] = value

        for key, value in vars(record).items():
            if key not in _RECORD_ATTRS and isinstance(value, Scalar):
                attributes[key] = value

        if record.exc_info and record.exc_info[0] is not None:
            exc_type, exc_value, exc_tb = record.exc_info
            attributes["exception.type"] = exc_type.__name__
            attributes["exception.message"] = str(exc_value)
            attributes["exception.stacktrace"] = "".join(
                traceback.format_exception(exc_type, exc_value, exc_tb)
            )
        return attributes

    def to_request(self, record: logging.LogRecord) -> ExportLogsServiceRequest:
        """Convert a LogRecord into a single-record OTLP logs request."""
        created_ns = int(record.created * 1_000_000_000)
        resource = Resource()
        if self._service_name:
            service = AnyValue(string_value=self._service_name)
            resource.attributes.append(KeyValue(key=SERVICE_NAME_KEY, value=service))
        log_record = LogRecord(
            time_unix_nano=created_ns,
            observed_time_unix_nano=created_ns,
            severity_number=severity_number_for(record.levelno),
            severity_text=record.levelname,
            body=AnyValue(string_value=record.getMessage()),
            attributes=[
                KeyValue(key=key, value=_any_value(value))
                for key, value in self._attributes(record).items()
            ],
        )
        return ExportLogsServiceRequest(
            resource_logs=[
                ResourceLogs(
                    resource=resource,
                    scope_logs=[
                        ScopeLogs(
                            scope=InstrumentationScope(name=SCOPE_NAME),
                            log_records=[log_record],
                        )
                    ],
                )
            ]
        )

    def filter(self, record: logging.LogRecord) -> bool | logging.LogRecord:
        # Checked before ``handle`` takes the handler lock
        if getattr(self._local, "exporting", False):
            return False
        return super().filter(record)

    def _export(self, request: ExportLogsServiceRequest) -> None:
        with self._export_lock:
            self._local.exporting = True
            try:
                self._exporter.push_logs_sync(request)
            finally:
                self._local.exporting = False

    def _export_in_worker(
        self, request: ExportLogsServiceRequest, record: logging.LogRecord
    ) -> None:
        try:
            self._export(request)
        except Exception:
            self.handleError(record)

    def emit(self, record: logging.LogRecord) -> None:
        """Export a log record.

        Records from otelarc's own loggers are skipped.

        Args:
            record: The log record to emit.
        """
        if record.name == _OWN_LOGGER or record.name.startswith(_OWN_LOGGER + "."):
            return
        try:
            request = self.to_request(record)
            if _in_running_loop():
                if self._worker is None:
                    self._worker = ThreadPoolExecutor(
                        max_workers=1, thread_name_prefix="otelarc-log"
                    )
                self._worker.submit(self._export_in_worker, request, record)
            else:
                self._export(request)
        except Exception:
            self.handleError(record)

    def flush(self) -> None:
        """Wait until records handed to the worker thread are exported."""
        if self._worker is not None:
            # One worker: a no-op finishes after everything queued before it
            self._worker.submit(lambda: None).result()

    def close(self) -> None:
        if self._worker is not None:
            self._worker.shutdown(wait=True)
            self._worker = None
        super().close()
