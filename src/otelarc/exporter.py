"""Exporter facade: encode each signal batch and hand it to a transport.

Each push is independent: batches are built from the request alone, encoded,
compressed and sent. Nothing is kept between pushes, so concurrent pushes on
one exporter need no locking.
"""

import asyncio
import logging
from collections.abc import Coroutine
from types import TracebackType
from typing import Any, TypeVar

from otelarc.adapters.transport.http import HttpTransport
from otelarc.adapters.transport.retry import RetryingTransport
from otelarc.core.config import ExporterConfig
from otelarc.core.encoding.msgpack import encode_batch
from otelarc.core.errors import (
    EncodeError,
    ExportError,
    MetricsExportError,
    TransportError,
)
from otelarc.core.logs import LogsRequest, logs_to_batch
from otelarc.core.metrics import MetricsRequest, metrics_to_batches
from otelarc.core.models import (
    ColumnarBatch,
    DeliveryResult,
    DeliveryStatus,
    SignalKind,
)
from otelarc.core.ports import TransportPort
from otelarc.core.traces import TracesRequest, traces_to_batch

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ArcExporter:
    """Push traces, metrics and logs to a columnar backend.

    Example:
        ```python
        config = ExporterConfig(endpoint="http://localhost:8000")
        async with ArcExporter(config) as exporter:
            result = await exporter.push_traces(request)
        ```
    """

    def __init__(
        self,
        config: ExporterConfig,
        transport: TransportPort | None = None,
    ) -> None:
        """Initialize the exporter.

        Args:
            config: Exporter settings.
            transport: Where payloads go. Defaults to an HttpTransport built
                from ``config``, wrapped in a RetryingTransport when retry is
                enabled. A transport passed in is not closed by ``aclose``.
        """
        self._config = config
        self._owns_transport = transport is None
        if transport is None:
            transport = HttpTransport.from_config(config)
            if config.retry.enabled:
                transport = RetryingTransport(transport, config.retry)
        self._transport = transport
        self._sync_loop: asyncio.AbstractEventLoop | None = None

    @property
    def config(self) -> ExporterConfig:
        return self._config

    @property
    def transport(self) -> TransportPort:
        return self._transport

    async def _deliver(
        self, signal: SignalKind, batch: ColumnarBatch
    ) -> DeliveryResult:
        """Encode and send one batch, reporting the outcome instead of raising."""
        try:
            payload = encode_batch(batch)
        except EncodeError as e:
            logger.error(
                "Failed to encode %s batch %s: %s", signal.value, batch.measurement, e
            )
            return DeliveryResult(
                signal,
                batch.measurement,
                DeliveryStatus.TERMINAL,
                row_count=batch.row_count,
                error=e,
            )

        try:
            await self._transport.send(
                payload,
                database=self._config.database_for(signal),
                measurement=batch.measurement,
            )
        except TransportError as e:
            status = (
                DeliveryStatus.RETRYABLE if e.retryable else DeliveryStatus.TERMINAL
            )
            logger.warning(
                "Failed to send %s batch %s (%s): %s",
                signal.value,
                batch.measurement,
                status.value,
                e,
            )
            return DeliveryResult(
                signal,
                batch.measurement,
                status,
                payload_size=len(payload),
                row_count=batch.row_count,
                error=e,
            )
        except Exception as e:
            # Transports outside this package may raise anything
            logger.exception(
                "Transport raised on %s batch %s", signal.value, batch.measurement
            )
            return DeliveryResult(
                signal,
                batch.measurement,
                DeliveryStatus.TERMINAL,
                payload_size=len(payload),
                row_count=batch.row_count,
                error=e,
            )

        logger.debug(
            "Exported %s batch %s (rows=%d, payload_size=%d)",
            signal.value,
            batch.measurement,
            batch.row_count,
            len(payload),
        )
        return DeliveryResult(
            signal,
            batch.measurement,
            DeliveryStatus.SUCCESS,
            payload_size=len(payload),
            row_count=batch.row_count,
        )

    async def _push_single(
        self, signal: SignalKind, batch: ColumnarBatch
    ) -> DeliveryResult:
        if batch.row_count == 0:
            return DeliveryResult(signal, batch.measurement, DeliveryStatus.SUCCESS)
        result = await self._deliver(signal, batch)
        if result.error is not None:
            raise ExportError(signal, batch.measurement, result.error) from result.error
        return result

    async def push_traces(self, request: TracesRequest) -> DeliveryResult:
        """Export every span of a request as one batch.

        Raises:
            ExportError: The batch could not be encoded or delivered;
                ``retryable`` tells whether resending may succeed.
        """
        batch = traces_to_batch(request, self._config.traces_measurement)
        return await self._push_single(SignalKind.TRACES, batch)

    async def push_logs(self, request: LogsRequest) -> DeliveryResult:
        """Export every log record of a request as one batch.

        Raises:
            ExportError: The batch could not be encoded or delivered.
        """
        batch = logs_to_batch(request, self._config.logs_measurement)
        return await self._push_single(SignalKind.LOGS, batch)

    async def push_metrics(self, request: MetricsRequest) -> dict[str, DeliveryResult]:
        """Export one batch per metric measurement, sent concurrently.

        Returns:
            Delivery result per measurement, in the order measurements first
            appeared in the request.

        Raises:
            MetricsExportError: At least one measurement failed. The error
                carries every result so only failed measurements are resent.
        """
        batches = metrics_to_batches(request, self._config.include_metric_metadata)
        outcomes = await asyncio.gather(
            *(self._deliver(SignalKind.METRICS, batch) for batch in batches)
        )
        results = {result.measurement: result for result in outcomes}
        if any(not result.ok for result in outcomes):
            raise MetricsExportError(results)
        return results

    # --- Sync wrappers for hosts without an event loop ---

    def _run_sync(self, coro: Coroutine[Any, Any, T]) -> T:
        # One loop for every sync call so pooled connections stay on it.
        if self._sync_loop is None or self._sync_loop.is_closed():
            self._sync_loop = asyncio.new_event_loop()
        return self._sync_loop.run_until_complete(coro)

    def push_traces_sync(self, request: TracesRequest) -> DeliveryResult:
        return self._run_sync(self.push_traces(request))

    def push_logs_sync(self, request: LogsRequest) -> DeliveryResult:
        return self._run_sync(self.push_logs(request))

    def push_metrics_sync(self, request: MetricsRequest) -> dict[str, DeliveryResult]:
        return self._run_sync(self.push_metrics(request))

    def close_sync(self) -> None:
        """Close the transport and the loop used by the sync wrappers."""
        if self._sync_loop is None or self._sync_loop.is_closed():
            asyncio.run(self.aclose())
            return
        try:
            self._sync_loop.run_until_complete(self.aclose())
        finally:
            self._sync_loop.close()

    async def aclose(self) -> None:
        if self._owns_transport:
            await self._transport.aclose()

    async def __aenter__(self) -> "ArcExporter":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()
