"""Exception hierarchy for the exporter.

Conversion problems never raise: they degrade a single field. Everything
here is either a configuration problem, a batch that cannot be encoded, or a
delivery failure the caller may want to retry.
"""

from otelarc.core.models import DeliveryResult, SignalKind


class OtelArcError(Exception):
    """Base class for all exporter errors."""


class ConfigurationError(OtelArcError):
    """Raised when exporter settings are missing or invalid."""


class EncodeError(OtelArcError):
    """Raised when a batch holds a value the codec cannot represent.

    Attributes:
        measurement: Measurement of the batch that failed.
    """

    def __init__(self, measurement: str, message: str) -> None:
        self.measurement = measurement
        self.message = message
        super().__init__(f"Cannot encode batch '{measurement}': {message}")


class DecodeError(OtelArcError):
    """Raised when a payload cannot be decompressed or decoded."""


class TransportError(OtelArcError):
    """Raised by transports when a payload was not accepted.

    Attributes:
        status_code: HTTP status, or None for network level failures.
        retryable: Whether resending the same payload may succeed.
    """

    retryable = False

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class RetryableTransportError(TransportError):
    """Network failure, timeout, throttling or server-side error."""

    retryable = True


class TerminalTransportError(TransportError):
    """The backend rejected the request; resending it will not help."""

    retryable = False


class ExportError(OtelArcError):
    """Raised when a signal batch could not be encoded or delivered.

    Attributes:
        signal: Signal of the failed batch.
        measurement: Measurement of the failed batch.
        retryable: True when the failure came from a retryable transport error.
    """

    def __init__(
        self,
        signal: SignalKind,
        measurement: str,
        cause: Exception,
    ) -> None:
        self.signal = signal
        self.measurement = measurement
        self.cause = cause
        self.retryable = isinstance(cause, TransportError) and cause.retryable
        super().__init__(
            f"Failed to export {signal.value} batch '{measurement}': {cause}"
        )


class MetricsExportError(OtelArcError):
    """Raised when one or more metric measurement groups failed.

    Carries the outcome of every group so that a caller can resend only the
    measurements listed in ``failed_measurements``.
    """

    def __init__(self, results: dict[str, DeliveryResult]) -> None:
        self.results = results
        self.failed_measurements = [
            name for name, result in results.items() if not result.ok
        ]
        self.retryable = all(
            isinstance(results[name].error, TransportError)
            and results[name].error.retryable  # type: ignore[union-attr]
            for name in self.failed_measurements
        )
        super().__init__(
            f"Failed to export {len(self.failed_measurements)} of "
            f"{len(results)} metric batches: {', '.join(self.failed_measurements)}"
        )
