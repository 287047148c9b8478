"""In-memory transport adapter."""

from dataclasses import dataclass

from otelarc.core.encoding.msgpack import decode_batch
from otelarc.core.errors import TransportError
from otelarc.core.models import ColumnarBatch


@dataclass(frozen=True)
class SentPayload:
    """A payload captured by InMemoryTransport."""

    database: str
    measurement: str
    payload: bytes

    def decode(self) -> ColumnarBatch:
        return decode_batch(self.payload)


class InMemoryTransport:
    """In-memory implementation of TransportPort.

    Keeps every payload in a list instead of sending it. Suitable for
    testing and dry runs. Failures can be primed per measurement with
    ``fail_measurement``.
    """

    def __init__(self) -> None:
        self._sent: list[SentPayload] = []
        self._failures: dict[str, TransportError] = {}
        self.closed = False

    @property
    def sent(self) -> list[SentPayload]:
        return list(self._sent)

    def fail_measurement(self, measurement: str, error: TransportError) -> None:
        """Make every send for ``measurement`` raise ``error``."""
        self._failures[measurement] = error

    def clear(self) -> None:
        self._sent.clear()
        self._failures.clear()

    async def send(self, payload: bytes, *, database: str, measurement: str) -> None:
        """Record a payload, or raise the failure primed for its measurement."""
        error = self._failures.get(measurement)
        if error is not None:
            raise error
        self._sent.append(SentPayload(database, measurement, payload))

    async def aclose(self) -> None:
        self.closed = True
