"""Port interfaces for transport adapters.

The core depends only on these protocols, never on a concrete HTTP client.
"""

from typing import Protocol, runtime_checkable


@runtime_checkable
class TransportPort(Protocol):
    """Port for delivering one encoded payload to the backend.

    Adapters implementing this protocol send a compressed payload and
    report failure by raising.
    Examples: HttpTransport, InMemoryTransport, RetryingTransport.
    """

    async def send(self, payload: bytes, *, database: str, measurement: str) -> None:
        """Deliver a payload.

        Args:
            payload: Encoded and compressed columnar batch.
            database: Database the batch is written to.
            measurement: Measurement the batch belongs to.

        Raises:
            RetryableTransportError: Network failure, timeout or 5xx.
            TerminalTransportError: The backend rejected the payload.
        """
        ...

    async def aclose(self) -> None:
        """Release connections held by the transport."""
        ...
