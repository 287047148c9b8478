"""Transport adapters implementing TransportPort."""

from otelarc.adapters.transport.http import HttpTransport
from otelarc.adapters.transport.in_memory import InMemoryTransport, SentPayload
from otelarc.adapters.transport.retry import RetryingTransport

__all__ = [
    "HttpTransport",
    "InMemoryTransport",
    "RetryingTransport",
    "SentPayload",
]
