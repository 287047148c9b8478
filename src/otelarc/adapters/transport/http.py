"""httpx transport for the columnar write endpoint."""

import logging
from types import TracebackType

import httpx

from otelarc.core.config import ExporterConfig
from otelarc.core.encoding.msgpack import CONTENT_ENCODING, CONTENT_TYPE
from otelarc.core.errors import RetryableTransportError, TerminalTransportError

logger = logging.getLogger(__name__)

WRITE_PATH = "/api/v1/write/msgpack"
DATABASE_HEADER = "X-Arc-Database"

# Error bodies are attached to exceptions; keep them short.
_MAX_ERROR_BODY = 512


def _is_retryable_status(status_code: int) -> bool:
    return status_code == 429 or 500 <= status_code < 600


class HttpTransport:
    """Sends payloads with ``POST {endpoint}/api/v1/write/msgpack``.

    Any 2xx response is success. 429 and 5xx responses, timeouts and
    connection errors raise RetryableTransportError; every other status
    raises TerminalTransportError.

    Cancelling the awaiting task aborts the in-flight request.
    """

    def __init__(
        self,
        endpoint: str,
        auth_token: str | None = None,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the transport.

        Args:
            endpoint: Base URL of the backend.
            auth_token: Optional bearer token.
            timeout: Request timeout in seconds.
            client: Pre-built client (tests inject one with a MockTransport).
                A client passed in is not closed by ``aclose``.
        """
        self._url = endpoint.rstrip("/") + WRITE_PATH
        self._headers = {
            "Content-Type": CONTENT_TYPE,
            "Content-Encoding": CONTENT_ENCODING,
        }
        if auth_token:
            self._headers["Authorization"] = f"Bearer {auth_token}"
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._timeout = timeout

    @classmethod
    def from_config(cls, config: ExporterConfig) -> "HttpTransport":
        return cls(config.endpoint, config.auth_token, config.timeout)

    async def send(self, payload: bytes, *, database: str, measurement: str) -> None:
        headers = {**self._headers, DATABASE_HEADER: database}
        try:
            response = await self._client.post(
                self._url, content=payload, headers=headers, timeout=self._timeout
            )
        except httpx.TimeoutException as e:
            raise RetryableTransportError(
                f"Request for '{measurement}' timed out: {e}"
            ) from e
        except httpx.TransportError as e:
            raise RetryableTransportError(
                f"Request for '{measurement}' failed: {e}"
            ) from e

        if response.is_success:
            logger.debug(
                "Sent batch %s to database %s (status=%d, payload_size=%d)",
                measurement,
                database,
                response.status_code,
                len(payload),
            )
            return

        body = response.text[:_MAX_ERROR_BODY]
        message = (
            f"Backend returned status {response.status_code} "
            f"for '{measurement}': {body}"
        )
        if _is_retryable_status(response.status_code):
            raise RetryableTransportError(message, status_code=response.status_code)
        raise TerminalTransportError(message, status_code=response.status_code)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "HttpTransport":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()
