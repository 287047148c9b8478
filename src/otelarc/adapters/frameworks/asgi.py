"""ASGI generic adapter for OTLP/HTTP ingestion.

This adapter provides a framework-agnostic ASGI application that can be used
with any ASGI server (uvicorn, hypercorn, daphne) without requiring FastAPI
as a dependency.
"""

from collections.abc import Callable, Coroutine
from typing import Any

from otelarc.adapters.frameworks.otlp_routes import ROUTES, handle_export
from otelarc.exporter import ArcExporter

# ASGI type aliases
Scope = dict[str, Any]
Receive = Callable[[], Coroutine[Any, Any, dict[str, Any]]]
Send = Callable[[dict[str, Any]], Coroutine[Any, Any, None]]
ASGIApp = Callable[[Scope, Receive, Send], Coroutine[Any, Any, None]]


def _header(scope: Scope, name: str) -> str | None:
    """Return a request header value from ASGI scope (case-insensitive)."""
    name_bytes = name.lower().encode()
    headers: list[tuple[bytes, bytes]] = scope.get("headers", [])
    for key, value in headers:
        if key.lower() == name_bytes:
            return value.decode("latin-1")
    return None


async def _read_body(receive: Receive) -> bytes:
    """Collect the full request body from ``http.request`` messages."""
    chunks: list[bytes] = []
    while True:
        message = await receive()
        if message["type"] == "http.disconnect":
            break
        chunks.append(message.get("body", b""))
        if not message.get("more_body", False):
            break
    return b"".join(chunks)


async def _send_response(
    send: Send,
    status: int,
    content_type: str,
    body: bytes,
    extra_headers: list[tuple[bytes, bytes]] | None = None,
) -> None:
    """Send an HTTP response with headers and body.

    Args:
        send: ASGI send callable for writing response.
        status: HTTP status code.
        content_type: Content-Type header value.
        body: Response body bytes.
        extra_headers: Headers sent after Content-Type.
    """
    headers = [(b"content-type", content_type.encode()), *(extra_headers or [])]
    await send({"type": "http.response.start", "status": status, "headers": headers})
    await send({"type": "http.response.body", "body": body})


def create_otlp_asgi_app(exporter: ArcExporter) -> ASGIApp:
    """Create an ASGI app with /v1/traces, /v1/metrics and /v1/logs endpoints.

    Each endpoint accepts an OTLP/HTTP protobuf export request via POST and
    pushes it through ``exporter``.

    Args:
        exporter: Exporter that receives the decoded requests.

    Returns:
        ASGI application callable.
    """

    async def app(scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            return

        path = scope["path"]
        if path not in ROUTES:
            await _send_response(send, 404, "text/plain", b"Not Found")
            return
        if scope["method"] != "POST":
            await _send_response(
                send, 405, "text/plain", b"Method Not Allowed", [(b"allow", b"POST")]
            )
            return

        body = await _read_body(receive)
        response = await handle_export(
            exporter, path, body, _header(scope, "content-type")
        )
        await _send_response(
            send, response.status, response.content_type, response.body
        )

    return app
