"""Gateway forwarder to the Ollama server.

Relays any request under the gateway prefix to the backend origin and streams
the response back unmodified. Exists so the browser only ever talks to its own
origin.

Both bodies are streamed, never buffered: the inbound ASGI body is handed to
httpx as request content while the upstream response is relayed chunk by
chunk. This half-duplex streaming needs an ASGI server that delivers the
request body incrementally (uvicorn does) and an HTTP client that accepts an
async iterator as request content (httpx does). No retries happen here; an
unreachable backend becomes a 502 response for the caller to handle.
"""

import logging

import httpx
from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse, StreamingResponse
from starlette.background import BackgroundTask

logger = logging.getLogger(__name__)

FORWARDED_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD"]

# Hop-by-hop headers, plus those httpx must compute itself
_EXCLUDED_REQUEST_HEADERS = frozenset(
    {
        "host",
        "connection",
        "keep-alive",
        "proxy-authenticate",
        "proxy-authorization",
        "proxy-connection",
        "te",
        "trailer",
        "transfer-encoding",
        "upgrade",
        "accept-encoding",
    }
)

DEFAULT_CONTENT_TYPE = "application/json"


def _forward_headers(request: Request) -> dict[str, str]:
    """Select inbound headers to pass upstream.

    Accept-Encoding is forced to identity so the backend answers
    uncompressed and the raw bytes can be relayed as-is.
    """
    headers = {
        key: value
        for key, value in request.headers.items()
        if key.lower() not in _EXCLUDED_REQUEST_HEADERS
    }
    if "content-type" not in request.headers:
        headers["content-type"] = DEFAULT_CONTENT_TYPE
    # Overrides the client default, which would let the backend compress
    headers["accept-encoding"] = "identity"
    return headers


def _has_body(request: Request) -> bool:
    """Whether the inbound request declares a body."""
    if "transfer-encoding" in request.headers:
        return True
    content_length = request.headers.get("content-length")
    return content_length is not None and content_length != "0"


def _error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def create_gateway_router(prefix: str) -> APIRouter:
    """Create the forwarding router.

    Args:
        prefix: Path prefix to serve and strip (e.g. "/api/ollama").

    Returns:
        Router forwarding every request under the prefix.
    """
    router = APIRouter(prefix=prefix, tags=["gateway"])

    route_options = {
        "methods": FORWARDED_METHODS,
        "response_model": None,
        "include_in_schema": False,
    }

    # The bare prefix maps to the backend root
    @router.api_route("", **route_options)
    @router.api_route("/{path:path}", **route_options)
    async def forward(request: Request) -> StreamingResponse | JSONResponse:
        """Forward a request to the backend and stream its response back.

        Args:
            request: Inbound request; its body is streamed, not read. The
                path below the gateway prefix is taken from its path params.

        Returns:
            The backend's status, content type and body.

        Raises:
            502: Backend unreachable.
            504: Backend timed out before responding.
        """
        path = request.path_params.get("path", "")
        client: httpx.AsyncClient = request.app.state.upstream
        upstream_request = client.build_request(
            request.method,
            f"/{path}",
            params=str(request.query_params) or None,
            headers=_forward_headers(request),
            content=request.stream() if _has_body(request) else None,
        )
        logger.debug(f"Forwarding {request.method} /{path}")

        try:
            upstream = await client.send(upstream_request, stream=True)
        except httpx.TimeoutException as e:
            logger.warning(f"Backend timed out for {request.method} /{path}: {e!r}")
            return _error_response(
                status.HTTP_504_GATEWAY_TIMEOUT, "Timed out waiting for the model server"
            )
        except httpx.RequestError as e:
            logger.warning(f"Backend unreachable for {request.method} /{path}: {e!r}")
            return _error_response(
                status.HTTP_502_BAD_GATEWAY, "Could not reach the model server"
            )

        return StreamingResponse(
            upstream.aiter_raw(),
            status_code=upstream.status_code,
            media_type=upstream.headers.get("content-type", DEFAULT_CONTENT_TYPE),
            background=BackgroundTask(upstream.aclose),
        )

    return router
