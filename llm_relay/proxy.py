"""
Upstream forwarding for the gateway.

The proxy is transparent: the inbound request is re-issued against the
upstream with the client's auth headers removed and the upstream key added,
and the upstream response body is streamed back untouched. Redirects are
returned to the caller rather than followed.
"""

import logging
import re
from typing import Iterable, List, Optional, Sequence, Tuple

import httpx
from fastapi import Request
from starlette.background import BackgroundTask
from starlette.responses import StreamingResponse

from .auth import SIGNATURE_HEADER, TIMESTAMP_HEADER
from .errors import ConfigurationError, TransportError

logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": (
        "Content-Type, api-key, Authorization, Accept, Accept-Language, "
        "X-Timestamp, X-Signature, X-Premium"
    ),
    "Access-Control-Allow-Methods": "GET,HEAD,POST,PUT,DELETE,OPTIONS",
}

API_VERSION_PARAM = "api-version"

# Connection-scoped headers that describe the upstream hop, not the payload
HOP_BY_HOP_HEADERS = {"connection", "keep-alive", "transfer-encoding", "upgrade"}

_AUTH_HEADERS = {TIMESTAMP_HEADER.lower(), SIGNATURE_HEADER.lower()}


def should_have_body(method: str) -> bool:
    return method.upper() not in ("GET", "HEAD")


def parse_upstream_url(url: str) -> httpx.URL:
    """
    Parse a configured upstream URL.

    Raises:
        ConfigurationError: The URL is empty or malformed
    """
    if not url:
        raise ConfigurationError("Upstream URL is not configured")
    try:
        return httpx.URL(url)
    except httpx.InvalidURL as exc:
        logger.error("ProxyRouter | malformed upstream URL: %s", exc)
        raise ConfigurationError("Upstream URL is malformed") from exc


def build_upstream_url(
    base_url: str,
    incoming_path: str,
    query: Sequence[Tuple[str, str]] = (),
    api_version: Optional[str] = None,
) -> httpx.URL:
    """
    Join the upstream base path with the inbound path.

    ``https://host/openai/deployments/`` + ``/gpt-4o/chat/completions`` gives
    ``https://host/openai/deployments/gpt-4o/chat/completions``. The inbound
    query string replaces the base one; ``api-version`` is added only when the
    caller did not send one.
    """
    base = parse_upstream_url(base_url)
    base_path = base.path.rstrip("/")
    tail = incoming_path.lstrip("/")
    combined = "/".join(part for part in (base_path, tail) if part)
    path = re.sub(r"/{2,}", "/", f"/{combined}")

    params: List[Tuple[str, str]] = list(query)
    if api_version and not any(key == API_VERSION_PARAM for key, _ in params):
        params.append((API_VERSION_PARAM, api_version))
    return base.copy_with(path=path, params=params or None)


def clone_headers(
    raw_headers: Iterable[Tuple[bytes, bytes]],
    edge_prefixes: Sequence[str],
    drop: Iterable[str] = (),
) -> List[Tuple[str, str]]:
    """Copy request headers, leaving out edge-network and auth headers."""
    dropped = _AUTH_HEADERS | {"host"} | {name.lower() for name in drop}
    cloned = []
    for raw_key, raw_value in raw_headers:
        key = raw_key.decode("latin-1")
        lowered = key.lower()
        if lowered in dropped or lowered.startswith(tuple(edge_prefixes)):
            continue
        cloned.append((key, raw_value.decode("latin-1")))
    return cloned


def apply_cors(headers) -> None:
    for key, value in CORS_HEADERS.items():
        headers[key] = value


async def forward(
    http_client: httpx.AsyncClient,
    request: Request,
    target: httpx.URL,
    api_key_header: str,
    api_key: str,
    edge_prefixes: Sequence[str],
) -> StreamingResponse:
    """
    Send the inbound request to ``target`` and stream the answer back.

    Raises:
        ConfigurationError: No upstream key is configured
        TransportError: The upstream could not be reached
    """
    if not api_key:
        raise ConfigurationError("Upstream API key is not configured")

    headers = clone_headers(request.headers.raw, edge_prefixes, drop=(api_key_header,))
    headers.append((api_key_header, api_key))
    headers.append(("host", target.netloc.decode("ascii")))

    upstream_request = http_client.build_request(
        method=request.method,
        url=target,
        headers=headers,
        content=request.stream() if should_have_body(request.method) else None,
    )

    try:
        upstream = await http_client.send(upstream_request, stream=True, follow_redirects=False)
    except httpx.RequestError as exc:
        logger.error("ProxyRouter | upstream unreachable host=%s error=%s", target.host, exc)
        raise TransportError(str(exc) or exc.__class__.__name__) from exc

    logger.info(
        "ProxyRouter | %s %s -> %s status=%d",
        request.method, request.url.path, target.host, upstream.status_code,
    )

    response = StreamingResponse(
        upstream.aiter_raw(),
        status_code=upstream.status_code,
        background=BackgroundTask(upstream.aclose),
    )
    for key, value in upstream.headers.multi_items():
        if key.lower() not in HOP_BY_HOP_HEADERS:
            response.headers.append(key, value)
    apply_cors(response.headers)
    return response
