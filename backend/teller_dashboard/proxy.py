"""Catch-all reverse proxy for /api/* paths this service does not handle itself.

Must be included after every local /api router so local routes win.
"""

from __future__ import annotations

import logging

import httpx
from fastapi import APIRouter, Request, Response

from .config import settings
from .errors import UpstreamProxyError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["proxy"])

HOP_BY_HOP_HEADERS = {
    "connection",
    "keep-alive",
    "proxy-authenticate",
    "proxy-authorization",
    "te",
    "trailers",
    "transfer-encoding",
    "upgrade",
    "host",
    "content-length",
}

# httpx already decoded the body, so the upstream encoding no longer applies.
DROP_RESPONSE_HEADERS = HOP_BY_HOP_HEADERS | {"content-encoding"}


def get_http_client(request: Request) -> httpx.AsyncClient:
    return request.app.state.http_client


def _forward_headers(request: Request) -> dict[str, str]:
    return {k: v for k, v in request.headers.items() if k.lower() not in HOP_BY_HOP_HEADERS}


@router.api_route(
    "/api/{path:path}",
    methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS", "HEAD"],
    include_in_schema=False,
)
async def proxy_api(path: str, request: Request) -> Response:
    client = get_http_client(request)
    url = f"{settings.backend_url}/api/{path}"
    logger.info("%s %s -> %s", request.method, request.url.path, url)

    try:
        upstream = await client.request(
            request.method,
            url,
            params=request.query_params.multi_items(),
            headers=_forward_headers(request),
            content=await request.body(),
        )
    except httpx.HTTPError as exc:
        logger.error("Proxy error: %s", exc)
        raise UpstreamProxyError(str(exc) or type(exc).__name__) from exc

    headers = {k: v for k, v in upstream.headers.items() if k.lower() not in DROP_RESPONSE_HEADERS}
    return Response(content=upstream.content, status_code=upstream.status_code, headers=headers)
