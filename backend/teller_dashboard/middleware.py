import secrets
import time

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

REQUEST_ID_HEADER = "x-request-id"


def new_request_id() -> str:
    return f"{int(time.time() * 1000):x}-{secrets.token_hex(3)}"


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Tag every request with an id for log correlation and echo it back."""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER) or new_request_id()
        request.state.request_id = request_id
        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
