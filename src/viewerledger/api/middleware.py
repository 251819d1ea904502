"""Request correlation for the user service."""

import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

REQUEST_ID_HEADER = "X-Request-Id"


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Tag every log line of a request with its id and echo the id back.

    The id is taken from the caller's ``X-Request-Id`` header or generated.
    It is bound to the structlog context only while the request is handled.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        with structlog.contextvars.bound_contextvars(request_id=request_id, path=request.url.path):
            response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
