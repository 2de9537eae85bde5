"""Request-scoped middleware for API requests."""

from uuid import uuid4

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from api.base import reset_request_id, set_request_id
from utils.actor_context import SYSTEM_ACTOR, actor_context

REQUEST_ID_HEADER = "X-Request-ID"
ACTOR_HEADER = "X-Admin-User"
MAX_HEADER_VALUE_LENGTH = 128


def _header(request: Request, name: str) -> str | None:
    value = (request.headers.get(name) or "").strip()
    if not value or len(value) > MAX_HEADER_VALUE_LENGTH:
        return None
    return value


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Assigns a request ID to every request and binds the acting admin.

    An inbound X-Request-ID is kept so traces line up with the caller's. The
    admin named in X-Admin-User (set by the authenticating proxy) becomes the
    actor on audit entries; requests without one are attributed to "system".
    """

    async def dispatch(self, request: Request, call_next):
        request_id = _header(request, REQUEST_ID_HEADER) or str(uuid4())
        request.state.request_id = request_id

        token = set_request_id(request_id)
        try:
            with actor_context(_header(request, ACTOR_HEADER) or SYSTEM_ACTOR):
                response = await call_next(request)
        finally:
            reset_request_id(token)

        response.headers[REQUEST_ID_HEADER] = request_id
        return response
