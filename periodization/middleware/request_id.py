import uuid
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from periodization.core.logging import add_log_context, clear_log_context


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Attach a request ID to the request, the log context and the response."""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID")

        if not request_id:
            request_id = str(uuid.uuid4())

        request.state.request_id = request_id
        clear_log_context()
        add_log_context(request_id=request_id)

        response: Response = await call_next(request)
        response.headers["X-Request-ID"] = request_id

        return response
