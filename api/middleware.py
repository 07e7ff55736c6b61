"""Request-scoped middleware for API requests."""

import logging
from uuid import UUID, uuid4

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from utils.user_context import set_current_actor_id, clear_current_actor_id

logger = logging.getLogger(__name__)

STAFF_ID_HEADER = "X-Staff-Id"


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Assigns a unique request ID to every request."""

    async def dispatch(self, request: Request, call_next):
        request_id = str(uuid4())
        request.state.request_id = request_id
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response


class ActorContextMiddleware(BaseHTTPMiddleware):
    """
    Attributes the request's writes to the staff member named in X-Staff-Id.

    The header is set by the front-desk gateway after it authenticates
    staff. Requests without it (customer self-checkout) run unattributed.
    """

    async def dispatch(self, request: Request, call_next):
        raw = request.headers.get(STAFF_ID_HEADER)
        actor_id = None

        if raw:
            try:
                actor_id = UUID(raw)
            except ValueError:
                logger.warning(f"Ignoring malformed {STAFF_ID_HEADER} header: {raw!r}")

        request.state.actor_id = actor_id
        if actor_id is not None:
            set_current_actor_id(actor_id)

        try:
            return await call_next(request)
        finally:
            clear_current_actor_id()
