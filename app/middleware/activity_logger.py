# app/middleware/activity_logger.py
import logging

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)

MUTATING_METHODS = ("POST", "PUT", "PATCH", "DELETE")


class ActivityLoggerMiddleware(BaseHTTPMiddleware):
    """
    Logs every state-changing request of an authenticated user with its outcome.

    The readable audit trail (``UserActivity``) is written by the services in
    the same transaction as the change; this only feeds the application log.
    """

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)

        if request.method not in MUTATING_METHODS:
            return response

        # plain values set by get_current_user
        user_id = getattr(request.state, "user_id", None)
        if user_id is None:
            return response

        username = getattr(request.state, "username", None)
        level = logging.INFO if response.status_code < 400 else logging.WARNING
        logger.log(
            level,
            "%s (ID: %s) %s %s -> %s",
            username, user_id, request.method, request.url.path, response.status_code,
        )
        return response
