"""CORS enforcement middleware."""
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from project_admin.config.cors import CorsDecision, CorsPolicy
from project_admin.utils.errors import CorsOriginError, app_error_handler, general_exception_handler
from project_admin.utils.logger import get_logger

logger = get_logger(__name__)


class CorsPolicyMiddleware(BaseHTTPMiddleware):
    """
    Deny gate in front of Starlette's `CORSMiddleware`.

    `CORSMiddleware` only omits headers for unknown origins on simple requests.
    Here a denied origin is turned into a `CorsOriginError` and rendered by the
    application error handler, so the request never reaches a route.

    Unexpected errors are rendered here too, inside the gate, so an allowed
    origin can still read the 500 envelope.
    """

    def __init__(self, app, policy: CorsPolicy):
        super().__init__(app)
        self.policy = policy

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        origin = request.headers.get("origin")

        if self.policy.evaluate(origin) is CorsDecision.DENY:
            logger.warning(
                "Origin rejected by CORS policy",
                origin=origin,
                path=request.url.path,
                method=request.method,
            )
            return await app_error_handler(request, CorsOriginError(origin))

        try:
            return await call_next(request)
        except Exception as exc:
            response = await general_exception_handler(request, exc)
            if origin:
                response.headers.update(self.policy.response_headers(origin))
            return response
