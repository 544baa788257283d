"""HTTP middleware for the Civiclean API.

Request flow, outermost first: CORS -> request id -> rate limit -> routes.
Engine errors raised inside the routes are rendered by the handlers from
``error_handler``.
"""

from fastapi import FastAPI

from civiclean.config import Settings
from civiclean.middleware.cors import setup_cors
from civiclean.middleware.error_handler import setup_error_handlers
from civiclean.middleware.logging import setup_logging
from civiclean.middleware.rate_limit import RateLimitMiddleware
from civiclean.middleware.request_id import RequestIdMiddleware


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Configure logging, error handlers and the middleware stack.

    Starlette runs the last-added middleware outermost. The request id is
    bound before rate limiting so rejected (429) requests are logged with it,
    and CORS wraps everything so browsers can read those responses.
    """
    setup_logging(settings)
    setup_error_handlers(app)
    app.add_middleware(
        RateLimitMiddleware,
        requests_per_window=settings.rate_limit_requests,
        window_seconds=settings.rate_limit_window_seconds,
    )
    app.add_middleware(RequestIdMiddleware)
    setup_cors(app, settings)
