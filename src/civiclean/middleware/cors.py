"""CORS for the cleanup map web client."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from civiclean.config import Settings


def setup_cors(app: FastAPI, settings: Settings) -> None:
    """Allow the configured client origins to call the ticket, mission and photo APIs.

    Photo uploads send raw image bodies, so any request header is allowed;
    rate-limit headers and Retry-After are exposed so clients can back off.
    """
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=["X-Request-Id", "X-RateLimit-Remaining", "X-RateLimit-Limit", "Retry-After"],
    )
