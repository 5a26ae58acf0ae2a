"""Middleware registration."""

from fastapi import FastAPI

from linguacred.config import Settings
from linguacred.middleware.error_handler import setup_error_handlers
from linguacred.middleware.logging import setup_logging
from linguacred.middleware.request_id import RequestIdMiddleware


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Configure logging, error handlers and the request-id middleware."""
    setup_logging(settings)
    setup_error_handlers(app)
    app.add_middleware(RequestIdMiddleware)
