"""
Exception handlers for the FastAPI application.

ChallengeError subclasses carry their own code and status and render as
``{"error": {"code", "message", "details"}}``. Pydantic errors raised
inside handlers use the same envelope. Anything else is logged with its
traceback and answered with a plain-text 500.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import ValidationError as PydanticValidationError

from ..exceptions import ChallengeError, ValidationError

logger = logging.getLogger(__name__)

INTERNAL_ERROR_TEXT = "Something went wrong. Please try again."


async def handle_challenge_error(request: Request, exc: ChallengeError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} -> {exc.status_code}: {exc!r} {exc.details}")
    return JSONResponse(exc.to_dict(), status_code=exc.status_code)


async def handle_model_validation_error(request: Request, exc: PydanticValidationError) -> JSONResponse:
    """Model validation failing inside a route, e.g. while building a response."""
    problems = [
        {"field": ".".join(map(str, err["loc"])), "message": err["msg"], "type": err["type"]}
        for err in exc.errors()
    ]
    error = ValidationError("Request validation failed", details={"errors": problems})
    return JSONResponse(error.to_dict(), status_code=422)


async def handle_unexpected_error(request: Request, exc: Exception) -> PlainTextResponse:
    logger.exception(f"Unhandled {type(exc).__name__} on {request.method} {request.url.path}")
    return PlainTextResponse(INTERNAL_ERROR_TEXT, status_code=500)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ChallengeError, handle_challenge_error)
    app.add_exception_handler(PydanticValidationError, handle_model_validation_error)
    # Catch-all; Starlette routes bare Exception to ServerErrorMiddleware
    app.add_exception_handler(Exception, handle_unexpected_error)
