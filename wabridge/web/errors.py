"""
Gateway Errors - One JSON Shape for Every Failure
==================================================

Route handlers raise; the handlers registered here turn each exception into
a response exactly once:

    ValidationError       400   missing fields, malformed body
    PayloadTooLargeError  413   body over the configured limit
    SendError             500   the messaging provider failed
    anything else         500   "Internal server error"

Every body is {"success": false, "message": ..., "error": ...}. Stack traces
go to the log, never to the caller.
"""

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


def error_body(message: str, error: str) -> dict:
    return {"success": False, "message": message, "error": error}


class GatewayError(Exception):
    """Base exception for errors reported to the HTTP caller."""

    status_code = 500

    def __init__(self, message: str, error: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.error = error if error is not None else message

    def to_dict(self) -> dict:
        return error_body(self.message, self.error)


class ValidationError(GatewayError):
    status_code = 400


class PayloadTooLargeError(GatewayError):
    status_code = 413


class SendError(GatewayError):
    status_code = 500


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(GatewayError)
    async def gateway_error_handler(request: Request, exc: GatewayError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error(f"{exc.message}: {exc.error}")
        else:
            logger.info(f"Rejected {request.method} {request.url.path}: {exc.error}")
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error(f"Unhandled error on {request.method} {request.url.path}", exc_info=exc)
        return JSONResponse(
            status_code=500,
            content=error_body("Internal server error", str(exc)),
        )
