"""
Envelope errors

Every failure leaves the API as ``{"success": false, "message"|"error": ...}``.
Handlers raise ``HTTPException`` with the envelope as ``detail``; the
handlers installed here render it verbatim.
"""

import logging
from typing import NoReturn, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


def fail(status_code: int, message: Optional[str] = None, error: Optional[str] = None) -> NoReturn:
    detail = {"success": False}
    if message is not None:
        detail["message"] = message
    if error is not None:
        detail["error"] = error
    raise HTTPException(status_code=status_code, detail=detail)


def server_error(message: str, exc: Exception) -> NoReturn:
    logger.exception("%s: %s", message, exc)
    fail(500, message=message, error=str(exc))


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    if isinstance(exc.detail, dict):
        body = exc.detail
    else:
        body = {"success": False, "message": exc.detail}
    return JSONResponse(status_code=exc.status_code, content=body, headers=getattr(exc, "headers", None))


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    fields = [".".join(str(p) for p in err["loc"] if p != "body") or "body" for err in exc.errors()]
    return JSONResponse(
        status_code=400,
        content={"success": False, "message": "Invalid request", "error": "Invalid field(s): " + ", ".join(fields)},
    )


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"success": False, "message": "Internal server error", "error": str(exc)})


def install_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
