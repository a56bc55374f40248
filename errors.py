"""
Error envelope for the API.

Handlers raise ``HTTPException`` with the status that matches the failure:
400 validation, 401 bad token, 403 role, 404 missing entity, 409 duplicate.
Everything else becomes a 500 carrying the raw cause for operators.
"""
import logging
from contextlib import contextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


def server_error(message: str, exc: BaseException) -> HTTPException:
    return HTTPException(500, {"message": message, "error": str(exc)})


@contextmanager
def server_errors(message: str):
    """Translate unexpected exceptions raised inside the block into a 500."""
    try:
        yield
    except HTTPException:
        raise
    except Exception as exc:
        logger.exception(message)
        raise server_error(message, exc) from exc


def error_body(detail) -> dict:
    body = {"success": False}
    if isinstance(detail, dict):
        body.update(detail)
    else:
        body["message"] = detail
    return body


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content=error_body(exc.detail), headers=getattr(exc, "headers", None))


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    message = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
    return JSONResponse(status_code=400, content={"success": False, "message": message})


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
