from __future__ import annotations

from typing import Optional

from fastapi import Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ..errors import ErrorType, RequestPart, ResponseSchemaViolation, ServerDefect, XComError
from ..utils.logging import get_logger

log = get_logger("server.errors")

UNEXPECTED_ERROR_MESSAGE = "Unexpected server error"


class GeneralError(BaseModel):
    message: str
    errorType: ErrorType


class BadRequestError(GeneralError):
    requestPart: Optional[RequestPart] = None
    propertyName: Optional[str] = None


def _render(status: int, model: GeneralError) -> JSONResponse:
    return JSONResponse(model.model_dump(mode="json", exclude_none=True), status_code=status)


def _describe(request: Request) -> str:
    target = request.url.path
    if request.url.query:
        target += "?" + request.url.query
    return f"{request.method} {target}"


def error_response(exc: BaseException, request: Request) -> JSONResponse:
    """Map any exception raised while serving `request` to its wire response.

    Client errors (401/400/404) carry the exception's own message. Everything
    else is logged with the request context and answered with a generic 500 body.
    """
    if isinstance(exc, XComError) and not isinstance(exc, ServerDefect):
        wire = exc.to_wire()
        if exc.status_code == 404:
            return _render(404, GeneralError(message=wire["message"], errorType=wire["errorType"]))
        return _render(exc.status_code, BadRequestError(**wire))
    if isinstance(exc, ResponseSchemaViolation):
        log.error(
            f"response schema violation {_describe(request)}: {exc.detail} status={exc.status} data={exc.data!r}"
        )
    else:
        log.error(f"unexpected error {_describe(request)}: {type(exc).__name__}: {exc}", exc_info=exc)
    return _render(500, GeneralError(message=UNEXPECTED_ERROR_MESSAGE, errorType=ErrorType.INTERNAL_ERROR))


async def not_found_handler(request: Request, exc: Exception) -> JSONResponse:
    return _render(404, GeneralError(message="Entity not found", errorType=ErrorType.NOT_FOUND))
