"""Failure kinds raised by the request pipeline and by business collaborators.

Each error carries everything the HTTP mapper needs (status, errorType,
requestPart, propertyName). Signature engine errors live in
crypto.alg_registry and are translated by the auth pipeline.
"""
from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional


class ErrorType(str, Enum):
    SCHEMA_ERROR = "schema-error"
    SCHEMA_PROPERTY_ERROR = "schema-property-error"
    NOT_FOUND = "not-found"
    INTERNAL_ERROR = "internal-error"
    UNAUTHORIZED = "unauthorized"
    # business values, passed through from controllers
    UNKNOWN_ASSET = "unknown-asset"
    UNSUPPORTED_CONVERSION = "unsupported-conversion"
    QUOTE_NOT_READY = "quote-not-ready"
    IDEMPOTENCY_KEY_REUSE = "idempotency-key-reuse"
    ORDER_NOT_TRADING = "order-not-trading"
    INSUFFICIENT_FUNDS = "insufficient-funds"


class RequestPart(str, Enum):
    HEADERS = "headers"
    PATH = "path"
    QUERYSTRING = "querystring"
    BODY = "body"


class XComError(Exception):
    status_code: int = 500
    error_type: ErrorType = ErrorType.INTERNAL_ERROR

    def __init__(
        self,
        message: str,
        *,
        request_part: Optional[RequestPart] = None,
        property_name: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.request_part = request_part
        self.property_name = property_name

    def to_wire(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"message": self.message, "errorType": self.error_type.value}
        if self.request_part is not None:
            body["requestPart"] = self.request_part.value
        if self.property_name is not None:
            body["propertyName"] = self.property_name
        return body


# --- authentication (401) -------------------------------------------------

class AuthenticationError(XComError):
    status_code = 401
    error_type = ErrorType.UNAUTHORIZED
    header: str = ""
    reason: str = "unauthorized"

    def __init__(self, message: str):
        super().__init__(message, request_part=RequestPart.HEADERS, property_name=f"/{self.header}")


class MissingApiKey(AuthenticationError):
    header = "x-fbapi-key"
    reason = "missing_api_key"


class StaleOrInvalidTimestamp(AuthenticationError):
    header = "x-fbapi-timestamp"
    reason = "bad_timestamp"


class MissingNonce(AuthenticationError):
    header = "x-fbapi-nonce"
    reason = "missing_nonce"


class NonceReplay(AuthenticationError):
    header = "x-fbapi-nonce"
    reason = "nonce_replay"


class SignatureRejected(AuthenticationError):
    """Covers unsupported algorithms, bad signatures and unknown API keys alike."""

    header = "x-fbapi-signature"
    reason = "bad_signature"


# --- request shape (400) --------------------------------------------------

class BadRequest(XComError):
    status_code = 400


class SchemaViolation(BadRequest):
    def __init__(
        self,
        message: str,
        *,
        request_part: RequestPart,
        property_path: Optional[str] = None,
        keyword: Optional[str] = None,
    ):
        super().__init__(message, request_part=request_part, property_name=property_path or None)
        self.keyword = keyword

    @property
    def error_type(self) -> ErrorType:  # type: ignore[override]
        return ErrorType.SCHEMA_PROPERTY_ERROR if self.property_name else ErrorType.SCHEMA_ERROR


class ContentTypeError(BadRequest):
    error_type = ErrorType.SCHEMA_ERROR

    def __init__(self, content_type: Optional[str]):
        super().__init__(f"Wrong content type: {content_type}", request_part=RequestPart.HEADERS)


class PaginationRangeError(BadRequest):
    error_type = ErrorType.SCHEMA_PROPERTY_ERROR

    def __init__(self, message: str):
        super().__init__(message, request_part=RequestPart.QUERYSTRING, property_name="/limit")


class PaginationExclusivityError(BadRequest):
    error_type = ErrorType.SCHEMA_ERROR

    def __init__(self):
        super().__init__(
            "startingAfter and endingBefore cannot be used together",
            request_part=RequestPart.QUERYSTRING,
        )


# --- business collaborators -----------------------------------------------

class NotFoundError(XComError):
    status_code = 404
    error_type = ErrorType.NOT_FOUND

    def __init__(self, message: str = "Entity not found"):
        super().__init__(message)


class BusinessRuleViolation(BadRequest):
    def __init__(
        self,
        message: str,
        error_type: ErrorType,
        *,
        request_part: Optional[RequestPart] = None,
        property_name: Optional[str] = None,
    ):
        super().__init__(message, request_part=request_part, property_name=property_name)
        self.error_type = error_type


# --- server-side defects (500, never leaked) ------------------------------

class ServerDefect(XComError):
    status_code = 500
    error_type = ErrorType.INTERNAL_ERROR


class SchemaCompilationError(ServerDefect):
    def __init__(self, detail: str, method: str, url: str, part: str):
        super().__init__(f"Failed compiling {part} schema for {method} {url}: {detail}")
        self.method = method
        self.url = url
        self.part = part


class ResponseSchemaViolation(ServerDefect):
    def __init__(self, method: str, url: str, status: int, data: Any, detail: str):
        super().__init__(f"Response for {method} {url} ({status}) does not match its schema: {detail}")
        self.method = method
        self.url = url
        self.status = status
        self.data = data
        self.detail = detail
