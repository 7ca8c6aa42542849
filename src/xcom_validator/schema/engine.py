"""Per-operation schema compilation and request/response validation.

Validators are compiled once at start-up and only read afterwards, so one
engine can be shared by all worker threads.

Only the first violation is reported. The property path of a violation is
the instance path, plus "/<name>" for a missing required property; when the
failing keyword is a oneOf/anyOf the first error of the first failing branch
is reported, which is why a property of a sibling branch may be named (see
schema.ambiguity).
"""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple

from jsonschema import Draft7Validator, FormatChecker
from jsonschema.exceptions import SchemaError, ValidationError

from ..errors import (
    ContentTypeError,
    RequestPart,
    ResponseSchemaViolation,
    SchemaCompilationError,
    SchemaViolation,
)
from ..utils.logging import get_logger
from ..utils.numbers import parse_int
from .loader import OpenApiContract, OpenApiOperationDescriptor, normalize_url

log = get_logger("schema")

# Request parts in validation order, with the descriptor attribute holding each schema
REQUEST_PARTS: Tuple[Tuple[RequestPart, str], ...] = (
    (RequestPart.HEADERS, "headers"),
    (RequestPart.PATH, "params"),
    (RequestPart.QUERYSTRING, "querystring"),
    (RequestPart.BODY, "body"),
)


@dataclass(frozen=True)
class CompiledOperation:
    descriptor: OpenApiOperationDescriptor
    request: Mapping[RequestPart, Draft7Validator] = field(default_factory=dict)
    responses: Mapping[int, Draft7Validator] = field(default_factory=dict)

    @property
    def method(self) -> str:
        return self.descriptor.method

    @property
    def url(self) -> str:
        return self.descriptor.url


@dataclass(frozen=True)
class ValidatedRequest:
    headers: Dict[str, Any]
    params: Dict[str, Any]
    query: Dict[str, Any]
    body: Any = None


def _compile(schema: Mapping[str, Any], method: str, url: str, part: str) -> Draft7Validator:
    try:
        Draft7Validator.check_schema(schema)
    except SchemaError as e:
        raise SchemaCompilationError(e.message, method, url, part) from e
    return Draft7Validator(schema, format_checker=FormatChecker())


def json_pointer(path: Iterable[Any]) -> str:
    parts = [str(p).replace("~", "~0").replace("/", "~1") for p in path]
    return "".join(f"/{p}" for p in parts)


def _branch_index(error: ValidationError) -> int:
    path = error.relative_schema_path
    return path[0] if path and isinstance(path[0], int) else 0


def first_error(validator: Draft7Validator, instance: Any) -> Optional[ValidationError]:
    error = next(iter(validator.iter_errors(instance)), None)
    # descend into unions: first error of the first branch, recursively
    while error is not None and error.context:
        error = min(error.context, key=_branch_index)
    return error


def violation_property(error: ValidationError) -> str:
    prop = json_pointer(error.absolute_path)
    if error.validator == "required" and isinstance(error.instance, Mapping):
        missing = next((n for n in error.validator_value if n not in error.instance), None)
        if missing is not None:
            prop += "/" + str(missing).replace("~", "~0").replace("/", "~1")
    return prop


def coerce_value(schema: Optional[Mapping[str, Any]], value: Any) -> Any:
    """Convert a string from headers/path/query to the scalar type the schema declares."""
    if not isinstance(value, str) or not schema:
        return value
    types = schema.get("type")
    if isinstance(types, str):
        types = [types]
    as_int = parse_int(value)
    for t in types or ():
        if t in ("integer", "number") and as_int is not None:
            return as_int
        if t == "number":
            try:
                return float(value)
            except ValueError:
                continue
        if t == "boolean" and value in ("true", "false"):
            return value == "true"
        if t == "string":
            return value
    return value


def coerce_parameters(schema: Optional[Mapping[str, Any]], values: Mapping[str, Any]) -> Dict[str, Any]:
    props = (schema or {}).get("properties", {})
    return {k: coerce_value(props.get(k), v) for k, v in values.items()}


class SchemaEngine:
    def __init__(self, operations: Iterable[OpenApiOperationDescriptor]):
        self._ops: Dict[Tuple[str, str], CompiledOperation] = {}
        for op in operations:
            compiled = self.compile_operation(op)
            self._ops[(op.method, normalize_url(op.url))] = compiled

    @classmethod
    def from_contract(cls, contract: OpenApiContract) -> "SchemaEngine":
        return cls(contract.all_operations())

    @staticmethod
    def compile_operation(op: OpenApiOperationDescriptor) -> CompiledOperation:
        request = {}
        for part, attr in REQUEST_PARTS:
            schema = getattr(op, attr)
            if schema is not None:
                request[part] = _compile(schema, op.method, op.url, part.value)
        responses = {
            status: _compile(schema, op.method, op.url, f"response {status}")
            for status, schema in op.responses.items()
            if schema is not None
        }
        return CompiledOperation(descriptor=op, request=request, responses=responses)

    def operation(self, method: str, url: str) -> Optional[CompiledOperation]:
        return self._ops.get((method.upper(), normalize_url(url)))

    def operations(self) -> Iterable[CompiledOperation]:
        return self._ops.values()

    def _check(self, op: CompiledOperation, part: RequestPart, instance: Any) -> None:
        validator = op.request.get(part)
        if validator is None:
            return
        error = first_error(validator, instance)
        if error is None:
            return
        raise SchemaViolation(
            f"Request schema validation error: {error.message}",
            request_part=part,
            property_path=violation_property(error),
            keyword=str(error.validator),
        )

    def parse_body(self, op: CompiledOperation, content_type: Optional[str], raw_body: bytes) -> Any:
        if op.descriptor.body is None:
            # operations without a body schema ignore whatever was sent
            return None
        if not raw_body:
            return None
        media_type = (content_type or "").split(";", 1)[0].strip().lower()
        if media_type != "application/json":
            raise ContentTypeError(content_type)
        try:
            return json.loads(raw_body)
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise SchemaViolation(f"Body is not valid JSON: {e}", request_part=RequestPart.BODY, keyword="json") from e

    def validate_request(
        self,
        op: CompiledOperation,
        *,
        headers: Mapping[str, str],
        path_params: Mapping[str, str],
        query: Mapping[str, str],
        content_type: Optional[str] = None,
        raw_body: bytes = b"",
    ) -> ValidatedRequest:
        d = op.descriptor
        hdrs = coerce_parameters(d.headers, {k.lower(): v for k, v in headers.items()})
        self._check(op, RequestPart.HEADERS, hdrs)
        params = coerce_parameters(d.params, path_params)
        self._check(op, RequestPart.PATH, params)
        qs = coerce_parameters(d.querystring, query)
        self._check(op, RequestPart.QUERYSTRING, qs)
        body = self.parse_body(op, content_type, raw_body)
        self._check(op, RequestPart.BODY, body)
        return ValidatedRequest(headers=hdrs, params=params, query=qs, body=body)

    def validate_response(self, op: CompiledOperation, status: int, payload: Any) -> None:
        validator = op.responses.get(status)
        if validator is None:
            return
        error = first_error(validator, payload)
        if error is None:
            return
        detail = f"{violation_property(error) or '/'}: {error.message}"
        raise ResponseSchemaViolation(op.method, op.url, status, payload, detail)
