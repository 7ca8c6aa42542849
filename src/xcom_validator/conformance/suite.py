"""Black-box conformance checks run through a signing ApiClient.

Each check returns the list of Finding records it produced; an empty list
means the implementation behaved as the contract requires.
"""
from __future__ import annotations

import random
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional

import httpx

from ..client import ApiClient
from ..errors import ErrorType, RequestPart
from ..schema.ambiguity import expected_variants
from ..schema.loader import OpenApiOperationDescriptor
from ..utils.logging import get_logger
from .faker import fake_object
from .properties import delete_deep_property, property_paths, to_pointer

log = get_logger("conformance")

INVALID_LIMITS = (-1, 0, 201)


@dataclass
class Finding:
    operation: str
    check: str
    detail: str
    request: Dict[str, Any] = field(default_factory=dict)
    status: Optional[int] = None
    response: Any = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _json(resp: httpx.Response) -> Any:
    try:
        return resp.json()
    except ValueError:
        return resp.text


def _expect_error(
    resp: httpx.Response,
    *,
    error_type: ErrorType,
    request_part: RequestPart,
    property_names: Optional[List[str]] = None,
) -> Optional[str]:
    """Returns a description of the mismatch, or None when the response is as expected."""
    if resp.status_code != 400:
        return f"expected status 400, got {resp.status_code}"
    body = _json(resp)
    if not isinstance(body, Mapping):
        return "error response is not a JSON object"
    if body.get("errorType") != error_type.value:
        return f"expected errorType {error_type.value!r}, got {body.get('errorType')!r}"
    if body.get("requestPart") != request_part.value:
        return f"expected requestPart {request_part.value!r}, got {body.get('requestPart')!r}"
    if property_names is not None and body.get("propertyName") not in property_names:
        return f"expected propertyName in {property_names}, got {body.get('propertyName')!r}"
    return None


def check_pagination_params(
    client: ApiClient,
    operations: Iterable[OpenApiOperationDescriptor],
    seed: Optional[int] = None,
) -> List[Finding]:
    rng = random.Random(seed)
    findings: List[Finding] = []
    for op in operations:
        if not op.is_paginated:
            continue
        name = f"{op.method} {op.url}"
        path = op.format_url(fake_object(op.params, rng))
        for limit in INVALID_LIMITS:
            query = {"limit": limit}
            resp = client.send(op.method, path, query=query)
            problem = _expect_error(
                resp,
                error_type=ErrorType.SCHEMA_PROPERTY_ERROR,
                request_part=RequestPart.QUERYSTRING,
                property_names=["/limit"],
            )
            if problem:
                findings.append(Finding(name, "pagination.limit", problem, {"path": path, "query": query}, resp.status_code, _json(resp)))
        query = {"startingAfter": "a", "endingBefore": "b"}
        resp = client.send(op.method, path, query=query)
        problem = _expect_error(resp, error_type=ErrorType.SCHEMA_ERROR, request_part=RequestPart.QUERYSTRING)
        if problem:
            findings.append(Finding(name, "pagination.cursors", problem, {"path": path, "query": query}, resp.status_code, _json(resp)))
    log.info(f"pagination checks finished with {len(findings)} finding(s)")
    return findings


def check_missing_body_properties(
    client: ApiClient,
    operations: Iterable[OpenApiOperationDescriptor],
    attempts: int = 3,
    seed: Optional[int] = None,
) -> List[Finding]:
    """Remove each property of a valid body in turn; every variant must be rejected naming that property.

    Properties inside a union may be reported as any member of their
    equivalence set (see schema.ambiguity).
    """
    rng = random.Random(seed)
    findings: List[Finding] = []
    for op in operations:
        if op.method != "POST" or not op.body:
            continue
        name = f"{op.method} {op.url}"
        for _ in range(attempts):
            path = op.format_url(fake_object(op.params, rng))
            good = fake_object(op.body, rng)
            for prop in property_paths(good):
                body = delete_deep_property(good, prop)
                pointer = to_pointer(prop)
                expected = expected_variants(op.url, pointer, op.body)
                resp = client.send(op.method, path, body=body)
                problem = _expect_error(
                    resp,
                    error_type=ErrorType.SCHEMA_PROPERTY_ERROR,
                    request_part=RequestPart.BODY,
                    property_names=expected,
                )
                if problem:
                    findings.append(
                        Finding(name, "body.missing_property", f"{pointer}: {problem}", {"path": path, "body": body}, resp.status_code, _json(resp))
                    )
    log.info(f"body checks finished with {len(findings)} finding(s)")
    return findings


def run_all(client: ApiClient, operations: Iterable[OpenApiOperationDescriptor], attempts: int = 3, seed: Optional[int] = None) -> List[Finding]:
    ops = list(operations)
    return check_pagination_params(client, ops, seed=seed) + check_missing_body_properties(client, ops, attempts, seed)
