"""Canonical request string shared by signer (client) and verifier (server).

canonical = X-FBAPI-TIMESTAMP + X-FBAPI-NONCE + METHOD + path?query + body

Plain concatenation in that order, no separators. The path and query are
taken exactly as transmitted and the body as raw bytes; neither is parsed
or re-serialized.
"""
from typing import Any, Mapping, Union

Body = Union[bytes, bytearray, str, None]


def build_canonical_request(timestamp: str, nonce: str, method: str, path_with_query: str, body: Body = b"") -> bytes:
    if body is None:
        raw = b""
    elif isinstance(body, str):
        raw = body.encode("utf-8")
    else:
        raw = bytes(body)
    head = f"{timestamp}{nonce}{method.upper()}{path_with_query}"
    return head.encode("utf-8") + raw


def request_target(scope: Mapping[str, Any]) -> str:
    """Path plus query string as it appeared on the request line of an ASGI request."""
    raw_path = scope.get("raw_path")
    if raw_path:
        path = raw_path.decode("latin-1")
        # some servers leave the query on raw_path
        if "?" in path:
            return path
    else:
        path = scope.get("path") or "/"
    query = scope.get("query_string") or b""
    if query:
        return f"{path}?{query.decode('latin-1')}"
    return path
