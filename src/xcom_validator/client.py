"""Signing HTTP client for the exchange connectivity API.

Works against any implementation: pass `base_url` for a live server, or an
existing `httpx.Client` (for example a Starlette TestClient) as `http`.
"""
from __future__ import annotations

import json
import time
import uuid
from typing import Any, Dict, Mapping, Optional

import httpx

from .auth.canonical import build_canonical_request
from .auth.pipeline import API_KEY_HEADER, NONCE_HEADER, SIGNATURE_HEADER, TIMESTAMP_HEADER
from .crypto.alg_registry import SigningAlgorithmSpec
from .crypto.keyloader import KeyMaterial
from .crypto.signers import encode_signature, resolve_signer
from .schema.loader import OpenApiOperationDescriptor
from .utils.logging import get_logger

log = get_logger("client")


class ApiError(Exception):
    def __init__(self, status: int, body: Any):
        super().__init__(f"HTTP {status}: {body}")
        self.status = status
        self.body = body


class RequestSigner:
    def __init__(self, api_key: str, signing_key: KeyMaterial, spec: SigningAlgorithmSpec, encoding: str = "base64"):
        self.api_key = api_key
        self.signing_key = signing_key
        self.spec = spec
        self.encoding = encoding
        self._signer = resolve_signer(spec)

    def headers(
        self,
        method: str,
        target: str,
        body: bytes = b"",
        *,
        timestamp_ms: Optional[int] = None,
        nonce: Optional[str] = None,
    ) -> Dict[str, str]:
        """The four X-FBAPI-* headers for a request to `target` (path plus query, as sent)."""
        ts = str(int(time.time() * 1000) if timestamp_ms is None else timestamp_ms)
        nonce = nonce or uuid.uuid4().hex
        message = build_canonical_request(ts, nonce, method, target, body)
        signature = encode_signature(self._signer.sign(message, self.signing_key), self.encoding)
        return {
            API_KEY_HEADER.upper(): self.api_key,
            NONCE_HEADER.upper(): nonce,
            TIMESTAMP_HEADER.upper(): ts,
            SIGNATURE_HEADER.upper(): signature,
        }


class ApiClient:
    def __init__(
        self,
        base_url: Optional[str] = None,
        signer: Optional[RequestSigner] = None,
        *,
        http: Optional[httpx.Client] = None,
        timeout: float = 10.0,
    ):
        if http is None and base_url is None:
            raise ValueError("either base_url or http is required")
        self.http = http if http is not None else httpx.Client(base_url=base_url, timeout=timeout)
        self.signer = signer

    def close(self) -> None:
        self.http.close()

    def __enter__(self) -> "ApiClient":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def send(
        self,
        method: str,
        path: str,
        *,
        query: Optional[Mapping[str, Any]] = None,
        body: Any = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> httpx.Response:
        """Sign and send; returns the raw response whatever its status."""
        method = method.upper()
        url = httpx.URL(str(self.http.base_url).rstrip("/") + path)
        if query:
            url = url.copy_merge_params({k: _query_value(v) for k, v in query.items()})
        content = b"" if body is None else json.dumps(body, separators=(",", ":")).encode("utf-8")
        hdrs: Dict[str, str] = {}
        if body is not None:
            hdrs["Content-Type"] = "application/json"
        if self.signer is not None:
            hdrs.update(self.signer.headers(method, url.raw_path.decode("ascii"), content))
        hdrs.update(headers or {})
        return self.http.request(method, url, content=content or None, headers=hdrs)

    def request(self, method: str, path: str, **kwargs: Any) -> Any:
        resp = self.send(method, path, **kwargs)
        payload = _decode(resp)
        if resp.status_code >= 300:
            log.debug(f"{method.upper()} {path} -> {resp.status_code} {payload}")
            raise ApiError(resp.status_code, payload)
        return payload

    def call_operation(
        self,
        op: OpenApiOperationDescriptor,
        params: Optional[Mapping[str, Any]] = None,
        query: Optional[Mapping[str, Any]] = None,
        body: Any = None,
    ) -> Any:
        return self.request(op.method, op.format_url(params or {}), query=query, body=body)


def _query_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _decode(resp: httpx.Response) -> Any:
    if not resp.content:
        return None
    try:
        return resp.json()
    except ValueError:
        return resp.text
