"""Request authentication pipeline.

Checks run in a fixed order and the first failure short-circuits:

  1. X-FBAPI-KEY present and non-empty
  2. X-FBAPI-TIMESTAMP is an integer within the freshness window
  3. (api key, X-FBAPI-NONCE) not seen before; recorded on first sight
  4. X-FBAPI-SIGNATURE verifies over the canonical request string

The nonce is consumed in step 3 even when step 4 later fails, so a request
with a bad signature cannot be retried with the same nonce either.
"""
from __future__ import annotations

import json
import os
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterator, Mapping, Optional

from ..config import ServerConfig
from ..crypto.alg_registry import SigningAlgorithmSpec, SigningError
from ..crypto.keyloader import KeyMaterial, resolve_key_material
from ..crypto.signers import SIGNATURE_ENCODINGS, decode_signature, resolve_signer
from ..errors import (
    AuthenticationError,
    MissingApiKey,
    MissingNonce,
    NonceReplay,
    SignatureRejected,
    StaleOrInvalidTimestamp,
)
from ..obs.prom import observe_auth
from ..utils.logging import get_logger
from ..utils.numbers import parse_int
from .canonical import Body, build_canonical_request
from .nonce_store import NonceStore

log = get_logger("auth")

API_KEY_HEADER = "x-fbapi-key"
NONCE_HEADER = "x-fbapi-nonce"
TIMESTAMP_HEADER = "x-fbapi-timestamp"
SIGNATURE_HEADER = "x-fbapi-signature"


@dataclass(frozen=True)
class ClientCredential:
    api_key: str
    spec: SigningAlgorithmSpec
    verification_key: KeyMaterial
    signature_encoding: str = "base64"

    def __post_init__(self):
        if self.signature_encoding not in SIGNATURE_ENCODINGS:
            raise ValueError(f"unknown signature encoding: {self.signature_encoding}")

    @classmethod
    def from_entry(cls, api_key: str, entry: Mapping[str, str]) -> "ClientCredential":
        """Entry shape: {"alg": "rsa", "hash": "sha256", "curve": null, "key": "<secret|PEM|@path>", "encoding": "base64"}"""
        spec = SigningAlgorithmSpec.parse(entry.get("alg", ""), entry.get("hash", "sha256"), entry.get("curve"))
        return cls(
            api_key=api_key,
            spec=spec,
            verification_key=resolve_key_material(entry.get("key", "")),
            signature_encoding=entry.get("encoding", "base64"),
        )


@dataclass
class ClientRegistry:
    clients: Dict[str, ClientCredential] = field(default_factory=dict)

    def add(self, credential: ClientCredential) -> None:
        self.clients[credential.api_key] = credential

    def get(self, api_key: str) -> Optional[ClientCredential]:
        return self.clients.get(api_key)

    def __contains__(self, api_key: str) -> bool:
        return api_key in self.clients

    def __iter__(self) -> Iterator[ClientCredential]:
        return iter(self.clients.values())

    def __len__(self) -> int:
        return len(self.clients)


def load_client_registry(cfg: ServerConfig) -> ClientRegistry:
    """Clients from cfg.client_keys (JSON keyed by API key).

    The single env-configured client is a fallback: it is registered only
    when no clients file was loaded and both its key and secret are set.
    """
    registry = ClientRegistry()
    if cfg.client_keys and os.path.exists(cfg.client_keys):
        with open(cfg.client_keys, "r", encoding="utf-8") as f:
            entries = json.load(f)
        for api_key, entry in entries.items():
            registry.add(ClientCredential.from_entry(api_key, entry))
        log.info(f"loaded {len(registry)} client credential(s) from {cfg.client_keys}")
        return registry
    if not (cfg.api_key and cfg.verification_key):
        log.warning("no client credentials configured; every signed request will be rejected")
        return registry
    registry.add(
        ClientCredential.from_entry(
            cfg.api_key,
            {
                "alg": cfg.signing_alg,
                "hash": cfg.signing_hash,
                "curve": cfg.signing_curve,
                "key": cfg.verification_key,
                "encoding": cfg.signature_encoding,
            },
        )
    )
    return registry


@dataclass(frozen=True)
class AuthContext:
    api_key: str
    nonce: str
    timestamp_ms: int
    credential: ClientCredential


class AuthPipeline:
    def __init__(
        self,
        clients: ClientRegistry,
        nonce_store: NonceStore,
        timestamp_window_ms: int = 30_000,
        clock: Callable[[], float] = time.time,
    ):
        self.clients = clients
        self.nonce_store = nonce_store
        self.timestamp_window_ms = timestamp_window_ms
        self.clock = clock

    def authenticate(
        self,
        headers: Mapping[str, str],
        method: str,
        path_with_query: str,
        body: Body,
        now_ms: Optional[int] = None,
    ) -> AuthContext:
        hdrs = {k.lower(): v for k, v in headers.items()}
        now_ms = int(self.clock() * 1000) if now_ms is None else now_ms
        try:
            api_key = self._check_api_key(hdrs)
            timestamp_ms = self._check_timestamp(hdrs, now_ms)
            nonce = self._consume_nonce(hdrs, api_key, now_ms)
            credential = self._check_signature(hdrs, api_key, timestamp_ms, nonce, method, path_with_query, body)
        except AuthenticationError as e:
            observe_auth(verified=False, reason=e.reason)
            if isinstance(e, NonceReplay):
                log.warning(f"auth rejected reason={e.reason} method={method} target={path_with_query}")
            else:
                log.info(f"auth rejected reason={e.reason} method={method} target={path_with_query}")
            raise
        observe_auth(verified=True, reason="ok")
        return AuthContext(api_key=api_key, nonce=nonce, timestamp_ms=timestamp_ms, credential=credential)

    def _check_api_key(self, hdrs: Mapping[str, str]) -> str:
        api_key = (hdrs.get(API_KEY_HEADER) or "").strip()
        if not api_key:
            raise MissingApiKey("Missing API key header")
        return api_key

    def _check_timestamp(self, hdrs: Mapping[str, str], now_ms: int) -> int:
        raw = (hdrs.get(TIMESTAMP_HEADER) or "").strip()
        if not raw:
            raise StaleOrInvalidTimestamp("Missing request timestamp header")
        ts = parse_int(raw, signed=False)
        if ts is None:
            raise StaleOrInvalidTimestamp("Request timestamp must be an integer (milliseconds since epoch)")
        if abs(now_ms - ts) > self.timestamp_window_ms:
            raise StaleOrInvalidTimestamp(
                f"Request timestamp is outside the allowed window of {self.timestamp_window_ms} ms"
            )
        return ts

    def _consume_nonce(self, hdrs: Mapping[str, str], api_key: str, now_ms: int) -> str:
        nonce = (hdrs.get(NONCE_HEADER) or "").strip()
        if not nonce:
            raise MissingNonce("Missing nonce header")
        if not self.nonce_store.check_and_record(api_key, nonce, now_ms / 1000.0):
            raise NonceReplay("Nonce was already used")
        return nonce

    def _check_signature(
        self,
        hdrs: Mapping[str, str],
        api_key: str,
        timestamp_ms: int,
        nonce: str,
        method: str,
        path_with_query: str,
        body: Body,
    ) -> ClientCredential:
        signature_text = (hdrs.get(SIGNATURE_HEADER) or "").strip()
        if not signature_text:
            raise SignatureRejected("Missing signature header")
        credential = self.clients.get(api_key)
        if credential is None:
            raise SignatureRejected("Unknown API key")
        # the header value is used verbatim; re-rendering the int could change leading zeros
        message = build_canonical_request(hdrs[TIMESTAMP_HEADER].strip(), nonce, method, path_with_query, body)
        try:
            signer = resolve_signer(credential.spec)
            signer.verify(message, credential.verification_key, decode_signature(signature_text, credential.signature_encoding))
        except SigningError as e:
            log.info(f"signature check failed api_key={api_key} alg={credential.spec.label}: {type(e).__name__}: {e}")
            raise SignatureRejected("Signature verification failed") from e
        return credential


def build_auth_pipeline(cfg: ServerConfig, nonce_store: NonceStore, clients: Optional[ClientRegistry] = None) -> AuthPipeline:
    return AuthPipeline(
        clients=clients if clients is not None else load_client_registry(cfg),
        nonce_store=nonce_store,
        timestamp_window_ms=cfg.timestamp_window_ms,
    )
