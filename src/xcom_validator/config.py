"""Server configuration loader.

Loads defaults, then optional config/server.yml (or $XCOM_CONFIG), then
environment overrides. Environment is read on every call so tests can
monkeypatch it.
"""
from __future__ import annotations

import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict

import yaml
from dotenv import load_dotenv

load_dotenv()

BUNDLED_OPENAPI_PATH = str(Path(__file__).resolve().parent / "contract" / "openapi.yaml")

_DEFAULT: Dict[str, Any] = {
    "port": 8000,
    "openapi_path": BUNDLED_OPENAPI_PATH,
    "timestamp_window_sec": 30,
    "nonce_ttl_sec": 300,
    "nonce_backend": "memory",  # memory|redis
    "redis_url": "redis://localhost:6379/0",
    "client_keys": "config/clients.json",
    # Single env-configured client, used only when no clients file is present
    "api_key": "",
    "signing_alg": "hmac",
    "signing_hash": "sha256",
    "signing_curve": None,
    "verification_key": "",
    "signature_encoding": "base64",
    "log_level": "INFO",
}

_ENV_MAP = {
    "port": ("SERVER_PORT", int),
    "openapi_path": ("OPENAPI_PATH", str),
    "timestamp_window_sec": ("AUTH_TIMESTAMP_WINDOW_SEC", int),
    "nonce_ttl_sec": ("NONCE_TTL_SEC", int),
    "nonce_backend": ("NONCE_BACKEND", str),
    "redis_url": ("REDIS_URL", str),
    "client_keys": ("CLIENT_KEYS", str),
    "api_key": ("FBAPI_API_KEY", str),
    "signing_alg": ("FBAPI_SIGNING_ALG", str),
    "signing_hash": ("FBAPI_SIGNING_HASH", str),
    "signing_curve": ("FBAPI_SIGNING_CURVE", str),
    "verification_key": ("FBAPI_VERIFICATION_KEY", str),
    "signature_encoding": ("FBAPI_SIGNATURE_ENCODING", str),
    "log_level": ("LOG_LEVEL", str),
}


@dataclass
class ServerConfig:
    port: int = _DEFAULT["port"]
    openapi_path: str = _DEFAULT["openapi_path"]
    timestamp_window_sec: int = _DEFAULT["timestamp_window_sec"]
    nonce_ttl_sec: int = _DEFAULT["nonce_ttl_sec"]
    nonce_backend: str = _DEFAULT["nonce_backend"]
    redis_url: str = _DEFAULT["redis_url"]
    client_keys: str = _DEFAULT["client_keys"]
    api_key: str = _DEFAULT["api_key"]
    signing_alg: str = _DEFAULT["signing_alg"]
    signing_hash: str = _DEFAULT["signing_hash"]
    signing_curve: str | None = _DEFAULT["signing_curve"]
    verification_key: str = _DEFAULT["verification_key"]
    signature_encoding: str = _DEFAULT["signature_encoding"]
    log_level: str = _DEFAULT["log_level"]

    @property
    def timestamp_window_ms(self) -> int:
        return self.timestamp_window_sec * 1000

    @property
    def nonce_retention_sec(self) -> int:
        # A nonce must outlive every timestamp that could still pass the freshness check
        return max(self.nonce_ttl_sec, 2 * self.timestamp_window_sec)


def _config_path() -> str:
    return os.getenv("XCOM_CONFIG", os.path.join(os.getcwd(), "config", "server.yml"))


def load_config(**overrides: Any) -> ServerConfig:
    data: Dict[str, Any] = dict(_DEFAULT)
    path = _config_path()
    if os.path.exists(path):
        with open(path, "r", encoding="utf-8") as f:
            file_cfg = yaml.safe_load(f) or {}
        if not isinstance(file_cfg, dict):
            raise ValueError(f"{path}: expected a mapping at top level")
        known = {f.name for f in fields(ServerConfig)}
        data.update({k: v for k, v in file_cfg.items() if k in known})
    for k, (env, cast) in _ENV_MAP.items():
        if env in os.environ:
            try:
                data[k] = cast(os.environ[env])
            except ValueError as e:
                raise ValueError(f"invalid value for {env}: {os.environ[env]!r}") from e
    data.update(overrides)
    return ServerConfig(**data)
