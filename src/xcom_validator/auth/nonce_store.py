"""Nonce registry for replay protection.

check_and_record(api_key, nonce, now) returns True the first time a
(api_key, nonce) pair is seen within the retention window and False for every
later attempt. The check and the write happen atomically.
"""
from __future__ import annotations

import threading
import time
from collections import deque
from typing import Deque, Dict, Optional, Protocol, Tuple, runtime_checkable

import redis

from ..config import ServerConfig
from ..utils.logging import get_logger

log = get_logger("nonce")


@runtime_checkable
class NonceStore(Protocol):
    def check_and_record(self, api_key: str, nonce: str, now: float) -> bool: ...


class InMemoryNonceStore:
    """Single-process store. `now` is seconds since epoch."""

    def __init__(self, ttl_seconds: int = 300):
        self.ttl_seconds = ttl_seconds
        self._seen: Dict[Tuple[str, str], float] = {}
        self._expiry: Deque[Tuple[float, Tuple[str, str]]] = deque()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._seen)

    def check_and_record(self, api_key: str, nonce: str, now: Optional[float] = None) -> bool:
        now = time.time() if now is None else now
        key = (api_key, nonce)
        with self._lock:
            self._sweep(now)
            if key in self._seen:
                return False
            self._seen[key] = now
            self._expiry.append((now + self.ttl_seconds, key))
            return True

    def _sweep(self, now: float) -> None:
        while self._expiry and self._expiry[0][0] <= now:
            _, key = self._expiry.popleft()
            self._seen.pop(key, None)


class RedisNonceStore:
    """Shared store for multi-instance deployments (SET NX EX)."""

    def __init__(self, url: str = "redis://localhost:6379/0", ttl_seconds: int = 300, client=None):
        self.ttl_seconds = ttl_seconds
        self.r = client if client is not None else redis.from_url(url, decode_responses=True)

    @staticmethod
    def _key(api_key: str, nonce: str) -> str:
        return f"fbapi:nonce:{api_key}:{nonce}"

    def check_and_record(self, api_key: str, nonce: str, now: Optional[float] = None) -> bool:
        now = time.time() if now is None else now
        created = self.r.set(self._key(api_key, nonce), str(int(now * 1000)), nx=True, ex=self.ttl_seconds)
        return bool(created)


def build_nonce_store(cfg: ServerConfig) -> NonceStore:
    ttl = cfg.nonce_retention_sec
    backend = cfg.nonce_backend.lower()
    if backend == "memory":
        return InMemoryNonceStore(ttl_seconds=ttl)
    if backend == "redis":
        log.info(f"nonce store: redis {cfg.redis_url} ttl={ttl}s")
        return RedisNonceStore(url=cfg.redis_url, ttl_seconds=ttl)
    raise ValueError(f"unknown NONCE_BACKEND: {cfg.nonce_backend}")
