from __future__ import annotations

import os
from typing import Union

from cryptography.hazmat.primitives import serialization

KeyMaterial = Union[str, bytes]


def as_bytes(key: KeyMaterial) -> bytes:
    return key.encode() if isinstance(key, str) else bytes(key)


def normalize_pem(key: KeyMaterial) -> bytes:
    """Strip per-line indentation so PEM pasted into config or code still parses."""
    text = as_bytes(key).decode("ascii", errors="strict")
    lines = [line.strip() for line in text.strip().splitlines()]
    return ("\n".join(line for line in lines if line) + "\n").encode()


def load_private_key(key: KeyMaterial):
    return serialization.load_pem_private_key(normalize_pem(key), password=None)


def load_public_key(key: KeyMaterial):
    return serialization.load_pem_public_key(normalize_pem(key))


def resolve_key_material(value: str) -> str:
    """Config values may hold key material inline or point at a file with '@path'."""
    if value.startswith("@"):
        path = value[1:]
        if not os.path.exists(path):
            raise FileNotFoundError(f"key file not found: {path}")
        with open(path, "r", encoding="utf-8") as f:
            return f.read()
    return value
