"""Minimal valid instances of a JSON schema.

Only required properties are generated, so removing any generated property
makes the instance invalid. Strings constrained by a `pattern` should carry
an `example` in the contract; patterns themselves are not reversed.
"""
from __future__ import annotations

import copy
import random
import string
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Mapping, Optional

_ALPHABET = string.ascii_letters + string.digits


def merge_schemas(base: Mapping[str, Any], extra: Mapping[str, Any]) -> Dict[str, Any]:
    out = dict(base)
    for key, value in extra.items():
        if key == "properties":
            out["properties"] = {**(base.get("properties") or {}), **value}
        elif key == "required":
            required = list(base.get("required") or [])
            out["required"] = required + [r for r in value if r not in required]
        else:
            out[key] = value
    return out


def _type_of(schema: Mapping[str, Any]) -> Optional[str]:
    t = schema.get("type")
    if isinstance(t, list):
        t = next((x for x in t if x != "null"), None)
    if t is None and ("properties" in schema or "required" in schema):
        return "object"
    return t


def _fake_string(schema: Mapping[str, Any], rng: random.Random) -> str:
    fmt = schema.get("format")
    if fmt == "date-time":
        moment = datetime(2024, 1, 1, tzinfo=timezone.utc) + timedelta(seconds=rng.randrange(10**8))
        return moment.isoformat().replace("+00:00", "Z")
    if fmt == "date":
        return (datetime(2024, 1, 1) + timedelta(days=rng.randrange(3650))).date().isoformat()
    if fmt == "email":
        return f"{_word(rng, 8).lower()}@example.com"
    if fmt == "uuid":
        return "%08x-%04x-4%03x-8%03x-%012x" % (
            rng.getrandbits(32), rng.getrandbits(16), rng.getrandbits(12), rng.getrandbits(12), rng.getrandbits(48)
        )
    lo = int(schema.get("minLength", 1))
    hi = int(schema.get("maxLength", max(lo, 16)))
    return _word(rng, rng.randint(max(lo, 1), max(hi, lo, 1)))


def _word(rng: random.Random, n: int) -> str:
    return "".join(rng.choice(_ALPHABET) for _ in range(n))


def fake_object(schema: Optional[Mapping[str, Any]], rng: Optional[random.Random] = None) -> Any:
    """Required-only instance of `schema` (local $refs already inlined)."""
    rng = rng or random.Random()
    if not schema:
        return {}
    return _fake(schema, rng)


def _fake(schema: Mapping[str, Any], rng: random.Random) -> Any:
    if "example" in schema:
        return copy.deepcopy(schema["example"])
    if "const" in schema:
        return copy.deepcopy(schema["const"])
    if "enum" in schema:
        return copy.deepcopy(rng.choice(schema["enum"]))
    for keyword in ("oneOf", "anyOf"):
        if schema.get(keyword):
            rest = {k: v for k, v in schema.items() if k != keyword}
            return _fake(merge_schemas(rest, rng.choice(schema[keyword])), rng)
    if schema.get("allOf"):
        merged: Dict[str, Any] = {k: v for k, v in schema.items() if k != "allOf"}
        for sub in schema["allOf"]:
            merged = merge_schemas(merged, sub)
        return _fake(merged, rng)
    if "default" in schema:
        return copy.deepcopy(schema["default"])

    t = _type_of(schema)
    if t == "object":
        props = schema.get("properties") or {}
        return {name: _fake(props.get(name) or {"type": "string"}, rng) for name in schema.get("required") or []}
    if t == "array":
        items = schema.get("items") or {"type": "string"}
        return [_fake(items, rng) for _ in range(int(schema.get("minItems", 0)))]
    if t == "integer":
        lo = int(schema.get("minimum", 0))
        hi = int(schema.get("maximum", lo + 1000))
        return rng.randint(lo, hi)
    if t == "number":
        lo = float(schema.get("minimum", 0))
        hi = float(schema.get("maximum", lo + 1000))
        return round(rng.uniform(lo, hi), 4)
    if t == "boolean":
        return rng.random() < 0.5
    return _fake_string(schema, rng)


def fake_many(schema: Mapping[str, Any], count: int, seed: Optional[int] = None) -> List[Any]:
    rng = random.Random(seed)
    return [fake_object(schema, rng) for _ in range(count)]
