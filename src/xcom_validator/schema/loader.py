"""OpenAPI contract loading.

Turns an OpenAPI 3 document into one OpenApiOperationDescriptor per
operation, with the four request schemas (headers, path params, query
string, body) and the response schemas already extracted and their local
$refs inlined. Header names are lower-cased, matching how they arrive.
"""
from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

import yaml

from ..utils.logging import get_logger

log = get_logger("contract")

HTTP_METHODS = ("get", "put", "post", "delete", "patch", "head", "options")

Schema = Dict[str, Any]


@dataclass(frozen=True)
class OpenApiOperationDescriptor:
    method: str
    url: str
    operation_id: str
    tags: Tuple[str, ...] = ()
    headers: Optional[Schema] = None
    params: Optional[Schema] = None
    querystring: Optional[Schema] = None
    body: Optional[Schema] = None
    responses: Mapping[int, Optional[Schema]] = field(default_factory=dict)

    @property
    def success_status(self) -> int:
        ok = sorted(s for s in self.responses if 200 <= s < 300)
        return ok[0] if ok else 200

    @property
    def is_paginated(self) -> bool:
        return bool(self.querystring and "limit" in self.querystring.get("properties", {}))

    def format_url(self, params: Mapping[str, Any]) -> str:
        url = self.url
        for name, value in params.items():
            url = url.replace("{" + name + "}", str(value))
        return url


def normalize_url(url: str) -> str:
    if len(url) > 1 and url.endswith("/"):
        return url[:-1]
    return url


class OpenApiContract:
    def __init__(self, operations: Iterable[OpenApiOperationDescriptor], info: Optional[Mapping[str, Any]] = None):
        self.info = dict(info or {})
        self._ops: Dict[Tuple[str, str], OpenApiOperationDescriptor] = {}
        for op in operations:
            self._ops[(op.method, normalize_url(op.url))] = op

    def get(self, method: str, url: str) -> Optional[OpenApiOperationDescriptor]:
        return self._ops.get((method.upper(), normalize_url(url)))

    def all_operations(self) -> List[OpenApiOperationDescriptor]:
        return list(self._ops.values())

    def paginated_operations(self) -> List[OpenApiOperationDescriptor]:
        return [op for op in self._ops.values() if op.is_paginated]

    def __len__(self) -> int:
        return len(self._ops)


class _RefResolver:
    def __init__(self, document: Mapping[str, Any]):
        self.document = document

    def lookup(self, ref: str) -> Any:
        if not ref.startswith("#/"):
            raise ValueError(f"only local $refs are supported: {ref}")
        node: Any = self.document
        for part in ref[2:].split("/"):
            part = part.replace("~1", "/").replace("~0", "~")
            if not isinstance(node, Mapping) or part not in node:
                raise ValueError(f"unresolvable $ref: {ref}")
            node = node[part]
        return node

    def resolve(self, node: Any, stack: Tuple[str, ...] = ()) -> Any:
        if isinstance(node, Mapping):
            if "$ref" in node:
                ref = node["$ref"]
                if ref in stack:
                    raise ValueError(f"recursive $ref not supported: {' -> '.join(stack + (ref,))}")
                return self.resolve(self.lookup(ref), stack + (ref,))
            out = {k: self.resolve(v, stack) for k, v in node.items()}
            if out.pop("nullable", False) and isinstance(out.get("type"), str):
                out["type"] = [out["type"], "null"]
            return out
        if isinstance(node, list):
            return [self.resolve(v, stack) for v in node]
        return copy.deepcopy(node)


def _parameters_schema(params: List[Mapping[str, Any]], location: str) -> Optional[Schema]:
    props: Dict[str, Any] = {}
    required: List[str] = []
    for p in params:
        if p.get("in") != location:
            continue
        name = p["name"].lower() if location == "header" else p["name"]
        props[name] = p.get("schema", {})
        if p.get("required") or location == "path":
            required.append(name)
    if not props:
        return None
    schema: Schema = {"type": "object", "properties": props}
    if required:
        schema["required"] = required
    return schema


def _merge_parameters(path_level: List[Mapping[str, Any]], op_level: List[Mapping[str, Any]]) -> List[Mapping[str, Any]]:
    merged: Dict[Tuple[str, str], Mapping[str, Any]] = {}
    for p in list(path_level) + list(op_level):
        merged[(p.get("in", ""), p.get("name", ""))] = p
    return list(merged.values())


def _body_schema(op: Mapping[str, Any]) -> Optional[Schema]:
    content = (op.get("requestBody") or {}).get("content") or {}
    media = content.get("application/json")
    return media.get("schema") if media else None


def _response_schemas(op: Mapping[str, Any]) -> Dict[int, Optional[Schema]]:
    out: Dict[int, Optional[Schema]] = {}
    for status, resp in (op.get("responses") or {}).items():
        if not str(status).isdigit():
            continue
        content = (resp or {}).get("content") or {}
        media = content.get("application/json")
        out[int(status)] = media.get("schema") if media else None
    return out


def parse_contract(document: Mapping[str, Any]) -> OpenApiContract:
    resolver = _RefResolver(document)
    operations: List[OpenApiOperationDescriptor] = []
    for url, path_item in (document.get("paths") or {}).items():
        path_item = resolver.resolve(path_item)
        path_params = path_item.get("parameters") or []
        for method in HTTP_METHODS:
            op = path_item.get(method)
            if not op:
                continue
            params = _merge_parameters(path_params, op.get("parameters") or [])
            operations.append(
                OpenApiOperationDescriptor(
                    method=method.upper(),
                    url=url,
                    operation_id=op.get("operationId") or f"{method}_{url}",
                    tags=tuple(op.get("tags") or ()),
                    headers=_parameters_schema(params, "header"),
                    params=_parameters_schema(params, "path"),
                    querystring=_parameters_schema(params, "query"),
                    body=_body_schema(op),
                    responses=_response_schemas(op),
                )
            )
    return OpenApiContract(operations, info=document.get("info"))


def load_contract(path: str) -> OpenApiContract:
    with open(path, "r", encoding="utf-8") as f:
        document = yaml.safe_load(f)
    if not isinstance(document, Mapping) or "paths" not in document:
        raise ValueError(f"{path}: not an OpenAPI document")
    contract = parse_contract(document)
    log.info(f"loaded {len(contract)} operations from {path}")
    return contract
