from __future__ import annotations

import copy
from typing import Any, List, Sequence, Union

PathPart = Union[str, int]


def property_paths(obj: Any, prefix: Sequence[PathPart] = ()) -> List[List[PathPart]]:
    """Every property path in `obj`, parents before their children."""
    paths: List[List[PathPart]] = []
    if isinstance(obj, dict):
        for key, value in obj.items():
            path = list(prefix) + [key]
            paths.append(path)
            paths.extend(property_paths(value, path))
    elif isinstance(obj, list):
        for i, value in enumerate(obj):
            paths.extend(property_paths(value, list(prefix) + [i]))
    return paths


def delete_deep_property(obj: Any, path: Sequence[PathPart]) -> Any:
    """Copy of `obj` without the property at `path`."""
    out = copy.deepcopy(obj)
    if not path:
        return out
    node = out
    for part in path[:-1]:
        node = node[part]
    del node[path[-1]]
    return out


def to_pointer(path: Sequence[PathPart]) -> str:
    return "".join("/" + str(p).replace("~", "~0").replace("/", "~1") for p in path)
