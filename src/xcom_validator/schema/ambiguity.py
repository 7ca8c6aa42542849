"""Properties a validator may legitimately report for one another.

When a required property is removed from inside a oneOf/anyOf, the union
fails as a whole and the reported property comes from whichever branch the
validator looked at first. Removing `toAmount` from a quote request can
therefore be reported as a missing `fromAmount`. Each equivalence set lists
the property paths that are interchangeable for that reason.
"""
from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Sequence

_ASSET_VARIANTS = ("nationalCurrencyCode", "cryptocurrencySymbol", "assetId")


def _asset(prefix: str) -> List[str]:
    return [f"{prefix}/{name}" for name in _ASSET_VARIANTS]


AMBIGUOUS_PROPERTIES: Dict[str, List[List[str]]] = {
    "/accounts/{accountId}/liquidity/quotes": [
        ["/fromAmount", "/toAmount"],
        _asset("/fromAsset"),
        _asset("/toAsset"),
    ],
    "/accounts/{accountId}/trading/orders": [
        ["/baseAssetQuantity", "/baseAssetPrice", "/quoteAssetQuantity", "/quoteAssetPrice"],
    ],
    "/accounts/{accountId}/transfers/deposits/addresses": [
        _asset("/transferMethod/asset"),
    ],
    "/accounts/{accountId}/transfers/withdrawals/blockchain": [
        _asset("/balanceAsset"),
        ["/destination/asset/cryptocurrencySymbol", "/destination/asset/assetId"],
    ],
    "/accounts/{accountId}/transfers/withdrawals/fiat": [
        _asset("/balanceAsset"),
        [
            "/destination/transferMethod",
            "/destination/accountHolder",
            "/destination/accountHolder/name",
            "/destination/iban",
            "/destination/swiftCode",
            "/destination/routingNumber",
        ],
    ],
    "/accounts/{accountId}/transfers/withdrawals/peeraccount": [
        _asset("/balanceAsset"),
        _asset("/destination/asset"),
    ],
    "/accounts/{accountId}/transfers/withdrawals/subaccount": [
        _asset("/balanceAsset"),
        _asset("/destination/asset"),
    ],
}


def _escape(name: str) -> str:
    return name.replace("~", "~0").replace("/", "~1")


def union_equivalence_sets(schema: Optional[Mapping[str, Any]], pointer: str = "") -> List[List[str]]:
    """Derive equivalence sets from the required properties of every union's branches.

    Expects a schema with local $refs already inlined (see schema.loader).
    """
    if not isinstance(schema, Mapping):
        return []
    sets: List[List[str]] = []
    for keyword in ("oneOf", "anyOf"):
        branches = schema.get(keyword) or []
        names: List[str] = []
        for branch in branches:
            for name in (branch.get("required") or []) if isinstance(branch, Mapping) else []:
                path = f"{pointer}/{_escape(name)}"
                if path not in names:
                    names.append(path)
            sets.extend(union_equivalence_sets(branch, pointer))
        if len(names) > 1:
            sets.append(names)
    for sub in schema.get("allOf") or []:
        sets.extend(union_equivalence_sets(sub, pointer))
    for name, child in (schema.get("properties") or {}).items():
        sets.extend(union_equivalence_sets(child, f"{pointer}/{_escape(name)}"))
    return sets


def expected_variants(
    url: str,
    property_path: str,
    body_schema: Optional[Mapping[str, Any]] = None,
    table: Optional[Mapping[str, Sequence[Sequence[str]]]] = None,
) -> List[str]:
    """Property names an implementation may report after `property_path` was removed from the body."""
    table = AMBIGUOUS_PROPERTIES if table is None else table
    sets = list(table.get(url) or ())
    if body_schema is not None:
        sets.extend(union_equivalence_sets(body_schema))
    for candidates in sets:
        if property_path in candidates:
            return list(candidates)
    return [property_path]
