from __future__ import annotations

from decimal import Decimal, localcontext
from typing import Any, Dict, Mapping, Optional, Tuple

USD = {"nationalCurrencyCode": "USD"}
EUR = {"nationalCurrencyCode": "EUR"}
BTC = {"blockchain": "Bitcoin", "cryptocurrencySymbol": "BTC"}
ETH = {"blockchain": "Ethereum", "cryptocurrencySymbol": "ETH"}
USDC = {"blockchain": "Ethereum", "cryptocurrencySymbol": "USDC"}

KNOWN_ASSETS: Tuple[Mapping[str, str], ...] = (USD, EUR, BTC, ETH, USDC)

# price of one unit of the first asset in the second
_RATES: Dict[Tuple[str, str], Decimal] = {
    ("BTC", "USD"): Decimal("60000"),
    ("ETH", "USD"): Decimal("3000"),
    ("USDC", "USD"): Decimal("1"),
    ("EUR", "USD"): Decimal("1.1"),
    ("BTC", "ETH"): Decimal("20"),
}


def asset_key(ref: Mapping[str, Any]) -> Optional[str]:
    for field in ("nationalCurrencyCode", "cryptocurrencySymbol", "assetId"):
        if ref.get(field):
            return str(ref[field])
    return None


def is_known_asset(ref: Mapping[str, Any]) -> bool:
    key = asset_key(ref)
    return any(asset_key(a) == key for a in KNOWN_ASSETS)


def conversion_rate(from_ref: Mapping[str, Any], to_ref: Mapping[str, Any]) -> Optional[Decimal]:
    """Units of `to_ref` per unit of `from_ref`, or None for an unsupported pair."""
    a, b = asset_key(from_ref), asset_key(to_ref)
    if (a, b) in _RATES:
        return _RATES[(a, b)]
    if (b, a) in _RATES:
        return Decimal(1) / _RATES[(b, a)]
    return None


def supported_pairs():
    by_key = {asset_key(a): a for a in KNOWN_ASSETS}
    for a, b in _RATES:
        yield by_key[a], by_key[b]
        yield by_key[b], by_key[a]


AMOUNT_PLACES = 8
_QUANTUM = Decimal(1).scaleb(-AMOUNT_PLACES)


def format_amount(value: Decimal) -> str:
    # quantize needs room for every integer digit plus the fractional places
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, value.adjusted() + 1 + AMOUNT_PLACES)
        text = format(value.quantize(_QUANTUM).normalize(), "f")
    return text if text else "0"
