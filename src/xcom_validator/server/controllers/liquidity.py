from __future__ import annotations

import threading
import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional

from ...errors import BusinessRuleViolation, ErrorType, NotFoundError, RequestPart
from ...schema.pagination import PaginationWindow
from .accounts import AccountsController
from .assets import asset_key, conversion_rate, format_amount, is_known_asset, supported_pairs
from .pagination import get_pagination_result

QUOTE_TTL = timedelta(minutes=5)


class UnknownAsset(BusinessRuleViolation):
    def __init__(self, field: str):
        super().__init__(
            "Unknown asset",
            ErrorType.UNKNOWN_ASSET,
            request_part=RequestPart.BODY,
            property_name=f"/{field}",
        )


class UnsupportedConversion(BusinessRuleViolation):
    def __init__(self):
        super().__init__("Unsupported conversion", ErrorType.UNSUPPORTED_CONVERSION, request_part=RequestPart.BODY)


class QuoteNotReady(BusinessRuleViolation):
    def __init__(self):
        super().__init__("Quote is not ready", ErrorType.QUOTE_NOT_READY)


class LiquidityController:
    def __init__(self, accounts: AccountsController, clock=None):
        self.accounts = accounts
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self._capabilities = [
            {"id": f"{asset_key(a)}-{asset_key(b)}", "fromAsset": a, "toAsset": b} for a, b in supported_pairs()
        ]
        self._quotes: Dict[str, List[Dict[str, Any]]] = {}
        self._lock = threading.Lock()

    def get_capabilities(self, account_id: str, window: Optional[PaginationWindow]) -> List[Dict[str, Any]]:
        self.accounts.require(account_id)
        return get_pagination_result(window, self._capabilities)

    def get_quotes(self, account_id: str, window: Optional[PaginationWindow]) -> List[Dict[str, Any]]:
        self.accounts.require(account_id)
        with self._lock:
            return [self._refresh(q) for q in get_pagination_result(window, list(self._quotes.get(account_id, [])))]

    def get_quote(self, account_id: str, quote_id: str) -> Dict[str, Any]:
        self.accounts.require(account_id)
        with self._lock:
            return self._refresh(self._find(account_id, quote_id))

    def create_quote(self, account_id: str, request: Mapping[str, Any]) -> Dict[str, Any]:
        self.accounts.require(account_id)
        for field in ("fromAsset", "toAsset"):
            if not is_known_asset(request[field]):
                raise UnknownAsset(field)
        rate = conversion_rate(request["fromAsset"], request["toAsset"])
        if rate is None:
            raise UnsupportedConversion()
        if "fromAmount" in request:
            from_amount = Decimal(request["fromAmount"])
            to_amount = from_amount * rate
        else:
            to_amount = Decimal(request["toAmount"])
            from_amount = to_amount / rate
        now = self.clock()
        quote = {
            "id": uuid.uuid4().hex,
            "fromAsset": dict(request["fromAsset"]),
            "toAsset": dict(request["toAsset"]),
            "fromAmount": format_amount(from_amount),
            "toAmount": format_amount(to_amount),
            "conversionRate": format_amount(rate),
            "status": "ready",
            "expiresAt": (now + QUOTE_TTL).isoformat().replace("+00:00", "Z"),
        }
        with self._lock:
            self._quotes.setdefault(account_id, []).append(quote)
        return dict(quote)

    def execute_quote(self, account_id: str, quote_id: str) -> Dict[str, Any]:
        self.accounts.require(account_id)
        with self._lock:
            quote = self._find(account_id, quote_id)
            self._refresh(quote)
            if quote["status"] != "ready":
                raise QuoteNotReady()
            quote["status"] = "executed"
            return dict(quote)

    def _refresh(self, quote: Dict[str, Any]) -> Dict[str, Any]:
        if quote["status"] == "ready":
            expires = datetime.fromisoformat(quote["expiresAt"].replace("Z", "+00:00"))
            if self.clock() >= expires:
                quote["status"] = "expired"
        return dict(quote)

    def _find(self, account_id: str, quote_id: str) -> Dict[str, Any]:
        for quote in self._quotes.get(account_id, []):
            if quote["id"] == quote_id:
                return quote
        raise NotFoundError()
