from __future__ import annotations

import threading
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Tuple

from ...errors import BusinessRuleViolation, ErrorType, NotFoundError, RequestPart
from ...schema.pagination import PaginationWindow
from .accounts import AccountsController
from .books import BooksController
from .pagination import get_pagination_result

_ORDER_FIELDS = (
    "bookId",
    "side",
    "orderType",
    "timeInForce",
    "baseAssetQuantity",
    "baseAssetPrice",
    "quoteAssetQuantity",
    "quoteAssetPrice",
)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class IdempotencyKeyReuse(BusinessRuleViolation):
    def __init__(self):
        super().__init__(
            "Idempotency key was already used with a different request",
            ErrorType.IDEMPOTENCY_KEY_REUSE,
            request_part=RequestPart.BODY,
            property_name="/idempotencyKey",
        )


class IdempotencyRegistry:
    """Remembers (account, idempotency key) -> (request, result)."""

    def __init__(self):
        self._entries: Dict[Tuple[str, str], Tuple[Dict[str, Any], Dict[str, Any]]] = {}

    def lookup(self, account_id: str, request: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
        entry = self._entries.get((account_id, request["idempotencyKey"]))
        if entry is None:
            return None
        previous, result = entry
        if previous != dict(request):
            raise IdempotencyKeyReuse()
        return result

    def record(self, account_id: str, request: Mapping[str, Any], result: Dict[str, Any]) -> None:
        self._entries[(account_id, request["idempotencyKey"])] = (dict(request), result)


class OrdersController:
    def __init__(self, accounts: AccountsController, books: BooksController):
        self.accounts = accounts
        self.books = books
        self._orders: Dict[str, List[Dict[str, Any]]] = {}
        self._idempotency = IdempotencyRegistry()
        self._lock = threading.Lock()

    def get_orders(self, account_id: str, window: Optional[PaginationWindow]) -> List[Dict[str, Any]]:
        self.accounts.require(account_id)
        with self._lock:
            return get_pagination_result(window, list(self._orders.get(account_id, [])))

    def get_order(self, account_id: str, order_id: str) -> Dict[str, Any]:
        self.accounts.require(account_id)
        with self._lock:
            return dict(self._find(account_id, order_id))

    def create_order(self, account_id: str, request: Mapping[str, Any]) -> Dict[str, Any]:
        self.accounts.require(account_id)
        if not self.books.is_known_book(request["bookId"]):
            raise NotFoundError()
        with self._lock:
            existing = self._idempotency.lookup(account_id, request)
            if existing is not None:
                return dict(existing)
            order = {"id": uuid.uuid4().hex}
            order.update({k: request[k] for k in _ORDER_FIELDS if k in request})
            order["status"] = "TRADING"
            order["createdAt"] = _now_iso()
            self._orders.setdefault(account_id, []).append(order)
            self._idempotency.record(account_id, request, order)
            return dict(order)

    def cancel_order(self, account_id: str, order_id: str) -> None:
        self.accounts.require(account_id)
        with self._lock:
            order = self._find(account_id, order_id)
            if order["status"] != "TRADING":
                raise BusinessRuleViolation("Order is not trading", ErrorType.ORDER_NOT_TRADING)
            order["status"] = "CANCELED"

    def _find(self, account_id: str, order_id: str) -> Dict[str, Any]:
        for order in self._orders.get(account_id, []):
            if order["id"] == order_id:
                return order
        raise NotFoundError()
