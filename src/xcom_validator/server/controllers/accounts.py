from __future__ import annotations

import copy
import threading
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional

from ...errors import BusinessRuleViolation, ErrorType, NotFoundError, RequestPart
from ...schema.pagination import PaginationWindow
from .assets import BTC, ETH, EUR, USD, USDC, asset_key, format_amount
from .pagination import get_pagination_result

_SEED_ACCOUNTS: List[Dict[str, Any]] = [
    {"id": "1", "title": "Main", "description": "Main trading account", "status": "active"},
    {"id": "2", "title": "Treasury", "description": "Treasury reserves", "status": "active", "parentId": "1"},
    {"id": "3", "title": "Legacy", "description": "Closed desk", "status": "inactive", "parentId": "1"},
]

_SEED_BALANCES: Dict[str, List[Dict[str, Any]]] = {
    "1": [
        {"id": "1-usd", "asset": USD, "availableAmount": "250000", "lockedAmount": "0"},
        {"id": "1-eur", "asset": EUR, "availableAmount": "12000"},
        {"id": "1-btc", "asset": BTC, "availableAmount": "3.5", "lockedAmount": "0.25"},
        {"id": "1-eth", "asset": ETH, "availableAmount": "40"},
        {"id": "1-usdc", "asset": USDC, "availableAmount": "100000"},
    ],
    "2": [
        {"id": "2-usd", "asset": USD, "availableAmount": "1000000"},
    ],
    "3": [],
}


class InsufficientFunds(BusinessRuleViolation):
    def __init__(self):
        super().__init__(
            "Insufficient funds",
            ErrorType.INSUFFICIENT_FUNDS,
            request_part=RequestPart.BODY,
            property_name="/balanceAmount",
        )


class AccountsController:
    def __init__(self, accounts=None, balances=None):
        self._accounts = copy.deepcopy(_SEED_ACCOUNTS if accounts is None else accounts)
        self._balances = copy.deepcopy(_SEED_BALANCES if balances is None else balances)
        self._lock = threading.Lock()

    def is_known_sub_account(self, account_id: str) -> bool:
        return any(a["id"] == account_id for a in self._accounts)

    def require(self, account_id: str) -> None:
        if not self.is_known_sub_account(account_id):
            raise NotFoundError()

    def _render(self, account: Dict[str, Any], include_balances: bool) -> Dict[str, Any]:
        out = dict(account)
        if include_balances:
            out["balances"] = list(self._balances.get(account["id"], []))
        return out

    def get_accounts(self, window: Optional[PaginationWindow], include_balances: bool = False) -> List[Dict[str, Any]]:
        page = get_pagination_result(window, self._accounts)
        return [self._render(a, include_balances) for a in page]

    def get_account(self, account_id: str, include_balances: bool = False) -> Dict[str, Any]:
        for a in self._accounts:
            if a["id"] == account_id:
                return self._render(a, include_balances)
        raise NotFoundError()

    def get_balances(self, account_id: str, window: Optional[PaginationWindow]) -> List[Dict[str, Any]]:
        self.require(account_id)
        return get_pagination_result(window, self._balances.get(account_id, []))

    def _find_balance(self, account_id: str, asset: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
        key = asset_key(asset)
        return next((b for b in self._balances.get(account_id, []) if asset_key(b["asset"]) == key), None)

    def debit(self, account_id: str, asset: Mapping[str, Any], amount: Decimal) -> None:
        with self._lock:
            balance = self._find_balance(account_id, asset)
            if balance is None or Decimal(balance["availableAmount"]) < amount:
                raise InsufficientFunds()
            balance["availableAmount"] = format_amount(Decimal(balance["availableAmount"]) - amount)

    def credit(self, account_id: str, asset: Mapping[str, Any], amount: Decimal) -> None:
        with self._lock:
            balance = self._find_balance(account_id, asset)
            if balance is None:
                balance = {"id": f"{account_id}-{asset_key(asset).lower()}", "asset": dict(asset), "availableAmount": "0"}
                self._balances.setdefault(account_id, []).append(balance)
            balance["availableAmount"] = format_amount(Decimal(balance["availableAmount"]) + amount)
