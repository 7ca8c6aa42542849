from __future__ import annotations

import threading
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple

from ...errors import NotFoundError
from ...schema.pagination import PaginationWindow
from .accounts import AccountsController
from .assets import format_amount, is_known_asset
from .liquidity import UnknownAsset
from .orders import IdempotencyRegistry
from .pagination import get_pagination_result


class WithdrawalKind(str, Enum):
    BLOCKCHAIN = "blockchain"
    FIAT = "fiat"
    PEER_ACCOUNT = "peeraccount"
    SUB_ACCOUNT = "subaccount"


# transfers inside the exchange settle immediately
_SETTLED_ON_CREATE = frozenset({WithdrawalKind.PEER_ACCOUNT, WithdrawalKind.SUB_ACCOUNT})


class WithdrawalsController:
    def __init__(self, accounts: AccountsController):
        self.accounts = accounts
        # account -> [(kind, withdrawal)] in creation order
        self._withdrawals: Dict[str, List[Tuple[WithdrawalKind, Dict[str, Any]]]] = {}
        self._idempotency = IdempotencyRegistry()
        self._lock = threading.Lock()

    def get_withdrawals(
        self,
        account_id: str,
        window: Optional[PaginationWindow],
        kind: Optional[WithdrawalKind] = None,
        order: str = "desc",
    ) -> List[Dict[str, Any]]:
        self.accounts.require(account_id)
        with self._lock:
            items = [dict(w) for k, w in self._withdrawals.get(account_id, []) if kind is None or k is kind]
        if order == "desc":
            items.reverse()
        return get_pagination_result(window, items)

    def get_withdrawal(self, account_id: str, withdrawal_id: str) -> Dict[str, Any]:
        self.accounts.require(account_id)
        with self._lock:
            for _, w in self._withdrawals.get(account_id, []):
                if w["id"] == withdrawal_id:
                    return dict(w)
        raise NotFoundError()

    def create_withdrawal(self, account_id: str, kind: WithdrawalKind, request: Mapping[str, Any]) -> Dict[str, Any]:
        self.accounts.require(account_id)
        if not is_known_asset(request["balanceAsset"]):
            raise UnknownAsset("balanceAsset")
        destination = request["destination"]
        if "asset" in destination and not is_known_asset(destination["asset"]):
            raise UnknownAsset("destination/asset")
        if kind is WithdrawalKind.SUB_ACCOUNT and not self.accounts.is_known_sub_account(destination["accountId"]):
            raise NotFoundError("Destination sub-account not found")
        amount = Decimal(request["balanceAmount"])
        with self._lock:
            existing = self._idempotency.lookup(account_id, request)
            if existing is not None:
                return dict(existing)
            self.accounts.debit(account_id, request["balanceAsset"], amount)
            if kind is WithdrawalKind.SUB_ACCOUNT:
                self.accounts.credit(destination["accountId"], request["balanceAsset"], amount)
            withdrawal = {
                "id": uuid.uuid4().hex,
                "balanceAmount": format_amount(amount),
                "balanceAsset": dict(request["balanceAsset"]),
                "destination": dict(destination),
                "status": "succeeded" if kind in _SETTLED_ON_CREATE else "pending",
                "createdAt": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            }
            self._withdrawals.setdefault(account_id, []).append((kind, withdrawal))
            self._idempotency.record(account_id, request, withdrawal)
            return dict(withdrawal)
