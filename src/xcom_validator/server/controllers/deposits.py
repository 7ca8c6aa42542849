from __future__ import annotations

import hashlib
import threading
import uuid
from typing import Any, Dict, List, Mapping, Optional

from ...schema.pagination import PaginationWindow
from .accounts import AccountsController
from .assets import asset_key, is_known_asset
from .liquidity import UnknownAsset
from .orders import IdempotencyRegistry
from .pagination import get_pagination_result


class DepositsController:
    def __init__(self, accounts: AccountsController):
        self.accounts = accounts
        self._addresses: Dict[str, List[Dict[str, Any]]] = {}
        self._idempotency = IdempotencyRegistry()
        self._lock = threading.Lock()

    def get_addresses(self, account_id: str, window: Optional[PaginationWindow]) -> List[Dict[str, Any]]:
        self.accounts.require(account_id)
        with self._lock:
            return get_pagination_result(window, list(self._addresses.get(account_id, [])))

    def create_address(self, account_id: str, request: Mapping[str, Any]) -> Dict[str, Any]:
        self.accounts.require(account_id)
        method = request["transferMethod"]
        if not is_known_asset(method["asset"]):
            raise UnknownAsset("transferMethod/asset")
        with self._lock:
            existing = self._idempotency.lookup(account_id, request)
            if existing is not None:
                return dict(existing)
            address_id = uuid.uuid4().hex
            digest = hashlib.sha256(f"{account_id}:{asset_key(method['asset'])}:{address_id}".encode()).hexdigest()
            address = {
                "id": address_id,
                "asset": dict(method["asset"]),
                "transferMethod": method["transferMethod"],
                "address": "0x" + digest[:40],
                "status": "enabled",
            }
            self._addresses.setdefault(account_id, []).append(address)
            self._idempotency.record(account_id, request, address)
            return dict(address)
