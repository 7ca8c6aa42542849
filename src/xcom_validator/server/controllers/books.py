from __future__ import annotations

import copy
from typing import Any, Dict, List, Optional

from ...errors import NotFoundError
from ...schema.pagination import PaginationWindow
from .assets import BTC, ETH, EUR, USD
from .pagination import get_pagination_result

_SEED_BOOKS: List[Dict[str, Any]] = [
    {"id": "BTC-USD", "description": "Bitcoin / US Dollar", "baseAsset": BTC, "quoteAsset": USD},
    {"id": "ETH-USD", "description": "Ether / US Dollar", "baseAsset": ETH, "quoteAsset": USD},
    {"id": "BTC-EUR", "description": "Bitcoin / Euro", "baseAsset": BTC, "quoteAsset": EUR},
]

_SEED_ASKS: Dict[str, List[Dict[str, Any]]] = {
    "BTC-USD": [
        {"id": "a1", "price": "60010", "amount": "0.5"},
        {"id": "a2", "price": "60050", "amount": "1.2"},
        {"id": "a3", "price": "60120", "amount": "2"},
    ],
    "ETH-USD": [{"id": "a1", "price": "3001.5", "amount": "10"}],
}

_SEED_BIDS: Dict[str, List[Dict[str, Any]]] = {
    "BTC-USD": [
        {"id": "b1", "price": "59990", "amount": "0.8"},
        {"id": "b2", "price": "59950", "amount": "1.5"},
    ],
    "ETH-USD": [{"id": "b1", "price": "2998", "amount": "25"}],
}


class BooksController:
    def __init__(self, books=None, asks=None, bids=None):
        self._books = copy.deepcopy(_SEED_BOOKS if books is None else books)
        self._asks = copy.deepcopy(_SEED_ASKS if asks is None else asks)
        self._bids = copy.deepcopy(_SEED_BIDS if bids is None else bids)

    def is_known_book(self, book_id: str) -> bool:
        return any(b["id"] == book_id for b in self._books)

    def get_books(self, window: Optional[PaginationWindow]) -> List[Dict[str, Any]]:
        return get_pagination_result(window, self._books)

    def get_book(self, book_id: str) -> Dict[str, Any]:
        for b in self._books:
            if b["id"] == book_id:
                return b
        raise NotFoundError()

    def get_asks(self, book_id: str, window: Optional[PaginationWindow]) -> List[Dict[str, Any]]:
        self.get_book(book_id)
        return get_pagination_result(window, self._asks.get(book_id, []))

    def get_bids(self, book_id: str, window: Optional[PaginationWindow]) -> List[Dict[str, Any]]:
        self.get_book(book_id)
        return get_pagination_result(window, self._bids.get(book_id, []))
