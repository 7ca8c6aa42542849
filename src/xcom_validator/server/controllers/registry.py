from __future__ import annotations

from dataclasses import dataclass

from .accounts import AccountsController
from .books import BooksController
from .deposits import DepositsController
from .liquidity import LiquidityController
from .orders import OrdersController
from .withdrawals import WithdrawalsController


@dataclass
class Controllers:
    accounts: AccountsController
    books: BooksController
    orders: OrdersController
    liquidity: LiquidityController
    deposits: DepositsController
    withdrawals: WithdrawalsController


def build_controllers() -> Controllers:
    accounts = AccountsController()
    books = BooksController()
    return Controllers(
        accounts=accounts,
        books=books,
        orders=OrdersController(accounts, books),
        liquidity=LiquidityController(accounts),
        deposits=DepositsController(accounts),
        withdrawals=WithdrawalsController(accounts),
    )
