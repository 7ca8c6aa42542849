from __future__ import annotations

from typing import Dict

from .context import Handler, RequestContext


def get_accounts(ctx: RequestContext):
    include = bool(ctx.query.get("balances", False))
    return {"accounts": ctx.controllers.accounts.get_accounts(ctx.window, include_balances=include)}


def get_account_details(ctx: RequestContext):
    include = bool(ctx.query.get("balances", False))
    return ctx.controllers.accounts.get_account(ctx.params["accountId"], include_balances=include)


def get_balances(ctx: RequestContext):
    return {"balances": ctx.controllers.accounts.get_balances(ctx.params["accountId"], ctx.window)}


HANDLERS: Dict[str, Handler] = {
    "getAccounts": get_accounts,
    "getAccountDetails": get_account_details,
    "getBalances": get_balances,
}
