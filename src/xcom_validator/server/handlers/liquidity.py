from __future__ import annotations

from typing import Dict

from .context import Handler, RequestContext


def get_quote_capabilities(ctx: RequestContext):
    return {"capabilities": ctx.controllers.liquidity.get_capabilities(ctx.params["accountId"], ctx.window)}


def get_quotes(ctx: RequestContext):
    return {"quotes": ctx.controllers.liquidity.get_quotes(ctx.params["accountId"], ctx.window)}


def create_quote(ctx: RequestContext):
    return ctx.controllers.liquidity.create_quote(ctx.params["accountId"], ctx.body)


def get_quote_details(ctx: RequestContext):
    return ctx.controllers.liquidity.get_quote(ctx.params["accountId"], ctx.params["id"])


def execute_quote(ctx: RequestContext):
    return ctx.controllers.liquidity.execute_quote(ctx.params["accountId"], ctx.params["id"])


HANDLERS: Dict[str, Handler] = {
    "getQuoteCapabilities": get_quote_capabilities,
    "getQuotes": get_quotes,
    "createQuote": create_quote,
    "getQuoteDetails": get_quote_details,
    "executeQuote": execute_quote,
}
