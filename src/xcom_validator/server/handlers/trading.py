from __future__ import annotations

from typing import Dict

from .context import Handler, RequestContext


def get_books(ctx: RequestContext):
    return {"books": ctx.controllers.books.get_books(ctx.window)}


def get_book_details(ctx: RequestContext):
    return ctx.controllers.books.get_book(ctx.params["id"])


def get_book_asks(ctx: RequestContext):
    return {"asks": ctx.controllers.books.get_asks(ctx.params["id"], ctx.window)}


def get_book_bids(ctx: RequestContext):
    return {"bids": ctx.controllers.books.get_bids(ctx.params["id"], ctx.window)}


def get_orders(ctx: RequestContext):
    return {"orders": ctx.controllers.orders.get_orders(ctx.params["accountId"], ctx.window)}


def create_order(ctx: RequestContext):
    return ctx.controllers.orders.create_order(ctx.params["accountId"], ctx.body)


def get_order_details(ctx: RequestContext):
    return ctx.controllers.orders.get_order(ctx.params["accountId"], ctx.params["id"])


def cancel_order(ctx: RequestContext):
    ctx.controllers.orders.cancel_order(ctx.params["accountId"], ctx.params["id"])
    return None


HANDLERS: Dict[str, Handler] = {
    "getBooks": get_books,
    "getBookDetails": get_book_details,
    "getBookAsks": get_book_asks,
    "getBookBids": get_book_bids,
    "getOrders": get_orders,
    "createOrder": create_order,
    "getOrderDetails": get_order_details,
    "cancelOrder": cancel_order,
}
