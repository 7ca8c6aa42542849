from __future__ import annotations

from typing import Dict

from ..controllers.withdrawals import WithdrawalKind
from .context import Handler, RequestContext


def get_deposit_addresses(ctx: RequestContext):
    return {"addresses": ctx.controllers.deposits.get_addresses(ctx.params["accountId"], ctx.window)}


def create_deposit_address(ctx: RequestContext):
    return ctx.controllers.deposits.create_address(ctx.params["accountId"], ctx.body)


def _list_withdrawals(kind=None) -> Handler:
    def handler(ctx: RequestContext):
        withdrawals = ctx.controllers.withdrawals.get_withdrawals(
            ctx.params["accountId"], ctx.window, kind=kind, order=ctx.query.get("order", "desc")
        )
        return {"withdrawals": withdrawals}

    return handler


def _create_withdrawal(kind: WithdrawalKind) -> Handler:
    def handler(ctx: RequestContext):
        return ctx.controllers.withdrawals.create_withdrawal(ctx.params["accountId"], kind, ctx.body)

    return handler


def get_withdrawal_details(ctx: RequestContext):
    return ctx.controllers.withdrawals.get_withdrawal(ctx.params["accountId"], ctx.params["id"])


HANDLERS: Dict[str, Handler] = {
    "getDepositAddresses": get_deposit_addresses,
    "createDepositAddress": create_deposit_address,
    "getWithdrawals": _list_withdrawals(),
    "getWithdrawalDetails": get_withdrawal_details,
    "getBlockchainWithdrawals": _list_withdrawals(WithdrawalKind.BLOCKCHAIN),
    "createBlockchainWithdrawal": _create_withdrawal(WithdrawalKind.BLOCKCHAIN),
    "getFiatWithdrawals": _list_withdrawals(WithdrawalKind.FIAT),
    "createFiatWithdrawal": _create_withdrawal(WithdrawalKind.FIAT),
    "getPeerAccountWithdrawals": _list_withdrawals(WithdrawalKind.PEER_ACCOUNT),
    "createPeerAccountWithdrawal": _create_withdrawal(WithdrawalKind.PEER_ACCOUNT),
    "getSubAccountWithdrawals": _list_withdrawals(WithdrawalKind.SUB_ACCOUNT),
    "createSubAccountWithdrawal": _create_withdrawal(WithdrawalKind.SUB_ACCOUNT),
}
