from __future__ import annotations

from typing import Dict

from . import accounts, liquidity, trading, transfers
from .context import Handler

HANDLERS: Dict[str, Handler] = {
    **accounts.HANDLERS,
    **trading.HANDLERS,
    **liquidity.HANDLERS,
    **transfers.HANDLERS,
}
