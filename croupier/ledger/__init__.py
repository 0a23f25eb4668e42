"""
Ledger module - Session results and profit/loss history.

- outcomes: display-level win/loss/push labels per wager
- pnl: balance-delta PnL, summaries and the append-only ledger
"""

from .outcomes import Outcome, WagerOutcome
from .pnl import LedgerEntry, PnLLedger, compute_net_pnl, format_net, summarize

__all__ = [
    "Outcome",
    "WagerOutcome",
    "LedgerEntry",
    "PnLLedger",
    "compute_net_pnl",
    "format_net",
    "summarize",
]
