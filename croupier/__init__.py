"""
Croupier - Casino Session Sync Engine

A client-side engine that keeps a local view of casino game sessions in step
with a remote authority that owns the real state. It provides:
- Binary codecs for ten table games
- A session registry and a reconciliation state machine
- A watchdog that recovers from lost push signals
- Auto-play ("start and immediately act") that runs exactly once
- A PnL ledger with per-game outcome summaries
"""

__version__ = "0.1.0"
