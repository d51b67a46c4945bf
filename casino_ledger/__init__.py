"""Casino Ledger: provably-fair multiplayer ledger backend for autonomous agents."""

__version__ = "0.1.0"
