"""Command-line interface for the casino ledger."""
