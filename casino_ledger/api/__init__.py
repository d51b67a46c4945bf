"""HTTP transport for the casino ledger."""
