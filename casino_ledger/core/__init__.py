"""Domain core: fairness, ledger, wagers, admission control and the event log."""
