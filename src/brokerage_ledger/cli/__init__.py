"""Command-line tools for the brokerage ledger."""
