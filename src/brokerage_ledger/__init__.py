"""Personal brokerage ledger: wallet, positions and trades kept consistent per user."""

__version__ = "0.1.0"
