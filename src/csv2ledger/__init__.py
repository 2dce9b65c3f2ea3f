"""Convert bank CSV exports into Ledger entries."""

__version__ = "0.4.0"
