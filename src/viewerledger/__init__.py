"""Per-viewer engagement ledger for a live-chat audience."""

__version__ = "0.1.0"
