"""In-memory task ledger with remote-callable operations (console + Matrix)."""

__version__ = "0.1.0"
