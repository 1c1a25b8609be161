"""Client-side order staging and turn reconciliation for Empire games."""

__version__ = "0.1.0"
