"""Time Ledger - event-sourced personal time tracking."""

__version__ = "0.1.0"
