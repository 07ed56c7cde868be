"""Reports built from ledger snapshots."""
