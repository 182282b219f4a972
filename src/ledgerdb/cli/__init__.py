"""Command-line interface for ledgerdb."""
