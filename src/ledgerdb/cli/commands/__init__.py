"""CLI command groups for ledgerdb.

- schema: Inspect compiled schemas
- db: Create tables and read the event log
"""
