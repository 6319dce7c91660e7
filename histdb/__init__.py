"""Shell command history store: SQLite schema, fingerprint dedup, imports and queries."""
