"""Per-organization usage quota enforcement service."""
