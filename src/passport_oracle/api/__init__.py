"""HTTP surface for read-only score lookups."""
