"""Memory records, search, query resolution and creation."""
