"""Environment-backed configuration helpers."""
