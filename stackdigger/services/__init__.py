"""Build stages and store-backed stack operations."""
