"""Core infrastructure: configuration, database client, observability."""
