"""Database engine and the scoped data store."""
