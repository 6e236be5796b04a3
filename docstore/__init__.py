"""docstore - MongoDB-style queries and updates over a keyed document store."""
