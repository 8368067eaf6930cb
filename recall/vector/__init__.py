"""Embedding records, similarity search and embedding providers."""
