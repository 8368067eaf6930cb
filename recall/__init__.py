"""Recall — long-term memory retrieval and indexing for a persona chat assistant."""
