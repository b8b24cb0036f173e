"""Embedding model access."""
