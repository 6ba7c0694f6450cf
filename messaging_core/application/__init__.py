"""Application layer orchestrating messaging use cases."""
