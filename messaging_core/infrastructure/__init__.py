"""Infrastructure adapters: persistence, realtime delivery and storage."""
