"""Persistence subsystem (snapshot codec, cache, external files, reconciliation)."""
