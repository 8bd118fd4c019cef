"""Relational persistence: schema, job store and content repository."""
