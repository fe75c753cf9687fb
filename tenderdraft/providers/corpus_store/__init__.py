"""Corpus store adapters (SQLite)."""
