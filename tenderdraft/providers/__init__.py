"""Concrete adapters behind the interfaces in :mod:`tenderdraft.interfaces`."""
