"""Concrete adapters for the interfaces in :mod:`querycache.interfaces`."""
