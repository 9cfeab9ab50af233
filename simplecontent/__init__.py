"""Repositories for contents, objects, their metadata and derivations, in memory or on PostgreSQL."""

__version__ = "0.1.0"