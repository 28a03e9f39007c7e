"""Catalog Admin: administrative service for a hosted product catalog."""

__version__ = "0.1.0"
