"""Marketplace catalog and transaction services."""

__version__ = "1.0.0"
