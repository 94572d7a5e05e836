"""Org and space usage statistics for multi-tenant platform inventories."""

__version__ = "0.1.0"
