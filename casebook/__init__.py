"""Casebook: narrative progression engine for mystery adventures."""

__version__ = "0.1.0"
