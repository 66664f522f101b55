"""Locally tagged items."""

from .item_catalog import BatchListener, ChangeListener, ItemCatalog

__all__ = ["BatchListener", "ChangeListener", "ItemCatalog"]
