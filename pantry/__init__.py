"""Barcode pantry: product metadata resolution and inventory quantities."""

__version__ = "1.0.0"
