"""lendctl — lendable inventory, borrow requests, and notification fan-out."""

__version__ = "0.1.0"
