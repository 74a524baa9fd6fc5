"""Stock and cash reconciliation backend for a POS-driven food business."""

__version__ = "1.0.0"
