# shared/models.py
"""
Abstract base models shared across the RepairHub apps.

TimestampMixin is used by Product, Location, InventoryRecord and
StockRelease. StockMovement does not use it: ledger rows are never
updated, so they carry only ``created_at``.
"""
from django.db import models


class TimestampMixin(models.Model):
    """Adds ``created_at`` (set on insert) and ``updated_at`` (set on every save)."""
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True
