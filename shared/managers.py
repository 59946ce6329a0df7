# shared/managers.py
"""
Append-only querysets for audit tables.

Rows behind an AppendOnlyQuerySet can be inserted and read, never changed
or removed in bulk: ``update()`` and ``delete()`` raise instead of issuing
SQL. Instance-level ``save()``/``delete()`` guards live on the model itself
(see StockMovement), since Model.save() bypasses QuerySet.update().

Usage:
    class AuditRow(models.Model):
        objects = AppendOnlyQuerySet.as_manager()

    AuditRow.objects.create(...)       # ok
    AuditRow.objects.filter(...)        # ok
    AuditRow.objects.all().delete()     # raises AppendOnlyViolation
"""
from django.db import models


class AppendOnlyViolation(Exception):
    """Raised when code tries to mutate an append-only table."""


class AppendOnlyQuerySet(models.QuerySet):
    """QuerySet that refuses bulk mutation."""

    # Subclasses may raise a domain error instead.
    error_class = AppendOnlyViolation

    def _refuse(self, operation):
        raise self.error_class(
            f"{self.model._meta.label} is append-only; {operation}() is not allowed."
        )

    def update(self, **kwargs):
        self._refuse('update')

    def delete(self):
        self._refuse('delete')

    def bulk_update(self, objs, fields, batch_size=None):
        self._refuse('bulk_update')

    def update_or_create(self, defaults=None, create_defaults=None, **kwargs):
        self._refuse('update_or_create')
