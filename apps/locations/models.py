# apps/locations/models.py
"""
Physical stock locations: shop branches and warehouses.
"""
from django.db import models
from shared.models import TimestampMixin


class Location(TimestampMixin):
    """A branch or warehouse that holds stock."""

    LOCATION_TYPES = [
        ('BRANCH', 'Branch'),
        ('WAREHOUSE', 'Warehouse'),
    ]

    location_code = models.CharField(
        max_length=20,
        unique=True,
        help_text="Short code (e.g., 'BR-COL', 'WH-MAIN')"
    )
    name = models.CharField(max_length=255)
    location_type = models.CharField(
        max_length=20,
        choices=LOCATION_TYPES,
        default='BRANCH'
    )
    address = models.TextField(blank=True)
    phone = models.CharField(max_length=50, blank=True)
    is_active = models.BooleanField(default=True)

    class Meta:
        ordering = ['name']
        indexes = [
            models.Index(fields=['location_type', 'is_active'], name='locations_type_active_idx'),
        ]

    def __str__(self):
        return f"{self.name} ({self.location_code})"
