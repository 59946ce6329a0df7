# apps/catalog/models.py
"""
Product catalog.

Only the fields the inventory engine reads are modelled here; product,
category and supplier maintenance belong to the catalog service.
"""
from decimal import Decimal
from django.db import models
from shared.models import TimestampMixin


class Product(TimestampMixin):
    """
    A stockable part or device sold or consumed by repairs.

    Example:
        Product Code: PRD-000123
        SKU: LCD-IP13-BLK
        Name: iPhone 13 LCD Assembly (Black)
    """
    product_code = models.CharField(
        max_length=50,
        unique=True,
        help_text="Internal product code"
    )
    sku = models.CharField(
        max_length=100,
        blank=True,
        db_index=True,
        help_text="Stock keeping unit / barcode"
    )
    name = models.CharField(
        max_length=255,
        help_text="Product name"
    )
    brand = models.CharField(max_length=100, blank=True)
    model = models.CharField(max_length=100, blank=True)
    cost_price = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal('0.00'),
        help_text="Purchase cost per unit"
    )
    unit_price = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal('0.00'),
        help_text="Selling price per unit"
    )
    min_stock_level = models.PositiveIntegerField(
        default=0,
        help_text="Default low-stock threshold for locations without their own"
    )
    reorder_level = models.PositiveIntegerField(
        null=True,
        blank=True,
        help_text="Default reorder point"
    )
    is_active = models.BooleanField(default=True)

    class Meta:
        ordering = ['name']
        indexes = [
            models.Index(fields=['is_active', 'name'], name='catalog_prod_active_name_idx'),
        ]

    def __str__(self):
        return f"{self.product_code} - {self.name}"
