# apps/inventory/models.py
"""
Inventory models for tracking stock levels and movements.

Models:
- InventoryRecord: Quantity on hand / reserved / available per product+location
- StockMovement: Append-only ledger of every quantity change

Inventory Flow:
1. A service locks the InventoryRecord (SELECT ... FOR UPDATE)
2. The new quantity is validated and written to the record
3. Exactly one StockMovement is appended with before/after snapshots
4. Both writes commit or roll back together

Ledger entries are never updated or deleted. Replaying a location's
entries from zero, oldest first, reproduces the record's quantity.
"""
from django.conf import settings
from django.core.exceptions import ImproperlyConfigured
from django.db import models
from simple_history.models import HistoricalRecords

from shared.managers import AppendOnlyQuerySet
from shared.models import TimestampMixin
from .exceptions import InvariantViolation


class MovementType(models.TextChoices):
    """Closed vocabulary of ledger entry types."""
    PURCHASE = 'PURCHASE', 'Purchase'
    SALES = 'SALES', 'Sales'
    TRANSFER_IN = 'TRANSFER_IN', 'Transfer In'
    TRANSFER_OUT = 'TRANSFER_OUT', 'Transfer Out'
    ADJUSTMENT_IN = 'ADJUSTMENT_IN', 'Adjustment In'
    ADJUSTMENT_OUT = 'ADJUSTMENT_OUT', 'Adjustment Out'
    RETURN_FROM_CUSTOMER = 'RETURN_FROM_CUSTOMER', 'Return from Customer'
    RETURN_TO_SUPPLIER = 'RETURN_TO_SUPPLIER', 'Return to Supplier'
    DAMAGED = 'DAMAGED', 'Damaged'
    EXPIRED = 'EXPIRED', 'Expired'
    STOLEN = 'STOLEN', 'Stolen / Lost'
    FOUND = 'FOUND', 'Found'
    USAGE = 'USAGE', 'Usage'
    WRITE_OFF = 'WRITE_OFF', 'Write-off'


# +1 adds to on-hand, -1 removes from it.
MOVEMENT_DIRECTION = {
    MovementType.PURCHASE: 1,
    MovementType.SALES: -1,
    MovementType.TRANSFER_IN: 1,
    MovementType.TRANSFER_OUT: -1,
    MovementType.ADJUSTMENT_IN: 1,
    MovementType.ADJUSTMENT_OUT: -1,
    MovementType.RETURN_FROM_CUSTOMER: 1,
    MovementType.RETURN_TO_SUPPLIER: -1,
    MovementType.DAMAGED: -1,
    MovementType.EXPIRED: -1,
    MovementType.STOLEN: -1,
    MovementType.FOUND: 1,
    MovementType.USAGE: -1,
    MovementType.WRITE_OFF: -1,
}

if set(MOVEMENT_DIRECTION) != set(MovementType):
    raise ImproperlyConfigured(
        "MOVEMENT_DIRECTION must cover every MovementType; missing: "
        f"{sorted(set(MovementType) - set(MOVEMENT_DIRECTION))}"
    )


class ReferenceType(models.TextChoices):
    """What triggered a movement."""
    PURCHASE_ORDER = 'PURCHASE_ORDER', 'Purchase Order'
    GOODS_RECEIPT = 'GOODS_RECEIPT', 'Goods Receipt'
    SALE = 'SALE', 'Sale'
    JOB_SHEET = 'JOB_SHEET', 'Job Sheet'
    STOCK_TRANSFER = 'STOCK_TRANSFER', 'Stock Transfer'
    STOCK_RELEASE = 'STOCK_RELEASE', 'Stock Release'
    ADJUSTMENT = 'ADJUSTMENT', 'Adjustment'
    STOCK_COUNT = 'STOCK_COUNT', 'Stock Count'
    RETURN = 'RETURN', 'Return'


class AdjustmentIntent(models.TextChoices):
    """
    Caller-facing reasons for an adjustment.

    Callers pick an intent; the ledger movement type is derived from it
    (see apps.inventory.services.INTENT_MOVEMENT_TYPES).
    """
    STOCK_IN = 'STOCK_IN', 'Stock In'
    PURCHASE = 'PURCHASE', 'Purchase'
    STOCK_OUT = 'STOCK_OUT', 'Stock Out'
    SALE = 'SALE', 'Sale'
    RETURN = 'RETURN', 'Customer Return'
    RETURN_TO_SUPPLIER = 'RETURN_TO_SUPPLIER', 'Return to Supplier'
    DAMAGE = 'DAMAGE', 'Damage'
    EXPIRED = 'EXPIRED', 'Expired'
    LOST = 'LOST', 'Lost / Stolen'
    FOUND = 'FOUND', 'Found'
    USAGE = 'USAGE', 'Usage'
    WRITE_OFF = 'WRITE_OFF', 'Write-off'
    ADJUSTMENT = 'ADJUSTMENT', 'Manual Adjustment'


class InventoryRecord(TimestampMixin):
    """
    Stock level for one product at one location.

    This row is the only contended resource in the engine; every writer
    locks it with SELECT ... FOR UPDATE before reading the quantity.

    Quantities:
    - quantity: Physical units on hand
    - reserved_quantity: Units earmarked but not yet removed
    - available_quantity: quantity - reserved_quantity (stored, never negative)
    """
    product = models.ForeignKey(
        'catalog.Product',
        on_delete=models.PROTECT,
        related_name='inventory_records',
        help_text="Product"
    )
    location = models.ForeignKey(
        'locations.Location',
        on_delete=models.PROTECT,
        related_name='inventory_records',
        help_text="Branch or warehouse"
    )
    quantity = models.IntegerField(
        default=0,
        help_text="Units on hand"
    )
    reserved_quantity = models.IntegerField(
        default=0,
        help_text="Units earmarked but not yet removed"
    )
    available_quantity = models.IntegerField(
        default=0,
        help_text="quantity - reserved_quantity"
    )
    min_stock_level = models.PositiveIntegerField(
        null=True,
        blank=True,
        help_text="Low-stock threshold (falls back to the product's)"
    )
    max_stock_level = models.PositiveIntegerField(
        null=True,
        blank=True,
        help_text="Upper stocking target"
    )
    reorder_level = models.PositiveIntegerField(
        null=True,
        blank=True,
        help_text="Reorder point"
    )
    storage_location = models.CharField(
        max_length=100,
        blank=True,
        help_text="Shelf / bin within the location"
    )
    last_restocked = models.DateTimeField(
        null=True,
        blank=True,
        help_text="Last time quantity increased"
    )

    # Audit trail
    history = HistoricalRecords()

    class Meta:
        verbose_name = "Inventory Record"
        verbose_name_plural = "Inventory Records"
        constraints = [
            models.UniqueConstraint(
                fields=['product', 'location'],
                name='inv_record_product_location_uniq',
            ),
            models.CheckConstraint(
                condition=models.Q(quantity__gte=0),
                name='inv_record_quantity_gte_0',
            ),
            models.CheckConstraint(
                condition=models.Q(reserved_quantity__gte=0),
                name='inv_record_reserved_gte_0',
            ),
            models.CheckConstraint(
                condition=models.Q(available_quantity__gte=0),
                name='inv_record_available_gte_0',
            ),
            models.CheckConstraint(
                condition=models.Q(
                    available_quantity=models.F('quantity') - models.F('reserved_quantity')
                ),
                name='inv_record_available_consistent',
            ),
        ]
        indexes = [
            models.Index(fields=['location', 'product'], name='inv_record_loc_prod_idx'),
        ]

    def __str__(self):
        return f"{self.product.product_code} @ {self.location.location_code}: {self.quantity} on hand"

    @property
    def low_stock_threshold(self):
        if self.min_stock_level is not None:
            return self.min_stock_level
        return self.product.min_stock_level

    @property
    def is_low_stock(self):
        threshold = self.low_stock_threshold
        return bool(threshold) and self.quantity <= threshold


class StockMovementQuerySet(AppendOnlyQuerySet):
    error_class = InvariantViolation

    def for_pair(self, product, location):
        return self.filter(product=product, location=location)

    def newest_first(self):
        return self.order_by('-created_at', '-id')

    def chronological(self):
        return self.order_by('created_at', 'id')


class StockMovement(models.Model):
    """
    Append-only audit entry for one quantity change.

    Every change to InventoryRecord.quantity writes exactly one movement in
    the same transaction. ``quantity`` is always a positive magnitude; the
    direction comes from ``movement_type``:

        quantity_after == quantity_before + direction * quantity
    """
    product = models.ForeignKey(
        'catalog.Product',
        on_delete=models.PROTECT,
        related_name='stock_movements',
        help_text="Product affected"
    )
    location = models.ForeignKey(
        'locations.Location',
        on_delete=models.PROTECT,
        related_name='stock_movements',
        help_text="Location affected"
    )
    movement_type = models.CharField(
        max_length=30,
        choices=MovementType.choices,
        help_text="Type of inventory movement"
    )
    quantity = models.IntegerField(
        help_text="Units moved (always positive)"
    )
    quantity_before = models.IntegerField(
        help_text="On-hand quantity before this movement"
    )
    quantity_after = models.IntegerField(
        help_text="On-hand quantity after this movement"
    )

    # Reference to the operation that caused the movement
    reference_type = models.CharField(
        max_length=30,
        choices=ReferenceType.choices,
        blank=True,
        help_text="Kind of document that triggered the movement"
    )
    reference_id = models.PositiveBigIntegerField(
        null=True,
        blank=True,
        help_text="ID of the referenced document"
    )
    reference_number = models.CharField(
        max_length=50,
        blank=True,
        help_text="Human-readable reference (SR-0001, TRF-..., PO number)"
    )

    batch_number = models.CharField(max_length=100, blank=True)
    serial_number = models.CharField(max_length=100, blank=True)

    performed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='stock_movements',
        help_text="User who performed the movement"
    )
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    objects = StockMovementQuerySet.as_manager()

    class Meta:
        verbose_name = "Stock Movement"
        verbose_name_plural = "Stock Movements"
        ordering = ['-created_at', '-id']
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity__gt=0),
                name='inv_move_quantity_gt_0',
            ),
            models.CheckConstraint(
                condition=models.Q(quantity_before__gte=0),
                name='inv_move_before_gte_0',
            ),
            models.CheckConstraint(
                condition=models.Q(quantity_after__gte=0),
                name='inv_move_after_gte_0',
            ),
        ]
        indexes = [
            models.Index(fields=['product', 'created_at'], name='inv_move_prod_created_idx'),
            models.Index(fields=['location', 'created_at'], name='inv_move_loc_created_idx'),
            models.Index(fields=['reference_type', 'reference_id'], name='inv_move_reference_idx'),
        ]

    def __str__(self):
        return f"{self.movement_type} {self.signed_quantity:+d} {self.product_id}@{self.location_id}"

    @property
    def direction(self):
        return MOVEMENT_DIRECTION[self.movement_type]

    @property
    def signed_quantity(self):
        return self.direction * self.quantity

    def check_consistency(self):
        """Raise InvariantViolation unless before/after match type and quantity."""
        if self.movement_type not in MOVEMENT_DIRECTION:
            raise InvariantViolation(f"Unknown movement type: {self.movement_type!r}")
        if self.quantity is None or self.quantity <= 0:
            raise InvariantViolation(f"Movement quantity must be positive, got {self.quantity}")
        if self.quantity_before < 0 or self.quantity_after < 0:
            raise InvariantViolation(
                f"Movement snapshots cannot be negative "
                f"(before: {self.quantity_before}, after: {self.quantity_after})"
            )
        expected = self.quantity_before + self.signed_quantity
        if self.quantity_after != expected:
            raise InvariantViolation(
                f"{self.movement_type} of {self.quantity} from {self.quantity_before} "
                f"must end at {expected}, got {self.quantity_after}"
            )

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise InvariantViolation("Stock movements are append-only and cannot be changed.")
        self.check_consistency()
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise InvariantViolation("Stock movements are append-only and cannot be deleted.")
