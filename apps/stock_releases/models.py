# apps/stock_releases/models.py
"""
Stock release models: requests to take stock out of a location.

Models:
- StockRelease: Header with type, status, locations and the audit trail
- StockReleaseItem: One product line (requested vs. released quantity)

Workflow:
    PENDING -> APPROVED -> RELEASED -> COMPLETED
    PENDING / APPROVED -> CANCELLED

Approval alone never moves stock. ``release`` removes stock from the
source; consumption types (job usage, disposal, ...) finish there as
COMPLETED, branch transfers wait in RELEASED until the destination
receives them. Receipt stamps ``received_*`` and ``completed_*`` in one
write, so no row rests in RECEIVED.
"""
from decimal import Decimal
from django.conf import settings
from django.db import models
from shared.models import TimestampMixin


class ReleaseType(models.TextChoices):
    JOB_USAGE = 'JOB_USAGE', 'Job Usage'
    BRANCH_TRANSFER = 'BRANCH_TRANSFER', 'Branch Transfer'
    INTERNAL_USE = 'INTERNAL_USE', 'Internal Use'
    SAMPLE = 'SAMPLE', 'Sample'
    PROMOTION = 'PROMOTION', 'Promotion'
    DISPOSAL = 'DISPOSAL', 'Disposal'
    OTHER = 'OTHER', 'Other'


# Release types that move stock to another location instead of consuming it.
TRANSFER_RELEASE_TYPES = frozenset({ReleaseType.BRANCH_TRANSFER})


class ReleaseStatus(models.TextChoices):
    PENDING = 'PENDING', 'Pending'
    APPROVED = 'APPROVED', 'Approved'
    RELEASED = 'RELEASED', 'Released'
    RECEIVED = 'RECEIVED', 'Received'
    COMPLETED = 'COMPLETED', 'Completed'
    CANCELLED = 'CANCELLED', 'Cancelled'


ALLOWED_TRANSITIONS = {
    ReleaseStatus.PENDING: {ReleaseStatus.APPROVED, ReleaseStatus.CANCELLED},
    ReleaseStatus.APPROVED: {ReleaseStatus.RELEASED, ReleaseStatus.COMPLETED, ReleaseStatus.CANCELLED},
    ReleaseStatus.RELEASED: {ReleaseStatus.COMPLETED},
    ReleaseStatus.RECEIVED: set(),
    ReleaseStatus.COMPLETED: set(),
    ReleaseStatus.CANCELLED: set(),
}


class StockRelease(TimestampMixin):
    """
    Request to release stock from a location.

    Example:
        Release: SR-0042
        Type: BRANCH_TRANSFER
        From: Main Warehouse (WH-MAIN)
        To: Colombo Branch (BR-COL)
        Lines: 5 x LCD-IP13-BLK, 10 x BAT-IP11
    """
    release_number = models.CharField(
        max_length=30,
        unique=True,
        help_text="Sequential release number (SR-0001)"
    )
    release_type = models.CharField(
        max_length=20,
        choices=ReleaseType.choices,
        help_text="Why the stock is leaving the location"
    )
    status = models.CharField(
        max_length=20,
        choices=ReleaseStatus.choices,
        default=ReleaseStatus.PENDING,
        help_text="Workflow status"
    )
    from_location = models.ForeignKey(
        'locations.Location',
        on_delete=models.PROTECT,
        related_name='stock_releases_out',
        help_text="Location stock is released from"
    )
    to_location = models.ForeignKey(
        'locations.Location',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='stock_releases_in',
        help_text="Destination (branch transfers only)"
    )

    # Document this release serves (e.g., a job sheet)
    reference_type = models.CharField(max_length=30, blank=True)
    reference_id = models.PositiveBigIntegerField(null=True, blank=True)
    reference_number = models.CharField(max_length=50, blank=True)

    # Audit trail
    requested_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='stock_releases_requested'
    )
    approved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='stock_releases_approved'
    )
    released_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='stock_releases_released'
    )
    received_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='stock_releases_received'
    )
    completed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='stock_releases_completed'
    )
    cancelled_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='stock_releases_cancelled'
    )
    approved_at = models.DateTimeField(null=True, blank=True)
    released_at = models.DateTimeField(null=True, blank=True)
    received_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)

    notes = models.TextField(blank=True)

    class Meta:
        verbose_name = "Stock Release"
        verbose_name_plural = "Stock Releases"
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['status', 'created_at'], name='stock_rel_status_idx'),
            models.Index(fields=['from_location', 'status'], name='stock_rel_from_loc_idx'),
            models.Index(fields=['to_location', 'status'], name='stock_rel_to_loc_idx'),
        ]

    def __str__(self):
        return f"{self.release_number} ({self.get_status_display()})"

    @property
    def is_transfer(self):
        return self.release_type in TRANSFER_RELEASE_TYPES

    def can_transition(self, target):
        return target in ALLOWED_TRANSITIONS.get(self.status, set())

    @property
    def total_requested(self):
        return sum(item.requested_quantity for item in self.items.all())

    @property
    def total_released(self):
        return sum(item.released_quantity for item in self.items.all())


class StockReleaseItem(models.Model):
    """One product line on a stock release."""
    release = models.ForeignKey(
        StockRelease,
        on_delete=models.CASCADE,
        related_name='items'
    )
    product = models.ForeignKey(
        'catalog.Product',
        on_delete=models.PROTECT,
        related_name='stock_release_items'
    )
    requested_quantity = models.PositiveIntegerField(
        help_text="Units requested"
    )
    released_quantity = models.PositiveIntegerField(
        default=0,
        help_text="Units actually released (never more than requested)"
    )
    released_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="Set once, when the line leaves source stock"
    )
    unit_cost = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal('0.00'),
        help_text="Product cost at request time"
    )
    total_cost = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        default=Decimal('0.00'),
        help_text="unit_cost x released_quantity"
    )
    batch_number = models.CharField(max_length=100, blank=True)
    serial_number = models.CharField(max_length=100, blank=True)
    notes = models.TextField(blank=True)

    class Meta:
        verbose_name = "Stock Release Item"
        verbose_name_plural = "Stock Release Items"
        ordering = ['release', 'id']
        constraints = [
            models.CheckConstraint(
                condition=models.Q(requested_quantity__gt=0),
                name='stock_rel_item_requested_gt_0',
            ),
            models.CheckConstraint(
                condition=models.Q(released_quantity__lte=models.F('requested_quantity')),
                name='stock_rel_item_released_lte_req',
            ),
        ]

    def __str__(self):
        return f"{self.release.release_number}: {self.requested_quantity} x {self.product}"

    @property
    def is_released(self):
        return self.released_at is not None
