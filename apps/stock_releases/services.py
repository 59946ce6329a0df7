# apps/stock_releases/services.py
"""
Stock release workflow.

StockReleaseService handles:
- Creating and editing release requests (PENDING)
- Approval, release, receipt, completion and cancellation
- Driving the inventory primitives when stock actually moves

Every transition locks the release row, checks the current status and
writes the new one with a compare-and-swap UPDATE (``WHERE status = <seen>``).
Two concurrent approvals of the same release cannot both succeed: the
loser gets InvalidStateTransition.
"""
import logging
from dataclasses import dataclass
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured, ValidationError
from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from apps.core.models import get_next_sequence_number
from apps.inventory.exceptions import (
    DuplicateRelease,
    InsufficientStock,
    InvalidAdjustment,
    InvalidStateTransition,
    InvalidTransfer,
    StockReleaseNotFound,
)
from apps.inventory.models import AdjustmentIntent, ReferenceType
from apps.inventory.services import (
    AdjustmentService,
    InventoryRecordStore,
    TransferService,
    ensure_location,
    ensure_product,
    validate_quantity,
)
from .models import (
    ReleaseStatus,
    ReleaseType,
    StockRelease,
    StockReleaseItem,
    TRANSFER_RELEASE_TYPES,
)

logger = logging.getLogger(__name__)


# Consumption release types -> adjustment intent used when stock leaves.
RELEASE_TYPE_INTENTS = {
    ReleaseType.JOB_USAGE: AdjustmentIntent.USAGE,
    ReleaseType.INTERNAL_USE: AdjustmentIntent.USAGE,
    ReleaseType.DISPOSAL: AdjustmentIntent.WRITE_OFF,
    ReleaseType.SAMPLE: AdjustmentIntent.ADJUSTMENT,
    ReleaseType.PROMOTION: AdjustmentIntent.ADJUSTMENT,
    ReleaseType.OTHER: AdjustmentIntent.ADJUSTMENT,
}

if set(RELEASE_TYPE_INTENTS) | set(TRANSFER_RELEASE_TYPES) != set(ReleaseType):
    raise ImproperlyConfigured("Every ReleaseType must be a transfer type or map to an adjustment intent")

_UNSET = object()


@dataclass
class ReleaseLineInput:
    """Input for one stock release line."""
    product: object
    quantity: int
    batch_number: str = ''
    serial_number: str = ''
    notes: str = ''


class StockReleaseService:
    """
    Service for the stock release workflow.

    Usage:
        service = StockReleaseService(user)

        release = service.create(
            release_type=ReleaseType.JOB_USAGE,
            from_location=branch,
            items=[ReleaseLineInput(product=screen, quantity=1)],
            reference_type='JOB_SHEET', reference_number='JS-1042',
        )
        service.approve(release.pk)
        service.release(release.pk)     # stock leaves the branch -> COMPLETED
    """

    def __init__(self, user=None):
        self.user = user
        self.store = InventoryRecordStore()

    # ===== READ =====

    def get(self, release_id):
        try:
            return (
                StockRelease.objects
                .select_related('from_location', 'to_location')
                .prefetch_related('items__product')
                .get(pk=release_id)
            )
        except (StockRelease.DoesNotExist, ValueError, TypeError):
            raise StockReleaseNotFound(release_id)

    def list(self, status=None, release_type=None, location=None, search=None):
        releases = StockRelease.objects.select_related('from_location', 'to_location')
        if status:
            releases = releases.filter(status=status)
        if release_type:
            releases = releases.filter(release_type=release_type)
        if location is not None:
            releases = releases.filter(Q(from_location=location) | Q(to_location=location))
        if search:
            releases = releases.filter(
                Q(release_number__icontains=search)
                | Q(reference_number__icontains=search)
                | Q(notes__icontains=search)
            )
        return releases

    # ===== CREATE / EDIT =====

    def create(
        self,
        release_type,
        from_location,
        items,
        to_location=None,
        requested_by=None,
        reference_type='',
        reference_id=None,
        reference_number='',
        notes='',
    ):
        """
        Create a release request in PENDING.

        Args:
            release_type: ReleaseType value
            from_location: Location stock will leave
            items: list of ReleaseLineInput
            to_location: destination, required for (and only for) branch transfers
            requested_by: requesting user (defaults to the service user)

        Raises:
            ValidationError: unknown release type or no lines
            InvalidTransfer: destination missing / not allowed / same as source
            ProductNotFound, LocationNotFound
            InsufficientStock: the source cannot currently cover a line
        """
        release_type = self._validate_release_type(release_type)
        lines = self._validate_lines(items)

        with transaction.atomic():
            ensure_location(from_location)
            self._validate_destination(release_type, from_location, to_location)
            self._check_stock(from_location, lines)

            release_number = get_next_sequence_number(
                'SR',
                prefix=settings.STOCK_RELEASE_NUMBER_PREFIX,
                padding=settings.STOCK_RELEASE_NUMBER_PADDING,
            )
            release = StockRelease.objects.create(
                release_number=release_number,
                release_type=release_type,
                status=ReleaseStatus.PENDING,
                from_location=from_location,
                to_location=to_location,
                reference_type=reference_type or '',
                reference_id=reference_id,
                reference_number=reference_number or '',
                requested_by=requested_by or self.user,
                notes=notes or '',
            )
            self._create_items(release, lines)

        logger.info(
            'Stock release %s created (%s, %s line(s)) by %s',
            release.release_number, release_type, len(lines), release.requested_by,
        )
        return release

    def update(self, release_id, release_type=None, to_location=_UNSET, items=None, notes=None):
        """
        Edit a PENDING release. ``items`` replaces all lines when given.

        Raises:
            InvalidStateTransition: release is no longer PENDING
        """
        with transaction.atomic():
            release = self._lock(release_id)
            if release.status != ReleaseStatus.PENDING:
                raise InvalidStateTransition(release.release_number, release.status, 'EDIT')

            if release_type is not None:
                release.release_type = self._validate_release_type(release_type)
            if to_location is not _UNSET:
                release.to_location = to_location
            if notes is not None:
                release.notes = notes
            self._validate_destination(release.release_type, release.from_location, release.to_location)

            if items is not None:
                lines = self._validate_lines(items)
                self._check_stock(release.from_location, lines)
                release.items.all().delete()
                self._create_items(release, lines)

            release.save()

        logger.info('Stock release %s updated', release.release_number)
        return release

    def delete(self, release_id):
        """Delete a release that never moved stock (PENDING or CANCELLED)."""
        with transaction.atomic():
            release = self._lock(release_id)
            if release.status not in (ReleaseStatus.PENDING, ReleaseStatus.CANCELLED):
                raise InvalidStateTransition(release.release_number, release.status, 'DELETED')
            number = release.release_number
            release.delete()
        logger.info('Stock release %s deleted', number)

    # ===== TRANSITIONS =====

    def approve(self, release_id, approver=None, notes=''):
        """PENDING -> APPROVED. Does not move stock."""
        approver = approver or self.user
        with transaction.atomic():
            release = self._lock_for(release_id, ReleaseStatus.APPROVED)
            self._commit_transition(
                release,
                ReleaseStatus.APPROVED,
                approved_by=approver,
                approved_at=timezone.now(),
                notes=notes or release.notes,
            )

        logger.info('Stock release %s approved by %s', release.release_number, approver)
        return release

    def release(self, release_id, releaser=None, line_overrides=None):
        """
        APPROVED -> RELEASED (branch transfer) or COMPLETED (consumption types).

        Each line releases its requested quantity unless ``line_overrides``
        names it: ``{item_id: quantity}`` or ``[(item_id, quantity), ...]``.
        Overrides above the requested quantity are capped at it.

        Raises:
            InvalidStateTransition: release is not APPROVED
            DuplicateRelease: a line already left stock, or is overridden twice
            InsufficientStock: the source no longer covers a line
        """
        releaser = releaser or self.user

        with transaction.atomic():
            release = self._lock(release_id)
            target = ReleaseStatus.RELEASED if release.is_transfer else ReleaseStatus.COMPLETED
            self._check_transition(release, target)

            items = list(
                release.items.select_for_update(of=('self',)).select_related('product').order_by('product_id', 'id')
            )
            for item in items:
                if item.released_at is not None:
                    raise DuplicateRelease(release.release_number, item.pk)
            quantities = self._release_quantities(release, items, line_overrides)

            now = timezone.now()
            for item in items:
                quantity = quantities[item.pk]
                if quantity:
                    self._take_from_source(release, item, quantity, releaser)

                item.released_quantity = quantity
                item.released_at = now
                item.total_cost = (item.unit_cost or Decimal('0.00')) * quantity
                item.save(update_fields=['released_quantity', 'released_at', 'total_cost'])

            fields = {'released_by': releaser, 'released_at': now}
            if target == ReleaseStatus.COMPLETED:
                fields.update(completed_by=releaser, completed_at=now)
            self._commit_transition(release, target, **fields)

        logger.info(
            'Stock release %s released by %s (%s unit(s)) -> %s',
            release.release_number, releaser, sum(quantities.values()), target,
        )
        return release

    def receive(self, release_id, receiver=None, notes=''):
        """
        RELEASED -> COMPLETED. Credits the destination with what left the source.

        The receiver is stamped as both ``received_by`` and ``completed_by``
        in the same status write; receipt closes a branch transfer.

        Raises:
            InvalidStateTransition: release is not RELEASED
            InvalidTransfer: release has no destination
        """
        receiver = receiver or self.user

        with transaction.atomic():
            release = self._lock(release_id)
            if release.status != ReleaseStatus.RELEASED:
                raise InvalidStateTransition(release.release_number, release.status, ReleaseStatus.COMPLETED)
            if release.to_location_id is None:
                raise InvalidTransfer(f"Stock release {release.release_number} has no destination location.")

            transfers = TransferService(receiver)
            items = release.items.select_related('product').order_by('product_id', 'id')
            for item in items:
                if not item.released_quantity:
                    continue
                transfers.credit_for_transfer(
                    item.product,
                    release.from_location,
                    release.to_location,
                    item.released_quantity,
                    reference_type=ReferenceType.STOCK_RELEASE,
                    reference_id=release.pk,
                    reference_number=release.release_number,
                    notes=f"Stock received: {release.release_number}",
                    batch_number=item.batch_number,
                    serial_number=item.serial_number,
                )

            now = timezone.now()
            self._commit_transition(
                release,
                ReleaseStatus.COMPLETED,
                received_by=receiver,
                received_at=now,
                completed_by=receiver,
                completed_at=now,
                notes=notes or release.notes,
            )

        logger.info('Stock release %s received by %s', release.release_number, receiver)
        return release

    def cancel(self, release_id, user=None, notes=''):
        """PENDING/APPROVED -> CANCELLED. Nothing was released, so no stock moves."""
        user = user or self.user
        with transaction.atomic():
            release = self._lock_for(release_id, ReleaseStatus.CANCELLED)
            self._commit_transition(
                release,
                ReleaseStatus.CANCELLED,
                cancelled_by=user,
                cancelled_at=timezone.now(),
                notes=notes or release.notes,
            )

        logger.info('Stock release %s cancelled by %s', release.release_number, user)
        return release

    # ===== HELPERS =====

    def _lock(self, release_id):
        try:
            return (
                StockRelease.objects
                .select_for_update(of=('self',))
                .select_related('from_location', 'to_location')
                .get(pk=release_id)
            )
        except (StockRelease.DoesNotExist, ValueError, TypeError):
            raise StockReleaseNotFound(release_id)

    def _lock_for(self, release_id, target):
        release = self._lock(release_id)
        self._check_transition(release, target)
        return release

    @staticmethod
    def _check_transition(release, target):
        if not release.can_transition(target):
            logger.warning(
                'Rejected stock release %s transition %s -> %s',
                release.release_number, release.status, target,
            )
            raise InvalidStateTransition(release.release_number, release.status, target)

    @staticmethod
    def _commit_transition(release, target, **fields):
        """
        Write the new status only if the row still holds the status we read.

        Raises:
            InvalidStateTransition: another caller changed the status first
        """
        fields['updated_at'] = timezone.now()
        updated = StockRelease.objects.filter(
            pk=release.pk,
            status=release.status,
        ).update(status=target, **fields)
        if updated != 1:
            current = (
                StockRelease.objects.filter(pk=release.pk)
                .values_list('status', flat=True)
                .first()
            )
            logger.warning(
                'Stock release %s changed concurrently: expected %s, found %s',
                release.release_number, release.status, current,
            )
            raise InvalidStateTransition(release.release_number, current, target)

        release.status = target
        for name, value in fields.items():
            setattr(release, name, value)

    @staticmethod
    def _validate_release_type(release_type):
        try:
            return ReleaseType(release_type)
        except ValueError:
            raise ValidationError(f"Unknown release type: {release_type!r}")

    @staticmethod
    def _validate_destination(release_type, from_location, to_location):
        if release_type in TRANSFER_RELEASE_TYPES:
            if to_location is None:
                raise InvalidTransfer("A branch transfer release needs a destination location.")
            ensure_location(to_location)
            if to_location.pk == from_location.pk:
                raise InvalidTransfer("Source and destination locations cannot be the same.")
        elif to_location is not None:
            raise InvalidTransfer(f"{ReleaseType(release_type).label} releases cannot have a destination location.")

    @staticmethod
    def _validate_lines(items):
        lines = list(items or [])
        if not lines:
            raise ValidationError("A stock release needs at least one line.")
        for line in lines:
            validate_quantity(line.quantity)
            ensure_product(line.product)
        return lines

    def _check_stock(self, location, lines):
        """Source must currently cover the requested totals per product."""
        requested = {}
        for line in lines:
            product, total = requested.get(line.product.pk, (line.product, 0))
            requested[line.product.pk] = (product, total + line.quantity)

        for product, quantity in requested.values():
            record = self.store.get(product, location)
            available = record.available_quantity if record else 0
            if available < quantity:
                raise InsufficientStock(product, location, available, quantity)

    @staticmethod
    def _create_items(release, lines):
        StockReleaseItem.objects.bulk_create([
            StockReleaseItem(
                release=release,
                product=line.product,
                requested_quantity=line.quantity,
                unit_cost=line.product.cost_price,
                batch_number=line.batch_number or '',
                serial_number=line.serial_number or '',
                notes=line.notes or '',
            )
            for line in lines
        ])

    @staticmethod
    def _release_quantities(release, items, line_overrides):
        """Resolve the quantity each line releases, capped at its request."""
        quantities = {item.pk: item.requested_quantity for item in items}
        if not line_overrides:
            return quantities

        pairs = line_overrides.items() if isinstance(line_overrides, dict) else line_overrides
        seen = set()
        for item_id, quantity in pairs:
            if item_id not in quantities:
                raise InvalidAdjustment(
                    f"Item {item_id} not found in stock release {release.release_number}"
                )
            if item_id in seen:
                raise DuplicateRelease(release.release_number, item_id)
            seen.add(item_id)
            if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 0:
                raise InvalidAdjustment(f"Released quantity must be a non-negative integer, got {quantity!r}")
            quantities[item_id] = min(quantity, quantities[item_id])
        return quantities

    def _take_from_source(self, release, item, quantity, releaser):
        """Remove one line's stock from the source location."""
        if release.is_transfer:
            TransferService(releaser).decrement_for_transfer(
                item.product,
                release.from_location,
                release.to_location,
                quantity,
                reference_type=ReferenceType.STOCK_RELEASE,
                reference_id=release.pk,
                reference_number=release.release_number,
                notes=f"Stock released: {release.release_number}",
                batch_number=item.batch_number,
                serial_number=item.serial_number,
            )
        else:
            AdjustmentService(releaser).adjust(
                item.product,
                release.from_location,
                -quantity,
                intent=RELEASE_TYPE_INTENTS[release.release_type],
                reference_type=ReferenceType.STOCK_RELEASE,
                reference_id=release.pk,
                reference_number=release.release_number,
                notes=f"Stock released: {release.release_number} ({release.get_release_type_display()})",
                batch_number=item.batch_number,
                serial_number=item.serial_number,
            )
