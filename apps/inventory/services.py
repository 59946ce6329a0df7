# apps/inventory/services.py
"""
Inventory services for managing stock levels and movements.

Components:
- InventoryRecordStore: owns the per product+location quantity row
- MovementLedger: append-only log of every quantity change
- AdjustmentService: applies a signed delta to one record (+ one ledger entry)
- TransferService: moves stock between locations (+ OUT/IN ledger entries)
- InventoryReconciliationService: replays the ledger against stored quantities

Concurrency:
    Public methods run inside ``transaction.atomic()`` (joining the caller's
    block when there is one, never opening an independent transaction).
    InventoryRecord rows are locked with SELECT ... FOR UPDATE before their
    quantity is read, so two writers can never act on the same stale value.
    Rows touched by one call are locked in (product_id, location_id) order.

Decrements never consume reserved units: a decrement larger than
``available_quantity`` fails with InsufficientStock.
"""
import logging
import uuid
from dataclasses import dataclass, field
from typing import List, Optional

from django.conf import settings
from django.db import transaction
from django.db.models import F
from django.db.models.functions import Coalesce
from django.utils import timezone

from apps.catalog.models import Product
from apps.locations.models import Location
from shared.transactions import require_atomic
from .exceptions import (
    InsufficientStock,
    InvalidAdjustment,
    InvalidTransfer,
    InvariantViolation,
    InventoryError,
    InventoryRecordNotFound,
    LocationNotFound,
    ProductNotFound,
)
from .models import (
    MOVEMENT_DIRECTION,
    AdjustmentIntent,
    InventoryRecord,
    MovementType,
    ReferenceType,
    StockMovement,
)

logger = logging.getLogger(__name__)


# Intent -> (movement type for increases, movement type for decreases).
# None means the intent cannot move stock in that direction.
INTENT_MOVEMENT_TYPES = {
    AdjustmentIntent.STOCK_IN: (MovementType.PURCHASE, None),
    AdjustmentIntent.PURCHASE: (MovementType.PURCHASE, None),
    AdjustmentIntent.STOCK_OUT: (None, MovementType.SALES),
    AdjustmentIntent.SALE: (None, MovementType.SALES),
    AdjustmentIntent.RETURN: (MovementType.RETURN_FROM_CUSTOMER, None),
    AdjustmentIntent.RETURN_TO_SUPPLIER: (None, MovementType.RETURN_TO_SUPPLIER),
    AdjustmentIntent.DAMAGE: (None, MovementType.DAMAGED),
    AdjustmentIntent.EXPIRED: (None, MovementType.EXPIRED),
    AdjustmentIntent.LOST: (None, MovementType.STOLEN),
    AdjustmentIntent.FOUND: (MovementType.FOUND, None),
    AdjustmentIntent.USAGE: (None, MovementType.USAGE),
    AdjustmentIntent.WRITE_OFF: (None, MovementType.WRITE_OFF),
    AdjustmentIntent.ADJUSTMENT: (MovementType.ADJUSTMENT_IN, MovementType.ADJUSTMENT_OUT),
}


def _check_intent_table():
    missing = set(AdjustmentIntent) - set(INTENT_MOVEMENT_TYPES)
    if missing:
        raise InvariantViolation(f"No movement types mapped for intents: {sorted(missing)}")
    for intent, (inbound, outbound) in INTENT_MOVEMENT_TYPES.items():
        if inbound is not None and MOVEMENT_DIRECTION[inbound] != 1:
            raise InvariantViolation(f"{intent} maps increases to outbound type {inbound}")
        if outbound is not None and MOVEMENT_DIRECTION[outbound] != -1:
            raise InvariantViolation(f"{intent} maps decreases to inbound type {outbound}")


_check_intent_table()


def movement_type_for(intent, signed_quantity):
    """
    Map a caller intent and the sign of the delta to a ledger movement type.

    Raises:
        InvalidAdjustment: unknown intent, or the intent does not allow
            stock to move in that direction (e.g. DAMAGE with +5)
    """
    try:
        intent = AdjustmentIntent(intent)
    except ValueError:
        raise InvalidAdjustment(f"Unknown adjustment intent: {intent!r}")

    inbound, outbound = INTENT_MOVEMENT_TYPES[intent]
    movement_type = inbound if signed_quantity > 0 else outbound
    if movement_type is None:
        direction = 'increase' if signed_quantity > 0 else 'decrease'
        raise InvalidAdjustment(
            f"Intent {intent.value} cannot {direction} stock (quantity {signed_quantity:+d})."
        )
    return movement_type


def validate_quantity(quantity, allow_negative=False):
    """Return ``quantity`` if it is a usable integer, else raise InvalidAdjustment."""
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise InvalidAdjustment(f"Quantity must be an integer, got {quantity!r}")
    if quantity == 0:
        raise InvalidAdjustment("Quantity must not be zero.")
    if quantity < 0 and not allow_negative:
        raise InvalidAdjustment(f"Quantity must be positive, got {quantity}")
    return quantity


def get_product(product_id):
    try:
        return Product.objects.get(pk=product_id)
    except (Product.DoesNotExist, ValueError, TypeError):
        raise ProductNotFound(product_id)


def get_location(location_id):
    try:
        return Location.objects.get(pk=location_id)
    except (Location.DoesNotExist, ValueError, TypeError):
        raise LocationNotFound(location_id)


def ensure_product(product):
    if product is None or not Product.objects.filter(pk=product.pk).exists():
        raise ProductNotFound(getattr(product, 'pk', None))
    return product


def ensure_location(location):
    if location is None or not Location.objects.filter(pk=location.pk).exists():
        raise LocationNotFound(getattr(location, 'pk', None))
    return location


def generate_transfer_reference():
    """Reference shared by the OUT and IN entries of one transfer."""
    return f"TRF-{uuid.uuid4().hex[:10].upper()}"


# ─── Results ────────────────────────────────────────────────────────────────────

@dataclass
class AdjustmentResult:
    """Result of an adjustment. ``movement`` is None when nothing changed."""
    record: InventoryRecord
    movement: Optional[StockMovement]

    @property
    def new_quantity(self):
        return self.record.quantity


@dataclass
class TransferResult:
    """Result of moving one product between two locations."""
    product: Product
    from_record: InventoryRecord
    to_record: InventoryRecord
    quantity: int
    reference_number: str
    out_movement: StockMovement
    in_movement: StockMovement


@dataclass
class BulkTransferResult:
    reference_number: str
    lines: List[TransferResult] = field(default_factory=list)

    @property
    def total_quantity(self):
        return sum(line.quantity for line in self.lines)


@dataclass
class ReconciliationResult:
    """Stored quantity vs. quantity rebuilt from the ledger."""
    product: Product
    location: Location
    recorded_quantity: int
    replayed_quantity: int
    movement_count: int
    broken_links: int = 0
    fixed: bool = False
    error: str = ''

    @property
    def drift(self):
        return self.recorded_quantity - self.replayed_quantity

    @property
    def is_consistent(self):
        return self.drift == 0 and self.broken_links == 0


# ─── InventoryRecord Store ──────────────────────────────────────────────────────

class InventoryRecordStore:
    """
    Owns InventoryRecord rows.

    Writes touch only the record itself; recording the matching ledger
    entry is the caller's job, in the same transaction.

    Usage:
        store = InventoryRecordStore()
        with transaction.atomic():
            record = store.get_or_create(product, location)
            store.set_quantity(record, record.quantity + 5)
    """

    def get(self, product, location):
        """Return the record for product+location, or None."""
        return (
            InventoryRecord.objects
            .select_related('product', 'location')
            .filter(product=product, location=location)
            .first()
        )

    def get_for_update(self, product, location):
        """Return the locked record for product+location, or None."""
        require_atomic('InventoryRecordStore.get_for_update')
        return (
            InventoryRecord.objects
            .select_for_update()
            .filter(product=product, location=location)
            .first()
        )

    def get_or_create(self, product, location):
        """
        Return the locked record, creating it with zero quantities if absent.

        A concurrent creator loses on the unique constraint and re-reads the
        winner's row (Django's get_or_create retry).
        """
        require_atomic('InventoryRecordStore.get_or_create')
        record, created = InventoryRecord.objects.select_for_update().get_or_create(
            product=product,
            location=location,
            defaults={'quantity': 0, 'reserved_quantity': 0, 'available_quantity': 0},
        )
        if created:
            logger.info(
                'Created inventory record for product %s at location %s',
                product.pk, location.pk,
            )
        return record

    def lock_records(self, products, locations):
        """
        Lock every existing record for the given products x locations.

        Rows are locked in (product_id, location_id) order so two calls
        touching the same rows cannot deadlock each other.

        Returns:
            dict: {(product_id, location_id): InventoryRecord}
        """
        require_atomic('InventoryRecordStore.lock_records')
        records = (
            InventoryRecord.objects
            .select_for_update()
            .filter(
                product__in=[p.pk for p in products],
                location__in=[loc.pk for loc in locations],
            )
            .order_by('product_id', 'location_id')
        )
        return {(r.product_id, r.location_id): r for r in records}

    def set_quantity(self, record, new_quantity, new_reserved=None):
        """
        Write new quantities to a locked record and recompute available.

        Raises:
            InvariantViolation: quantity, reserved or available would be negative
        """
        require_atomic('InventoryRecordStore.set_quantity')
        if new_reserved is None:
            new_reserved = record.reserved_quantity

        if new_quantity < 0:
            raise InvariantViolation(
                f"Quantity cannot be negative for {record.product_id}@{record.location_id}: {new_quantity}"
            )
        if new_reserved < 0:
            raise InvariantViolation(
                f"Reserved quantity cannot be negative for {record.product_id}@{record.location_id}: {new_reserved}"
            )
        new_available = new_quantity - new_reserved
        if new_available < 0:
            raise InvariantViolation(
                f"Available quantity cannot be negative for {record.product_id}@{record.location_id}. "
                f"Quantity: {new_quantity}, Reserved: {new_reserved}"
            )

        update_fields = ['quantity', 'reserved_quantity', 'available_quantity', 'updated_at']
        if new_quantity > record.quantity:
            record.last_restocked = timezone.now()
            update_fields.append('last_restocked')

        record.quantity = new_quantity
        record.reserved_quantity = new_reserved
        record.available_quantity = new_available
        record.save(update_fields=update_fields)
        return record

    def reserve(self, product, location, quantity):
        """
        Earmark units without removing them from on-hand.

        Raises:
            InsufficientStock: fewer than ``quantity`` units are available
        """
        validate_quantity(quantity)
        with transaction.atomic():
            record = self.get_for_update(product, location)
            available = record.available_quantity if record else 0
            if record is None or available < quantity:
                raise InsufficientStock(product, location, available, quantity)

            self.set_quantity(record, record.quantity, record.reserved_quantity + quantity)
            logger.info(
                'Reserved %s of product %s at location %s (reserved now %s)',
                quantity, product.pk, location.pk, record.reserved_quantity,
            )
            return record

    def unreserve(self, product, location, quantity):
        """Return previously reserved units to available."""
        validate_quantity(quantity)
        with transaction.atomic():
            record = self.get_for_update(product, location)
            if record is None:
                raise InventoryRecordNotFound(f"{product.pk}@{location.pk}")
            if quantity > record.reserved_quantity:
                raise InvalidAdjustment(
                    f"Cannot unreserve {quantity}; only {record.reserved_quantity} reserved."
                )

            self.set_quantity(record, record.quantity, record.reserved_quantity - quantity)
            logger.info(
                'Unreserved %s of product %s at location %s (reserved now %s)',
                quantity, product.pk, location.pk, record.reserved_quantity,
            )
            return record

    def delete(self, product, location):
        """
        Delete an empty record that has no ledger history.

        Raises:
            InventoryRecordNotFound: no record for product+location
            InvariantViolation: the record still holds stock or has movements
        """
        with transaction.atomic():
            record = self.get_for_update(product, location)
            if record is None:
                raise InventoryRecordNotFound(f"{product.pk}@{location.pk}")
            if record.quantity or record.reserved_quantity:
                raise InvariantViolation(
                    f"Cannot delete inventory record {record.pk}: "
                    f"quantity {record.quantity}, reserved {record.reserved_quantity}"
                )
            if StockMovement.objects.for_pair(product, location).exists():
                raise InvariantViolation(
                    f"Cannot delete inventory record {record.pk}: stock movements reference it"
                )
            record.delete()
            logger.info('Deleted inventory record for product %s at location %s', product.pk, location.pk)

    def low_stock(self, location=None):
        """
        Records at or below their low-stock threshold.

        The threshold is the record's min_stock_level, falling back to the
        product's. Records with no positive threshold are never low.
        """
        records = (
            InventoryRecord.objects
            .select_related('product', 'location')
            .annotate(threshold=Coalesce(F('min_stock_level'), F('product__min_stock_level')))
            .filter(threshold__gt=0, quantity__lte=F('threshold'), product__is_active=True)
        )
        if location is not None:
            records = records.filter(location=location)
        return records.order_by('quantity', 'product__name')


# ─── Movement Ledger ────────────────────────────────────────────────────────────

class MovementLedger:
    """
    Append-only log of quantity changes.

    The ledger never computes deltas: callers pass the before/after values
    they just wrote to the InventoryRecord, and the ledger only checks that
    they agree with the movement type.
    """

    def __init__(self, user=None):
        self.user = user

    def record(
        self,
        product,
        location,
        movement_type,
        quantity,
        quantity_before,
        quantity_after,
        reference_type='',
        reference_id=None,
        reference_number='',
        notes='',
        user=None,
        batch_number='',
        serial_number='',
    ):
        """Append one movement. Must run inside the caller's transaction."""
        require_atomic('MovementLedger.record')
        if product is None or location is None:
            raise InvariantViolation("Stock movements require a product and a location.")
        if movement_type not in MOVEMENT_DIRECTION:
            raise InvariantViolation(f"Unknown movement type: {movement_type!r}")

        movement = StockMovement.objects.create(
            product=product,
            location=location,
            movement_type=movement_type,
            quantity=quantity,
            quantity_before=quantity_before,
            quantity_after=quantity_after,
            reference_type=reference_type or '',
            reference_id=reference_id,
            reference_number=reference_number or '',
            notes=notes or '',
            performed_by=user or self.user,
            batch_number=batch_number or '',
            serial_number=serial_number or '',
        )
        logger.debug('Recorded movement %s', movement)
        return movement

    def query(self, product=None, location=None, limit=None, movement_type=None):
        """
        Movements newest first, optionally filtered by product/location.

        Returns a list (materialized once; re-query for updates).
        """
        if limit is None:
            limit = settings.INVENTORY_LEDGER_QUERY_LIMIT
        movements = StockMovement.objects.select_related('product', 'location', 'performed_by')
        if product is not None:
            movements = movements.filter(product=product)
        if location is not None:
            movements = movements.filter(location=location)
        if movement_type:
            movements = movements.filter(movement_type=movement_type)
        return list(movements.newest_first()[:limit])

    def for_reference(self, reference_type, reference_id):
        return list(
            StockMovement.objects
            .filter(reference_type=reference_type, reference_id=reference_id)
            .chronological()
        )

    def replay(self, product, location):
        """Rebuild the on-hand quantity from zero by applying every entry oldest first."""
        quantity = 0
        for movement in StockMovement.objects.for_pair(product, location).chronological():
            quantity += movement.signed_quantity
        return quantity


# ─── Shared posting logic ───────────────────────────────────────────────────────

class _StockService:
    """Base for services that change quantities and write ledger entries."""

    def __init__(self, user=None):
        self.user = user
        self.store = InventoryRecordStore()
        self.ledger = MovementLedger(user)

    def _post(
        self,
        record,
        movement_type,
        quantity,
        reference_type='',
        reference_id=None,
        reference_number='',
        notes='',
        batch_number='',
        serial_number='',
    ):
        """
        Apply ``quantity`` units of ``movement_type`` to a locked record and
        append the matching ledger entry.

        Raises:
            InsufficientStock: outbound quantity exceeds available
        """
        require_atomic('stock posting')
        direction = MOVEMENT_DIRECTION[movement_type]
        before = record.quantity

        if direction < 0 and quantity > record.available_quantity:
            logger.warning(
                'Rejected %s of %s for product %s at location %s: available %s',
                movement_type, quantity, record.product_id, record.location_id,
                record.available_quantity,
            )
            raise InsufficientStock(
                record.product, record.location, record.available_quantity, quantity,
            )

        self.store.set_quantity(record, before + direction * quantity)
        movement = self.ledger.record(
            product=record.product,
            location=record.location,
            movement_type=movement_type,
            quantity=quantity,
            quantity_before=before,
            quantity_after=record.quantity,
            reference_type=reference_type,
            reference_id=reference_id,
            reference_number=reference_number,
            notes=notes,
            batch_number=batch_number,
            serial_number=serial_number,
        )
        logger.info(
            'Stock %s: product=%s location=%s %+d (%s -> %s) ref=%s',
            movement_type, record.product_id, record.location_id,
            direction * quantity, before, record.quantity, reference_number or '-',
        )
        return movement


# ─── Adjustment Processor ───────────────────────────────────────────────────────

class AdjustmentService(_StockService):
    """
    Applies signed deltas to a single InventoryRecord.

    Usage:
        service = AdjustmentService(user)

        # Receive 50 units
        service.adjust(product, branch, 50, AdjustmentIntent.STOCK_IN)

        # Write off 2 damaged screens
        service.adjust(product, branch, -2, AdjustmentIntent.DAMAGE, notes='Cracked in transit')

        # Stock-take: shelf count is 47
        service.count_stock(product, branch, 47)
    """

    def adjust(
        self,
        product,
        location,
        quantity,
        intent=AdjustmentIntent.ADJUSTMENT,
        reference_type=ReferenceType.ADJUSTMENT,
        reference_id=None,
        reference_number='',
        notes='',
        batch_number='',
        serial_number='',
    ):
        """
        Apply a signed quantity change at product+location.

        Positive quantities increase on-hand, negative ones decrease it. The
        ledger movement type comes from INTENT_MOVEMENT_TYPES.

        Returns:
            AdjustmentResult: locked record (new quantity) and the ledger entry

        Raises:
            ProductNotFound, LocationNotFound, InsufficientStock, InvalidAdjustment
        """
        validate_quantity(quantity, allow_negative=True)
        movement_type = movement_type_for(intent, quantity)

        with transaction.atomic():
            ensure_product(product)
            ensure_location(location)
            record = self.store.get_or_create(product, location)
            movement = self._post(
                record,
                movement_type,
                abs(quantity),
                reference_type=reference_type,
                reference_id=reference_id,
                reference_number=reference_number,
                notes=notes or self._default_notes(intent, quantity),
                batch_number=batch_number,
                serial_number=serial_number,
            )
            return AdjustmentResult(record=record, movement=movement)

    def adjust_record(
        self,
        record_id,
        quantity,
        intent=AdjustmentIntent.ADJUSTMENT,
        reference_type=ReferenceType.ADJUSTMENT,
        reference_id=None,
        reference_number='',
        notes='',
    ):
        """
        Same as adjust(), addressed by InventoryRecord id.

        Raises:
            InventoryRecordNotFound: no record with that id
        """
        validate_quantity(quantity, allow_negative=True)
        movement_type = movement_type_for(intent, quantity)

        with transaction.atomic():
            try:
                record = (
                    InventoryRecord.objects
                    .select_for_update(of=('self',))
                    .select_related('product', 'location')
                    .get(pk=record_id)
                )
            except (InventoryRecord.DoesNotExist, ValueError, TypeError):
                raise InventoryRecordNotFound(record_id)

            movement = self._post(
                record,
                movement_type,
                abs(quantity),
                reference_type=reference_type,
                reference_id=reference_id,
                reference_number=reference_number,
                notes=notes or self._default_notes(intent, quantity),
            )
            return AdjustmentResult(record=record, movement=movement)

    def count_stock(self, product, location, counted_quantity, notes=''):
        """
        Set on-hand to a physically counted value.

        The difference is posted as an ADJUSTMENT_IN/OUT entry. A count that
        matches the stored quantity writes nothing.
        """
        if isinstance(counted_quantity, bool) or not isinstance(counted_quantity, int) or counted_quantity < 0:
            raise InvalidAdjustment(f"Counted quantity must be a non-negative integer, got {counted_quantity!r}")

        with transaction.atomic():
            ensure_product(product)
            ensure_location(location)
            record = self.store.get_or_create(product, location)
            delta = counted_quantity - record.quantity
            if delta == 0:
                logger.info(
                    'Stock count matches for product %s at location %s: %s',
                    product.pk, location.pk, counted_quantity,
                )
                return AdjustmentResult(record=record, movement=None)

            movement = self._post(
                record,
                movement_type_for(AdjustmentIntent.ADJUSTMENT, delta),
                abs(delta),
                reference_type=ReferenceType.STOCK_COUNT,
                notes=notes or f"Stock count: {record.quantity} -> {counted_quantity}",
            )
            return AdjustmentResult(record=record, movement=movement)

    def receive_purchase(self, location, lines, reference_id=None, reference_number='', notes=''):
        """
        Book purchase-order receipts into a location.

        Args:
            location: Receiving Location
            lines: iterable of (product, quantity, batch_number='') tuples
            reference_id: PurchaseOrder id
            reference_number: PO number, used in the movement notes

        Returns:
            list[AdjustmentResult]: one per line, in product id order

        All lines are booked in one transaction; a bad line books nothing.
        """
        parsed = []
        for line in lines:
            product, quantity = line[0], line[1]
            batch_number = line[2] if len(line) > 2 else ''
            parsed.append((product, validate_quantity(quantity), batch_number))
        if not parsed:
            raise InvalidAdjustment("A purchase receipt needs at least one line.")

        results = []
        with transaction.atomic():
            ensure_location(location)
            for product, quantity, batch_number in sorted(parsed, key=lambda p: p[0].pk):
                ensure_product(product)
                record = self.store.get_or_create(product, location)
                movement = self._post(
                    record,
                    MovementType.PURCHASE,
                    quantity,
                    reference_type=ReferenceType.PURCHASE_ORDER,
                    reference_id=reference_id,
                    reference_number=reference_number,
                    notes=notes or (f"PO {reference_number} received" if reference_number else "PO received"),
                    batch_number=batch_number,
                )
                results.append(AdjustmentResult(record=record, movement=movement))

        logger.info(
            'Received PO %s into location %s: %s line(s)',
            reference_number or reference_id, location.pk, len(results),
        )
        return results

    @staticmethod
    def _default_notes(intent, quantity):
        return f"{AdjustmentIntent(intent).label}: {quantity:+d}"


# ─── Transfer Coordinator ───────────────────────────────────────────────────────

class TransferService(_StockService):
    """
    Moves stock of a product from one location to another.

    Each transferred line writes TRANSFER_OUT at the source and TRANSFER_IN
    at the destination. Both entries share a TRF- reference number and name
    the other location in their notes.

    Transfers are not idempotent: every call moves stock again.

    Usage:
        service = TransferService(user)
        service.transfer(product, warehouse, branch, 20)
        service.bulk_transfer(warehouse, branch, [(screen, 5), (battery, 10)])
    """

    def transfer(
        self,
        product,
        from_location,
        to_location,
        quantity,
        notes='',
        reference_type=ReferenceType.STOCK_TRANSFER,
        reference_id=None,
        reference_number=None,
    ):
        """
        Move ``quantity`` units of one product between locations.

        Returns:
            TransferResult

        Raises:
            InvalidTransfer: source and destination are the same location
            ProductNotFound, LocationNotFound
            InsufficientStock: source holds fewer available units than requested
        """
        result = self.bulk_transfer(
            from_location,
            to_location,
            [(product, quantity)],
            notes=notes,
            reference_type=reference_type,
            reference_id=reference_id,
            reference_number=reference_number,
        )
        return result.lines[0]

    def bulk_transfer(
        self,
        from_location,
        to_location,
        items,
        notes='',
        reference_type=ReferenceType.STOCK_TRANSFER,
        reference_id=None,
        reference_number=None,
    ):
        """
        Move several products between the same two locations, all or nothing.

        Every source line is locked and checked before any row is written;
        the first line that cannot be covered aborts the whole call.

        Args:
            items: iterable of (product, quantity); repeated products are merged

        Returns:
            BulkTransferResult
        """
        lines = self._merge_items(items)
        self._check_locations(from_location, to_location)

        with transaction.atomic():
            ensure_location(from_location)
            ensure_location(to_location)
            products = [product for product, _ in lines]
            for product in products:
                ensure_product(product)

            records = self.store.lock_records(products, [from_location, to_location])

            # Validate every line before touching any row
            for product, quantity in lines:
                source = records.get((product.pk, from_location.pk))
                available = source.available_quantity if source else 0
                if quantity > available:
                    logger.warning(
                        'Rejected transfer of %s x product %s from %s to %s: available %s',
                        quantity, product.pk, from_location.pk, to_location.pk, available,
                    )
                    raise InsufficientStock(product, from_location, available, quantity)

            reference_number = reference_number or generate_transfer_reference()
            result = BulkTransferResult(reference_number=reference_number)
            for product, quantity in lines:
                source = records[(product.pk, from_location.pk)]
                destination = records.get((product.pk, to_location.pk))
                if destination is None:
                    destination = self.store.get_or_create(product, to_location)

                out_movement = self._post_out(
                    source, to_location, quantity, notes,
                    reference_type, reference_id, reference_number,
                )
                in_movement = self._post_in(
                    destination, from_location, quantity, notes,
                    reference_type, reference_id, reference_number,
                )
                result.lines.append(TransferResult(
                    product=product,
                    from_record=source,
                    to_record=destination,
                    quantity=quantity,
                    reference_number=reference_number,
                    out_movement=out_movement,
                    in_movement=in_movement,
                ))

        logger.info(
            'Transfer %s: %s line(s), %s unit(s) from location %s to %s',
            reference_number, len(result.lines), result.total_quantity,
            from_location.pk, to_location.pk,
        )
        return result

    def decrement_for_transfer(
        self,
        product,
        from_location,
        to_location,
        quantity,
        reference_type=ReferenceType.STOCK_TRANSFER,
        reference_id=None,
        reference_number='',
        notes='',
        batch_number='',
        serial_number='',
    ):
        """
        Source half of a transfer: TRANSFER_OUT at ``from_location`` only.

        Used when the destination is credited in a later step (branch
        transfer releases). Returns the ledger entry.
        """
        validate_quantity(quantity)
        self._check_locations(from_location, to_location)
        with transaction.atomic():
            ensure_product(product)
            ensure_location(from_location)
            ensure_location(to_location)
            source = self.store.get_for_update(product, from_location)
            if source is None:
                raise InsufficientStock(product, from_location, 0, quantity)
            return self._post_out(
                source, to_location, quantity, notes,
                reference_type, reference_id, reference_number,
                batch_number=batch_number, serial_number=serial_number,
            )

    def credit_for_transfer(
        self,
        product,
        from_location,
        to_location,
        quantity,
        reference_type=ReferenceType.STOCK_TRANSFER,
        reference_id=None,
        reference_number='',
        notes='',
        batch_number='',
        serial_number='',
    ):
        """Destination half of a transfer: TRANSFER_IN at ``to_location``."""
        validate_quantity(quantity)
        self._check_locations(from_location, to_location)
        with transaction.atomic():
            ensure_product(product)
            ensure_location(to_location)
            destination = self.store.get_or_create(product, to_location)
            return self._post_in(
                destination, from_location, quantity, notes,
                reference_type, reference_id, reference_number,
                batch_number=batch_number, serial_number=serial_number,
            )

    # ===== HELPERS =====

    @staticmethod
    def _check_locations(from_location, to_location):
        if from_location is None or to_location is None:
            raise InvalidTransfer("A transfer needs both a source and a destination location.")
        if from_location.pk == to_location.pk:
            raise InvalidTransfer("Source and destination locations cannot be the same.")

    @staticmethod
    def _merge_items(items):
        merged = {}
        for product, quantity in items:
            validate_quantity(quantity)
            if product is None:
                raise ProductNotFound(None)
            if product.pk in merged:
                merged[product.pk] = (product, merged[product.pk][1] + quantity)
            else:
                merged[product.pk] = (product, quantity)
        if not merged:
            raise InvalidTransfer("A transfer needs at least one line.")
        return [merged[pk] for pk in sorted(merged)]

    def _post_out(self, source, to_location, quantity, notes, reference_type,
                  reference_id, reference_number, batch_number='', serial_number=''):
        return self._post(
            source,
            MovementType.TRANSFER_OUT,
            quantity,
            reference_type=reference_type,
            reference_id=reference_id,
            reference_number=reference_number,
            notes=self._notes('Transfer to', to_location, notes),
            batch_number=batch_number,
            serial_number=serial_number,
        )

    def _post_in(self, destination, from_location, quantity, notes, reference_type,
                 reference_id, reference_number, batch_number='', serial_number=''):
        return self._post(
            destination,
            MovementType.TRANSFER_IN,
            quantity,
            reference_type=reference_type,
            reference_id=reference_id,
            reference_number=reference_number,
            notes=self._notes('Transfer from', from_location, notes),
            batch_number=batch_number,
            serial_number=serial_number,
        )

    @staticmethod
    def _notes(prefix, other_location, notes):
        text = f"{prefix} {other_location.name} ({other_location.location_code})"
        if notes:
            text = f"{text} - {notes}"
        return text


# ─── Reconciliation ─────────────────────────────────────────────────────────────

class InventoryReconciliationService:
    """
    Compares stored quantities with the quantities the ledger implies.

    The ledger is never rewritten. With ``fix=True`` a drifted record is
    reset to the replayed quantity (the change is captured by the record's
    history table). A record that cannot take the replayed quantity, such
    as one holding more reservations than the ledger implies, is left as
    it is and the reason is reported in ``error``.
    """

    def __init__(self, user=None):
        self.user = user
        self.store = InventoryRecordStore()
        self.ledger = MovementLedger(user)

    def reconcile(self, product, location, fix=False):
        """Reconcile one product+location. Returns ReconciliationResult."""
        with transaction.atomic():
            record = self.store.get_for_update(product, location)
            recorded = record.quantity if record else 0

            replayed = 0
            count = 0
            broken_links = 0
            previous_after = 0
            for movement in StockMovement.objects.for_pair(product, location).chronological():
                if movement.quantity_before != previous_after:
                    broken_links += 1
                replayed += movement.signed_quantity
                previous_after = movement.quantity_after
                count += 1

            result = ReconciliationResult(
                product=product,
                location=location,
                recorded_quantity=recorded,
                replayed_quantity=replayed,
                movement_count=count,
                broken_links=broken_links,
            )

            if result.drift:
                logger.warning(
                    'Inventory drift for product %s at location %s: recorded %s, ledger %s',
                    product.pk, location.pk, recorded, replayed,
                )
                if fix:
                    self._fix(record, result)
            return result

    def _fix(self, record, result):
        try:
            with transaction.atomic():
                if record is None:
                    record = self.store.get_or_create(result.product, result.location)
                record._change_reason = (
                    f"Reconciled to ledger ({result.recorded_quantity} -> {result.replayed_quantity})"
                )
                self.store.set_quantity(record, result.replayed_quantity)
        except InventoryError as e:
            result.error = '; '.join(e.messages)
            logger.warning(
                'Could not reconcile product %s at location %s: %s',
                result.product.pk, result.location.pk, result.error,
            )
            return
        result.fixed = True

    def reconcile_all(self, location=None, fix=False):
        """Reconcile every record (optionally for one location)."""
        records = InventoryRecord.objects.select_related('product', 'location').order_by('product_id', 'location_id')
        if location is not None:
            records = records.filter(location=location)
        return [self.reconcile(r.product, r.location, fix=fix) for r in records]
