# apps/inventory/exceptions.py
"""
Typed errors raised by the inventory engine.

Every error subclasses Django's ValidationError, so callers that already
catch ``ValidationError`` around service calls keep working, and carries:
- ``code``: machine-readable identifier, safe to return from the API
- the concrete values involved (available/requested quantities, statuses)

The enclosing ``transaction.atomic()`` block rolls back on any of these, so
the database is left exactly as it was before the call.

Hierarchy:

    InventoryError
    +-- NotFound
    |   +-- ProductNotFound
    |   +-- LocationNotFound
    |   +-- InventoryRecordNotFound
    |   +-- StockReleaseNotFound
    +-- InsufficientStock
    +-- InvariantViolation
    +-- InvalidTransfer
    +-- InvalidAdjustment
    +-- InvalidStateTransition
    +-- DuplicateRelease
"""
from django.core.exceptions import ValidationError


class InventoryError(ValidationError):
    """Base class for inventory engine errors."""

    code = 'INVENTORY_ERROR'

    def __init__(self, message):
        super().__init__(message, code=self.code)

    def to_dict(self):
        """Structured payload for API responses and logs."""
        return {'detail': self.message, 'code': self.code}


# ─── Not found ──────────────────────────────────────────────────────────────────

class NotFound(InventoryError):
    """A referenced row does not exist."""

    code = 'NOT_FOUND'
    entity = 'Object'

    def __init__(self, identifier):
        self.identifier = identifier
        super().__init__(f"{self.entity} not found: {identifier}")

    def to_dict(self):
        data = super().to_dict()
        data['id'] = self.identifier
        return data


class ProductNotFound(NotFound):
    code = 'PRODUCT_NOT_FOUND'
    entity = 'Product'


class LocationNotFound(NotFound):
    code = 'LOCATION_NOT_FOUND'
    entity = 'Location'


class InventoryRecordNotFound(NotFound):
    code = 'INVENTORY_RECORD_NOT_FOUND'
    entity = 'Inventory record'


class StockReleaseNotFound(NotFound):
    code = 'STOCK_RELEASE_NOT_FOUND'
    entity = 'Stock release'


# ─── Stock levels ───────────────────────────────────────────────────────────────

class InsufficientStock(InventoryError):
    """Raised when a decrement exceeds the quantity available at a location."""

    code = 'INSUFFICIENT_STOCK'

    def __init__(self, product, location, available, requested):
        self.product = product
        self.location = location
        self.available = available
        self.requested = requested
        super().__init__(
            f"Insufficient stock for {product} at {location}. "
            f"Available: {available}, Requested: {requested}"
        )

    def to_dict(self):
        data = super().to_dict()
        data.update({
            'product': getattr(self.product, 'pk', self.product),
            'location': getattr(self.location, 'pk', self.location),
            'available': self.available,
            'requested': self.requested,
        })
        return data


class InvariantViolation(InventoryError):
    """
    A write would break a stock invariant (negative quantity, negative
    available, inconsistent ledger entry) or mutate the ledger.

    Normal preconditions catch these first; reaching this is a bug in the
    calling path.
    """

    code = 'INVARIANT_VIOLATION'


class InvalidTransfer(InventoryError):
    """Source/destination combination is not allowed."""

    code = 'INVALID_TRANSFER'


class InvalidAdjustment(InventoryError):
    """Quantity or intent is not acceptable for an adjustment."""

    code = 'INVALID_ADJUSTMENT'


# ─── Stock release workflow ─────────────────────────────────────────────────────

class InvalidStateTransition(InventoryError):
    """Workflow transition requested from a status that does not permit it."""

    code = 'INVALID_STATE_TRANSITION'

    def __init__(self, release_number, current, target):
        self.release_number = release_number
        self.current = current
        self.target = target
        super().__init__(
            f"Stock release {release_number} cannot move from {current} to {target}."
        )

    def to_dict(self):
        data = super().to_dict()
        data.update({'current': self.current, 'target': self.target})
        return data


class DuplicateRelease(InventoryError):
    """A release line already left source stock."""

    code = 'DUPLICATE_RELEASE'

    def __init__(self, release_number, item_id):
        self.release_number = release_number
        self.item_id = item_id
        super().__init__(
            f"Line {item_id} of stock release {release_number} has already been released."
        )

    def to_dict(self):
        data = super().to_dict()
        data['item'] = self.item_id
        return data
