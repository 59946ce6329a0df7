# apps/stock_releases/tests/test_services.py
"""
Tests for the stock release workflow service.
"""
from decimal import Decimal
from django.core.exceptions import ValidationError
from django.test import TestCase, override_settings

from apps.catalog.models import Product
from apps.locations.models import Location
from apps.inventory.exceptions import (
    DuplicateRelease,
    InsufficientStock,
    InvalidAdjustment,
    InvalidStateTransition,
    InvalidTransfer,
    StockReleaseNotFound,
)
from apps.inventory.models import (
    AdjustmentIntent,
    InventoryRecord,
    MovementType,
    ReferenceType,
    StockMovement,
)
from apps.inventory.services import AdjustmentService
from apps.stock_releases.models import ReleaseStatus, ReleaseType, StockRelease, StockReleaseItem
from apps.stock_releases.services import ReleaseLineInput, StockReleaseService
from users.models import User


class StockReleaseTestCase(TestCase):
    """Base test case with locations, products and stock."""

    @classmethod
    def setUpTestData(cls):
        cls.user = User.objects.create_user(username='requester', password='pass')
        cls.manager = User.objects.create_user(username='manager', password='pass')
        cls.warehouse = Location.objects.create(
            location_code='WH-MAIN', name='Main Warehouse', location_type='WAREHOUSE',
        )
        cls.branch = Location.objects.create(location_code='BR-COL', name='Colombo Branch')
        cls.screen = Product.objects.create(
            product_code='PRD-001', name='iPhone 13 LCD', cost_price=Decimal('45.00'),
        )
        cls.battery = Product.objects.create(
            product_code='PRD-002', name='iPhone 11 Battery', cost_price=Decimal('12.50'),
        )

    def setUp(self):
        self.service = StockReleaseService(self.user)
        stock = AdjustmentService(self.user)
        stock.adjust(self.screen, self.warehouse, 50, AdjustmentIntent.STOCK_IN)
        stock.adjust(self.battery, self.warehouse, 20, AdjustmentIntent.STOCK_IN)

    def quantity(self, product, location):
        record = InventoryRecord.objects.filter(product=product, location=location).first()
        return record.quantity if record else None

    def create_usage(self, quantity=10, **kwargs):
        return self.service.create(
            release_type=ReleaseType.JOB_USAGE,
            from_location=self.warehouse,
            items=[ReleaseLineInput(product=self.screen, quantity=quantity)],
            **kwargs,
        )

    def create_transfer(self, items=None):
        return self.service.create(
            release_type=ReleaseType.BRANCH_TRANSFER,
            from_location=self.warehouse,
            to_location=self.branch,
            items=items or [
                ReleaseLineInput(product=self.screen, quantity=5),
                ReleaseLineInput(product=self.battery, quantity=10, batch_number='B-22'),
            ],
        )


class CreateReleaseTest(StockReleaseTestCase):

    def test_create_pending_release(self):
        release = self.create_usage(reference_type=ReferenceType.JOB_SHEET, reference_number='JS-1042')

        self.assertEqual(release.status, ReleaseStatus.PENDING)
        self.assertEqual(release.release_number, 'SR-0001')
        self.assertEqual(release.requested_by, self.user)
        self.assertEqual(release.reference_number, 'JS-1042')
        item = release.items.get()
        self.assertEqual(item.requested_quantity, 10)
        self.assertEqual(item.released_quantity, 0)
        self.assertEqual(item.unit_cost, Decimal('45.00'))
        self.assertIsNone(item.released_at)

    def test_creating_moves_no_stock(self):
        self.create_usage()
        self.assertEqual(self.quantity(self.screen, self.warehouse), 50)
        self.assertEqual(StockMovement.objects.count(), 2)

    def test_release_numbers_increment(self):
        first = self.create_usage()
        second = self.create_usage()
        self.assertEqual(first.release_number, 'SR-0001')
        self.assertEqual(second.release_number, 'SR-0002')

    @override_settings(STOCK_RELEASE_NUMBER_PREFIX='REL-', STOCK_RELEASE_NUMBER_PADDING=6)
    def test_release_number_format_from_settings(self):
        self.assertEqual(self.create_usage().release_number, 'REL-000001')

    def test_unknown_release_type(self):
        with self.assertRaises(ValidationError):
            self.service.create('GIVEAWAY', self.warehouse, [ReleaseLineInput(self.screen, 1)])

    def test_requires_lines(self):
        with self.assertRaises(ValidationError):
            self.service.create(ReleaseType.JOB_USAGE, self.warehouse, [])

    def test_rejects_zero_quantity(self):
        with self.assertRaises(InvalidAdjustment):
            self.create_usage(quantity=0)

    def test_insufficient_stock_at_request_time(self):
        with self.assertRaises(InsufficientStock) as ctx:
            self.create_usage(quantity=51)
        self.assertEqual(ctx.exception.available, 50)
        self.assertFalse(StockRelease.objects.exists())

    def test_duplicate_lines_are_checked_together(self):
        with self.assertRaises(InsufficientStock) as ctx:
            self.service.create(
                ReleaseType.JOB_USAGE, self.warehouse,
                [ReleaseLineInput(self.battery, 15), ReleaseLineInput(self.battery, 10)],
            )
        self.assertEqual(ctx.exception.requested, 25)

    def test_transfer_requires_destination(self):
        with self.assertRaises(InvalidTransfer):
            self.service.create(ReleaseType.BRANCH_TRANSFER, self.warehouse, [ReleaseLineInput(self.screen, 1)])

    def test_transfer_rejects_same_location(self):
        with self.assertRaises(InvalidTransfer):
            self.service.create(
                ReleaseType.BRANCH_TRANSFER, self.warehouse,
                [ReleaseLineInput(self.screen, 1)], to_location=self.warehouse,
            )

    def test_consumption_rejects_destination(self):
        with self.assertRaises(InvalidTransfer):
            self.service.create(
                ReleaseType.DISPOSAL, self.warehouse,
                [ReleaseLineInput(self.screen, 1)], to_location=self.branch,
            )


class EditReleaseTest(StockReleaseTestCase):

    def test_update_pending_release(self):
        release = self.create_usage()
        updated = self.service.update(
            release.pk,
            items=[ReleaseLineInput(self.battery, 3), ReleaseLineInput(self.screen, 2)],
            notes='Two jobs',
        )
        self.assertEqual(updated.notes, 'Two jobs')
        self.assertEqual(updated.items.count(), 2)
        self.assertEqual(updated.total_requested, 5)

    def test_update_switches_to_transfer(self):
        release = self.create_usage()
        updated = self.service.update(release.pk, release_type=ReleaseType.BRANCH_TRANSFER, to_location=self.branch)
        self.assertTrue(updated.is_transfer)
        self.assertEqual(updated.to_location, self.branch)

    def test_update_after_approval_fails(self):
        release = self.create_usage()
        self.service.approve(release.pk)
        with self.assertRaises(InvalidStateTransition):
            self.service.update(release.pk, notes='late edit')

    def test_delete_pending_and_cancelled(self):
        first = self.create_usage()
        second = self.create_usage()
        self.service.cancel(second.pk)

        self.service.delete(first.pk)
        self.service.delete(second.pk)

        self.assertFalse(StockRelease.objects.exists())
        self.assertFalse(StockReleaseItem.objects.exists())

    def test_delete_after_approval_fails(self):
        release = self.create_usage()
        self.service.approve(release.pk)
        with self.assertRaises(InvalidStateTransition):
            self.service.delete(release.pk)

    def test_missing_release(self):
        with self.assertRaises(StockReleaseNotFound):
            self.service.approve(999999)
        with self.assertRaises(StockReleaseNotFound):
            self.service.get(999999)


class ConsumptionReleaseTest(StockReleaseTestCase):

    def test_job_usage_full_cycle(self):
        release = self.create_usage()

        self.service.approve(release.pk, approver=self.manager)
        self.assertEqual(self.quantity(self.screen, self.warehouse), 50)

        release = self.service.release(release.pk, releaser=self.manager)

        self.assertEqual(release.status, ReleaseStatus.COMPLETED)
        self.assertEqual(release.released_by, self.manager)
        self.assertIsNotNone(release.completed_at)
        self.assertEqual(self.quantity(self.screen, self.warehouse), 40)

        movement = StockMovement.objects.get(reference_type=ReferenceType.STOCK_RELEASE)
        self.assertEqual(movement.movement_type, MovementType.USAGE)
        self.assertEqual(movement.quantity, 10)
        self.assertEqual(movement.reference_id, release.pk)
        self.assertEqual(movement.reference_number, release.release_number)
        self.assertEqual(movement.performed_by, self.manager)

        item = release.items.get()
        self.assertEqual(item.released_quantity, 10)
        self.assertIsNotNone(item.released_at)
        self.assertEqual(item.total_cost, Decimal('450.00'))

    def test_disposal_writes_off(self):
        release = self.service.create(ReleaseType.DISPOSAL, self.warehouse, [ReleaseLineInput(self.battery, 4)])
        self.service.approve(release.pk)
        self.service.release(release.pk)
        movement = StockMovement.objects.get(reference_type=ReferenceType.STOCK_RELEASE)
        self.assertEqual(movement.movement_type, MovementType.WRITE_OFF)

    def test_release_pending_fails_without_moving_stock(self):
        release = self.create_usage()
        with self.assertRaises(InvalidStateTransition) as ctx:
            self.service.release(release.pk)
        self.assertEqual(ctx.exception.current, ReleaseStatus.PENDING)
        self.assertEqual(self.quantity(self.screen, self.warehouse), 50)
        self.assertFalse(StockMovement.objects.filter(reference_type=ReferenceType.STOCK_RELEASE).exists())

    def test_double_approve_fails(self):
        release = self.create_usage()
        self.service.approve(release.pk)
        with self.assertRaises(InvalidStateTransition):
            self.service.approve(release.pk)

    def test_stale_status_loses_compare_and_swap(self):
        release = self.create_usage()
        stale = StockRelease.objects.get(pk=release.pk)
        self.service.approve(release.pk)

        with self.assertRaises(InvalidStateTransition) as ctx:
            StockReleaseService._commit_transition(stale, ReleaseStatus.APPROVED, approved_by=self.manager)
        self.assertEqual(ctx.exception.current, ReleaseStatus.APPROVED)
        release.refresh_from_db()
        self.assertEqual(release.approved_by, self.user)

    def test_insufficient_stock_at_release_time(self):
        release = self.create_usage(quantity=10)
        self.service.approve(release.pk)
        AdjustmentService(self.user).adjust(self.screen, self.warehouse, -45, AdjustmentIntent.SALE)

        with self.assertRaises(InsufficientStock):
            self.service.release(release.pk)

        release.refresh_from_db()
        self.assertEqual(release.status, ReleaseStatus.APPROVED)
        self.assertIsNone(release.items.get().released_at)
        self.assertEqual(self.quantity(self.screen, self.warehouse), 5)

    def test_override_is_capped_at_requested(self):
        release = self.create_usage(quantity=10)
        item = release.items.get()
        self.service.approve(release.pk)

        self.service.release(release.pk, line_overrides={item.pk: 25})

        item.refresh_from_db()
        self.assertEqual(item.released_quantity, 10)
        self.assertEqual(self.quantity(self.screen, self.warehouse), 40)

    def test_partial_override(self):
        release = self.create_usage(quantity=10)
        item = release.items.get()
        self.service.approve(release.pk)

        self.service.release(release.pk, line_overrides=[(item.pk, 6)])

        item.refresh_from_db()
        self.assertEqual(item.released_quantity, 6)
        self.assertEqual(item.total_cost, Decimal('270.00'))
        self.assertEqual(self.quantity(self.screen, self.warehouse), 44)

    def test_duplicate_override_rejected(self):
        release = self.create_usage()
        item = release.items.get()
        self.service.approve(release.pk)
        with self.assertRaises(DuplicateRelease):
            self.service.release(release.pk, line_overrides=[(item.pk, 2), (item.pk, 3)])
        self.assertEqual(self.quantity(self.screen, self.warehouse), 50)

    def test_unknown_override_item_rejected(self):
        release = self.create_usage()
        self.service.approve(release.pk)
        with self.assertRaises(InvalidAdjustment):
            self.service.release(release.pk, line_overrides={999999: 1})

    def test_line_already_released_rejected(self):
        release = self.create_transfer()
        self.service.approve(release.pk)
        first, second = release.items.order_by('id')
        StockReleaseItem.objects.filter(pk=second.pk).update(released_at=release.created_at)

        with self.assertRaises(DuplicateRelease) as ctx:
            self.service.release(release.pk)
        self.assertEqual(ctx.exception.item_id, second.pk)
        self.assertEqual(self.quantity(self.screen, self.warehouse), 50)

    def test_cancel_pending_and_approved(self):
        pending = self.create_usage()
        approved = self.create_usage()
        self.service.approve(approved.pk)

        pending = self.service.cancel(pending.pk, notes='Customer declined')
        approved = self.service.cancel(approved.pk, user=self.manager)

        self.assertEqual(pending.status, ReleaseStatus.CANCELLED)
        self.assertEqual(pending.notes, 'Customer declined')
        self.assertEqual(approved.cancelled_by, self.manager)
        self.assertEqual(self.quantity(self.screen, self.warehouse), 50)

    def test_cannot_cancel_completed(self):
        release = self.create_usage()
        self.service.approve(release.pk)
        self.service.release(release.pk)
        with self.assertRaises(InvalidStateTransition):
            self.service.cancel(release.pk)


class BranchTransferReleaseTest(StockReleaseTestCase):

    def test_release_then_receive_completes(self):
        release = self.create_transfer()
        self.service.approve(release.pk)

        release = self.service.release(release.pk)
        self.assertEqual(release.status, ReleaseStatus.RELEASED)
        self.assertEqual(self.quantity(self.screen, self.warehouse), 45)
        self.assertEqual(self.quantity(self.battery, self.warehouse), 10)
        self.assertIsNone(self.quantity(self.screen, self.branch))

        release = self.service.receive(release.pk, receiver=self.manager)
        self.assertEqual(release.status, ReleaseStatus.COMPLETED)
        self.assertEqual(release.received_by, self.manager)
        self.assertEqual(release.completed_by, self.manager)
        self.assertEqual(release.received_at, release.completed_at)
        self.assertEqual(self.quantity(self.screen, self.branch), 5)
        self.assertEqual(self.quantity(self.battery, self.branch), 10)

        release.refresh_from_db()
        self.assertEqual(release.status, ReleaseStatus.COMPLETED)

        movements = StockMovement.objects.filter(reference_number=release.release_number)
        self.assertEqual(movements.filter(movement_type=MovementType.TRANSFER_OUT).count(), 2)
        self.assertEqual(movements.filter(movement_type=MovementType.TRANSFER_IN).count(), 2)
        battery_in = movements.get(movement_type=MovementType.TRANSFER_IN, product=self.battery)
        self.assertEqual(battery_in.batch_number, 'B-22')
        self.assertEqual(battery_in.notes, f"Transfer from Main Warehouse (WH-MAIN) - Stock received: {release.release_number}")

    def test_total_quantity_conserved(self):
        release = self.create_transfer()
        self.service.approve(release.pk)
        self.service.release(release.pk)
        self.service.receive(release.pk)

        total = self.quantity(self.screen, self.warehouse) + self.quantity(self.screen, self.branch)
        self.assertEqual(total, 50)

    def test_receive_twice_fails(self):
        release = self.create_transfer()
        self.service.approve(release.pk)
        self.service.release(release.pk)
        self.service.receive(release.pk)
        with self.assertRaises(InvalidStateTransition):
            self.service.receive(release.pk)
        self.assertEqual(self.quantity(self.screen, self.branch), 5)

    def test_cannot_cancel_after_release(self):
        release = self.create_transfer()
        self.service.approve(release.pk)
        self.service.release(release.pk)
        with self.assertRaises(InvalidStateTransition):
            self.service.cancel(release.pk)

    def test_receive_requires_release(self):
        release = self.create_transfer()
        self.service.approve(release.pk)
        with self.assertRaises(InvalidStateTransition) as ctx:
            self.service.receive(release.pk)
        self.assertEqual(ctx.exception.current, ReleaseStatus.APPROVED)

        release.refresh_from_db()
        self.assertEqual(release.status, ReleaseStatus.APPROVED)
        self.assertIsNone(self.quantity(self.screen, self.branch))

    def test_zero_quantity_line_is_skipped(self):
        release = self.create_transfer()
        screen_item = release.items.get(product=self.screen)
        self.service.approve(release.pk)

        self.service.release(release.pk, line_overrides={screen_item.pk: 0})
        self.service.receive(release.pk)

        self.assertEqual(self.quantity(self.screen, self.warehouse), 50)
        self.assertIsNone(self.quantity(self.screen, self.branch))
        self.assertEqual(self.quantity(self.battery, self.branch), 10)


class ListReleasesTest(StockReleaseTestCase):

    def test_filters(self):
        usage = self.create_usage(reference_number='JS-77')
        transfer = self.create_transfer()
        self.service.approve(transfer.pk)

        self.assertEqual(list(self.service.list(status=ReleaseStatus.APPROVED)), [transfer])
        self.assertEqual(list(self.service.list(release_type=ReleaseType.JOB_USAGE)), [usage])
        self.assertEqual(list(self.service.list(location=self.branch)), [transfer])
        self.assertEqual(list(self.service.list(search='JS-77')), [usage])
