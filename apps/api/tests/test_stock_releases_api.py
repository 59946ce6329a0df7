# apps/api/tests/test_stock_releases_api.py
"""
Tests for the stock release API: CRUD on pending releases and the
approve / release / receive / cancel actions.
"""
from decimal import Decimal
from django.contrib.auth.models import Group
from django.test import TestCase
from rest_framework import status
from rest_framework.test import APIClient

from apps.catalog.models import Product
from apps.locations.models import Location
from apps.inventory.models import AdjustmentIntent, InventoryRecord, StockMovement
from apps.inventory.services import AdjustmentService
from apps.stock_releases.models import ReleaseStatus, StockRelease
from users.models import User


class StockReleaseAPITest(TestCase):

    @classmethod
    def setUpTestData(cls):
        cls.technician = User.objects.create_user(username='tech', password='testpass123')
        cls.manager = User.objects.create_user(username='manager', password='testpass123')
        cls.manager.groups.add(Group.objects.get_or_create(name='Store Manager')[0])
        cls.storekeeper = User.objects.create_user(username='storekeeper', password='testpass123')
        cls.storekeeper.groups.add(Group.objects.get_or_create(name='Warehouse')[0])

        cls.warehouse = Location.objects.create(
            location_code='WH-MAIN', name='Main Warehouse', location_type='WAREHOUSE',
        )
        cls.branch = Location.objects.create(location_code='BR-COL', name='Colombo Branch')
        cls.screen = Product.objects.create(
            product_code='PRD-001', name='iPhone 13 LCD', cost_price=Decimal('45.00'),
        )

    def setUp(self):
        self.client = APIClient()
        self.client.force_authenticate(user=self.technician)
        AdjustmentService().adjust(self.screen, self.warehouse, 50, AdjustmentIntent.STOCK_IN)

    def as_user(self, user):
        self.client.force_authenticate(user=user)

    def quantity(self, location):
        record = InventoryRecord.objects.filter(product=self.screen, location=location).first()
        return record.quantity if record else None

    def create_release(self, **overrides):
        data = {
            'release_type': 'JOB_USAGE',
            'from_location': self.warehouse.pk,
            'items': [{'product': self.screen.pk, 'quantity': 10}],
            'reference_type': 'JOB_SHEET',
            'reference_number': 'JS-1042',
        }
        data.update(overrides)
        return self.client.post('/api/v1/stock-releases/', data, format='json')

    def test_create(self):
        response = self.create_release()

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['release_number'], 'SR-0001')
        self.assertEqual(response.data['status'], ReleaseStatus.PENDING)
        self.assertEqual(response.data['requested_by'], self.technician.pk)
        self.assertEqual(len(response.data['items']), 1)
        self.assertEqual(response.data['items'][0]['requested_quantity'], 10)
        self.assertEqual(response.data['total_requested'], 10)

    def test_create_insufficient_stock(self):
        response = self.create_release(items=[{'product': self.screen.pk, 'quantity': 80}])
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'INSUFFICIENT_STOCK')
        self.assertFalse(StockRelease.objects.exists())

    def test_create_transfer_without_destination(self):
        response = self.create_release(release_type='BRANCH_TRANSFER')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['code'], 'INVALID_TRANSFER')

    def test_create_requires_items(self):
        response = self.create_release(items=[])
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('items', response.data)

    def test_list_and_filter(self):
        self.create_release()
        self.create_release(reference_number='JS-2000')

        response = self.client.get('/api/v1/stock-releases/', {'status': 'PENDING'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['results']), 2)

        response = self.client.get('/api/v1/stock-releases/', {'search': 'JS-2000'})
        self.assertEqual(len(response.data['results']), 1)
        self.assertEqual(response.data['results'][0]['release_number'], 'SR-0002')

    def test_patch_pending(self):
        release_id = self.create_release().data['id']
        response = self.client.patch(
            f'/api/v1/stock-releases/{release_id}/',
            {'notes': 'Two screens broke', 'items': [{'product': self.screen.pk, 'quantity': 2}]},
            format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['notes'], 'Two screens broke')
        self.assertEqual(response.data['total_requested'], 2)

    def test_put_not_allowed(self):
        release_id = self.create_release().data['id']
        response = self.client.put(f'/api/v1/stock-releases/{release_id}/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_405_METHOD_NOT_ALLOWED)

    def test_delete_pending(self):
        release_id = self.create_release().data['id']
        response = self.client.delete(f'/api/v1/stock-releases/{release_id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(StockRelease.objects.exists())

    def test_delete_approved_conflicts(self):
        release_id = self.create_release().data['id']
        self.as_user(self.manager)
        self.client.post(f'/api/v1/stock-releases/{release_id}/approve/')

        response = self.client.delete(f'/api/v1/stock-releases/{release_id}/')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['code'], 'INVALID_STATE_TRANSITION')

    def test_approve_requires_manager(self):
        release_id = self.create_release().data['id']
        response = self.client.post(f'/api/v1/stock-releases/{release_id}/approve/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_approve_twice_conflicts(self):
        release_id = self.create_release().data['id']
        self.as_user(self.manager)

        response = self.client.post(f'/api/v1/stock-releases/{release_id}/approve/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], ReleaseStatus.APPROVED)
        self.assertEqual(response.data['approved_by'], self.manager.pk)

        response = self.client.post(f'/api/v1/stock-releases/{release_id}/approve/')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['current'], ReleaseStatus.APPROVED)

    def test_approve_missing_release(self):
        self.as_user(self.manager)
        response = self.client.post('/api/v1/stock-releases/999999/approve/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['code'], 'STOCK_RELEASE_NOT_FOUND')

    def test_release_pending_conflicts(self):
        release_id = self.create_release().data['id']
        self.as_user(self.storekeeper)

        response = self.client.post(f'/api/v1/stock-releases/{release_id}/release/')

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['current'], ReleaseStatus.PENDING)
        self.assertEqual(self.quantity(self.warehouse), 50)

    def test_job_usage_release_completes(self):
        release_id = self.create_release().data['id']
        self.as_user(self.manager)
        self.client.post(f'/api/v1/stock-releases/{release_id}/approve/')
        self.as_user(self.storekeeper)

        response = self.client.post(f'/api/v1/stock-releases/{release_id}/release/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], ReleaseStatus.COMPLETED)
        self.assertEqual(response.data['released_by'], self.storekeeper.pk)
        self.assertEqual(response.data['total_released'], 10)
        self.assertEqual(response.data['items'][0]['total_cost'], '450.00')
        self.assertEqual(self.quantity(self.warehouse), 40)

    def test_branch_transfer_flow(self):
        response = self.create_release(
            release_type='BRANCH_TRANSFER',
            to_location=self.branch.pk,
            items=[{'product': self.screen.pk, 'quantity': 8}],
        )
        release_id = response.data['id']
        item_id = response.data['items'][0]['id']

        self.as_user(self.manager)
        self.client.post(f'/api/v1/stock-releases/{release_id}/approve/')

        self.as_user(self.storekeeper)
        response = self.client.post(
            f'/api/v1/stock-releases/{release_id}/release/',
            {'lines': [{'item': item_id, 'quantity': 6}]},
            format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], ReleaseStatus.RELEASED)
        self.assertEqual(self.quantity(self.warehouse), 44)
        self.assertIsNone(self.quantity(self.branch))

        response = self.client.post(
            f'/api/v1/stock-releases/{release_id}/receive/', {'notes': 'Shelved'}, format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], ReleaseStatus.COMPLETED)
        self.assertEqual(response.data['received_by'], self.storekeeper.pk)
        self.assertEqual(response.data['completed_by'], self.storekeeper.pk)
        self.assertEqual(response.data['notes'], 'Shelved')
        self.assertEqual(self.quantity(self.branch), 6)

        self.assertEqual(
            StockMovement.objects.filter(reference_type='STOCK_RELEASE', reference_id=release_id).count(), 2,
        )

    def test_duplicate_line_override_conflicts(self):
        response = self.create_release()
        release_id = response.data['id']
        item_id = response.data['items'][0]['id']
        self.as_user(self.manager)
        self.client.post(f'/api/v1/stock-releases/{release_id}/approve/')

        response = self.client.post(
            f'/api/v1/stock-releases/{release_id}/release/',
            {'lines': [{'item': item_id, 'quantity': 1}, {'item': item_id, 'quantity': 2}]},
            format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['code'], 'DUPLICATE_RELEASE')
        self.assertEqual(self.quantity(self.warehouse), 50)

    def test_cancel(self):
        release_id = self.create_release().data['id']
        self.as_user(self.manager)

        response = self.client.post(
            f'/api/v1/stock-releases/{release_id}/cancel/', {'notes': 'Job cancelled'}, format='json',
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], ReleaseStatus.CANCELLED)
        self.assertEqual(response.data['cancelled_by'], self.manager.pk)
