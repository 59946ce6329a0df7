# apps/api/v1/urls.py
"""
URL routing for API v1.

All API endpoints are mounted under /api/v1/
"""
from django.urls import path, include
from rest_framework.routers import DefaultRouter
from rest_framework_simplejwt.views import (
    TokenObtainPairView,
    TokenRefreshView,
    TokenVerifyView,
)

from .views.inventory import (
    InventoryRecordViewSet, StockMovementViewSet,
    AdjustView, StockCountView, TransferView, BulkTransferView, ReceivePurchaseView,
)
from .views.stock_releases import StockReleaseViewSet

# Create router and register viewsets
router = DefaultRouter()

# Inventory
router.register(r'inventory/records', InventoryRecordViewSet, basename='inventory-record')
router.register(r'inventory/movements', StockMovementViewSet, basename='stock-movement')

# Stock releases
router.register(r'stock-releases', StockReleaseViewSet, basename='stock-release')

urlpatterns = [
    # JWT Authentication
    path('auth/token/', TokenObtainPairView.as_view(), name='token_obtain_pair'),
    path('auth/token/refresh/', TokenRefreshView.as_view(), name='token_refresh'),
    path('auth/token/verify/', TokenVerifyView.as_view(), name='token_verify'),

    # Stock operations
    path('inventory/adjust/', AdjustView.as_view(), name='inventory-adjust'),
    path('inventory/count/', StockCountView.as_view(), name='inventory-count'),
    path('inventory/transfer/', TransferView.as_view(), name='inventory-transfer'),
    path('inventory/bulk-transfer/', BulkTransferView.as_view(), name='inventory-bulk-transfer'),
    path('inventory/receive/', ReceivePurchaseView.as_view(), name='inventory-receive'),

    # Router URLs
    path('', include(router.urls)),
]
