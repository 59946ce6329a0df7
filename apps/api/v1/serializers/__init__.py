# API Serializers
from .inventory import (
    InventoryRecordSerializer, StockMovementSerializer,
    AdjustSerializer, AdjustRecordSerializer, StockCountSerializer,
    TransferSerializer, BulkTransferSerializer, ReceivePurchaseSerializer,
)
from .stock_releases import (
    StockReleaseSerializer, StockReleaseListSerializer, StockReleaseItemSerializer,
    StockReleaseCreateSerializer, StockReleaseUpdateSerializer,
    TransitionSerializer, ReleaseActionSerializer,
)
