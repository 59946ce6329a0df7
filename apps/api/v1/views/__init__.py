# API Views
from .inventory import (
    InventoryRecordViewSet, StockMovementViewSet,
    AdjustView, StockCountView, TransferView, BulkTransferView, ReceivePurchaseView,
)
from .stock_releases import StockReleaseViewSet
