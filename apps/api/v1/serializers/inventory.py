# apps/api/v1/serializers/inventory.py
"""
Serializers for inventory records, the movement ledger and stock operations.

Model serializers are read-only views of the data; every write goes through
the input serializers below and the inventory services.
"""
from rest_framework import serializers

from apps.inventory.models import (
    AdjustmentIntent,
    InventoryRecord,
    ReferenceType,
    StockMovement,
)


class InventoryRecordSerializer(serializers.ModelSerializer):
    """Stock level for one product at one location."""
    product_code = serializers.CharField(source='product.product_code', read_only=True)
    product_name = serializers.CharField(source='product.name', read_only=True)
    location_code = serializers.CharField(source='location.location_code', read_only=True)
    location_name = serializers.CharField(source='location.name', read_only=True)
    low_stock_threshold = serializers.IntegerField(read_only=True)
    is_low_stock = serializers.BooleanField(read_only=True)

    class Meta:
        model = InventoryRecord
        fields = [
            'id', 'product', 'product_code', 'product_name',
            'location', 'location_code', 'location_name',
            'quantity', 'reserved_quantity', 'available_quantity',
            'min_stock_level', 'max_stock_level', 'reorder_level',
            'low_stock_threshold', 'is_low_stock',
            'storage_location', 'last_restocked',
            'created_at', 'updated_at',
        ]
        read_only_fields = fields


class StockMovementSerializer(serializers.ModelSerializer):
    """Ledger entry. Movements are never written through the API."""
    product_code = serializers.CharField(source='product.product_code', read_only=True)
    location_code = serializers.CharField(source='location.location_code', read_only=True)
    movement_type_display = serializers.CharField(source='get_movement_type_display', read_only=True)
    signed_quantity = serializers.IntegerField(read_only=True)
    performed_by_name = serializers.CharField(source='performed_by', read_only=True, allow_null=True)

    class Meta:
        model = StockMovement
        fields = [
            'id', 'product', 'product_code', 'location', 'location_code',
            'movement_type', 'movement_type_display',
            'quantity', 'signed_quantity', 'quantity_before', 'quantity_after',
            'reference_type', 'reference_id', 'reference_number',
            'batch_number', 'serial_number',
            'performed_by', 'performed_by_name', 'notes', 'created_at',
        ]
        read_only_fields = fields


# ─── Operation inputs ───────────────────────────────────────────────────────────

class AdjustRecordSerializer(serializers.Serializer):
    """Signed adjustment of an existing record."""
    quantity = serializers.IntegerField(help_text="Signed change; negative removes stock")
    intent = serializers.ChoiceField(choices=AdjustmentIntent.choices, default=AdjustmentIntent.ADJUSTMENT)
    reference_type = serializers.ChoiceField(choices=ReferenceType.choices, default=ReferenceType.ADJUSTMENT)
    reference_id = serializers.IntegerField(required=False, allow_null=True, min_value=1)
    reference_number = serializers.CharField(required=False, allow_blank=True, max_length=50, default='')
    notes = serializers.CharField(required=False, allow_blank=True, default='')

    def validate_quantity(self, value):
        if value == 0:
            raise serializers.ValidationError("Quantity must not be zero.")
        return value


class AdjustSerializer(AdjustRecordSerializer):
    """Signed adjustment addressed by product + location."""
    product = serializers.IntegerField()
    location = serializers.IntegerField()
    batch_number = serializers.CharField(required=False, allow_blank=True, max_length=100, default='')
    serial_number = serializers.CharField(required=False, allow_blank=True, max_length=100, default='')


class StockCountSerializer(serializers.Serializer):
    product = serializers.IntegerField()
    location = serializers.IntegerField()
    counted_quantity = serializers.IntegerField(min_value=0)
    notes = serializers.CharField(required=False, allow_blank=True, default='')


class TransferLineSerializer(serializers.Serializer):
    product = serializers.IntegerField()
    quantity = serializers.IntegerField(min_value=1)


class TransferSerializer(TransferLineSerializer):
    from_location = serializers.IntegerField()
    to_location = serializers.IntegerField()
    notes = serializers.CharField(required=False, allow_blank=True, default='')


class BulkTransferSerializer(serializers.Serializer):
    from_location = serializers.IntegerField()
    to_location = serializers.IntegerField()
    items = TransferLineSerializer(many=True, allow_empty=False)
    notes = serializers.CharField(required=False, allow_blank=True, default='')


class PurchaseLineSerializer(serializers.Serializer):
    product = serializers.IntegerField()
    quantity = serializers.IntegerField(min_value=1)
    batch_number = serializers.CharField(required=False, allow_blank=True, max_length=100, default='')


class ReceivePurchaseSerializer(serializers.Serializer):
    """Goods received against a purchase order."""
    location = serializers.IntegerField()
    reference_id = serializers.IntegerField(required=False, allow_null=True, min_value=1)
    reference_number = serializers.CharField(required=False, allow_blank=True, max_length=50, default='')
    notes = serializers.CharField(required=False, allow_blank=True, default='')
    lines = PurchaseLineSerializer(many=True, allow_empty=False)


# ─── Operation results ──────────────────────────────────────────────────────────

def adjustment_result_data(result, context=None):
    return {
        'record': InventoryRecordSerializer(result.record, context=context).data,
        'movement': StockMovementSerializer(result.movement, context=context).data if result.movement else None,
    }


def transfer_line_data(line, context=None):
    return {
        'product': line.product.pk,
        'quantity': line.quantity,
        'from_record': InventoryRecordSerializer(line.from_record, context=context).data,
        'to_record': InventoryRecordSerializer(line.to_record, context=context).data,
        'movements': StockMovementSerializer([line.out_movement, line.in_movement], many=True, context=context).data,
    }
