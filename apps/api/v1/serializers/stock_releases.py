# apps/api/v1/serializers/stock_releases.py
"""
Serializers for stock releases.
"""
from rest_framework import serializers

from apps.stock_releases.models import ReleaseType, StockRelease, StockReleaseItem


class StockReleaseItemSerializer(serializers.ModelSerializer):
    product_code = serializers.CharField(source='product.product_code', read_only=True)
    product_name = serializers.CharField(source='product.name', read_only=True)
    is_released = serializers.BooleanField(read_only=True)

    class Meta:
        model = StockReleaseItem
        fields = [
            'id', 'product', 'product_code', 'product_name',
            'requested_quantity', 'released_quantity', 'released_at', 'is_released',
            'unit_cost', 'total_cost', 'batch_number', 'serial_number', 'notes',
        ]
        read_only_fields = fields


class StockReleaseListSerializer(serializers.ModelSerializer):
    """Lightweight serializer for release list views."""
    status_display = serializers.CharField(source='get_status_display', read_only=True)
    release_type_display = serializers.CharField(source='get_release_type_display', read_only=True)
    from_location_code = serializers.CharField(source='from_location.location_code', read_only=True)
    to_location_code = serializers.CharField(source='to_location.location_code', read_only=True, allow_null=True)

    class Meta:
        model = StockRelease
        fields = [
            'id', 'release_number', 'release_type', 'release_type_display',
            'status', 'status_display',
            'from_location', 'from_location_code', 'to_location', 'to_location_code',
            'reference_number', 'created_at',
        ]
        read_only_fields = fields


class StockReleaseSerializer(StockReleaseListSerializer):
    """Full release with lines and audit trail."""
    items = StockReleaseItemSerializer(many=True, read_only=True)
    total_requested = serializers.IntegerField(read_only=True)
    total_released = serializers.IntegerField(read_only=True)

    class Meta(StockReleaseListSerializer.Meta):
        fields = StockReleaseListSerializer.Meta.fields + [
            'reference_type', 'reference_id',
            'requested_by', 'approved_by', 'approved_at',
            'released_by', 'released_at', 'received_by', 'received_at',
            'completed_by', 'completed_at', 'cancelled_by', 'cancelled_at',
            'notes', 'items', 'total_requested', 'total_released', 'updated_at',
        ]
        read_only_fields = fields


# ─── Inputs ─────────────────────────────────────────────────────────────────────

class ReleaseLineSerializer(serializers.Serializer):
    product = serializers.IntegerField()
    quantity = serializers.IntegerField(min_value=1)
    batch_number = serializers.CharField(required=False, allow_blank=True, max_length=100, default='')
    serial_number = serializers.CharField(required=False, allow_blank=True, max_length=100, default='')
    notes = serializers.CharField(required=False, allow_blank=True, default='')


class StockReleaseCreateSerializer(serializers.Serializer):
    release_type = serializers.ChoiceField(choices=ReleaseType.choices)
    from_location = serializers.IntegerField()
    to_location = serializers.IntegerField(required=False, allow_null=True, default=None)
    items = ReleaseLineSerializer(many=True, allow_empty=False)
    reference_type = serializers.CharField(required=False, allow_blank=True, max_length=30, default='')
    reference_id = serializers.IntegerField(required=False, allow_null=True, min_value=1)
    reference_number = serializers.CharField(required=False, allow_blank=True, max_length=50, default='')
    notes = serializers.CharField(required=False, allow_blank=True, default='')


class StockReleaseUpdateSerializer(serializers.Serializer):
    """Edit of a PENDING release; omitted fields are left unchanged."""
    release_type = serializers.ChoiceField(choices=ReleaseType.choices, required=False)
    to_location = serializers.IntegerField(required=False, allow_null=True)
    items = ReleaseLineSerializer(many=True, required=False, allow_empty=False)
    notes = serializers.CharField(required=False, allow_blank=True)


class TransitionSerializer(serializers.Serializer):
    notes = serializers.CharField(required=False, allow_blank=True, default='')


class ReleaseQuantitySerializer(serializers.Serializer):
    item = serializers.IntegerField()
    quantity = serializers.IntegerField(min_value=0)


class ReleaseActionSerializer(serializers.Serializer):
    """Optional per-line quantities; lines not listed release in full."""
    lines = ReleaseQuantitySerializer(many=True, required=False)
