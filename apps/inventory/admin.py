# apps/inventory/admin.py
"""
Django admin configuration for Inventory models.

Quantities are read-only here: stock only changes through the services,
so every change lands in the movement ledger.
"""
from django.contrib import admin
from simple_history.admin import SimpleHistoryAdmin

from .models import InventoryRecord, StockMovement


@admin.register(InventoryRecord)
class InventoryRecordAdmin(SimpleHistoryAdmin):
    """Admin interface for InventoryRecord (thresholds editable, quantities not)."""
    list_display = [
        'product', 'location', 'quantity', 'reserved_quantity',
        'available_quantity', 'min_stock_level', 'low_stock_display', 'updated_at'
    ]
    list_filter = ['location']
    search_fields = ['product__product_code', 'product__sku', 'product__name', 'location__name']
    raw_id_fields = ['product', 'location']
    readonly_fields = [
        'quantity', 'reserved_quantity', 'available_quantity',
        'last_restocked', 'created_at', 'updated_at',
    ]

    fieldsets = [
        (None, {
            'fields': ['product', 'location', 'storage_location']
        }),
        ('Quantity', {
            'fields': ['quantity', 'reserved_quantity', 'available_quantity', 'last_restocked']
        }),
        ('Thresholds', {
            'fields': ['min_stock_level', 'max_stock_level', 'reorder_level']
        }),
        ('Timestamps', {
            'fields': ['created_at', 'updated_at'],
            'classes': ['collapse']
        }),
    ]

    def low_stock_display(self, obj):
        return obj.is_low_stock
    low_stock_display.short_description = 'Low stock'
    low_stock_display.boolean = True

    def has_delete_permission(self, request, obj=None):
        return False  # Use InventoryRecordStore.delete()


@admin.register(StockMovement)
class StockMovementAdmin(admin.ModelAdmin):
    """Admin interface for StockMovement (read-only audit log)."""
    list_display = [
        'created_at', 'movement_type', 'product', 'location',
        'quantity_display', 'quantity_before', 'quantity_after',
        'reference_number', 'performed_by'
    ]
    list_filter = ['movement_type', 'reference_type', 'location', 'created_at']
    search_fields = [
        'product__product_code', 'product__name', 'reference_number',
        'batch_number', 'serial_number',
    ]
    raw_id_fields = ['product', 'location', 'performed_by']
    date_hierarchy = 'created_at'
    readonly_fields = [
        'product', 'location', 'movement_type', 'quantity',
        'quantity_before', 'quantity_after', 'reference_type', 'reference_id',
        'reference_number', 'batch_number', 'serial_number',
        'performed_by', 'notes', 'created_at',
    ]

    def quantity_display(self, obj):
        return f"{obj.signed_quantity:+d}"
    quantity_display.short_description = 'Qty'

    def has_add_permission(self, request):
        return False  # Movements created via service only

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False  # Audit trail - no deletion
