# apps/stock_releases/admin.py
"""
Django admin configuration for stock releases.

Status and audit fields are read-only: transitions go through
StockReleaseService so stock moves with them.
"""
from django.contrib import admin

from .models import StockRelease, StockReleaseItem


class StockReleaseItemInline(admin.TabularInline):
    model = StockReleaseItem
    extra = 0
    fields = ['product', 'requested_quantity', 'released_quantity', 'released_at', 'unit_cost', 'batch_number', 'serial_number']
    readonly_fields = ['released_quantity', 'released_at']
    raw_id_fields = ['product']


@admin.register(StockRelease)
class StockReleaseAdmin(admin.ModelAdmin):
    list_display = [
        'release_number', 'release_type', 'status', 'from_location',
        'to_location', 'requested_by', 'created_at'
    ]
    list_filter = ['status', 'release_type', 'from_location']
    search_fields = ['release_number', 'reference_number', 'notes']
    raw_id_fields = ['from_location', 'to_location']
    readonly_fields = [
        'release_number', 'status',
        'requested_by', 'approved_by', 'released_by', 'received_by', 'completed_by', 'cancelled_by',
        'approved_at', 'released_at', 'received_at', 'completed_at', 'cancelled_at',
        'created_at', 'updated_at',
    ]
    date_hierarchy = 'created_at'
    inlines = [StockReleaseItemInline]

    fieldsets = [
        (None, {
            'fields': ['release_number', 'release_type', 'status', 'from_location', 'to_location']
        }),
        ('Reference', {
            'fields': ['reference_type', 'reference_id', 'reference_number', 'notes']
        }),
        ('Audit', {
            'fields': [
                ('requested_by', 'created_at'),
                ('approved_by', 'approved_at'),
                ('released_by', 'released_at'),
                ('received_by', 'received_at'),
                ('completed_by', 'completed_at'),
                ('cancelled_by', 'cancelled_at'),
            ],
            'classes': ['collapse']
        }),
    ]

    def has_add_permission(self, request):
        return False  # Releases are created via the API / service
