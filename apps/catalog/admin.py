from django.contrib import admin

from .models import Product


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ['product_code', 'sku', 'name', 'brand', 'cost_price', 'min_stock_level', 'is_active']
    list_filter = ['is_active', 'brand']
    search_fields = ['product_code', 'sku', 'name']
