from django.contrib import admin
from .models import Material, Product, StockHistory


@admin.register(Material)
class MaterialAdmin(admin.ModelAdmin):
    list_display = ['name', 'sku', 'unit', 'stock', 'purchase_price', 'retail_price', 'supplier_name', 'updated_at']
    list_filter = ['unit', 'created_at']
    search_fields = ['name', 'sku', 'supplier_name']
    readonly_fields = ['created_at', 'updated_at']


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ['name', 'sku', 'stock', 'cost_price', 'retail_price', 'wholesale_price']
    search_fields = ['name', 'sku']
    readonly_fields = ['created_at', 'updated_at']


@admin.register(StockHistory)
class StockHistoryAdmin(admin.ModelAdmin):
    list_display = ['item_name', 'item_sku', 'kind', 'quantity', 'quantity_before', 'quantity_after', 'reference', 'user', 'created_at']
    list_filter = ['kind', 'created_at']
    search_fields = ['item_name', 'item_sku', 'reference', 'reason']
    readonly_fields = [f.name for f in StockHistory._meta.fields]
