from django.contrib import admin
from .models import GoodsReceipt, GoodsReceiptItem, PurchaseOrder, PurchaseOrderItem


class GoodsReceiptItemInline(admin.TabularInline):
    model = GoodsReceiptItem
    extra = 0
    fields = ['material', 'name', 'sku', 'unit', 'quantity', 'purchase_price', 'retail_price', 'wholesale_price', 'is_new']


@admin.register(GoodsReceipt)
class GoodsReceiptAdmin(admin.ModelAdmin):
    list_display = ['code', 'supplier', 'purchase_order', 'receipt_date', 'total', 'amount_paid', 'payment_status', 'branch']
    list_filter = ['payment_status', 'payment_method', 'branch', 'receipt_date']
    search_fields = ['code', 'supplier__name', 'notes']
    readonly_fields = ['code', 'created_at']
    inlines = [GoodsReceiptItemInline]


class PurchaseOrderItemInline(admin.TabularInline):
    model = PurchaseOrderItem
    extra = 0
    fields = ['material', 'name', 'sku', 'unit', 'quantity', 'unit_price', 'received_quantity']


@admin.register(PurchaseOrder)
class PurchaseOrderAdmin(admin.ModelAdmin):
    list_display = ['code', 'supplier', 'status', 'total_amount', 'expected_date', 'received_date', 'branch']
    list_filter = ['status', 'branch', 'expected_date']
    search_fields = ['code', 'supplier__name', 'notes']
    readonly_fields = ['code', 'created_at', 'updated_at']
    inlines = [PurchaseOrderItemInline]
