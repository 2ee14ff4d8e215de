from django.contrib import admin
from .models import RepairOrder, RepairMaterial, OutsourcingItem


class RepairMaterialInline(admin.TabularInline):
    model = RepairMaterial
    extra = 0
    fields = ['material', 'name', 'quantity', 'price']


class OutsourcingItemInline(admin.TabularInline):
    model = OutsourcingItem
    extra = 0
    fields = ['description', 'quantity', 'cost_price', 'selling_price', 'total']
    readonly_fields = ['total']


@admin.register(RepairOrder)
class RepairOrderAdmin(admin.ModelAdmin):
    list_display = ['code', 'creation_date', 'customer_name', 'customer_phone', 'device_name', 'status', 'total', 'payment_status', 'branch']
    list_filter = ['status', 'payment_status', 'branch', 'creation_date']
    search_fields = ['code', 'customer_name', 'customer_phone', 'device_name']
    readonly_fields = ['code', 'barcode', 'created_at', 'updated_at']
    exclude = ['label_image']
    inlines = [RepairMaterialInline, OutsourcingItemInline]
