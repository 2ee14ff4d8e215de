from django.contrib import admin
from .models import CashTransaction


@admin.register(CashTransaction)
class CashTransactionAdmin(admin.ModelAdmin):
    list_display = ['date', 'type', 'category', 'amount', 'payment_source', 'contact_name', 'branch', 'created_by']
    list_filter = ['type', 'category', 'payment_source', 'branch', 'date']
    search_fields = ['contact_name', 'notes', 'sale__code', 'repair_order__code']
    readonly_fields = ['created_at']
    raw_id_fields = ['sale', 'repair_order', 'installment_plan', 'goods_receipt', 'supplier']
