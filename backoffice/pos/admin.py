from django.contrib import admin
from .models import Sale, SaleItem, InstallmentPlan, InstallmentPayment


class SaleItemInline(admin.TabularInline):
    model = SaleItem
    extra = 0
    fields = ['item_type', 'product', 'material', 'name', 'sku', 'quantity', 'selling_price', 'discount']


@admin.register(Sale)
class SaleAdmin(admin.ModelAdmin):
    list_display = ['code', 'date', 'customer_name', 'customer_phone', 'total', 'paid_amount', 'payment_status', 'branch']
    list_filter = ['payment_status', 'payment_method', 'branch', 'date']
    search_fields = ['code', 'customer_name', 'customer_phone']
    readonly_fields = ['code', 'created_at', 'updated_at']
    inlines = [SaleItemInline]


class InstallmentPaymentInline(admin.TabularInline):
    model = InstallmentPayment
    extra = 0
    fields = ['period_number', 'due_date', 'amount', 'status', 'paid_amount', 'paid_date']


@admin.register(InstallmentPlan)
class InstallmentPlanAdmin(admin.ModelAdmin):
    list_display = ['sale', 'customer_name', 'total_amount', 'terms', 'monthly_amount', 'remaining_amount', 'status', 'end_date']
    list_filter = ['status', 'branch']
    search_fields = ['sale__code', 'customer_name', 'customer_phone']
    inlines = [InstallmentPaymentInline]
