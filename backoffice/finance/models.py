from django.db import models
from decimal import Decimal
from django.utils import timezone
from backoffice.core.models import User


class CashTransaction(models.Model):
    """Cash book entry; income is stored positive, expense negative"""
    TYPE_CHOICES = [
        ('income', 'Income'),
        ('expense', 'Expense'),
    ]

    CATEGORY_CHOICES = [
        ('sale_income', 'Sale Income'),
        ('service_income', 'Service Income'),
        ('installment_payment', 'Installment Payment'),
        ('other_income', 'Other Income'),
        ('inventory_purchase', 'Inventory Purchase'),
        ('supplier_payment', 'Supplier Payment'),
        ('other_expense', 'Other Expense'),
    ]

    INCOME_CATEGORIES = ('sale_income', 'service_income', 'installment_payment', 'other_income')
    EXPENSE_CATEGORIES = ('inventory_purchase', 'supplier_payment', 'other_expense')

    PAYMENT_SOURCE_CHOICES = [
        ('cash', 'Cash'),
        ('bank', 'Bank'),
    ]

    type = models.CharField(max_length=10, choices=TYPE_CHOICES)
    date = models.DateTimeField(default=timezone.now)
    amount = models.DecimalField(max_digits=15, decimal_places=2, default=Decimal('0.00'))
    category = models.CharField(max_length=30, choices=CATEGORY_CHOICES)
    payment_source = models.CharField(max_length=10, choices=PAYMENT_SOURCE_CHOICES, default='cash')
    contact_id = models.CharField(max_length=100, blank=True)
    contact_name = models.CharField(max_length=200, blank=True)
    branch = models.CharField(max_length=50, default='main')
    notes = models.TextField(blank=True)
    sale = models.ForeignKey('pos.Sale', on_delete=models.CASCADE, null=True, blank=True, related_name='cash_transactions')
    repair_order = models.ForeignKey('repairs.RepairOrder', on_delete=models.CASCADE, null=True, blank=True, related_name='cash_transactions')
    installment_plan = models.ForeignKey('pos.InstallmentPlan', on_delete=models.SET_NULL, null=True, blank=True, related_name='cash_transactions')
    goods_receipt = models.ForeignKey('purchasing.GoodsReceipt', on_delete=models.SET_NULL, null=True, blank=True, related_name='cash_transactions')
    supplier = models.ForeignKey('parties.Supplier', on_delete=models.SET_NULL, null=True, blank=True, related_name='cash_transactions')
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='cash_transactions')
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.get_category_display()} {self.amount}"

    def save(self, *args, **kwargs):
        magnitude = abs(self.amount or Decimal('0.00'))
        self.amount = -magnitude if self.type == 'expense' else magnitude
        super().save(*args, **kwargs)

    class Meta:
        db_table = 'cash_transactions'
        ordering = ['-date', '-id']
        indexes = [
            models.Index(fields=['branch', 'category'], name='idx_cashtx_branch_category'),
            models.Index(fields=['-date'], name='idx_cashtx_date'),
        ]
