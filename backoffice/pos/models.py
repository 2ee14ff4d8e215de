from django.db import models
from decimal import Decimal
from django.utils import timezone
from backoffice.catalog.models import Material, Product
from backoffice.parties.models import Customer
from backoffice.core.models import User


class Sale(models.Model):
    """Counter sale of products and materials"""
    PAYMENT_METHOD_CHOICES = [
        ('cash', 'Cash'),
        ('bank', 'Bank'),
    ]

    PAYMENT_STATUS_CHOICES = [
        ('paid', 'Paid'),
        ('partial', 'Partial'),
        ('debt', 'Debt'),
        ('installment', 'Installment'),
    ]

    code = models.CharField(max_length=50, unique=True)
    date = models.DateTimeField(default=timezone.now)
    customer = models.ForeignKey(Customer, on_delete=models.SET_NULL, null=True, blank=True, related_name='sales')
    customer_name = models.CharField(max_length=200, blank=True)
    customer_phone = models.CharField(max_length=20, blank=True)
    subtotal = models.DecimalField(max_digits=15, decimal_places=2, default=Decimal('0.00'))
    discount = models.DecimalField(max_digits=15, decimal_places=2, default=Decimal('0.00'))
    total = models.DecimalField(max_digits=15, decimal_places=2, default=Decimal('0.00'))
    payment_method = models.CharField(max_length=10, choices=PAYMENT_METHOD_CHOICES, default='cash')
    payment_status = models.CharField(max_length=15, choices=PAYMENT_STATUS_CHOICES, default='paid')
    paid_amount = models.DecimalField(max_digits=15, decimal_places=2, default=Decimal('0.00'))
    due_date = models.DateField(null=True, blank=True)
    notes = models.TextField(blank=True)
    branch = models.CharField(max_length=50, default='main')
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='sales')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.code

    @property
    def remaining_amount(self):
        return max(self.total - self.paid_amount, Decimal('0.00'))

    class Meta:
        db_table = 'sales'
        ordering = ['-date', '-id']
        indexes = [
            models.Index(fields=['payment_status', 'branch'], name='idx_sale_status_branch'),
            models.Index(fields=['-date'], name='idx_sale_date'),
        ]


class SaleItem(models.Model):
    """Sale line; name/sku/prices are a snapshot at checkout"""
    ITEM_TYPE_CHOICES = [
        ('product', 'Product'),
        ('material', 'Material'),
    ]

    sale = models.ForeignKey(Sale, on_delete=models.CASCADE, related_name='items')
    item_type = models.CharField(max_length=10, choices=ITEM_TYPE_CHOICES, default='product')
    product = models.ForeignKey(Product, on_delete=models.SET_NULL, null=True, blank=True, related_name='sale_items')
    material = models.ForeignKey(Material, on_delete=models.SET_NULL, null=True, blank=True, related_name='sale_items')
    name = models.CharField(max_length=255)
    sku = models.CharField(max_length=100, blank=True)
    quantity = models.DecimalField(max_digits=15, decimal_places=3)
    selling_price = models.DecimalField(max_digits=15, decimal_places=2)
    cost_price = models.DecimalField(max_digits=15, decimal_places=2, default=Decimal('0.00'))
    discount = models.DecimalField(max_digits=15, decimal_places=2, default=Decimal('0.00'))

    def get_line_total(self):
        return self.quantity * self.selling_price - self.discount

    @property
    def stock_item(self):
        return self.material if self.item_type == 'material' else self.product

    class Meta:
        db_table = 'sale_items'
        ordering = ['id']


class InstallmentPlan(models.Model):
    """Monthly repayment schedule for the part of a sale not paid up front"""
    STATUS_CHOICES = [
        ('active', 'Active'),
        ('completed', 'Completed'),
        ('overdue', 'Overdue'),
        ('cancelled', 'Cancelled'),
    ]

    sale = models.OneToOneField(Sale, on_delete=models.CASCADE, related_name='installment_plan')
    customer = models.ForeignKey(Customer, on_delete=models.SET_NULL, null=True, blank=True, related_name='installment_plans')
    customer_name = models.CharField(max_length=200, blank=True)
    customer_phone = models.CharField(max_length=20, blank=True)
    total_amount = models.DecimalField(max_digits=15, decimal_places=2)
    down_payment = models.DecimalField(max_digits=15, decimal_places=2, default=Decimal('0.00'))
    terms = models.PositiveSmallIntegerField()
    monthly_amount = models.DecimalField(max_digits=15, decimal_places=2)
    interest_rate = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal('0.00'), help_text="Percent per month")
    start_date = models.DateField()
    end_date = models.DateField()
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default='active')
    remaining_amount = models.DecimalField(max_digits=15, decimal_places=2, default=Decimal('0.00'))
    branch = models.CharField(max_length=50, default='main')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"Installment {self.sale.code}"

    class Meta:
        db_table = 'installment_plans'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status', 'branch'], name='idx_plan_status_branch'),
        ]


class InstallmentPayment(models.Model):
    """One period of an installment plan"""
    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('paid', 'Paid'),
        ('partial', 'Partial'),
        ('overdue', 'Overdue'),
    ]

    plan = models.ForeignKey(InstallmentPlan, on_delete=models.CASCADE, related_name='payments')
    period_number = models.PositiveSmallIntegerField()
    due_date = models.DateField()
    amount = models.DecimalField(max_digits=15, decimal_places=2)
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default='pending')
    paid_amount = models.DecimalField(max_digits=15, decimal_places=2, default=Decimal('0.00'))
    paid_date = models.DateTimeField(null=True, blank=True)

    def __str__(self):
        return f"{self.plan} #{self.period_number}"

    @property
    def outstanding(self):
        return max(self.amount - self.paid_amount, Decimal('0.00'))

    class Meta:
        db_table = 'installment_payments'
        ordering = ['plan', 'period_number']
        constraints = [
            models.UniqueConstraint(fields=['plan', 'period_number'], name='uniq_installment_period'),
        ]
