from django.db import models
from decimal import Decimal
from django.utils import timezone
from backoffice.catalog.models import Material
from backoffice.parties.models import Supplier
from backoffice.core.models import User


class PurchaseOrder(models.Model):
    """Order placed with a supplier, received through one or more goods receipts"""
    STATUS_CHOICES = [
        ('draft', 'Draft'),
        ('confirmed', 'Confirmed'),
        ('partial', 'Partially Received'),
        ('received', 'Received'),
        ('cancelled', 'Cancelled'),
    ]

    code = models.CharField(max_length=50, unique=True)
    supplier = models.ForeignKey(Supplier, on_delete=models.PROTECT, related_name='purchase_orders')
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='draft')
    total_amount = models.DecimalField(max_digits=15, decimal_places=2, default=Decimal('0.00'))
    notes = models.TextField(blank=True)
    expected_date = models.DateField(null=True, blank=True)
    received_date = models.DateField(null=True, blank=True)
    branch = models.CharField(max_length=50, default='main')
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='purchase_orders')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.code

    @property
    def is_editable(self):
        return self.status == 'draft'

    class Meta:
        db_table = 'purchase_orders'
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['status'], name='idx_po_status'),
            models.Index(fields=['supplier'], name='idx_po_supplier'),
            models.Index(fields=['-created_at'], name='idx_po_created'),
        ]


class PurchaseOrderItem(models.Model):
    order = models.ForeignKey(PurchaseOrder, on_delete=models.CASCADE, related_name='items')
    material = models.ForeignKey(Material, on_delete=models.SET_NULL, null=True, blank=True, related_name='purchase_order_items')
    name = models.CharField(max_length=255)
    sku = models.CharField(max_length=100, blank=True)
    unit = models.CharField(max_length=50, default='cái')
    quantity = models.DecimalField(max_digits=15, decimal_places=3)
    unit_price = models.DecimalField(max_digits=15, decimal_places=2, default=Decimal('0.00'))
    received_quantity = models.DecimalField(max_digits=15, decimal_places=3, default=Decimal('0'))

    def get_line_total(self):
        return self.quantity * self.unit_price

    @property
    def outstanding_quantity(self):
        return max(self.quantity - self.received_quantity, Decimal('0'))

    class Meta:
        db_table = 'purchase_order_items'
        ordering = ['id']


class GoodsReceipt(models.Model):
    """Finalized intake of materials from a supplier"""
    PAYMENT_METHOD_CHOICES = [
        ('cash', 'Cash'),
        ('bank', 'Bank'),
    ]

    PAYMENT_STATUS_CHOICES = [
        ('paid', 'Paid'),
        ('partial', 'Partial'),
        ('unpaid', 'Unpaid'),
    ]

    code = models.CharField(max_length=50, unique=True)
    supplier = models.ForeignKey(Supplier, on_delete=models.PROTECT, related_name='goods_receipts')
    purchase_order = models.ForeignKey(PurchaseOrder, on_delete=models.SET_NULL, null=True, blank=True, related_name='goods_receipts')
    receipt_date = models.DateTimeField(default=timezone.now)
    warehouse_location = models.CharField(max_length=100, default='Kho chính')
    notes = models.TextField(blank=True)
    payment_method = models.CharField(max_length=10, choices=PAYMENT_METHOD_CHOICES, default='cash')
    subtotal = models.DecimalField(max_digits=15, decimal_places=2, default=Decimal('0.00'))
    discount = models.DecimalField(max_digits=15, decimal_places=2, default=Decimal('0.00'))
    tax = models.DecimalField(max_digits=15, decimal_places=2, default=Decimal('0.00'))
    total = models.DecimalField(max_digits=15, decimal_places=2, default=Decimal('0.00'))
    amount_paid = models.DecimalField(max_digits=15, decimal_places=2, default=Decimal('0.00'))
    payment_status = models.CharField(max_length=10, choices=PAYMENT_STATUS_CHOICES, default='paid')
    branch = models.CharField(max_length=50, default='main')
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='goods_receipts')
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return self.code

    @property
    def debt_amount(self):
        return self.total - self.amount_paid

    class Meta:
        db_table = 'goods_receipts'
        ordering = ['-receipt_date', '-id']
        indexes = [
            models.Index(fields=['supplier', 'payment_status'], name='idx_receipt_supplier_status'),
            models.Index(fields=['-receipt_date'], name='idx_receipt_date'),
        ]


class GoodsReceiptItem(models.Model):
    """Receipt line; name/sku/unit are kept as received"""
    receipt = models.ForeignKey(GoodsReceipt, on_delete=models.CASCADE, related_name='items')
    material = models.ForeignKey(Material, on_delete=models.SET_NULL, null=True, blank=True, related_name='receipt_items')
    name = models.CharField(max_length=255)
    sku = models.CharField(max_length=100)
    unit = models.CharField(max_length=50, default='cái')
    quantity = models.DecimalField(max_digits=15, decimal_places=3)
    purchase_price = models.DecimalField(max_digits=15, decimal_places=2)
    retail_price = models.DecimalField(max_digits=15, decimal_places=2, default=Decimal('0.00'))
    wholesale_price = models.DecimalField(max_digits=15, decimal_places=2, default=Decimal('0.00'))
    is_new = models.BooleanField(default=False)

    def get_line_total(self):
        return self.quantity * self.purchase_price

    class Meta:
        db_table = 'goods_receipt_items'
        ordering = ['id']
