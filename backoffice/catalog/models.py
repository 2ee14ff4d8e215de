from django.db import models
from decimal import Decimal
from backoffice.core.models import User


class Material(models.Model):
    """Raw materials and spare parts bought from suppliers"""
    name = models.CharField(max_length=255)
    sku = models.CharField(max_length=100, unique=True)
    unit = models.CharField(max_length=50, default='cái')
    purchase_price = models.DecimalField(max_digits=15, decimal_places=2, default=Decimal('0.00'))
    retail_price = models.DecimalField(max_digits=15, decimal_places=2, default=Decimal('0.00'))
    wholesale_price = models.DecimalField(max_digits=15, decimal_places=2, default=Decimal('0.00'))
    stock = models.DecimalField(max_digits=15, decimal_places=3, default=Decimal('0.000'))
    committed_quantity = models.DecimalField(max_digits=15, decimal_places=3, default=Decimal('0.000'))
    low_stock_threshold = models.DecimalField(max_digits=15, decimal_places=3, default=Decimal('0.000'))
    supplier_name = models.CharField(max_length=200, blank=True)
    supplier_phone = models.CharField(max_length=20, blank=True)
    description = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.name} ({self.sku})"

    @property
    def available_quantity(self):
        return self.stock - self.committed_quantity

    class Meta:
        db_table = 'materials'
        ordering = ['name']


class Product(models.Model):
    """Finished goods sold at the counter"""
    name = models.CharField(max_length=255)
    sku = models.CharField(max_length=100, unique=True)
    stock = models.DecimalField(max_digits=15, decimal_places=3, default=Decimal('0.000'))
    cost_price = models.DecimalField(max_digits=15, decimal_places=2, default=Decimal('0.00'))
    retail_price = models.DecimalField(max_digits=15, decimal_places=2, default=Decimal('0.00'))
    wholesale_price = models.DecimalField(max_digits=15, decimal_places=2, default=Decimal('0.00'))
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.name} ({self.sku})"

    class Meta:
        db_table = 'products'
        ordering = ['name']


class StockHistory(models.Model):
    """Append-only record of every stock movement"""
    KIND_CHOICES = [
        ('import', 'Import'),
        ('export', 'Export'),
        ('sale', 'Sale'),
        ('sale_return', 'Sale Return'),
        ('adjust', 'Adjustment'),
    ]

    material = models.ForeignKey(Material, on_delete=models.SET_NULL, null=True, blank=True, related_name='history')
    product = models.ForeignKey(Product, on_delete=models.SET_NULL, null=True, blank=True, related_name='history')
    item_name = models.CharField(max_length=255)
    item_sku = models.CharField(max_length=100, blank=True)
    kind = models.CharField(max_length=20, choices=KIND_CHOICES)
    quantity = models.DecimalField(max_digits=15, decimal_places=3, help_text="Signed change (negative when stock leaves)")
    quantity_before = models.DecimalField(max_digits=15, decimal_places=3)
    quantity_after = models.DecimalField(max_digits=15, decimal_places=3)
    unit_price = models.DecimalField(max_digits=15, decimal_places=2, default=Decimal('0.00'))
    reason = models.CharField(max_length=255, blank=True)
    reference = models.CharField(max_length=100, blank=True, help_text="Document number that caused the movement")
    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='stock_movements')
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.kind} {self.quantity} {self.item_name}"

    class Meta:
        db_table = 'stock_history'
        ordering = ['-created_at', '-id']
        verbose_name_plural = 'stock history'
