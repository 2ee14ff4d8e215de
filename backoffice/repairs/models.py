from django.db import models
from decimal import Decimal
from django.utils import timezone
from backoffice.catalog.models import Material
from backoffice.parties.models import Customer
from backoffice.core.models import User


class RepairOrder(models.Model):
    """Device taken in for repair, with its parts, outsourced work and labor"""
    STATUS_CHOICES = [
        ('waiting', 'Waiting'),
        ('received', 'Received'),
        ('in_progress', 'In Progress'),
        ('completed', 'Completed'),
        ('returned', 'Returned'),
    ]

    PAYMENT_STATUS_CHOICES = [
        ('paid', 'Paid'),
        ('unpaid', 'Unpaid'),
        ('partial', 'Partial'),
    ]

    PAYMENT_METHOD_CHOICES = [
        ('cash', 'Cash'),
        ('bank', 'Bank'),
    ]

    code = models.CharField(max_length=50, unique=True)
    creation_date = models.DateTimeField(default=timezone.now)
    customer = models.ForeignKey(Customer, on_delete=models.SET_NULL, null=True, blank=True, related_name='repair_orders')
    customer_name = models.CharField(max_length=200)
    customer_phone = models.CharField(max_length=20)
    device_name = models.CharField(max_length=255, blank=True)
    issue_description = models.TextField()
    technician_name = models.CharField(max_length=200, blank=True)
    status = models.CharField(max_length=15, choices=STATUS_CHOICES, default='received')
    labor_cost = models.DecimalField(max_digits=15, decimal_places=2, default=Decimal('0.00'))
    total = models.DecimalField(max_digits=15, decimal_places=2, default=Decimal('0.00'))
    notes = models.TextField(blank=True)
    payment_status = models.CharField(max_length=10, choices=PAYMENT_STATUS_CHOICES, default='unpaid')
    partial_payment_amount = models.DecimalField(max_digits=15, decimal_places=2, default=Decimal('0.00'))
    deposit_amount = models.DecimalField(max_digits=15, decimal_places=2, default=Decimal('0.00'))
    payment_method = models.CharField(max_length=10, choices=PAYMENT_METHOD_CHOICES, blank=True)
    payment_date = models.DateTimeField(null=True, blank=True)
    due_date = models.DateField(null=True, blank=True)
    barcode = models.CharField(max_length=100, blank=True)
    label_image = models.TextField(blank=True, help_text="PNG data URL of the printed ticket label")
    branch = models.CharField(max_length=50, default='main')
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name='repair_orders')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.code} - {self.device_name}"

    @property
    def paid_amount(self):
        if self.payment_status == 'paid':
            return self.total
        return self.deposit_amount + self.partial_payment_amount

    @property
    def remaining_amount(self):
        return max(self.total - self.paid_amount, Decimal('0.00'))

    def get_materials_total(self):
        return sum((m.quantity * m.price for m in self.materials.all()), Decimal('0.00'))

    def get_outsourcing_total(self):
        return sum((o.total for o in self.outsourcing_items.all()), Decimal('0.00'))

    class Meta:
        db_table = 'repair_orders'
        ordering = ['-creation_date', '-id']
        indexes = [
            models.Index(fields=['payment_status', 'branch'], name='idx_repair_payment_branch'),
            models.Index(fields=['status'], name='idx_repair_status'),
            models.Index(fields=['-creation_date'], name='idx_repair_creation_date'),
        ]


class RepairMaterial(models.Model):
    """Part consumed by a repair; name and price are a snapshot"""
    repair_order = models.ForeignKey(RepairOrder, on_delete=models.CASCADE, related_name='materials')
    material = models.ForeignKey(Material, on_delete=models.SET_NULL, null=True, blank=True, related_name='repair_usages')
    name = models.CharField(max_length=255)
    quantity = models.DecimalField(max_digits=15, decimal_places=3)
    price = models.DecimalField(max_digits=15, decimal_places=2, default=Decimal('0.00'))

    def get_line_total(self):
        return self.quantity * self.price

    class Meta:
        db_table = 'repair_materials'
        ordering = ['id']


class OutsourcingItem(models.Model):
    """Work sent out to a third party and billed to the customer"""
    repair_order = models.ForeignKey(RepairOrder, on_delete=models.CASCADE, related_name='outsourcing_items')
    description = models.CharField(max_length=255)
    quantity = models.DecimalField(max_digits=15, decimal_places=3, default=Decimal('1.000'))
    cost_price = models.DecimalField(max_digits=15, decimal_places=2, default=Decimal('0.00'))
    selling_price = models.DecimalField(max_digits=15, decimal_places=2, default=Decimal('0.00'))
    total = models.DecimalField(max_digits=15, decimal_places=2, default=Decimal('0.00'))

    def save(self, *args, **kwargs):
        self.total = (self.quantity * self.selling_price).quantize(Decimal('0.01'))
        super().save(*args, **kwargs)

    class Meta:
        db_table = 'repair_outsourcing_items'
        ordering = ['id']
