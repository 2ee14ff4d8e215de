from django.contrib.auth.models import AbstractUser
from django.conf import settings
from django.db import models


class User(AbstractUser):
    """Extended user model with additional fields"""
    phone = models.CharField(max_length=20, blank=True, null=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    @property
    def display_name(self):
        return self.get_full_name() or self.username

    class Meta:
        db_table = 'users'


class Setting(models.Model):
    """Business settings (shop name, address, bank info, ...)"""
    key = models.CharField(max_length=100, unique=True)
    value = models.TextField()
    description = models.TextField(blank=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.key

    class Meta:
        db_table = 'settings'


class AuditLog(models.Model):
    """Audit log for critical operations"""
    ACTION_CHOICES = [
        ('create', 'Create'),
        ('update', 'Update'),
        ('delete', 'Delete'),
        ('stock_adjust', 'Stock Adjustment'),
        ('goods_receipt', 'Goods Received'),
        ('sale_create', 'Sale Created'),
        ('sale_delete', 'Sale Deleted'),
        ('repair_save', 'Repair Order Saved'),
        ('repair_status_update', 'Repair Status Changed'),
        ('repair_delete', 'Repair Order Deleted'),
        ('installment_payment', 'Installment Payment'),
        ('installment_settle', 'Installment Settled Early'),
        ('debt_collect', 'Debt Collected'),
        ('supplier_payment', 'Supplier Paid'),
    ]

    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, related_name='audit_logs')
    action = models.CharField(max_length=50, choices=ACTION_CHOICES)
    model_name = models.CharField(max_length=100)
    object_id = models.CharField(max_length=100)
    object_name = models.CharField(max_length=255, blank=True, null=True, help_text="Human-readable name of the object (e.g., customer name, device)")
    object_reference = models.CharField(max_length=255, blank=True, null=True, help_text="Document number (e.g., LTN-BH-20250101-0001)")
    changes = models.JSONField(default=dict, blank=True)
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'audit_logs'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['-created_at'], name='audit_logs_created_2d4c1e_idx'),
            models.Index(fields=['action'], name='audit_logs_action_8f0b3a_idx'),
            models.Index(fields=['model_name'], name='audit_logs_model_n_5e7a91_idx'),
            models.Index(fields=['object_reference'], name='audit_logs_object__c3b6d2_idx'),
        ]


class DocumentSequence(models.Model):
    """Daily counter behind PREFIX-YYYYMMDD-NNNN document numbers"""
    prefix = models.CharField(max_length=20)
    day = models.DateField()
    last_value = models.PositiveIntegerField(default=0)

    def __str__(self):
        return f"{self.prefix}-{self.day:%Y%m%d} ({self.last_value})"

    class Meta:
        db_table = 'document_sequences'
        constraints = [
            models.UniqueConstraint(fields=['prefix', 'day'], name='uniq_document_sequence_prefix_day'),
        ]


class FormDraft(models.Model):
    """Autosaved snapshot of an unfinished form, one per user and form"""
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='form_drafts')
    form_key = models.CharField(max_length=100)
    payload = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.user_id}:{self.form_key}"

    class Meta:
        db_table = 'form_drafts'
        ordering = ['-updated_at']
        constraints = [
            models.UniqueConstraint(fields=['user', 'form_key'], name='uniq_form_draft_user_key'),
        ]
