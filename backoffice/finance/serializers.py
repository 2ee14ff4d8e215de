from decimal import Decimal

from rest_framework import serializers
from backoffice.parties.models import Supplier
from .models import CashTransaction
from .services import DEBT_KINDS


class CashTransactionSerializer(serializers.ModelSerializer):
    category_display = serializers.CharField(source='get_category_display', read_only=True)
    created_by_username = serializers.CharField(source='created_by.username', read_only=True, allow_null=True)
    sale_code = serializers.CharField(source='sale.code', read_only=True, allow_null=True)
    repair_code = serializers.CharField(source='repair_order.code', read_only=True, allow_null=True)

    class Meta:
        model = CashTransaction
        fields = [
            'id', 'type', 'date', 'amount', 'category', 'category_display', 'payment_source',
            'contact_id', 'contact_name', 'branch', 'notes', 'sale', 'sale_code',
            'repair_order', 'repair_code', 'installment_plan', 'goods_receipt', 'supplier',
            'created_by', 'created_by_username', 'created_at'
        ]
        read_only_fields = ['created_by', 'created_at']

    def validate(self, attrs):
        tx_type = attrs.get('type', getattr(self.instance, 'type', None))
        category = attrs.get('category', getattr(self.instance, 'category', None))
        allowed = CashTransaction.INCOME_CATEGORIES if tx_type == 'income' else CashTransaction.EXPENSE_CATEGORIES
        if category not in allowed:
            raise serializers.ValidationError({'category': f'{category} is not a valid {tx_type} category'})
        amount = attrs.get('amount')
        if amount is not None and amount == 0:
            raise serializers.ValidationError({'amount': 'Amount must not be zero'})
        return attrs


class DebtCollectionSerializer(serializers.Serializer):
    kind = serializers.ChoiceField(choices=[(kind, kind) for kind in DEBT_KINDS])
    id = serializers.IntegerField()
    amount = serializers.DecimalField(max_digits=15, decimal_places=2, min_value=Decimal('0.01'))
    payment_method = serializers.ChoiceField(choices=CashTransaction.PAYMENT_SOURCE_CHOICES, default='cash')
    notes = serializers.CharField(required=False, allow_blank=True, default='')


class ConsolidatedCollectionSerializer(serializers.Serializer):
    customer_key = serializers.CharField(max_length=250)
    amount = serializers.DecimalField(max_digits=15, decimal_places=2, min_value=Decimal('0.01'))
    payment_method = serializers.ChoiceField(choices=CashTransaction.PAYMENT_SOURCE_CHOICES, default='cash')
    notes = serializers.CharField(required=False, allow_blank=True, default='')
    branch = serializers.CharField(max_length=50, required=False, allow_blank=True)


class SupplierPaymentSerializer(serializers.Serializer):
    supplier = serializers.PrimaryKeyRelatedField(queryset=Supplier.objects.all())
    amount = serializers.DecimalField(max_digits=15, decimal_places=2, min_value=Decimal('0.01'))
    payment_method = serializers.ChoiceField(choices=CashTransaction.PAYMENT_SOURCE_CHOICES, default='cash')
    notes = serializers.CharField(required=False, allow_blank=True, default='')
    branch = serializers.CharField(max_length=50, required=False, allow_blank=True)
