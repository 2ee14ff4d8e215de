from decimal import Decimal

from rest_framework import serializers
from backoffice.catalog.models import Material, Product
from backoffice.parties.models import Customer
from .installments import MAX_TERMS, MIN_TERMS
from .models import Sale, SaleItem, InstallmentPlan, InstallmentPayment


class SaleItemSerializer(serializers.ModelSerializer):
    line_total = serializers.SerializerMethodField()

    class Meta:
        model = SaleItem
        fields = [
            'id', 'item_type', 'product', 'material', 'name', 'sku', 'quantity',
            'selling_price', 'cost_price', 'discount', 'line_total'
        ]

    def get_line_total(self, obj):
        return str(obj.get_line_total())


class InstallmentPaymentSerializer(serializers.ModelSerializer):
    sale_code = serializers.CharField(source='plan.sale.code', read_only=True)
    customer_name = serializers.CharField(source='plan.customer_name', read_only=True)

    class Meta:
        model = InstallmentPayment
        fields = ['id', 'plan', 'sale_code', 'customer_name', 'period_number', 'due_date', 'amount', 'status', 'paid_amount', 'paid_date']


class InstallmentPlanSerializer(serializers.ModelSerializer):
    sale_code = serializers.CharField(source='sale.code', read_only=True)
    payments = InstallmentPaymentSerializer(many=True, read_only=True)
    paid_periods = serializers.SerializerMethodField()

    class Meta:
        model = InstallmentPlan
        fields = [
            'id', 'sale', 'sale_code', 'customer', 'customer_name', 'customer_phone',
            'total_amount', 'down_payment', 'terms', 'monthly_amount', 'interest_rate',
            'start_date', 'end_date', 'status', 'remaining_amount', 'branch',
            'paid_periods', 'payments', 'created_at', 'updated_at'
        ]

    def get_paid_periods(self, obj):
        return sum(1 for p in obj.payments.all() if p.status == 'paid')


class SaleSerializer(serializers.ModelSerializer):
    items = SaleItemSerializer(many=True, read_only=True)
    remaining_amount = serializers.DecimalField(max_digits=15, decimal_places=2, read_only=True)
    created_by_username = serializers.CharField(source='created_by.username', read_only=True, allow_null=True)
    installment_plan_id = serializers.SerializerMethodField()

    class Meta:
        model = Sale
        fields = [
            'id', 'code', 'date', 'customer', 'customer_name', 'customer_phone',
            'subtotal', 'discount', 'total', 'payment_method', 'payment_status',
            'paid_amount', 'remaining_amount', 'due_date', 'notes', 'branch',
            'created_by', 'created_by_username', 'installment_plan_id', 'items',
            'created_at', 'updated_at'
        ]

    def get_installment_plan_id(self, obj):
        plan = getattr(obj, 'installment_plan', None)
        return plan.id if plan else None


class SaleUpdateSerializer(serializers.ModelSerializer):
    """Header fields that may change after checkout"""
    class Meta:
        model = Sale
        fields = ['customer', 'customer_name', 'customer_phone', 'due_date', 'notes']


class SaleLineInputSerializer(serializers.Serializer):
    item_type = serializers.ChoiceField(choices=SaleItem.ITEM_TYPE_CHOICES, default='product')
    product = serializers.PrimaryKeyRelatedField(queryset=Product.objects.all(), required=False, allow_null=True)
    material = serializers.PrimaryKeyRelatedField(queryset=Material.objects.all(), required=False, allow_null=True)
    name = serializers.CharField(max_length=255, required=False, allow_blank=True)
    quantity = serializers.DecimalField(max_digits=15, decimal_places=3, min_value=Decimal('0.001'))
    selling_price = serializers.DecimalField(max_digits=15, decimal_places=2, min_value=Decimal('0'))
    discount = serializers.DecimalField(max_digits=15, decimal_places=2, required=False, default=Decimal('0.00'), min_value=Decimal('0'))

    def validate(self, attrs):
        key = 'material' if attrs['item_type'] == 'material' else 'product'
        if attrs.get(key) is None:
            raise serializers.ValidationError({key: f'A {key} is required for this line'})
        if attrs['discount'] > attrs['quantity'] * attrs['selling_price']:
            raise serializers.ValidationError({'discount': 'Line discount cannot exceed the line amount'})
        return attrs


class InstallmentInputSerializer(serializers.Serializer):
    terms = serializers.IntegerField(min_value=MIN_TERMS, max_value=MAX_TERMS)
    interest_rate = serializers.DecimalField(max_digits=5, decimal_places=2, required=False, default=Decimal('0.00'), min_value=Decimal('0'))


class SaleInputSerializer(serializers.Serializer):
    date = serializers.DateTimeField(required=False)
    customer = serializers.PrimaryKeyRelatedField(queryset=Customer.objects.all(), required=False, allow_null=True)
    customer_name = serializers.CharField(max_length=200, required=False, allow_blank=True)
    customer_phone = serializers.CharField(max_length=20, required=False, allow_blank=True)
    items = SaleLineInputSerializer(many=True)
    discount = serializers.DecimalField(max_digits=15, decimal_places=2, required=False, default=Decimal('0.00'), min_value=Decimal('0'))
    paid_amount = serializers.DecimalField(max_digits=15, decimal_places=2, required=False, allow_null=True)
    payment_method = serializers.ChoiceField(choices=Sale.PAYMENT_METHOD_CHOICES, default='cash')
    due_date = serializers.DateField(required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, default='')
    branch = serializers.CharField(max_length=50, required=False)
    installment = InstallmentInputSerializer(required=False, allow_null=True)

    def validate_items(self, value):
        if not value:
            raise serializers.ValidationError('Add at least one item')
        return value


class InstallmentPaymentInputSerializer(serializers.Serializer):
    period_number = serializers.IntegerField(min_value=1)
    amount = serializers.DecimalField(max_digits=15, decimal_places=2)
    payment_method = serializers.ChoiceField(choices=Sale.PAYMENT_METHOD_CHOICES, default='cash')
    notes = serializers.CharField(required=False, allow_blank=True, default='')


class EarlySettlementInputSerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=15, decimal_places=2, required=False, allow_null=True)
    payment_method = serializers.ChoiceField(choices=Sale.PAYMENT_METHOD_CHOICES, default='cash')
    notes = serializers.CharField(required=False, allow_blank=True, default='')
