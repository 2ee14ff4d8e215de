from decimal import Decimal

from rest_framework import serializers
from backoffice.catalog.models import Material
from backoffice.parties.models import Customer
from .models import RepairOrder, RepairMaterial, OutsourcingItem
from .utils import validate_repair


class RepairMaterialSerializer(serializers.ModelSerializer):
    material_sku = serializers.CharField(source='material.sku', read_only=True, allow_null=True)
    line_total = serializers.SerializerMethodField()

    class Meta:
        model = RepairMaterial
        fields = ['id', 'material', 'material_sku', 'name', 'quantity', 'price', 'line_total']

    def get_line_total(self, obj):
        return str(obj.get_line_total())


class OutsourcingItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = OutsourcingItem
        fields = ['id', 'description', 'quantity', 'cost_price', 'selling_price', 'total']


class RepairOrderSerializer(serializers.ModelSerializer):
    materials = RepairMaterialSerializer(many=True, read_only=True)
    outsourcing_items = OutsourcingItemSerializer(many=True, read_only=True)
    paid_amount = serializers.DecimalField(max_digits=15, decimal_places=2, read_only=True)
    remaining_amount = serializers.DecimalField(max_digits=15, decimal_places=2, read_only=True)
    created_by_username = serializers.CharField(source='created_by.username', read_only=True, allow_null=True)

    class Meta:
        model = RepairOrder
        fields = [
            'id', 'code', 'creation_date', 'customer', 'customer_name', 'customer_phone',
            'device_name', 'issue_description', 'technician_name', 'status',
            'labor_cost', 'total', 'notes', 'payment_status', 'partial_payment_amount',
            'deposit_amount', 'paid_amount', 'remaining_amount', 'payment_method',
            'payment_date', 'due_date', 'barcode', 'branch', 'created_by',
            'created_by_username', 'materials', 'outsourcing_items', 'created_at', 'updated_at'
        ]


class RepairMaterialInputSerializer(serializers.Serializer):
    material = serializers.PrimaryKeyRelatedField(queryset=Material.objects.all(), required=False, allow_null=True)
    name = serializers.CharField(max_length=255, required=False, allow_blank=True)
    quantity = serializers.DecimalField(max_digits=15, decimal_places=3, min_value=Decimal('0.001'))
    price = serializers.DecimalField(max_digits=15, decimal_places=2, min_value=Decimal('0'))

    def validate(self, attrs):
        if attrs.get('material') is None and not (attrs.get('name') or '').strip():
            raise serializers.ValidationError('Pick a material or name the part')
        return attrs


class OutsourcingInputSerializer(serializers.Serializer):
    description = serializers.CharField(max_length=255)
    quantity = serializers.DecimalField(max_digits=15, decimal_places=3, min_value=Decimal('0.001'), default=Decimal('1'))
    cost_price = serializers.DecimalField(max_digits=15, decimal_places=2, min_value=Decimal('0'), default=Decimal('0.00'))
    selling_price = serializers.DecimalField(max_digits=15, decimal_places=2, min_value=Decimal('0'))


class RepairOrderInputSerializer(serializers.Serializer):
    creation_date = serializers.DateTimeField(required=False)
    customer = serializers.PrimaryKeyRelatedField(queryset=Customer.objects.all(), required=False, allow_null=True)
    customer_name = serializers.CharField(max_length=200, allow_blank=True)
    customer_phone = serializers.CharField(max_length=20, allow_blank=True)
    device_name = serializers.CharField(max_length=255, required=False, allow_blank=True, default='')
    issue_description = serializers.CharField(allow_blank=True)
    technician_name = serializers.CharField(max_length=200, required=False, allow_blank=True, default='')
    status = serializers.ChoiceField(choices=RepairOrder.STATUS_CHOICES, required=False)
    labor_cost = serializers.DecimalField(max_digits=15, decimal_places=2, min_value=Decimal('0'), default=Decimal('0.00'))
    notes = serializers.CharField(required=False, allow_blank=True, default='')
    payment_status = serializers.ChoiceField(choices=RepairOrder.PAYMENT_STATUS_CHOICES, default='unpaid')
    partial_payment_amount = serializers.DecimalField(max_digits=15, decimal_places=2, min_value=Decimal('0'), default=Decimal('0.00'))
    deposit_amount = serializers.DecimalField(max_digits=15, decimal_places=2, min_value=Decimal('0'), default=Decimal('0.00'))
    payment_method = serializers.ChoiceField(choices=RepairOrder.PAYMENT_METHOD_CHOICES, required=False, allow_blank=True)
    payment_date = serializers.DateTimeField(required=False, allow_null=True)
    due_date = serializers.DateField(required=False, allow_null=True)
    branch = serializers.CharField(max_length=50, required=False)
    materials = RepairMaterialInputSerializer(many=True, required=False, default=list)
    outsourcing_items = OutsourcingInputSerializer(many=True, required=False, default=list)

    def validate(self, attrs):
        validate_repair(attrs)
        return attrs


class RepairStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=RepairOrder.STATUS_CHOICES)
