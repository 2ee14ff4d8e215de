from decimal import Decimal

from rest_framework import serializers
from backoffice.catalog.models import Material
from backoffice.parties.models import Supplier
from .models import GoodsReceipt, GoodsReceiptItem, PurchaseOrder, PurchaseOrderItem


class GoodsReceiptItemSerializer(serializers.ModelSerializer):
    line_total = serializers.SerializerMethodField()

    class Meta:
        model = GoodsReceiptItem
        fields = [
            'id', 'material', 'name', 'sku', 'unit', 'quantity', 'purchase_price',
            'retail_price', 'wholesale_price', 'is_new', 'line_total'
        ]

    def get_line_total(self, obj):
        return str(obj.get_line_total())


class GoodsReceiptSerializer(serializers.ModelSerializer):
    supplier_name = serializers.CharField(source='supplier.name', read_only=True)
    created_by_username = serializers.CharField(source='created_by.username', read_only=True, allow_null=True)
    debt_amount = serializers.DecimalField(max_digits=15, decimal_places=2, read_only=True)
    items = GoodsReceiptItemSerializer(many=True, read_only=True)

    class Meta:
        model = GoodsReceipt
        fields = [
            'id', 'code', 'supplier', 'supplier_name', 'purchase_order', 'receipt_date', 'warehouse_location', 'notes',
            'payment_method', 'subtotal', 'discount', 'tax', 'total', 'amount_paid', 'debt_amount',
            'payment_status', 'branch', 'created_by', 'created_by_username', 'created_at', 'items'
        ]


class ReceiptLineInputSerializer(serializers.Serializer):
    """One line typed into the receiving form"""
    material = serializers.PrimaryKeyRelatedField(queryset=Material.objects.all(), required=False, allow_null=True)
    name = serializers.CharField(max_length=255)
    sku = serializers.CharField(max_length=100, required=False, allow_blank=True, default='')
    unit = serializers.CharField(max_length=50, required=False, default='cái')
    quantity = serializers.DecimalField(max_digits=15, decimal_places=3, min_value=Decimal('1'))
    purchase_price = serializers.DecimalField(max_digits=15, decimal_places=2)
    retail_price = serializers.DecimalField(max_digits=15, decimal_places=2, required=False, default=Decimal('0.00'), min_value=Decimal('0'))
    wholesale_price = serializers.DecimalField(max_digits=15, decimal_places=2, required=False, default=Decimal('0.00'), min_value=Decimal('0'))
    is_new = serializers.BooleanField(required=False, default=False)

    def validate_purchase_price(self, value):
        if value <= 0:
            raise serializers.ValidationError('Purchase price must be greater than zero')
        return value

    def validate(self, attrs):
        if not attrs['is_new'] and attrs.get('material') is None:
            raise serializers.ValidationError({'material': 'Existing items must reference a material'})
        return attrs


class GoodsReceiptInputSerializer(serializers.Serializer):
    supplier = serializers.PrimaryKeyRelatedField(
        queryset=Supplier.objects.all(),
        error_messages={'required': 'Please choose a supplier', 'null': 'Please choose a supplier'}
    )
    receipt_date = serializers.DateTimeField(required=False)
    warehouse_location = serializers.CharField(max_length=100, required=False, default='Kho chính')
    notes = serializers.CharField(required=False, allow_blank=True, default='')
    payment_method = serializers.ChoiceField(
        choices=GoodsReceipt.PAYMENT_METHOD_CHOICES,
        error_messages={'required': 'Please choose a payment method'}
    )
    discount = serializers.DecimalField(max_digits=15, decimal_places=2, required=False, default=Decimal('0.00'), min_value=Decimal('0'))
    tax = serializers.DecimalField(max_digits=15, decimal_places=2, required=False, default=Decimal('0.00'), min_value=Decimal('0'))
    is_debt = serializers.BooleanField(required=False, default=False)
    debt_amount = serializers.DecimalField(max_digits=15, decimal_places=2, required=False, default=Decimal('0.00'))
    branch = serializers.CharField(max_length=50, required=False)
    items = ReceiptLineInputSerializer(many=True)

    def validate_items(self, value):
        if not value:
            raise serializers.ValidationError('Add at least one item')
        return value


class PurchaseOrderItemSerializer(serializers.ModelSerializer):
    outstanding_quantity = serializers.DecimalField(max_digits=15, decimal_places=3, read_only=True)
    line_total = serializers.SerializerMethodField()

    class Meta:
        model = PurchaseOrderItem
        fields = [
            'id', 'material', 'name', 'sku', 'unit', 'quantity', 'unit_price',
            'received_quantity', 'outstanding_quantity', 'line_total'
        ]

    def get_line_total(self, obj):
        return str(obj.get_line_total())


class PurchaseOrderSerializer(serializers.ModelSerializer):
    supplier_name = serializers.CharField(source='supplier.name', read_only=True)
    created_by_username = serializers.CharField(source='created_by.username', read_only=True, allow_null=True)
    items = PurchaseOrderItemSerializer(many=True, read_only=True)
    receipts = serializers.SerializerMethodField()

    class Meta:
        model = PurchaseOrder
        fields = [
            'id', 'code', 'supplier', 'supplier_name', 'status', 'total_amount', 'notes',
            'expected_date', 'received_date', 'branch', 'created_by', 'created_by_username',
            'created_at', 'updated_at', 'items', 'receipts'
        ]

    def get_receipts(self, obj):
        return [{'id': r.id, 'code': r.code} for r in obj.goods_receipts.all()]


class PurchaseOrderLineInputSerializer(serializers.Serializer):
    material = serializers.PrimaryKeyRelatedField(queryset=Material.objects.all(), required=False, allow_null=True)
    name = serializers.CharField(max_length=255, required=False, allow_blank=True, default='')
    sku = serializers.CharField(max_length=100, required=False, allow_blank=True, default='')
    unit = serializers.CharField(max_length=50, required=False, allow_blank=True, default='')
    quantity = serializers.DecimalField(max_digits=15, decimal_places=3, min_value=Decimal('1'))
    unit_price = serializers.DecimalField(max_digits=15, decimal_places=2, required=False, default=Decimal('0.00'), min_value=Decimal('0'))

    def validate(self, attrs):
        if attrs.get('material') is None and not attrs['name'].strip():
            raise serializers.ValidationError({'name': 'Name the item or pick an existing material'})
        return attrs


class PurchaseOrderInputSerializer(serializers.Serializer):
    supplier = serializers.PrimaryKeyRelatedField(
        queryset=Supplier.objects.all(),
        error_messages={'required': 'Please choose a supplier', 'null': 'Please choose a supplier'}
    )
    expected_date = serializers.DateField(required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, default='')
    branch = serializers.CharField(max_length=50, required=False)
    items = PurchaseOrderLineInputSerializer(many=True)

    def validate_items(self, value):
        if not value:
            raise serializers.ValidationError('Add at least one item')
        return value


class PurchaseOrderStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=[('confirmed', 'Confirmed'), ('cancelled', 'Cancelled')])


class ReceiveLineInputSerializer(serializers.Serializer):
    item = serializers.IntegerField()
    quantity = serializers.DecimalField(max_digits=15, decimal_places=3)
    purchase_price = serializers.DecimalField(max_digits=15, decimal_places=2, required=False, allow_null=True)


class PurchaseOrderReceiveSerializer(serializers.Serializer):
    """Receiving form opened from a purchase order"""
    receipt_date = serializers.DateTimeField(required=False)
    warehouse_location = serializers.CharField(max_length=100, required=False, default='Kho chính')
    notes = serializers.CharField(required=False, allow_blank=True, default='')
    payment_method = serializers.ChoiceField(
        choices=GoodsReceipt.PAYMENT_METHOD_CHOICES,
        error_messages={'required': 'Please choose a payment method'}
    )
    discount = serializers.DecimalField(max_digits=15, decimal_places=2, required=False, default=Decimal('0.00'), min_value=Decimal('0'))
    tax = serializers.DecimalField(max_digits=15, decimal_places=2, required=False, default=Decimal('0.00'), min_value=Decimal('0'))
    is_debt = serializers.BooleanField(required=False, default=False)
    debt_amount = serializers.DecimalField(max_digits=15, decimal_places=2, required=False, default=Decimal('0.00'))
    items = ReceiveLineInputSerializer(many=True, required=False)
