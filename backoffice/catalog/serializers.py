from rest_framework import serializers
from .models import Material, Product, StockHistory


class MaterialSerializer(serializers.ModelSerializer):
    available_quantity = serializers.DecimalField(max_digits=15, decimal_places=3, read_only=True)
    sku = serializers.CharField(max_length=100, required=False, allow_blank=True)

    class Meta:
        model = Material
        fields = [
            'id', 'name', 'sku', 'unit', 'purchase_price', 'retail_price', 'wholesale_price',
            'stock', 'committed_quantity', 'available_quantity', 'low_stock_threshold',
            'supplier_name', 'supplier_phone', 'description', 'created_at', 'updated_at'
        ]
        read_only_fields = ['stock', 'committed_quantity', 'created_at', 'updated_at']

    def validate_sku(self, value):
        value = (value or '').strip().upper()
        if not value:
            return value
        queryset = Material.objects.filter(sku=value)
        if self.instance is not None:
            queryset = queryset.exclude(pk=self.instance.pk)
        if queryset.exists():
            raise serializers.ValidationError('A material with this SKU already exists')
        return value


class ProductSerializer(serializers.ModelSerializer):
    class Meta:
        model = Product
        fields = ['id', 'name', 'sku', 'stock', 'cost_price', 'retail_price', 'wholesale_price', 'created_at', 'updated_at']
        read_only_fields = ['stock', 'created_at', 'updated_at']


class StockHistorySerializer(serializers.ModelSerializer):
    user_name = serializers.CharField(source='user.username', read_only=True, allow_null=True)

    class Meta:
        model = StockHistory
        fields = [
            'id', 'material', 'product', 'item_name', 'item_sku', 'kind', 'quantity',
            'quantity_before', 'quantity_after', 'unit_price', 'reason', 'reference',
            'user', 'user_name', 'created_at'
        ]


class StockAdjustSerializer(serializers.Serializer):
    quantity = serializers.DecimalField(max_digits=15, decimal_places=3)
    reason = serializers.CharField(max_length=255)

    def validate_quantity(self, value):
        if value == 0:
            raise serializers.ValidationError('Quantity change must not be zero')
        return value
