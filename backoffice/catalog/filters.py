import django_filters
from django.db.models import F, Q
from .models import Material, Product, StockHistory


def _is_true(value):
    if isinstance(value, str):
        return value.lower() == 'true'
    return bool(value)


class MaterialFilter(django_filters.FilterSet):
    """Search and stock-level filters for the material list"""
    search = django_filters.CharFilter(method='filter_search', label='Search')
    supplier = django_filters.CharFilter(field_name='supplier_name', lookup_expr='icontains')
    unit = django_filters.CharFilter(field_name='unit', lookup_expr='iexact')
    in_stock = django_filters.CharFilter(method='filter_in_stock', label='In Stock')
    low_stock = django_filters.CharFilter(method='filter_low_stock', label='Low Stock')
    out_of_stock = django_filters.CharFilter(method='filter_out_of_stock', label='Out of Stock')

    class Meta:
        model = Material
        fields = ['search', 'supplier', 'unit', 'in_stock', 'low_stock', 'out_of_stock']

    def filter_search(self, queryset, name, value):
        """Match every word of the query against name, SKU or supplier"""
        if not value or not value.strip():
            return queryset
        for word in value.split():
            queryset = queryset.filter(
                Q(name__icontains=word) | Q(sku__icontains=word) | Q(supplier_name__icontains=word)
            )
        return queryset

    def filter_in_stock(self, queryset, name, value):
        if value in (None, '') or not _is_true(value):
            return queryset
        return queryset.filter(stock__gt=0)

    def filter_low_stock(self, queryset, name, value):
        """Materials still in stock but at or below their threshold"""
        if value in (None, '') or not _is_true(value):
            return queryset
        return queryset.filter(stock__gt=0, stock__lte=F('low_stock_threshold'))

    def filter_out_of_stock(self, queryset, name, value):
        if value in (None, '') or not _is_true(value):
            return queryset
        return queryset.filter(stock__lte=0)


class ProductFilter(django_filters.FilterSet):
    search = django_filters.CharFilter(method='filter_search', label='Search')
    in_stock = django_filters.CharFilter(method='filter_in_stock', label='In Stock')
    out_of_stock = django_filters.CharFilter(method='filter_out_of_stock', label='Out of Stock')

    class Meta:
        model = Product
        fields = ['search', 'in_stock', 'out_of_stock']

    def filter_search(self, queryset, name, value):
        if not value or not value.strip():
            return queryset
        for word in value.split():
            queryset = queryset.filter(Q(name__icontains=word) | Q(sku__icontains=word))
        return queryset

    def filter_in_stock(self, queryset, name, value):
        if value in (None, '') or not _is_true(value):
            return queryset
        return queryset.filter(stock__gt=0)

    def filter_out_of_stock(self, queryset, name, value):
        if value in (None, '') or not _is_true(value):
            return queryset
        return queryset.filter(stock__lte=0)


class StockHistoryFilter(django_filters.FilterSet):
    material = django_filters.NumberFilter(field_name='material_id')
    product = django_filters.NumberFilter(field_name='product_id')
    kind = django_filters.CharFilter(field_name='kind')
    reference = django_filters.CharFilter(field_name='reference')
    date_from = django_filters.DateFilter(field_name='created_at', lookup_expr='date__gte')
    date_to = django_filters.DateFilter(field_name='created_at', lookup_expr='date__lte')

    class Meta:
        model = StockHistory
        fields = ['material', 'product', 'kind', 'reference', 'date_from', 'date_to']
