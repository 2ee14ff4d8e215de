import django_filters
from django.db.models import Q
from .models import CashTransaction


class CashTransactionFilter(django_filters.FilterSet):
    """Cash book filters: kind of entry, branch, money source and date range"""
    search = django_filters.CharFilter(method='filter_search', label='Search')
    type = django_filters.ChoiceFilter(choices=CashTransaction.TYPE_CHOICES)
    category = django_filters.ChoiceFilter(choices=CashTransaction.CATEGORY_CHOICES)
    payment_source = django_filters.ChoiceFilter(choices=CashTransaction.PAYMENT_SOURCE_CHOICES)
    branch = django_filters.CharFilter(field_name='branch')
    date_from = django_filters.DateFilter(field_name='date', lookup_expr='date__gte')
    date_to = django_filters.DateFilter(field_name='date', lookup_expr='date__lte')

    class Meta:
        model = CashTransaction
        fields = ['type', 'category', 'payment_source', 'branch']

    def filter_search(self, queryset, name, value):
        if not value or not value.strip():
            return queryset
        return queryset.filter(Q(contact_name__icontains=value) | Q(notes__icontains=value))
