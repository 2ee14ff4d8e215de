import django_filters
from django.db.models import Q
from .models import RepairOrder


class RepairOrderFilter(django_filters.FilterSet):
    search = django_filters.CharFilter(method='filter_search')
    status = django_filters.ChoiceFilter(choices=RepairOrder.STATUS_CHOICES)
    payment_status = django_filters.ChoiceFilter(choices=RepairOrder.PAYMENT_STATUS_CHOICES)
    branch = django_filters.CharFilter(field_name='branch')
    customer = django_filters.NumberFilter(field_name='customer_id')
    date_from = django_filters.DateFilter(field_name='creation_date', lookup_expr='date__gte')
    date_to = django_filters.DateFilter(field_name='creation_date', lookup_expr='date__lte')

    class Meta:
        model = RepairOrder
        fields = ['status', 'payment_status', 'branch', 'customer']

    def filter_search(self, queryset, name, value):
        return queryset.filter(
            Q(code__icontains=value) |
            Q(customer_name__icontains=value) |
            Q(customer_phone__icontains=value) |
            Q(device_name__icontains=value)
        )
