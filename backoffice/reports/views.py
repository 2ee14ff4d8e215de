"""
Revenue, cost and profit over sales, repairs and the cash book.

Sales and repairs are counted when they are written (sale date, repair
creation date) whatever their payment status; the cash book section shows
the money that actually moved in the same period.
"""
import logging
from datetime import datetime, timedelta
from decimal import Decimal

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.db.models import Sum, Count, F, DecimalField
from django.db.models.functions import TruncDate, TruncMonth
from django.utils import timezone

from backoffice.finance.models import CashTransaction
from backoffice.pos.models import Sale, SaleItem
from backoffice.repairs.models import RepairOrder, RepairMaterial, OutsourcingItem

logger = logging.getLogger(__name__)

ZERO = Decimal('0.00')
MONEY = DecimalField(max_digits=20, decimal_places=2)


class PeriodError(ValueError):
    pass


def _money(value):
    return Decimal(value or 0).quantize(Decimal('0.01'))


def _period(request):
    """date_from / date_to query params, defaulting to the last 30 days"""
    date_from = request.query_params.get('date_from', None)
    date_to = request.query_params.get('date_to', None)

    try:
        if not date_from:
            date_from = timezone.localdate() - timedelta(days=30)
        else:
            date_from = datetime.strptime(date_from, '%Y-%m-%d').date()

        if not date_to:
            date_to = timezone.localdate()
        else:
            date_to = datetime.strptime(date_to, '%Y-%m-%d').date()
    except ValueError:
        raise PeriodError('Dates must be given as YYYY-MM-DD')

    if date_from > date_to:
        raise PeriodError('date_from must not be after date_to')
    return date_from, date_to


def _sales(date_from, date_to, branch=None):
    sales = Sale.objects.filter(date__date__gte=date_from, date__date__lte=date_to)
    if branch:
        sales = sales.filter(branch=branch)
    return sales


def _repairs(date_from, date_to, branch=None):
    repairs = RepairOrder.objects.filter(creation_date__date__gte=date_from, creation_date__date__lte=date_to)
    if branch:
        repairs = repairs.filter(branch=branch)
    return repairs


def _sale_cost(items):
    return _money(items.aggregate(
        total=Sum(F('quantity') * F('cost_price'), output_field=MONEY)
    )['total'])


def _repair_cost(repairs):
    """Parts at the material's current purchase price plus outsourced work at cost"""
    parts = RepairMaterial.objects.filter(repair_order__in=repairs).aggregate(
        total=Sum(F('quantity') * F('material__purchase_price'), output_field=MONEY)
    )['total']
    outsourced = OutsourcingItem.objects.filter(repair_order__in=repairs).aggregate(
        total=Sum(F('quantity') * F('cost_price'), output_field=MONEY)
    )['total']
    return _money(parts) + _money(outsourced)


def _margin(profit, revenue):
    if revenue <= 0:
        return ZERO
    return _money(profit * 100 / revenue)


def _daily(queryset, date_field, value):
    rows = queryset.annotate(day=TruncDate(date_field)).values('day').annotate(
        total=Sum(value, output_field=MONEY)
    )
    return {row['day']: _money(row['total']) for row in rows}


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def profit_report(request):
    """Revenue, cost and profit for a period, with the cash book alongside"""
    try:
        date_from, date_to = _period(request)
    except PeriodError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
    branch = request.query_params.get('branch', None)

    try:
        sales = _sales(date_from, date_to, branch)
        sale_items = SaleItem.objects.filter(sale__in=sales)
        sales_revenue = _money(sales.aggregate(total=Sum('total', output_field=MONEY))['total'])
        sales_cost = _sale_cost(sale_items)

        repairs = _repairs(date_from, date_to, branch)
        repairs_revenue = _money(repairs.aggregate(total=Sum('total', output_field=MONEY))['total'])
        repairs_cost = _repair_cost(repairs)

        transactions = CashTransaction.objects.filter(date__date__gte=date_from, date__date__lte=date_to)
        if branch:
            transactions = transactions.filter(branch=branch)
        income = _money(transactions.filter(type='income').aggregate(total=Sum('amount'))['total'])
        expense = abs(_money(transactions.filter(type='expense').aggregate(total=Sum('amount'))['total']))
        by_category = transactions.values('category').annotate(total=Sum('amount')).order_by('category')

        revenue = sales_revenue + repairs_revenue
        cost = sales_cost + repairs_cost
        profit = revenue - cost

        daily_sales = _daily(sales, 'date', F('total'))
        daily_sales_cost = _daily(sale_items, 'sale__date', F('quantity') * F('cost_price'))
        daily_repairs = _daily(repairs, 'creation_date', F('total'))
        daily = []
        for day in sorted(set(daily_sales) | set(daily_repairs)):
            day_revenue = daily_sales.get(day, ZERO) + daily_repairs.get(day, ZERO)
            daily.append({
                'date': day.isoformat(),
                'sales_revenue': str(daily_sales.get(day, ZERO)),
                'sales_cost': str(daily_sales_cost.get(day, ZERO)),
                'repairs_revenue': str(daily_repairs.get(day, ZERO)),
                'revenue': str(day_revenue),
            })
    except Exception as e:
        logger.error(f"Profit report failed: {str(e)}", exc_info=True)
        return Response({'error': 'Failed to build profit report'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

    return Response({
        'period': {
            'from': date_from.isoformat(),
            'to': date_to.isoformat()
        },
        'sales': {
            'count': sales.count(),
            'revenue': str(sales_revenue),
            'cost': str(sales_cost),
            'profit': str(sales_revenue - sales_cost),
        },
        'repairs': {
            'count': repairs.count(),
            'revenue': str(repairs_revenue),
            'cost': str(repairs_cost),
            'profit': str(repairs_revenue - repairs_cost),
        },
        'cash_book': {
            'income': str(income),
            'expense': str(expense),
            'net': str(income - expense),
            'by_category': {row['category']: str(_money(row['total'])) for row in by_category},
        },
        'summary': {
            'revenue': str(revenue),
            'cost': str(cost),
            'profit': str(profit),
            'margin_percent': str(_margin(profit, revenue)),
        },
        'daily_breakdown': daily
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def top_products(request):
    """Best selling lines by revenue"""
    try:
        date_from, date_to = _period(request)
        limit = int(request.query_params.get('limit', 10))
    except (PeriodError, ValueError) as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
    branch = request.query_params.get('branch', None)

    rows = SaleItem.objects.filter(sale__in=_sales(date_from, date_to, branch)).values(
        'item_type', 'sku', 'name'
    ).annotate(
        quantity=Sum('quantity'),
        revenue=Sum(F('quantity') * F('selling_price') - F('discount'), output_field=MONEY),
        cost=Sum(F('quantity') * F('cost_price'), output_field=MONEY),
        sales=Count('sale', distinct=True),
    ).order_by('-revenue', 'name')[:max(limit, 1)]

    products = []
    for row in rows:
        revenue = _money(row['revenue'])
        cost = _money(row['cost'])
        products.append({
            'item_type': row['item_type'],
            'sku': row['sku'],
            'name': row['name'],
            'quantity': str(row['quantity']),
            'sales': row['sales'],
            'revenue': str(revenue),
            'cost': str(cost),
            'profit': str(revenue - cost),
        })

    return Response({
        'period': {
            'from': date_from.isoformat(),
            'to': date_to.isoformat()
        },
        'products': products
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def revenue_report(request):
    """Month by month revenue and cash flow for one year"""
    try:
        year = int(request.query_params.get('year', timezone.localdate().year))
    except ValueError:
        return Response({'error': 'year must be a number'}, status=status.HTTP_400_BAD_REQUEST)
    branch = request.query_params.get('branch', None)

    sales = Sale.objects.filter(date__year=year)
    repairs = RepairOrder.objects.filter(creation_date__year=year)
    transactions = CashTransaction.objects.filter(date__year=year)
    if branch:
        sales = sales.filter(branch=branch)
        repairs = repairs.filter(branch=branch)
        transactions = transactions.filter(branch=branch)

    def monthly(queryset, date_field, value='total', **filters):
        rows = queryset.filter(**filters).annotate(month=TruncMonth(date_field)).values('month').annotate(
            total=Sum(value, output_field=MONEY)
        )
        return {row['month'].month: _money(row['total']) for row in rows}

    sales_by_month = monthly(sales, 'date')
    repairs_by_month = monthly(repairs, 'creation_date')
    income_by_month = monthly(transactions, 'date', 'amount', type='income')
    expense_by_month = monthly(transactions, 'date', 'amount', type='expense')

    months = []
    for month in range(1, 13):
        income = income_by_month.get(month, ZERO)
        expense = abs(expense_by_month.get(month, ZERO))
        months.append({
            'month': f'{year}-{month:02d}',
            'sales_revenue': str(sales_by_month.get(month, ZERO)),
            'repairs_revenue': str(repairs_by_month.get(month, ZERO)),
            'revenue': str(sales_by_month.get(month, ZERO) + repairs_by_month.get(month, ZERO)),
            'cash_income': str(income),
            'cash_expense': str(expense),
            'cash_net': str(income - expense),
        })

    return Response({
        'year': year,
        'months': months,
        'total_revenue': str(sum((sales_by_month.get(m, ZERO) + repairs_by_month.get(m, ZERO) for m in range(1, 13)), ZERO)),
    })
