import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.db.models import Q
from django.shortcuts import get_object_or_404
from backoffice.catalog.utils import InsufficientStock
from backoffice.core.utils import PaymentError, create_audit_log, to_money
from .installments import (
    build_schedule, early_settlement_quote, record_installment_payment, settle_early,
    refresh_all_overdue, monthly_schedule, due_this_month, expected_revenue
)
from .models import Sale, InstallmentPlan
from .serializers import (
    SaleSerializer, SaleUpdateSerializer, SaleInputSerializer,
    InstallmentPlanSerializer, InstallmentPaymentSerializer,
    InstallmentPaymentInputSerializer, EarlySettlementInputSerializer
)
from .utils import create_sale, delete_sale

logger = logging.getLogger(__name__)


def _plan_queryset():
    return InstallmentPlan.objects.select_related('sale').prefetch_related('payments', 'payments__plan__sale')


# Sale views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def sale_list_create(request):
    """List sales or check out a new one"""
    if request.method == 'GET':
        queryset = Sale.objects.select_related('created_by', 'installment_plan').prefetch_related('items')

        payment_status = request.query_params.get('payment_status', None)
        branch = request.query_params.get('branch', None)
        customer = request.query_params.get('customer', None)
        search = request.query_params.get('search', None)
        date_from = request.query_params.get('date_from', None)
        date_to = request.query_params.get('date_to', None)

        if payment_status:
            queryset = queryset.filter(payment_status=payment_status)
        if branch:
            queryset = queryset.filter(branch=branch)
        if customer:
            queryset = queryset.filter(customer_id=customer)
        if search:
            queryset = queryset.filter(
                Q(code__icontains=search) |
                Q(customer_name__icontains=search) |
                Q(customer_phone__icontains=search)
            )
        if date_from:
            queryset = queryset.filter(date__date__gte=date_from)
        if date_to:
            queryset = queryset.filter(date__date__lte=date_to)

        serializer = SaleSerializer(queryset.order_by('-date', '-id'), many=True)
        return Response(serializer.data)

    serializer = SaleInputSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    try:
        sale = create_sale(serializer.validated_data, user=request.user)
    except (InsufficientStock, PaymentError) as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
    except Exception as e:
        logger.error(f"Sale checkout failed: {str(e)}", exc_info=True)
        return Response({'error': 'Failed to save sale'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

    create_audit_log(
        request=request,
        action='sale_create',
        model_name='Sale',
        object_id=str(sale.id),
        object_name=sale.customer_name or None,
        object_reference=sale.code,
        changes={
            'total': str(sale.total),
            'paid_amount': str(sale.paid_amount),
            'payment_status': sale.payment_status,
            'items': [{'sku': item.sku, 'quantity': str(item.quantity)} for item in sale.items.all()],
        }
    )
    return Response(SaleSerializer(sale).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def sale_detail(request, pk):
    """Retrieve a sale, edit its header or delete it"""
    sale = get_object_or_404(Sale.objects.prefetch_related('items'), pk=pk)

    if request.method == 'GET':
        return Response(SaleSerializer(sale).data)

    if request.method in ('PUT', 'PATCH'):
        serializer = SaleUpdateSerializer(sale, data=request.data, partial=True)
        if serializer.is_valid():
            serializer.save()
            create_audit_log(
                request=request,
                action='update',
                model_name='Sale',
                object_id=str(sale.id),
                object_reference=sale.code,
                changes={key: str(value) for key, value in serializer.validated_data.items()}
            )
            return Response(SaleSerializer(sale).data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    # DELETE
    sale_id, customer_name, total = sale.id, sale.customer_name, sale.total
    try:
        code = delete_sale(sale, user=request.user)
    except InsufficientStock as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
    create_audit_log(
        request=request,
        action='sale_delete',
        model_name='Sale',
        object_id=str(sale_id),
        object_name=customer_name or None,
        object_reference=code,
        changes={'total': str(total)}
    )
    return Response(status=status.HTTP_204_NO_CONTENT)


# Installment views
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def installment_plan_list(request):
    """List installment plans"""
    queryset = _plan_queryset()
    plan_status = request.query_params.get('status', None)
    branch = request.query_params.get('branch', None)
    customer = request.query_params.get('customer', None)
    if plan_status:
        queryset = queryset.filter(status=plan_status)
    if branch:
        queryset = queryset.filter(branch=branch)
    if customer:
        queryset = queryset.filter(customer_id=customer)
    serializer = InstallmentPlanSerializer(queryset.order_by('-created_at'), many=True)
    return Response(serializer.data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def installment_plan_detail(request, pk):
    """Retrieve an installment plan with its periods"""
    plan = get_object_or_404(_plan_queryset(), pk=pk)
    return Response(InstallmentPlanSerializer(plan).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def installment_preview(request):
    """Schedule a plan would get, without saving anything"""
    try:
        schedule = build_schedule(
            to_money(request.data.get('total')),
            to_money(request.data.get('down_payment')),
            request.data.get('terms'),
            to_money(request.data.get('interest_rate')),
        )
    except (PaymentError, ValueError) as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
    return Response({
        'remaining': str(schedule['remaining']),
        'total_with_interest': str(schedule['total_with_interest']),
        'monthly_amount': str(schedule['monthly_amount']),
        'start_date': schedule['start_date'],
        'end_date': schedule['end_date'],
        'periods': [
            {'period_number': p['period_number'], 'due_date': p['due_date'], 'amount': str(p['amount'])}
            for p in schedule['periods']
        ],
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def installment_record_payment(request, pk):
    """Record money received for one period of a plan"""
    plan = get_object_or_404(InstallmentPlan, pk=pk)
    serializer = InstallmentPaymentInputSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    data = serializer.validated_data
    try:
        plan = record_installment_payment(
            plan, data['period_number'], data['amount'],
            payment_method=data['payment_method'], user=request.user, notes=data['notes']
        )
    except PaymentError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    create_audit_log(
        request=request,
        action='installment_payment',
        model_name='InstallmentPlan',
        object_id=str(plan.id),
        object_name=plan.customer_name or None,
        object_reference=plan.sale.code,
        changes={
            'period_number': data['period_number'],
            'amount': str(data['amount']),
            'remaining_amount': str(plan.remaining_amount),
        }
    )
    return Response(InstallmentPlanSerializer(get_object_or_404(_plan_queryset(), pk=plan.pk)).data)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def installment_settle(request, pk):
    """Quote (GET) or perform (POST) an early settlement"""
    plan = get_object_or_404(_plan_queryset(), pk=pk)

    if request.method == 'GET':
        remaining_terms = sum(1 for p in plan.payments.all() if p.status != 'paid')
        quote = early_settlement_quote(plan.remaining_amount, remaining_terms)
        return Response({key: str(value) for key, value in quote.items()})

    serializer = EarlySettlementInputSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    data = serializer.validated_data
    try:
        plan, quote = settle_early(
            plan, amount_received=data.get('amount'),
            payment_method=data['payment_method'], user=request.user, notes=data['notes']
        )
    except PaymentError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    create_audit_log(
        request=request,
        action='installment_settle',
        model_name='InstallmentPlan',
        object_id=str(plan.id),
        object_name=plan.customer_name or None,
        object_reference=plan.sale.code,
        changes={key: str(value) for key, value in quote.items()}
    )
    return Response({
        'plan': InstallmentPlanSerializer(get_object_or_404(_plan_queryset(), pk=plan.pk)).data,
        'quote': {key: str(value) for key, value in quote.items()},
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def installment_refresh_overdue(request):
    """Run the overdue pass now"""
    flagged = refresh_all_overdue(branch=request.query_params.get('branch') or None)
    return Response({'flagged_periods': flagged})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def installment_reports(request):
    """Monthly schedule, payments due this month and expected revenue"""
    plans = _plan_queryset()
    branch = request.query_params.get('branch', None)
    if branch:
        plans = plans.filter(branch=branch)
    plans = list(plans)

    schedule = monthly_schedule(plans)
    return Response({
        'monthly_schedule': {
            month: InstallmentPaymentSerializer(periods, many=True).data
            for month, periods in schedule.items()
        },
        'due_this_month': InstallmentPaymentSerializer(due_this_month(plans), many=True).data,
        'expected_revenue': str(expected_revenue(plans)),
        'active_plans': sum(1 for p in plans if p.status == 'active'),
        'overdue_plans': sum(1 for p in plans if p.status == 'overdue'),
    })
