import logging
from decimal import Decimal

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.core.exceptions import ObjectDoesNotExist
from django.db.models import Sum
from django.shortcuts import get_object_or_404
from backoffice.core.utils import PaymentError, create_audit_log
from .filters import CashTransactionFilter
from .models import CashTransaction
from .serializers import (
    CashTransactionSerializer, DebtCollectionSerializer,
    ConsolidatedCollectionSerializer, SupplierPaymentSerializer
)
from .services import (
    list_customer_debts, group_debts_by_customer, collect_debt, collect_consolidated,
    list_supplier_payables, pay_supplier, receivables_summary
)

logger = logging.getLogger(__name__)


def _plain(data):
    """Decimals as strings, the way serializer DecimalFields render them"""
    if isinstance(data, dict):
        return {key: _plain(value) for key, value in data.items() if key != 'transaction'}
    if isinstance(data, (list, tuple)):
        return [_plain(value) for value in data]
    if isinstance(data, Decimal):
        return str(data)
    return data


def _collection_response(result):
    payload = _plain(result)
    payload['transaction'] = CashTransactionSerializer(result['transaction']).data
    return payload


# Cash book views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def cash_transaction_list_create(request):
    """List cash book entries or add a manual one"""
    if request.method == 'GET':
        filterset = CashTransactionFilter(
            request.query_params,
            queryset=CashTransaction.objects.select_related('created_by', 'sale', 'repair_order').order_by('-date', '-id')
        )
        serializer = CashTransactionSerializer(filterset.qs, many=True)
        return Response(serializer.data)

    serializer = CashTransactionSerializer(data=request.data)
    if serializer.is_valid():
        tx = serializer.save(created_by=request.user)
        create_audit_log(
            request=request,
            action='create',
            model_name='CashTransaction',
            object_id=str(tx.id),
            object_name=tx.contact_name or None,
            changes={'type': tx.type, 'category': tx.category, 'amount': str(tx.amount)}
        )
        return Response(CashTransactionSerializer(tx).data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def cash_transaction_detail(request, pk):
    """Retrieve, update or delete a cash book entry"""
    tx = get_object_or_404(CashTransaction, pk=pk)

    if request.method == 'GET':
        return Response(CashTransactionSerializer(tx).data)

    if request.method in ('PUT', 'PATCH'):
        old_amount = tx.amount
        serializer = CashTransactionSerializer(tx, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            tx = serializer.save()
            create_audit_log(
                request=request,
                action='update',
                model_name='CashTransaction',
                object_id=str(tx.id),
                object_name=tx.contact_name or None,
                changes={'amount': {'old': str(old_amount), 'new': str(tx.amount)}, 'category': tx.category}
            )
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    # DELETE
    create_audit_log(
        request=request,
        action='delete',
        model_name='CashTransaction',
        object_id=str(tx.id),
        object_name=tx.contact_name or None,
        changes={'type': tx.type, 'category': tx.category, 'amount': str(tx.amount)}
    )
    tx.delete()
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def cash_balance(request):
    """Income, expense and balance per money source for the filtered entries"""
    filterset = CashTransactionFilter(request.query_params, queryset=CashTransaction.objects.all())
    rows = filterset.qs.values('payment_source', 'type').annotate(total=Sum('amount'))

    sources = {}
    for row in rows:
        entry = sources.setdefault(row['payment_source'], {'income': Decimal('0.00'), 'expense': Decimal('0.00')})
        entry[row['type']] = row['total'] or Decimal('0.00')
    for entry in sources.values():
        entry['balance'] = entry['income'] + entry['expense']

    income = sum((entry['income'] for entry in sources.values()), Decimal('0.00'))
    expense = sum((entry['expense'] for entry in sources.values()), Decimal('0.00'))
    return Response(_plain({
        'income': income,
        'expense': expense,
        'balance': income + expense,
        'by_source': sources,
    }))


# Receivable views
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def customer_debt_list(request):
    """Every open receivable, oldest first"""
    debts = list_customer_debts(branch=request.query_params.get('branch') or None)
    kind = request.query_params.get('kind', None)
    if kind:
        debts = [d for d in debts if d['kind'] == kind]
    return Response(_plain(debts))


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def customer_debt_groups(request):
    """Open receivables grouped per customer, largest balance first"""
    groups = group_debts_by_customer(list_customer_debts(branch=request.query_params.get('branch') or None))
    return Response(_plain(groups))


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def collect_customer_debt(request):
    """Collect a payment against one sale, repair or installment plan"""
    serializer = DebtCollectionSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    data = serializer.validated_data
    try:
        result = collect_debt(
            data['kind'], data['id'], data['amount'],
            payment_method=data['payment_method'], notes=data['notes'], user=request.user
        )
    except ObjectDoesNotExist:
        return Response({'error': f"{data['kind']} {data['id']} not found"}, status=status.HTTP_404_NOT_FOUND)
    except PaymentError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    create_audit_log(
        request=request,
        action='debt_collect',
        model_name=data['kind'],
        object_id=str(data['id']),
        object_name=result['transaction'].contact_name or None,
        object_reference=result['code'],
        changes={
            'amount': str(result['amount']),
            'previous_remaining': str(result['previous_remaining']),
            'remaining': str(result['remaining']),
        }
    )
    return Response(_collection_response(result))


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def collect_customer_debts_consolidated(request):
    """Collect one payment spread over all of a customer's debts"""
    serializer = ConsolidatedCollectionSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    data = serializer.validated_data
    try:
        allocations = collect_consolidated(
            data['customer_key'], data['amount'],
            payment_method=data['payment_method'], notes=data['notes'],
            user=request.user, branch=data.get('branch') or None
        )
    except PaymentError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    for allocation in allocations:
        create_audit_log(
            request=request,
            action='debt_collect',
            model_name=allocation['kind'],
            object_id=str(allocation['id']),
            object_name=allocation['transaction'].contact_name or None,
            object_reference=allocation['code'],
            changes={'amount': str(allocation['amount']), 'remaining': str(allocation['remaining']), 'consolidated': True}
        )
    return Response({
        'customer_key': data['customer_key'],
        'amount': str(data['amount']),
        'allocations': [_collection_response(a) for a in allocations],
    })


# Payable views
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def supplier_payable_list(request):
    """What is still owed to each supplier"""
    return Response(_plain(list_supplier_payables(branch=request.query_params.get('branch') or None)))


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def supplier_payment_create(request):
    """Pay down a supplier's balance"""
    serializer = SupplierPaymentSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    data = serializer.validated_data
    try:
        result = pay_supplier(
            data['supplier'], data['amount'],
            payment_method=data['payment_method'], notes=data['notes'],
            user=request.user, branch=data.get('branch') or None
        )
    except PaymentError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    create_audit_log(
        request=request,
        action='supplier_payment',
        model_name='Supplier',
        object_id=str(result['supplier_id']),
        object_name=result['supplier_name'],
        changes={
            'previous_debt': str(result['previous_debt']),
            'paid': str(result['paid']),
            'remaining': str(result['remaining']),
        }
    )
    return Response(_collection_response(result), status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def receivables_summary_view(request):
    """Receivable and payable totals for the dashboard"""
    try:
        summary = receivables_summary(branch=request.query_params.get('branch') or None)
    except Exception as e:
        logger.error(f"Receivables summary failed: {str(e)}", exc_info=True)
        return Response({'error': 'Failed to compute receivables summary'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)
    return Response(_plain(summary))
