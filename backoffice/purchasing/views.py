import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import ValidationError
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.db.models import Q
from django.shortcuts import get_object_or_404
from backoffice.catalog.utils import InsufficientStock
from backoffice.core.utils import create_audit_log
from .models import GoodsReceipt, PurchaseOrder
from .serializers import (
    GoodsReceiptSerializer, GoodsReceiptInputSerializer, PurchaseOrderSerializer,
    PurchaseOrderInputSerializer, PurchaseOrderStatusSerializer, PurchaseOrderReceiveSerializer
)
from .utils import (
    finalize_goods_receipt, save_purchase_order, update_purchase_order_status,
    delete_purchase_order, receive_purchase_order
)

logger = logging.getLogger(__name__)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def goods_receipt_list_create(request):
    """List goods receipts or finalize a new one"""
    if request.method == 'GET':
        queryset = GoodsReceipt.objects.select_related('supplier', 'created_by').prefetch_related('items')

        supplier = request.query_params.get('supplier', None)
        payment_status = request.query_params.get('payment_status', None)
        branch = request.query_params.get('branch', None)
        date_from = request.query_params.get('date_from', None)
        date_to = request.query_params.get('date_to', None)

        if supplier:
            queryset = queryset.filter(supplier_id=supplier)
        if payment_status:
            queryset = queryset.filter(payment_status=payment_status)
        if branch:
            queryset = queryset.filter(branch=branch)
        if date_from:
            queryset = queryset.filter(receipt_date__date__gte=date_from)
        if date_to:
            queryset = queryset.filter(receipt_date__date__lte=date_to)

        serializer = GoodsReceiptSerializer(queryset.order_by('-receipt_date', '-id'), many=True)
        return Response(serializer.data)

    serializer = GoodsReceiptInputSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    try:
        receipt = finalize_goods_receipt(serializer.validated_data, user=request.user)
    except ValidationError as e:
        return Response(e.detail, status=status.HTTP_400_BAD_REQUEST)
    except InsufficientStock as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
    except Exception as e:
        logger.error(f"Goods receipt failed: {str(e)}", exc_info=True)
        return Response({'error': 'Failed to save goods receipt'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

    create_audit_log(
        request=request,
        action='goods_receipt',
        model_name='GoodsReceipt',
        object_id=str(receipt.id),
        object_name=receipt.supplier.name,
        object_reference=receipt.code,
        changes={
            'total': str(receipt.total),
            'amount_paid': str(receipt.amount_paid),
            'payment_status': receipt.payment_status,
            'items': receipt.items.count(),
        }
    )
    return Response(GoodsReceiptSerializer(receipt).data, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def goods_receipt_detail(request, pk):
    """Retrieve a goods receipt with its lines"""
    receipt = get_object_or_404(
        GoodsReceipt.objects.select_related('supplier', 'created_by').prefetch_related('items'),
        pk=pk
    )
    return Response(GoodsReceiptSerializer(receipt).data)


def _order_queryset():
    return PurchaseOrder.objects.select_related('supplier', 'created_by').prefetch_related('items', 'goods_receipts')


# Purchase order views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def purchase_order_list_create(request):
    """List purchase orders or place a new one"""
    if request.method == 'GET':
        queryset = _order_queryset()

        order_status = request.query_params.get('status', None)
        supplier = request.query_params.get('supplier', None)
        branch = request.query_params.get('branch', None)
        search = request.query_params.get('search', None)

        if order_status:
            queryset = queryset.filter(status=order_status)
        if supplier:
            queryset = queryset.filter(supplier_id=supplier)
        if branch:
            queryset = queryset.filter(branch=branch)
        if search:
            queryset = queryset.filter(Q(code__icontains=search) | Q(supplier__name__icontains=search))

        serializer = PurchaseOrderSerializer(queryset.order_by('-created_at', '-id'), many=True)
        return Response(serializer.data)

    serializer = PurchaseOrderInputSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    order = save_purchase_order(serializer.validated_data, user=request.user)
    create_audit_log(
        request=request,
        action='create',
        model_name='PurchaseOrder',
        object_id=str(order.id),
        object_name=order.supplier.name,
        object_reference=order.code,
        changes={'total_amount': str(order.total_amount), 'items': order.items.count()}
    )
    return Response(PurchaseOrderSerializer(order).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([IsAuthenticated])
def purchase_order_detail(request, pk):
    """Retrieve, edit (drafts only) or delete a purchase order"""
    order = get_object_or_404(_order_queryset(), pk=pk)

    if request.method == 'GET':
        return Response(PurchaseOrderSerializer(order).data)

    if request.method == 'PUT':
        serializer = PurchaseOrderInputSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        try:
            order = save_purchase_order(serializer.validated_data, user=request.user, instance=order)
        except ValidationError as e:
            return Response(e.detail, status=status.HTTP_400_BAD_REQUEST)
        create_audit_log(
            request=request,
            action='update',
            model_name='PurchaseOrder',
            object_id=str(order.id),
            object_reference=order.code,
            changes={'total_amount': str(order.total_amount)}
        )
        return Response(PurchaseOrderSerializer(get_object_or_404(_order_queryset(), pk=order.pk)).data)

    # DELETE
    order_id = order.id
    try:
        code = delete_purchase_order(order)
    except ValidationError as e:
        return Response(e.detail, status=status.HTTP_400_BAD_REQUEST)
    create_audit_log(
        request=request,
        action='delete',
        model_name='PurchaseOrder',
        object_id=str(order_id),
        object_reference=code,
    )
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['PATCH'])
@permission_classes([IsAuthenticated])
def purchase_order_status_update(request, pk):
    """Confirm or cancel a purchase order"""
    order = get_object_or_404(PurchaseOrder, pk=pk)
    serializer = PurchaseOrderStatusSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    try:
        previous = update_purchase_order_status(order, serializer.validated_data['status'])
    except ValidationError as e:
        return Response(e.detail, status=status.HTTP_400_BAD_REQUEST)

    create_audit_log(
        request=request,
        action='update',
        model_name='PurchaseOrder',
        object_id=str(order.id),
        object_reference=order.code,
        changes={'status': {'old': previous, 'new': order.status}}
    )
    return Response(PurchaseOrderSerializer(get_object_or_404(_order_queryset(), pk=order.pk)).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def purchase_order_receive(request, pk):
    """Turn (part of) a confirmed order into a goods receipt"""
    order = get_object_or_404(PurchaseOrder, pk=pk)
    serializer = PurchaseOrderReceiveSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    try:
        order, receipt = receive_purchase_order(order, serializer.validated_data, user=request.user)
    except ValidationError as e:
        return Response(e.detail, status=status.HTTP_400_BAD_REQUEST)
    except Exception as e:
        logger.error(f"Receiving purchase order {order.code} failed: {str(e)}", exc_info=True)
        return Response({'error': 'Failed to receive purchase order'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

    create_audit_log(
        request=request,
        action='goods_receipt',
        model_name='GoodsReceipt',
        object_id=str(receipt.id),
        object_name=order.supplier.name,
        object_reference=receipt.code,
        changes={
            'purchase_order': order.code,
            'order_status': order.status,
            'total': str(receipt.total),
            'amount_paid': str(receipt.amount_paid),
        }
    )
    return Response({
        'order': PurchaseOrderSerializer(get_object_or_404(_order_queryset(), pk=order.pk)).data,
        'receipt': GoodsReceiptSerializer(receipt).data,
    }, status=status.HTTP_201_CREATED)
