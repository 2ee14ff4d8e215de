import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import ValidationError
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.shortcuts import get_object_or_404
from backoffice.catalog.utils import InsufficientStock
from backoffice.core.models import Setting
from backoffice.core.utils import PaymentError, create_audit_log
from .filters import RepairOrderFilter
from .labels import label_for_order
from .models import RepairOrder
from .serializers import RepairOrderSerializer, RepairOrderInputSerializer, RepairStatusSerializer
from .utils import save_repair_order, update_repair_status, delete_repair_order

logger = logging.getLogger(__name__)


def _repair_queryset():
    return RepairOrder.objects.select_related('created_by').prefetch_related('materials__material', 'outsourcing_items')


def _save(request, instance=None):
    serializer = RepairOrderInputSerializer(data=request.data)
    if not serializer.is_valid():
        return None, Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    try:
        order = save_repair_order(serializer.validated_data, user=request.user, instance=instance)
    except ValidationError as e:
        return None, Response(e.detail, status=status.HTTP_400_BAD_REQUEST)
    except (InsufficientStock, PaymentError) as e:
        return None, Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
    except Exception as e:
        logger.error(f"Saving repair order failed: {str(e)}", exc_info=True)
        return None, Response({'error': 'Failed to save repair order'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

    create_audit_log(
        request=request,
        action='repair_save',
        model_name='RepairOrder',
        object_id=str(order.id),
        object_name=f"{order.customer_name} - {order.device_name}",
        object_reference=order.code,
        changes={
            'created': instance is None,
            'total': str(order.total),
            'status': order.status,
            'payment_status': order.payment_status,
            'materials': [{'name': m.name, 'quantity': str(m.quantity)} for m in order.materials.all()],
        }
    )
    return order, None


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def repair_list_create(request):
    """List repair orders or take in a new one"""
    if request.method == 'GET':
        filterset = RepairOrderFilter(request.query_params, queryset=_repair_queryset().order_by('-creation_date', '-id'))
        serializer = RepairOrderSerializer(filterset.qs, many=True)
        return Response(serializer.data)

    order, error = _save(request)
    if error is not None:
        return error
    return Response(RepairOrderSerializer(get_object_or_404(_repair_queryset(), pk=order.pk)).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([IsAuthenticated])
def repair_detail(request, pk):
    """Retrieve, update or delete a repair order"""
    order = get_object_or_404(_repair_queryset(), pk=pk)

    if request.method == 'GET':
        return Response(RepairOrderSerializer(order).data)

    if request.method == 'PUT':
        order, error = _save(request, instance=order)
        if error is not None:
            return error
        return Response(RepairOrderSerializer(get_object_or_404(_repair_queryset(), pk=order.pk)).data)

    # DELETE
    order_id, name = order.id, f"{order.customer_name} - {order.device_name}"
    try:
        code = delete_repair_order(order, user=request.user)
    except InsufficientStock as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
    create_audit_log(
        request=request,
        action='repair_delete',
        model_name='RepairOrder',
        object_id=str(order_id),
        object_name=name,
        object_reference=code,
    )
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['PATCH'])
@permission_classes([IsAuthenticated])
def repair_status_update(request, pk):
    """Move a repair order to another workflow status"""
    order = get_object_or_404(RepairOrder, pk=pk)
    serializer = RepairStatusSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    previous = update_repair_status(order, serializer.validated_data['status'], user=request.user)
    create_audit_log(
        request=request,
        action='repair_status_update',
        model_name='RepairOrder',
        object_id=str(order.id),
        object_name=order.customer_name,
        object_reference=order.code,
        changes={'status': {'old': previous, 'new': order.status}}
    )
    return Response(RepairOrderSerializer(get_object_or_404(_repair_queryset(), pk=order.pk)).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def repair_label(request, pk):
    """Render (and keep) the barcode ticket label of a repair order"""
    order = get_object_or_404(RepairOrder, pk=pk)
    shop = Setting.objects.filter(key='shop_name').values_list('value', flat=True).first()
    try:
        image = label_for_order(order, header=shop)
    except Exception as e:
        logger.error(f"Label rendering failed for {order.code}: {str(e)}", exc_info=True)
        return Response({'error': 'Failed to render label'}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

    order.label_image = image
    order.save(update_fields=['label_image', 'updated_at'])
    return Response({'code': order.code, 'barcode': order.barcode, 'image': image})
