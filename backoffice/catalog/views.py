import logging
from decimal import InvalidOperation

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.shortcuts import get_object_or_404
from backoffice.core.utils import create_audit_log, to_money
from .filters import MaterialFilter, ProductFilter, StockHistoryFilter
from .models import Material, Product, StockHistory
from .serializers import MaterialSerializer, ProductSerializer, StockHistorySerializer, StockAdjustSerializer
from .utils import InsufficientStock, adjust_stock, generate_material_sku, suggest_prices

logger = logging.getLogger(__name__)


# Material views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def material_list_create(request):
    """List materials with filters or create a new material"""
    if request.method == 'GET':
        filterset = MaterialFilter(request.query_params, queryset=Material.objects.all().order_by('name'))
        serializer = MaterialSerializer(filterset.qs, many=True)
        return Response(serializer.data)
    else:
        serializer = MaterialSerializer(data=request.data)
        if serializer.is_valid():
            sku = serializer.validated_data.get('sku') or generate_material_sku()
            material = serializer.save(sku=sku)
            create_audit_log(
                request=request,
                action='create',
                model_name='Material',
                object_id=str(material.id),
                object_name=material.name,
                object_reference=material.sku,
                changes={'purchase_price': str(material.purchase_price)}
            )
            return Response(MaterialSerializer(material).data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def material_detail(request, pk):
    """Retrieve, update or delete a material"""
    material = get_object_or_404(Material, pk=pk)

    if request.method == 'GET':
        serializer = MaterialSerializer(material)
        return Response(serializer.data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = MaterialSerializer(material, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            if 'sku' in serializer.validated_data and not serializer.validated_data['sku']:
                serializer.validated_data['sku'] = material.sku
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        create_audit_log(
            request=request,
            action='delete',
            model_name='Material',
            object_id=str(material.id),
            object_name=material.name,
            object_reference=material.sku,
            changes={'stock': str(material.stock)}
        )
        material.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def material_adjust_stock(request, pk):
    """Manually correct a material's stock by a signed quantity"""
    material = get_object_or_404(Material, pk=pk)
    return _adjust_stock_response(request, material, 'Material')


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def material_history(request, pk):
    """Stock movements of one material, newest first"""
    material = get_object_or_404(Material, pk=pk)
    queryset = StockHistory.objects.filter(material=material).select_related('user')
    serializer = StockHistorySerializer(queryset, many=True)
    return Response(serializer.data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def material_next_sku(request):
    """Preview the SKU the next new material would receive"""
    extra = [sku for sku in request.query_params.get('taken', '').split(',') if sku]
    return Response({'sku': generate_material_sku(extra)})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def material_suggest_prices(request):
    """Suggested retail and wholesale prices for a purchase price"""
    try:
        purchase_price = to_money(request.query_params.get('purchase_price'))
    except ValueError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
    if purchase_price < 0:
        return Response({'error': 'Purchase price must not be negative'}, status=status.HTTP_400_BAD_REQUEST)
    return Response(suggest_prices(purchase_price))


# Product views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def product_list_create(request):
    """List products with filters or create a new product"""
    if request.method == 'GET':
        filterset = ProductFilter(request.query_params, queryset=Product.objects.all().order_by('name'))
        serializer = ProductSerializer(filterset.qs, many=True)
        return Response(serializer.data)
    else:
        serializer = ProductSerializer(data=request.data)
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def product_detail(request, pk):
    """Retrieve, update or delete a product"""
    product = get_object_or_404(Product, pk=pk)

    if request.method == 'GET':
        serializer = ProductSerializer(product)
        return Response(serializer.data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = ProductSerializer(product, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        product.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def product_adjust_stock(request, pk):
    """Manually correct a product's stock by a signed quantity"""
    product = get_object_or_404(Product, pk=pk)
    return _adjust_stock_response(request, product, 'Product')


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def stock_history_list(request):
    """All stock movements with filters"""
    filterset = StockHistoryFilter(
        request.query_params,
        queryset=StockHistory.objects.select_related('user').order_by('-created_at', '-id')
    )
    serializer = StockHistorySerializer(filterset.qs, many=True)
    return Response(serializer.data)


def _adjust_stock_response(request, item, model_name):
    serializer = StockAdjustSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    quantity = serializer.validated_data['quantity']
    reason = serializer.validated_data['reason']
    try:
        history = adjust_stock(item, quantity, 'adjust', reason=reason, user=request.user)
    except InsufficientStock as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
    except InvalidOperation:
        return Response({'error': 'Invalid quantity'}, status=status.HTTP_400_BAD_REQUEST)

    create_audit_log(
        request=request,
        action='stock_adjust',
        model_name=model_name,
        object_id=str(item.id),
        object_name=item.name,
        object_reference=item.sku,
        changes={
            'quantity': str(quantity),
            'before': str(history.quantity_before),
            'after': str(history.quantity_after),
            'reason': reason,
        }
    )
    logger.info(f"Adjusted {model_name} {item.sku} by {quantity}: {reason}")
    return Response(StockHistorySerializer(history).data, status=status.HTTP_201_CREATED)
