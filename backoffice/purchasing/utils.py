import logging
from decimal import Decimal

from django.conf import settings
from django.db import transaction
from django.utils import timezone
from rest_framework.exceptions import ValidationError

from backoffice.catalog.models import Material
from backoffice.catalog.utils import adjust_stock, generate_material_sku, suggest_prices
from backoffice.core.utils import GOODS_RECEIPT_PREFIX, PURCHASE_ORDER_PREFIX, discard_draft, next_document_number
from backoffice.finance.utils import record_cash_transaction
from .models import GoodsReceipt, GoodsReceiptItem, PurchaseOrder, PurchaseOrderItem

logger = logging.getLogger(__name__)

DRAFT_FORM_KEY = 'goods_receipt'


def receipt_payment_status(total, debt_amount):
    """paid / partial / unpaid from the part of the total left on credit"""
    if debt_amount <= 0:
        return 'paid'
    if debt_amount >= total:
        return 'unpaid'
    return 'partial'


def _receive_new_line(line, supplier, taken_skus):
    """Create the material for a new line, or return the one its SKU already names"""
    sku = (line.get('sku') or '').strip().upper()
    if not sku:
        sku = generate_material_sku(taken_skus)
    taken_skus.append(sku)

    material = Material.objects.select_for_update().filter(sku=sku).first()
    if material is not None:
        logger.info(f"Receipt line '{line['name']}' merged into existing material {sku}")
        material.supplier_name = supplier.name or material.supplier_name
        material.supplier_phone = supplier.phone or material.supplier_phone
        material.save(update_fields=['supplier_name', 'supplier_phone', 'updated_at'])
        return material

    suggested = suggest_prices(line['purchase_price'])
    return Material.objects.create(
        name=line['name'],
        sku=sku,
        unit=line.get('unit') or 'cái',
        purchase_price=line['purchase_price'],
        retail_price=line.get('retail_price') or suggested['retail_price'],
        wholesale_price=line.get('wholesale_price') or suggested['wholesale_price'],
        supplier_name=supplier.name,
        supplier_phone=supplier.phone,
    )


def _receive_existing_line(line, supplier):
    material = Material.objects.select_for_update().get(pk=line['material'].pk)
    material.purchase_price = line['purchase_price']
    if line.get('retail_price'):
        material.retail_price = line['retail_price']
    if line.get('wholesale_price'):
        material.wholesale_price = line['wholesale_price']
    material.supplier_name = supplier.name or material.supplier_name
    material.supplier_phone = supplier.phone or material.supplier_phone
    material.save(update_fields=[
        'purchase_price', 'retail_price', 'wholesale_price',
        'supplier_name', 'supplier_phone', 'updated_at'
    ])
    return material


def finalize_goods_receipt(data, user=None):
    """
    Post a validated receiving form: stock, prices, history, cash book.

    data is the validated_data of GoodsReceiptInputSerializer. Everything
    happens in one transaction, so a failure leaves stock untouched.
    """
    supplier = data['supplier']
    lines = data['items']
    discount = data.get('discount') or Decimal('0.00')
    tax = data.get('tax') or Decimal('0.00')

    subtotal = sum((line['quantity'] * line['purchase_price'] for line in lines), Decimal('0.00'))
    total = subtotal - discount + tax
    if total < 0:
        raise ValidationError({'discount': 'Discount cannot exceed the receipt subtotal'})

    debt_amount = (data.get('debt_amount') or Decimal('0.00')) if data.get('is_debt') else Decimal('0.00')
    if debt_amount < 0 or debt_amount > total:
        raise ValidationError({'debt_amount': 'Debt must be between zero and the receipt total'})
    amount_paid = total - debt_amount

    with transaction.atomic():
        receipt = GoodsReceipt.objects.create(
            code=next_document_number(GOODS_RECEIPT_PREFIX),
            supplier=supplier,
            purchase_order=data.get('purchase_order'),
            receipt_date=data.get('receipt_date') or timezone.now(),
            warehouse_location=data.get('warehouse_location') or 'Kho chính',
            notes=data.get('notes', ''),
            payment_method=data['payment_method'],
            subtotal=subtotal,
            discount=discount,
            tax=tax,
            total=total,
            amount_paid=amount_paid,
            payment_status=receipt_payment_status(total, debt_amount),
            branch=data.get('branch') or settings.DEFAULT_BRANCH,
            created_by=user if user is not None and user.is_authenticated else None,
        )

        taken_skus = []
        for line in lines:
            if line.get('is_new'):
                material = _receive_new_line(line, supplier, taken_skus)
            else:
                material = _receive_existing_line(line, supplier)

            GoodsReceiptItem.objects.create(
                receipt=receipt,
                material=material,
                name=line['name'],
                sku=material.sku,
                unit=line.get('unit') or material.unit,
                quantity=line['quantity'],
                purchase_price=line['purchase_price'],
                retail_price=line.get('retail_price') or material.retail_price,
                wholesale_price=line.get('wholesale_price') or material.wholesale_price,
                is_new=bool(line.get('is_new')),
            )
            adjust_stock(
                material,
                line['quantity'],
                'import',
                reason=receipt.notes or f"Goods receipt from {supplier.name}",
                user=user,
                reference=receipt.code,
                unit_price=line['purchase_price'],
            )

        if amount_paid > 0:
            record_cash_transaction(
                'expense',
                'inventory_purchase',
                amount_paid,
                payment_source=receipt.payment_method,
                user=user,
                branch=receipt.branch,
                contact_id=supplier.pk,
                contact_name=supplier.name,
                notes=receipt.notes or f"Goods receipt {receipt.code} from {supplier.name}",
                date=receipt.receipt_date,
                goods_receipt=receipt,
                supplier=supplier,
            )

        if data.get('purchase_order') is None:
            discard_draft(user, DRAFT_FORM_KEY)

    logger.info(
        f"Finalized goods receipt {receipt.code}: {len(lines)} lines, total {total}, "
        f"paid {amount_paid}, status {receipt.payment_status}"
    )
    return receipt


# Purchase orders

ORDER_STATUS_TRANSITIONS = {
    'draft': ('confirmed', 'cancelled'),
    'confirmed': ('cancelled',),
}


def purchase_order_total(lines):
    return sum((line['quantity'] * line['unit_price'] for line in lines), Decimal('0.00'))


def save_purchase_order(data, user=None, instance=None):
    """Create a purchase order, or replace the header and lines of a draft one"""
    lines = data['items']

    with transaction.atomic():
        if instance is None:
            order = PurchaseOrder(
                code=next_document_number(PURCHASE_ORDER_PREFIX),
                branch=data.get('branch') or settings.DEFAULT_BRANCH,
                created_by=user if user is not None and user.is_authenticated else None,
            )
        else:
            order = PurchaseOrder.objects.select_for_update().get(pk=instance.pk)
            if not order.is_editable:
                raise ValidationError({'status': f'Only draft orders can be edited; {order.code} is {order.status}'})
            if data.get('branch'):
                order.branch = data['branch']

        order.supplier = data['supplier']
        order.notes = data.get('notes', '')
        order.expected_date = data.get('expected_date')
        order.total_amount = purchase_order_total(lines)
        order.save()

        order.items.all().delete()
        PurchaseOrderItem.objects.bulk_create([
            PurchaseOrderItem(
                order=order,
                material=line.get('material'),
                name=line.get('name') or line['material'].name,
                sku=line.get('sku') or (line['material'].sku if line.get('material') else ''),
                unit=line.get('unit') or (line['material'].unit if line.get('material') else 'cái'),
                quantity=line['quantity'],
                unit_price=line['unit_price'],
            )
            for line in lines
        ])

    logger.info(f"Saved purchase order {order.code}: {len(lines)} lines, total {order.total_amount}")
    return order


def update_purchase_order_status(order, status):
    """Confirm or cancel an order; returns the previous status"""
    allowed = ORDER_STATUS_TRANSITIONS.get(order.status, ())
    if status not in allowed:
        raise ValidationError({'status': f'Cannot move {order.code} from {order.status} to {status}'})
    previous = order.status
    order.status = status
    order.save(update_fields=['status', 'updated_at'])
    logger.info(f"Purchase order {order.code} status {previous} -> {status}")
    return previous


def delete_purchase_order(order):
    if order.status not in ('draft', 'cancelled'):
        raise ValidationError({'status': f'Only draft or cancelled orders can be deleted; {order.code} is {order.status}'})
    code = order.code
    order.delete()
    logger.info(f"Deleted purchase order {code}")
    return code


def receive_purchase_order(order, data, user=None):
    """
    Receive goods against a confirmed order.

    Each requested line becomes a goods receipt line; without explicit
    lines everything still outstanding is received. The order turns
    received once every line is complete, partial otherwise. Returns
    (order, receipt).
    """
    with transaction.atomic():
        order = PurchaseOrder.objects.select_for_update().select_related('supplier').get(pk=order.pk)
        if order.status not in ('confirmed', 'partial'):
            raise ValidationError({'status': f'Only confirmed orders can be received; {order.code} is {order.status}'})

        items = {item.pk: item for item in order.items.select_related('material')}
        requested = data.get('items') or [
            {'item': item.pk, 'quantity': item.outstanding_quantity}
            for item in items.values() if item.outstanding_quantity > 0
        ]
        if not requested:
            raise ValidationError({'items': f'Nothing left to receive on {order.code}'})

        lines = []
        received = []
        for entry in requested:
            item = items.get(entry['item'])
            if item is None:
                raise ValidationError({'items': f"Line {entry['item']} is not on {order.code}"})
            quantity = entry['quantity']
            if quantity <= 0 or quantity > item.outstanding_quantity:
                raise ValidationError({'items': f"Quantity for '{item.name}' must be greater than 0 and at most {item.outstanding_quantity}"})
            price = entry.get('purchase_price') or item.unit_price
            if price <= 0:
                raise ValidationError({'items': f"Enter a purchase price for '{item.name}'"})
            lines.append({
                'material': item.material,
                'name': item.name,
                'sku': item.sku,
                'unit': item.unit,
                'quantity': quantity,
                'purchase_price': price,
                'is_new': item.material is None,
            })
            received.append((item, quantity))

        receipt = finalize_goods_receipt({
            'supplier': order.supplier,
            'purchase_order': order,
            'receipt_date': data.get('receipt_date'),
            'warehouse_location': data.get('warehouse_location'),
            'notes': data.get('notes') or f"Purchase order {order.code}",
            'payment_method': data['payment_method'],
            'discount': data.get('discount'),
            'tax': data.get('tax'),
            'is_debt': data.get('is_debt'),
            'debt_amount': data.get('debt_amount'),
            'branch': order.branch,
            'items': lines,
        }, user=user)

        for (item, quantity), receipt_item in zip(received, receipt.items.order_by('id')):
            item.received_quantity += quantity
            if item.material_id is None:
                item.material = receipt_item.material
                item.sku = receipt_item.sku
            item.save(update_fields=['received_quantity', 'material', 'sku'])

        if all(item.received_quantity >= item.quantity for item in order.items.all()):
            order.status = 'received'
            order.received_date = timezone.localdate()
        else:
            order.status = 'partial'
        order.save(update_fields=['status', 'received_date', 'updated_at'])

    logger.info(f"Received {len(lines)} lines of {order.code} as {receipt.code}; order is {order.status}")
    return order, receipt
