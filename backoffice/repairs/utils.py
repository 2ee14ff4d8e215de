import logging
from collections import defaultdict
from decimal import Decimal

from django.conf import settings
from django.db import transaction
from django.db.models import Sum
from django.utils import timezone
from rest_framework.exceptions import ValidationError

from backoffice.catalog.models import Material
from backoffice.catalog.utils import adjust_stock
from backoffice.core.utils import REPAIR_PREFIX, PaymentError, discard_draft, next_document_number
from backoffice.finance.utils import record_cash_transaction
from backoffice.parties.utils import find_or_create_customer
from .models import RepairOrder, RepairMaterial, OutsourcingItem

logger = logging.getLogger(__name__)

DRAFT_FORM_KEY = 'repair_order'
ZERO = Decimal('0.00')


def repair_total(materials, outsourcing, labor_cost):
    """Parts at their quoted price, plus outsourced work, plus labor"""
    parts = sum((line['quantity'] * line['price'] for line in materials), ZERO)
    outsourced = sum((line['quantity'] * line['selling_price'] for line in outsourcing), ZERO)
    return (parts + outsourced + (labor_cost or ZERO)).quantize(Decimal('0.01'))


def validate_repair(data):
    """
    Check a repair form before it is saved.

    Raises ValidationError with one message per offending field; returns
    the computed total otherwise.
    """
    errors = {}
    if not (data.get('customer_name') or '').strip():
        errors['customer_name'] = 'Customer name is required'
    if not (data.get('customer_phone') or '').strip():
        errors['customer_phone'] = 'Customer phone is required'
    if not (data.get('issue_description') or '').strip():
        errors['issue_description'] = 'Describe the issue to repair'

    materials = data.get('materials') or []
    outsourcing = data.get('outsourcing_items') or []
    labor_cost = data.get('labor_cost') or ZERO
    total = repair_total(materials, outsourcing, labor_cost)
    if total <= 0:
        errors['total'] = 'Add at least one part, outsourced job or labor cost'

    payment_status = data.get('payment_status') or 'unpaid'
    deposit = data.get('deposit_amount') or ZERO
    partial_amount = data.get('partial_payment_amount') or ZERO
    if (deposit > 0 or payment_status in ('paid', 'partial')) and not data.get('payment_method'):
        errors['payment_method'] = 'Choose how the money was received'
    if payment_status == 'partial' and total > 0:
        if partial_amount <= 0 or partial_amount >= total:
            errors['partial_payment_amount'] = f'Partial payment must be greater than 0 and less than {total}'
    if deposit + (partial_amount if payment_status == 'partial' else ZERO) > total > 0:
        errors['deposit_amount'] = 'Deposit and partial payment cannot exceed the repair total'

    if errors:
        raise ValidationError(errors)
    return total


def _consumption(lines):
    used = defaultdict(Decimal)
    for line in lines:
        material = line.get('material') if isinstance(line, dict) else line.material
        quantity = line['quantity'] if isinstance(line, dict) else line.quantity
        if material is not None:
            used[material.pk] += quantity
    return used


def _apply_material_delta(order, previous, current, user):
    """Move stock by the difference between the old and new part lists"""
    reason = f"Repair {order.code}: {order.customer_name} - {order.device_name}"
    deltas = {
        pk: current.get(pk, ZERO) - previous.get(pk, ZERO)
        for pk in set(previous) | set(current)
    }
    # returns first so a swapped part frees stock before it is taken again
    for pk, delta in sorted(deltas.items(), key=lambda item: item[1]):
        if delta == 0:
            continue
        material = Material.objects.get(pk=pk)
        adjust_stock(
            material,
            -delta,
            'export' if delta > 0 else 'adjust',
            reason=reason if delta > 0 else f"Returned from {reason}",
            user=user,
            reference=order.code,
        )


def _sync_intake_cash(order, user):
    """Book whatever part of the money received is not in the cash book yet"""
    booked = order.cash_transactions.aggregate(total=Sum('amount'))['total'] or ZERO
    received = order.paid_amount
    if received < booked:
        raise PaymentError(f'{booked} has already been booked for {order.code}; received amount cannot go below it')
    if received == booked:
        return None
    return record_cash_transaction(
        'income',
        'service_income',
        received - booked,
        payment_source=order.payment_method or 'cash',
        user=user,
        branch=order.branch,
        contact_id=order.customer_id or '',
        contact_name=order.customer_name,
        notes=f"Repair {order.code}",
        date=order.payment_date,
        repair_order=order,
    )


def save_repair_order(data, user=None, instance=None):
    """
    Create or update a repair order from validated form data.

    Parts are taken from stock as the difference against the previously
    saved lines; any shortage aborts the whole save.
    """
    total = validate_repair(data)
    materials = data.get('materials') or []
    outsourcing = data.get('outsourcing_items') or []

    customer = data.get('customer')
    customer_name = data['customer_name'].strip()
    customer_phone = data['customer_phone'].strip()

    with transaction.atomic():
        if customer is None:
            customer, _ = find_or_create_customer(customer_name, customer_phone)

        if instance is None:
            order = RepairOrder(
                code=next_document_number(REPAIR_PREFIX),
                branch=data.get('branch') or settings.DEFAULT_BRANCH,
                created_by=user if user is not None and user.is_authenticated else None,
            )
            order.barcode = order.code
            previous = {}
        else:
            order = RepairOrder.objects.select_for_update().get(pk=instance.pk)
            if data.get('branch'):
                order.branch = data['branch']
            previous = _consumption(order.materials.select_related('material'))

        technician = (data.get('technician_name') or '').strip()
        if not technician and user is not None and user.is_authenticated:
            technician = user.display_name

        order.customer = customer
        order.customer_name = customer_name
        order.customer_phone = customer_phone
        order.device_name = data.get('device_name', '')
        order.issue_description = data['issue_description']
        order.technician_name = technician or order.technician_name
        order.status = data.get('status') or order.status
        order.labor_cost = data.get('labor_cost') or ZERO
        order.total = total
        order.notes = data.get('notes', '')
        order.payment_status = data.get('payment_status') or 'unpaid'
        order.deposit_amount = data.get('deposit_amount') or ZERO
        order.partial_payment_amount = (
            (data.get('partial_payment_amount') or ZERO) if order.payment_status == 'partial' else ZERO
        )
        order.payment_method = data.get('payment_method') or ''
        order.due_date = data.get('due_date')
        if data.get('creation_date'):
            order.creation_date = data['creation_date']
        if order.paid_amount > 0 and order.payment_date is None:
            order.payment_date = data.get('payment_date') or timezone.now()
        order.save()

        order.materials.all().delete()
        RepairMaterial.objects.bulk_create([
            RepairMaterial(
                repair_order=order,
                material=line.get('material'),
                name=line.get('name') or (line['material'].name if line.get('material') else ''),
                quantity=line['quantity'],
                price=line['price'],
            )
            for line in materials
        ])
        order.outsourcing_items.all().delete()
        for line in outsourcing:
            OutsourcingItem.objects.create(repair_order=order, **line)

        _apply_material_delta(order, previous, _consumption(materials), user)
        _sync_intake_cash(order, user)

        if instance is None:
            discard_draft(user, DRAFT_FORM_KEY)

    logger.info(f"Saved repair {order.code}: total {order.total}, {order.payment_status}, status {order.status}")
    return order


def update_repair_status(order, status, user=None):
    """Move a repair through its workflow; returns the previous status"""
    if status not in dict(RepairOrder.STATUS_CHOICES):
        raise ValidationError({'status': f'Unknown repair status: {status}'})
    previous = order.status
    order.status = status
    order.save(update_fields=['status', 'updated_at'])
    logger.info(f"Repair {order.code} status {previous} -> {status}")
    return previous


def delete_repair_order(order, user=None):
    """Return the consumed parts to stock, drop the cash entries and the order"""
    code = order.code
    with transaction.atomic():
        _apply_material_delta(order, _consumption(order.materials.select_related('material')), {}, user)
        removed_transactions, _ = order.cash_transactions.all().delete()
        order.delete()
    logger.info(f"Deleted repair {code} ({removed_transactions} cash entries removed)")
    return code
