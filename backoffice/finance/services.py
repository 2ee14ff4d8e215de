"""
Receivables, payables and debt collection.

A receivable is anything a customer still owes: a sale sold on credit,
a repair not fully paid, or an open installment plan. They are listed
as plain dicts so the three sources can be merged, grouped per customer
and collected against in one pass.
"""
import logging
from collections import OrderedDict
from datetime import datetime, time
from decimal import Decimal

from django.db import transaction
from django.db.models import Count, Max, Sum
from django.utils import timezone

from backoffice.core.utils import PaymentError
from backoffice.parties.models import Supplier
from backoffice.pos.installments import apply_to_plan
from backoffice.pos.models import Sale, InstallmentPlan
from backoffice.pos.utils import derive_sale_payment_status
from backoffice.purchasing.models import GoodsReceipt
from backoffice.repairs.models import RepairOrder
from .cache import get_cached_summary
from .models import CashTransaction
from .utils import record_cash_transaction

logger = logging.getLogger(__name__)

ZERO = Decimal('0.00')
DEBT_KINDS = ('sale', 'repair', 'installment')


def customer_key(phone, name):
    return f"{(phone or '').strip()}-{(name or '').strip()}".lower()


def _as_datetime(value):
    if isinstance(value, datetime):
        return value
    return timezone.make_aware(datetime.combine(value, time.min))


def _debt(kind, obj, date, total, paid, remaining, status):
    return {
        'kind': kind,
        'id': obj.pk,
        'code': obj.sale.code if kind == 'installment' else obj.code,
        'customer_id': obj.customer_id,
        'customer_name': obj.customer_name,
        'customer_phone': obj.customer_phone,
        'customer_key': customer_key(obj.customer_phone, obj.customer_name),
        'date': _as_datetime(date),
        'total': total,
        'paid': paid,
        'remaining': remaining,
        'status': status,
        'branch': obj.branch,
    }


def sale_debt(sale):
    return _debt('sale', sale, sale.date, sale.total, sale.paid_amount,
                 sale.total - sale.paid_amount, sale.payment_status)


def repair_debt(order):
    paid = order.deposit_amount + order.partial_payment_amount
    return _debt('repair', order, order.creation_date, order.total, paid,
                 order.total - paid, order.payment_status)


def installment_debt(plan):
    periods = list(plan.payments.all())
    scheduled = plan.down_payment + sum((p.amount for p in periods), ZERO)
    paid = plan.down_payment + sum((min(p.paid_amount, p.amount) for p in periods), ZERO)
    return _debt('installment', plan, plan.start_date, scheduled, paid, plan.remaining_amount, plan.status)


def list_customer_debts(branch=None):
    """Every open receivable with something left to pay, oldest first"""
    sales = Sale.objects.filter(payment_status__in=('debt', 'partial'))
    repairs = RepairOrder.objects.filter(payment_status__in=('unpaid', 'partial'))
    plans = InstallmentPlan.objects.filter(status__in=('active', 'overdue')).select_related('sale').prefetch_related('payments')
    if branch:
        sales = sales.filter(branch=branch)
        repairs = repairs.filter(branch=branch)
        plans = plans.filter(branch=branch)

    debts = [sale_debt(s) for s in sales]
    debts += [repair_debt(r) for r in repairs]
    debts += [installment_debt(p) for p in plans]
    debts = [d for d in debts if d['remaining'] > 0]
    return sorted(debts, key=lambda d: (d['date'], d['kind'], d['id']))


def group_debts_by_customer(debts):
    """Debts bucketed per customer, largest total first"""
    groups = OrderedDict()
    for debt in debts:
        group = groups.get(debt['customer_key'])
        if group is None:
            group = groups[debt['customer_key']] = {
                'customer_key': debt['customer_key'],
                'customer_id': debt['customer_id'],
                'customer_name': debt['customer_name'],
                'customer_phone': debt['customer_phone'],
                'total_debt': ZERO,
                'debt_count': 0,
                'sale_count': 0,
                'repair_count': 0,
                'installment_count': 0,
                'oldest_date': debt['date'],
                'debts': [],
            }
        group['total_debt'] += debt['remaining']
        group['debt_count'] += 1
        group[f"{debt['kind']}_count"] += 1
        group['oldest_date'] = min(group['oldest_date'], debt['date'])
        group['debts'].append(debt)
    return sorted(groups.values(), key=lambda g: g['total_debt'], reverse=True)


def _check_amount(amount, remaining, code):
    if amount <= 0:
        raise PaymentError('Amount must be greater than zero')
    if amount > remaining:
        raise PaymentError(f'Amount {amount} exceeds the {remaining} still owed on {code}')


def _collect_sale(sale_id, amount, payment_method, notes, user):
    sale = Sale.objects.select_for_update().get(pk=sale_id)
    if sale.payment_status == 'installment':
        raise PaymentError(f'{sale.code} is paid through its installment plan')
    previous = sale.total - sale.paid_amount
    _check_amount(amount, previous, sale.code)

    sale.paid_amount += amount
    sale.payment_status = derive_sale_payment_status(sale.total, sale.paid_amount)
    sale.save(update_fields=['paid_amount', 'payment_status', 'updated_at'])
    tx = record_cash_transaction(
        'income', 'sale_income', amount,
        payment_source=payment_method, user=user, branch=sale.branch,
        contact_id=sale.customer_id or '', contact_name=sale.customer_name,
        notes=notes or f"Debt collected for {sale.code}",
        sale=sale,
    )
    return sale.code, previous, sale.total - sale.paid_amount, tx


def _collect_repair(order_id, amount, payment_method, notes, user):
    order = RepairOrder.objects.select_for_update().get(pk=order_id)
    if order.payment_status == 'paid':
        raise PaymentError(f'{order.code} is already paid')
    previous = order.total - order.deposit_amount - order.partial_payment_amount
    _check_amount(amount, previous, order.code)

    order.partial_payment_amount += amount
    order.payment_status = 'paid' if amount == previous else 'partial'
    order.payment_method = order.payment_method or payment_method
    order.payment_date = timezone.now()
    order.save(update_fields=['partial_payment_amount', 'payment_status', 'payment_method', 'payment_date', 'updated_at'])
    tx = record_cash_transaction(
        'income', 'service_income', amount,
        payment_source=payment_method, user=user, branch=order.branch,
        contact_id=order.customer_id or '', contact_name=order.customer_name,
        notes=notes or f"Debt collected for {order.code}",
        repair_order=order,
    )
    return order.code, previous, previous - amount, tx


def _collect_installment(plan_id, amount, payment_method, notes, user):
    plan = InstallmentPlan.objects.select_related('sale').get(pk=plan_id)
    previous = plan.remaining_amount
    plan, applied = apply_to_plan(plan, amount)
    periods = ', '.join(str(period.period_number) for period, _ in applied)
    tx = record_cash_transaction(
        'income', 'installment_payment', amount,
        payment_source=payment_method, user=user, branch=plan.branch,
        contact_id=plan.customer_id or '', contact_name=plan.customer_name,
        notes=notes or f"Installment periods {periods} of {plan.sale.code}",
        sale=plan.sale, installment_plan=plan,
    )
    return plan.sale.code, previous, plan.remaining_amount, tx


COLLECTORS = {
    'sale': _collect_sale,
    'repair': _collect_repair,
    'installment': _collect_installment,
}


def collect_debt(kind, object_id, amount, payment_method='cash', notes='', user=None):
    """
    Take a payment against one receivable and book it as income.

    Returns a dict with the previous and new remaining balance and the
    cash transaction written.
    """
    if kind not in COLLECTORS:
        raise PaymentError(f'Unknown debt kind: {kind}')
    amount = Decimal(str(amount))
    with transaction.atomic():
        code, previous, remaining, tx = COLLECTORS[kind](object_id, amount, payment_method, notes, user)

    logger.info(f"Collected {amount} on {kind} {code}: {previous} -> {remaining}")
    return {
        'kind': kind,
        'id': object_id,
        'code': code,
        'amount': amount,
        'previous_remaining': previous,
        'remaining': remaining,
        'transaction': tx,
    }


def collect_consolidated(key, amount, payment_method='cash', notes='', user=None, branch=None):
    """
    Spread one payment over all of a customer's debts, oldest first.

    Each debt touched gets its own cash transaction. Returns the list of
    allocations made.
    """
    amount = Decimal(str(amount))
    key = (key or '').lower()
    with transaction.atomic():
        group = next((g for g in group_debts_by_customer(list_customer_debts(branch)) if g['customer_key'] == key), None)
        if group is None:
            raise PaymentError('This customer has no open debts')
        if amount <= 0 or amount > group['total_debt']:
            raise PaymentError(f"Amount must be greater than zero and at most {group['total_debt']}")

        allocations = []
        left = amount
        for debt in group['debts']:
            if left <= 0:
                break
            portion = min(left, debt['remaining'])
            allocations.append(collect_debt(debt['kind'], debt['id'], portion, payment_method, notes, user))
            left -= portion

    logger.info(f"Consolidated collection {amount} for '{group['customer_name']}' over {len(allocations)} debts")
    return allocations


def _supplier_totals(branch=None):
    receipts = GoodsReceipt.objects.all()
    payments = CashTransaction.objects.filter(category='supplier_payment', supplier__isnull=False)
    if branch:
        receipts = receipts.filter(branch=branch)
        payments = payments.filter(branch=branch)

    totals = {}
    for row in receipts.values('supplier').annotate(total=Sum('total'), paid=Sum('amount_paid'), last=Max('receipt_date'), count=Count('id')):
        totals[row['supplier']] = {
            'purchased': row['total'] or ZERO,
            'paid_on_receipt': row['paid'] or ZERO,
            'paid_later': ZERO,
            'receipt_count': row['count'] or 0,
            'last_activity': row['last'],
        }
    for row in payments.values('supplier').annotate(paid=Sum('amount'), last=Max('date')):
        entry = totals.setdefault(row['supplier'], {
            'purchased': ZERO, 'paid_on_receipt': ZERO, 'paid_later': ZERO,
            'receipt_count': 0, 'last_activity': row['last'],
        })
        entry['paid_later'] = abs(row['paid'] or ZERO)
        if entry['last_activity'] is None or (row['last'] and row['last'] > entry['last_activity']):
            entry['last_activity'] = row['last']
    return totals


def supplier_payable(supplier, branch=None):
    entry = _supplier_totals(branch).get(supplier.pk)
    if entry is None:
        return ZERO
    return entry['purchased'] - entry['paid_on_receipt'] - entry['paid_later']


def list_supplier_payables(branch=None):
    """What the shop still owes each supplier, most recent activity first"""
    totals = _supplier_totals(branch)
    suppliers = Supplier.objects.in_bulk(list(totals))
    payables = []
    for supplier_id, entry in totals.items():
        debt = entry['purchased'] - entry['paid_on_receipt'] - entry['paid_later']
        if debt <= 0 or supplier_id not in suppliers:
            continue
        supplier = suppliers[supplier_id]
        payables.append({
            'supplier_id': supplier_id,
            'supplier_name': supplier.name,
            'supplier_phone': supplier.phone,
            'total_purchased': entry['purchased'],
            'paid_on_receipt': entry['paid_on_receipt'],
            'paid_later': entry['paid_later'],
            'debt': debt,
            'receipt_count': entry['receipt_count'],
            'last_activity': entry['last_activity'],
        })
    return sorted(payables, key=lambda p: p['last_activity'], reverse=True)


def pay_supplier(supplier, amount, payment_method='cash', notes='', user=None, branch=None):
    """Book a payment against what is owed to a supplier"""
    amount = Decimal(str(amount))
    with transaction.atomic():
        supplier = Supplier.objects.select_for_update().get(pk=supplier.pk)
        previous = supplier_payable(supplier, branch)
        if amount <= 0:
            raise PaymentError('Amount must be greater than zero')
        if amount > previous:
            raise PaymentError(f'Amount {amount} exceeds the {max(previous, ZERO)} owed to {supplier.name}')

        tx = record_cash_transaction(
            'expense', 'supplier_payment', amount,
            payment_source=payment_method, user=user, branch=branch,
            contact_id=supplier.pk, contact_name=supplier.name,
            notes=notes or f"Payment to supplier {supplier.name}",
            supplier=supplier,
        )

    logger.info(f"Paid supplier {supplier.name} {amount}: {previous} -> {previous - amount}")
    return {
        'supplier_id': supplier.pk,
        'supplier_name': supplier.name,
        'previous_debt': previous,
        'paid': amount,
        'remaining': previous - amount,
        'transaction': tx,
    }


def _compute_summary(branch):
    debts = list_customer_debts(branch)
    payables = list_supplier_payables(branch)
    by_kind = {kind: ZERO for kind in DEBT_KINDS}
    for debt in debts:
        by_kind[debt['kind']] += debt['remaining']
    return {
        'branch': branch,
        'total_receivable': sum(by_kind.values(), ZERO),
        'sale_receivable': by_kind['sale'],
        'repair_receivable': by_kind['repair'],
        'installment_receivable': by_kind['installment'],
        'receivable_count': len(debts),
        'customer_count': len({d['customer_key'] for d in debts}),
        'total_payable': sum((p['debt'] for p in payables), ZERO),
        'supplier_count': len(payables),
    }


def receivables_summary(branch=None):
    """Receivable and payable totals, cached per branch"""
    return get_cached_summary(branch, _compute_summary)


def find_debt_inconsistencies():
    """Rows whose paid and remaining amounts do not add up to their total"""
    problems = []
    for sale in Sale.objects.exclude(payment_status='installment'):
        if sale.paid_amount < 0 or sale.paid_amount > sale.total:
            problems.append({'kind': 'sale', 'code': sale.code, 'problem': f'paid {sale.paid_amount} outside 0..{sale.total}'})
        elif sale.payment_status != derive_sale_payment_status(sale.total, sale.paid_amount):
            problems.append({'kind': 'sale', 'code': sale.code, 'problem': f'status {sale.payment_status} does not match paid {sale.paid_amount}'})

    for order in RepairOrder.objects.all():
        paid = order.deposit_amount + order.partial_payment_amount
        if order.payment_status != 'paid' and paid > order.total:
            problems.append({'kind': 'repair', 'code': order.code, 'problem': f'paid {paid} exceeds total {order.total}'})

    for plan in InstallmentPlan.objects.select_related('sale').prefetch_related('payments'):
        periods = list(plan.payments.all())
        expected = max(
            sum((p.amount for p in periods), ZERO) - sum((min(p.paid_amount, p.amount) for p in periods), ZERO),
            ZERO
        )
        if plan.remaining_amount < 0 or plan.remaining_amount != expected:
            problems.append({'kind': 'installment', 'code': plan.sale.code, 'problem': f'remaining {plan.remaining_amount}, periods say {expected}'})

    for receipt in GoodsReceipt.objects.all():
        if receipt.amount_paid < 0 or receipt.amount_paid > receipt.total:
            problems.append({'kind': 'goods_receipt', 'code': receipt.code, 'problem': f'paid {receipt.amount_paid} outside 0..{receipt.total}'})
    return problems
