"""
Installment plans: schedule building, period payments, early settlement,
overdue detection and the month-based reports shown on the installment
dashboard.
"""
import logging
from collections import OrderedDict
from decimal import Decimal, ROUND_CEILING, ROUND_FLOOR

from dateutil.relativedelta import relativedelta
from django.db import transaction
from django.utils import timezone

from backoffice.core.utils import PaymentError
from backoffice.finance.utils import record_cash_transaction
from .models import InstallmentPlan, InstallmentPayment

logger = logging.getLogger(__name__)

MIN_TERMS = 1
MAX_TERMS = 24
EARLY_SETTLEMENT_RATE = Decimal('5')
EARLY_SETTLEMENT_CAP = Decimal('30')
OPEN_STATUSES = ('active', 'overdue')
ZERO = Decimal('0.00')


def _ceil(value):
    return Decimal(value).to_integral_value(rounding=ROUND_CEILING)


def _floor(value):
    return Decimal(value).to_integral_value(rounding=ROUND_FLOOR)


def _money(value):
    return Decimal(value).quantize(Decimal('0.01'))


def build_schedule(total, down_payment, terms, interest_rate=0, start_date=None):
    """
    Split what is left after the down payment into monthly periods.

    Interest is simple: rate percent per month over the whole term. Every
    period is the rounded-up monthly amount except the last, which takes
    whatever remains of the total with interest.
    """
    total = Decimal(str(total))
    down_payment = Decimal(str(down_payment or 0))
    interest_rate = Decimal(str(interest_rate or 0))
    try:
        terms = int(terms)
    except (TypeError, ValueError):
        raise PaymentError('Installment terms must be a whole number of months')

    if terms < MIN_TERMS or terms > MAX_TERMS:
        raise PaymentError(f'Installment terms must be between {MIN_TERMS} and {MAX_TERMS} months')
    if down_payment < 0 or down_payment >= total:
        raise PaymentError('Down payment must be at least zero and less than the sale total')
    if interest_rate < 0:
        raise PaymentError('Interest rate must not be negative')

    start_date = start_date or timezone.localdate()
    remaining = total - down_payment
    total_with_interest = _money(remaining * (1 + interest_rate * terms / Decimal('100')))
    monthly = _ceil(total_with_interest / terms)

    periods = []
    for number in range(1, terms + 1):
        if number == terms:
            amount = max(total_with_interest - monthly * (terms - 1), ZERO)
        else:
            amount = monthly
        periods.append({
            'period_number': number,
            'due_date': start_date + relativedelta(months=number),
            'amount': _money(amount),
        })

    return {
        'remaining': remaining,
        'total_with_interest': total_with_interest,
        'monthly_amount': _money(monthly),
        'start_date': start_date,
        'end_date': start_date + relativedelta(months=terms),
        'periods': periods,
    }


def create_installment_plan(sale, down_payment, terms, interest_rate=0, start_date=None):
    """Persist a plan and its periods for a sale"""
    schedule = build_schedule(sale.total, down_payment, terms, interest_rate, start_date)
    plan = InstallmentPlan.objects.create(
        sale=sale,
        customer=sale.customer,
        customer_name=sale.customer_name,
        customer_phone=sale.customer_phone,
        total_amount=sale.total,
        down_payment=Decimal(str(down_payment or 0)),
        terms=len(schedule['periods']),
        monthly_amount=schedule['monthly_amount'],
        interest_rate=Decimal(str(interest_rate or 0)),
        start_date=schedule['start_date'],
        end_date=schedule['end_date'],
        status='active',
        remaining_amount=sum((p['amount'] for p in schedule['periods']), ZERO),
        branch=sale.branch,
    )
    InstallmentPayment.objects.bulk_create([
        InstallmentPayment(plan=plan, **period) for period in schedule['periods']
    ])
    logger.info(f"Created installment plan for {sale.code}: {plan.terms} x {plan.monthly_amount}")
    return plan


def _refresh_plan_totals(plan, payments=None):
    """Recompute remaining balance and status from the plan's periods"""
    payments = list(payments if payments is not None else plan.payments.all())
    scheduled = sum((p.amount for p in payments), ZERO)
    credited = sum((min(p.paid_amount, p.amount) for p in payments), ZERO)
    plan.remaining_amount = max(scheduled - credited, ZERO)

    if plan.status != 'cancelled':
        if all(p.status == 'paid' for p in payments):
            plan.status = 'completed'
        elif any(p.status == 'overdue' for p in payments):
            plan.status = 'overdue'
        else:
            plan.status = 'active'
    plan.save(update_fields=['remaining_amount', 'status', 'updated_at'])
    return plan


def _credit_period(period, amount, when):
    period.paid_amount += amount
    period.paid_date = when
    period.status = 'paid' if period.paid_amount >= period.amount else 'partial'
    period.save(update_fields=['paid_amount', 'paid_date', 'status'])


def _lock_open_plan(plan):
    locked = InstallmentPlan.objects.select_for_update().select_related('sale').get(pk=plan.pk)
    if locked.status not in OPEN_STATUSES:
        raise PaymentError(f'Installment plan is {locked.status}')
    return locked


def record_installment_payment(plan, period_number, amount, payment_method='cash', user=None, notes=''):
    """
    Record money received for one period.

    The period becomes paid once its paid amount reaches the amount due,
    partial otherwise. The plan is completed when every period is paid.
    """
    amount = Decimal(str(amount))
    if amount <= 0:
        raise PaymentError('Payment amount must be greater than zero')

    with transaction.atomic():
        plan = _lock_open_plan(plan)
        try:
            period = plan.payments.get(period_number=period_number)
        except InstallmentPayment.DoesNotExist:
            raise PaymentError(f'Installment plan has no period {period_number}')
        if period.status == 'paid':
            raise PaymentError(f'Period {period_number} is already paid')
        if amount > period.outstanding:
            raise PaymentError(f'Payment exceeds the {period.outstanding} still due for period {period_number}')

        _credit_period(period, amount, timezone.now())
        _refresh_plan_totals(plan)
        record_cash_transaction(
            'income',
            'installment_payment',
            amount,
            payment_source=payment_method,
            user=user,
            branch=plan.branch,
            contact_id=plan.customer_id or '',
            contact_name=plan.customer_name,
            notes=notes or f"Installment {period_number}/{plan.terms} for {plan.sale.code}",
            sale=plan.sale,
            installment_plan=plan,
        )

    logger.info(f"Installment payment {amount} on {plan.sale.code} period {period_number}; remaining {plan.remaining_amount}")
    return plan


def apply_to_plan(plan, amount, when=None):
    """
    Spread a collected amount over unpaid periods, earliest first.

    Returns [(period, applied_amount), ...]. The caller owns the cash book
    entry and the surrounding transaction.
    """
    amount = Decimal(str(amount))
    plan = _lock_open_plan(plan)
    if amount <= 0 or amount > plan.remaining_amount:
        raise PaymentError(f'Amount must be greater than zero and at most {plan.remaining_amount}')

    when = when or timezone.now()
    applied = []
    left = amount
    for period in plan.payments.exclude(status='paid').order_by('period_number'):
        if left <= 0:
            break
        portion = min(left, period.outstanding)
        if portion <= 0:
            continue
        _credit_period(period, portion, when)
        applied.append((period, portion))
        left -= portion

    _refresh_plan_totals(plan)
    return plan, applied


def early_settlement_quote(balance, remaining_terms, discount_rate=EARLY_SETTLEMENT_RATE):
    """Discount offered for paying the whole balance now, capped at 30%"""
    balance = Decimal(str(balance))
    discount_percent = min(Decimal(int(remaining_terms)) * Decimal(str(discount_rate)), EARLY_SETTLEMENT_CAP)
    discount = _floor(balance * discount_percent / 100)
    return {
        'balance': balance,
        'remaining_terms': int(remaining_terms),
        'discount_percent': discount_percent,
        'discount': discount,
        'payable': _ceil(balance - discount),
    }


def settle_early(plan, amount_received=None, payment_method='cash', user=None, notes=''):
    """
    Close the plan: every unpaid period is marked paid in full.

    The amount received defaults to the quoted payable and may not be
    below it nor above the plan's remaining balance.
    """
    with transaction.atomic():
        plan = _lock_open_plan(plan)
        unpaid = list(plan.payments.exclude(status='paid'))
        quote = early_settlement_quote(plan.remaining_amount, len(unpaid))
        received = quote['payable'] if amount_received is None else Decimal(str(amount_received))
        if received < quote['payable'] or received > plan.remaining_amount:
            raise PaymentError(
                f"Settlement amount must be between {quote['payable']} and {plan.remaining_amount}"
            )

        now = timezone.now()
        for period in unpaid:
            period.paid_amount = period.amount
            period.paid_date = now
            period.status = 'paid'
            period.save(update_fields=['paid_amount', 'paid_date', 'status'])

        plan.status = 'completed'
        plan.remaining_amount = ZERO
        plan.save(update_fields=['status', 'remaining_amount', 'updated_at'])

        if received > 0:
            record_cash_transaction(
                'income',
                'installment_payment',
                received,
                payment_source=payment_method,
                user=user,
                branch=plan.branch,
                contact_id=plan.customer_id or '',
                contact_name=plan.customer_name,
                notes=notes or f"Early settlement of {plan.sale.code}",
                sale=plan.sale,
                installment_plan=plan,
            )

    logger.info(f"Settled installment plan {plan.sale.code} early: received {received}, discount {quote['discount']}")
    return plan, quote


def refresh_overdue(plan, today=None):
    """Flag pending/partial periods past their due date; returns how many changed"""
    if plan.status in ('completed', 'cancelled'):
        return 0

    today = today or timezone.localdate()
    payments = list(plan.payments.all())
    flagged = 0
    for period in payments:
        if period.status in ('pending', 'partial') and period.due_date < today:
            period.status = 'overdue'
            period.save(update_fields=['status'])
            flagged += 1

    if any(p.status == 'overdue' for p in payments) and plan.status != 'overdue':
        plan.status = 'overdue'
        plan.save(update_fields=['status', 'updated_at'])
    return flagged


def refresh_all_overdue(today=None, branch=None):
    """Run the overdue pass over every open plan"""
    plans = InstallmentPlan.objects.filter(status__in=OPEN_STATUSES).prefetch_related('payments')
    if branch:
        plans = plans.filter(branch=branch)
    flagged = 0
    for plan in plans:
        with transaction.atomic():
            flagged += refresh_overdue(plan, today)
    return flagged


def monthly_schedule(plans):
    """Periods of the given plans grouped by due month (YYYY-MM)"""
    schedule = OrderedDict()
    periods = sorted(
        (period for plan in plans for period in plan.payments.all()),
        key=lambda p: (p.due_date, p.plan_id, p.period_number)
    )
    for period in periods:
        schedule.setdefault(period.due_date.strftime('%Y-%m'), []).append(period)
    return schedule


def due_this_month(plans, today=None):
    """Unpaid periods of open plans falling due in the current month"""
    today = today or timezone.localdate()
    due = [
        period
        for plan in plans if plan.status in OPEN_STATUSES
        for period in plan.payments.all()
        if period.status != 'paid'
        and period.due_date.year == today.year and period.due_date.month == today.month
    ]
    return sorted(due, key=lambda p: p.due_date)


def expected_revenue(plans):
    """Sum still to come from unpaid periods of open plans"""
    return sum(
        (
            period.amount
            for plan in plans if plan.status in OPEN_STATUSES
            for period in plan.payments.all() if period.status != 'paid'
        ),
        ZERO
    )
