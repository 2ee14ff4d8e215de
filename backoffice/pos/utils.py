import logging
from decimal import Decimal

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from backoffice.catalog.utils import adjust_stock
from backoffice.core.utils import SALE_PREFIX, PaymentError, next_document_number
from backoffice.finance.utils import record_cash_transaction
from backoffice.parties.utils import find_or_create_customer
from .installments import create_installment_plan
from .models import Sale, SaleItem

logger = logging.getLogger(__name__)

ZERO = Decimal('0.00')


def derive_sale_payment_status(total, paid, installment=False):
    """Payment status of a sale from how much of its total has been paid"""
    if installment:
        return 'installment'
    if paid >= total:
        return 'paid'
    if paid > 0:
        return 'partial'
    return 'debt'


def create_sale(data, user=None):
    """
    Check out a validated cart (SaleInputSerializer.validated_data).

    Totals are computed here, never trusted from the client. Any line
    without enough stock aborts the whole sale.
    """
    lines = data['items']
    subtotal = sum(
        (line['quantity'] * line['selling_price'] - (line.get('discount') or ZERO) for line in lines),
        ZERO
    )
    discount = data.get('discount') or ZERO
    total = subtotal - discount
    if total < 0:
        raise PaymentError('Discount cannot exceed the sale subtotal')

    installment = data.get('installment')

    # on an installment sale the amount paid now is the down payment
    paid_amount = data.get('paid_amount')
    if paid_amount is None:
        paid_amount = ZERO if installment else total
    paid_amount = min(max(paid_amount, ZERO), total)

    customer = data.get('customer')
    customer_name = (data.get('customer_name') or '').strip()
    customer_phone = (data.get('customer_phone') or '').strip()
    if installment and customer is None and not (customer_name or customer_phone):
        raise PaymentError('Installment sales need a customer')

    with transaction.atomic():
        if customer is None and (customer_name or customer_phone):
            customer, _ = find_or_create_customer(customer_name, customer_phone)
        if customer is not None:
            customer_name = customer_name or customer.name
            customer_phone = customer_phone or customer.phone

        sale = Sale.objects.create(
            code=next_document_number(SALE_PREFIX),
            date=data.get('date') or timezone.now(),
            customer=customer,
            customer_name=customer_name,
            customer_phone=customer_phone,
            subtotal=subtotal,
            discount=discount,
            total=total,
            payment_method=data.get('payment_method') or 'cash',
            payment_status=derive_sale_payment_status(total, paid_amount, bool(installment)),
            paid_amount=paid_amount,
            due_date=data.get('due_date'),
            notes=data.get('notes', ''),
            branch=data.get('branch') or settings.DEFAULT_BRANCH,
            created_by=user if user is not None and user.is_authenticated else None,
        )

        for line in lines:
            stock_item = line['material'] if line['item_type'] == 'material' else line['product']
            cost_price = stock_item.purchase_price if line['item_type'] == 'material' else stock_item.cost_price
            SaleItem.objects.create(
                sale=sale,
                item_type=line['item_type'],
                product=line.get('product'),
                material=line.get('material'),
                name=line.get('name') or stock_item.name,
                sku=stock_item.sku,
                quantity=line['quantity'],
                selling_price=line['selling_price'],
                cost_price=cost_price,
                discount=line.get('discount') or ZERO,
            )
            adjust_stock(
                stock_item,
                -line['quantity'],
                'sale',
                reason=f"Sale {sale.code}",
                user=user,
                reference=sale.code,
                unit_price=line['selling_price'],
            )

        if installment:
            create_installment_plan(
                sale,
                down_payment=paid_amount,
                terms=installment['terms'],
                interest_rate=installment.get('interest_rate') or ZERO,
            )

        if paid_amount > 0:
            record_cash_transaction(
                'income',
                'sale_income',
                paid_amount,
                payment_source=sale.payment_method,
                user=user,
                branch=sale.branch,
                contact_id=customer.pk if customer else '',
                contact_name=customer_name,
                notes=f"Sale {sale.code}",
                date=sale.date,
                sale=sale,
            )

    logger.info(f"Created sale {sale.code}: total {total}, paid {paid_amount}, status {sale.payment_status}")
    return sale


def delete_sale(sale, user=None):
    """Remove a sale: stock goes back, its cash entries and plan go away"""
    code = sale.code
    with transaction.atomic():
        for item in sale.items.select_related('product', 'material'):
            stock_item = item.stock_item
            if stock_item is None:
                logger.warning(f"Sale {code} line '{item.name}' no longer has a stock item; stock not restored")
                continue
            adjust_stock(
                stock_item,
                item.quantity,
                'sale_return',
                reason=f"Deleted sale {code}",
                user=user,
                reference=code,
                unit_price=item.selling_price,
            )
        removed_transactions, _ = sale.cash_transactions.all().delete()
        if hasattr(sale, 'installment_plan'):
            sale.installment_plan.delete()
        sale.delete()

    logger.info(f"Deleted sale {code} ({removed_transactions} cash entries removed)")
    return code
