import logging
from decimal import Decimal

from django.conf import settings
from django.utils import timezone

from .models import CashTransaction

logger = logging.getLogger(__name__)


def record_cash_transaction(type, category, amount, payment_source='cash', user=None, branch=None,
                            contact_id='', contact_name='', notes='', date=None, **links):
    """
    Append an entry to the cash book.

    amount is given as a magnitude; the sign follows the transaction type.
    links carries the optional sale / repair_order / installment_plan /
    goods_receipt / supplier the money belongs to.
    """
    transaction = CashTransaction.objects.create(
        type=type,
        category=category,
        amount=abs(Decimal(str(amount))),
        payment_source=payment_source or 'cash',
        contact_id=str(contact_id or ''),
        contact_name=contact_name or '',
        branch=branch or settings.DEFAULT_BRANCH,
        notes=notes or '',
        date=date or timezone.now(),
        created_by=user if user is not None and user.is_authenticated else None,
        **links
    )
    logger.info(f"Cash book {type}/{category} {transaction.amount} ({contact_name or '-'})")
    return transaction
