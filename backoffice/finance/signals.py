"""
Cache invalidation signals
Any change to money owed or received drops the cached receivables summary
"""
import logging

from django.db.models.signals import post_save, post_delete
from django.dispatch import receiver

from backoffice.pos.models import Sale, InstallmentPlan, InstallmentPayment
from backoffice.purchasing.models import GoodsReceipt
from backoffice.repairs.models import RepairOrder
from .cache import invalidate_receivables, is_suspended
from .models import CashTransaction

logger = logging.getLogger(__name__)

TRACKED_MODELS = (Sale, RepairOrder, InstallmentPlan, InstallmentPayment, GoodsReceipt, CashTransaction)


def _invalidate(sender, **kwargs):
    if is_suspended():
        return
    invalidate_receivables()
    logger.debug(f"Receivables cache invalidated by {sender.__name__} change")


for model in TRACKED_MODELS:
    receiver(post_save, sender=model, dispatch_uid=f'receivables_save_{model.__name__}')(_invalidate)
    receiver(post_delete, sender=model, dispatch_uid=f'receivables_delete_{model.__name__}')(_invalidate)
