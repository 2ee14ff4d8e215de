"""Stock movement, SKU and pricing helpers for materials and products"""
import logging
from decimal import Decimal, ROUND_HALF_UP

from django.db import transaction
from django.utils import timezone

from .models import Material, Product, StockHistory

logger = logging.getLogger(__name__)

MATERIAL_SKU_PREFIX = 'NL'
RETAIL_MARKUP = Decimal('1.4')
WHOLESALE_MARKUP = Decimal('1.2')


class InsufficientStock(Exception):
    """Raised when a movement would take stock below zero"""

    def __init__(self, item, requested, available):
        self.item = item
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient stock for {item.name} ({item.sku}): requested {requested}, available {available}"
        )


def generate_material_sku(extra_skus=None, day=None):
    """
    Return the first free NL-DDMMYYYY-NNN code for today.

    extra_skus holds codes already handed out to unsaved lines of the same
    receipt so two new lines never receive the same code.
    """
    day = day or timezone.localdate()
    prefix = f"{MATERIAL_SKU_PREFIX}-{day:%d%m%Y}"
    taken = set(Material.objects.filter(sku__startswith=f"{prefix}-").values_list('sku', flat=True))
    taken.update(sku for sku in (extra_skus or []) if sku)

    sequence = 1
    while f"{prefix}-{sequence:03d}" in taken:
        sequence += 1
    return f"{prefix}-{sequence:03d}"


def round_price(value):
    return Decimal(value).quantize(Decimal('1'), rounding=ROUND_HALF_UP)


def suggest_prices(purchase_price):
    """Retail and wholesale price suggestions derived from the purchase price"""
    purchase_price = Decimal(str(purchase_price or 0))
    return {
        'retail_price': round_price(purchase_price * RETAIL_MARKUP),
        'wholesale_price': round_price(purchase_price * WHOLESALE_MARKUP),
    }


def adjust_stock(item, delta, kind, reason='', user=None, reference='', unit_price=None):
    """
    Apply a signed stock change to a Material or Product and record it.

    The row is re-read under a lock so concurrent movements see each
    other's results. Raises InsufficientStock instead of going negative.
    """
    delta = Decimal(str(delta))
    model = type(item)
    with transaction.atomic():
        locked = model.objects.select_for_update().get(pk=item.pk)
        before = locked.stock
        after = before + delta
        if after < 0:
            raise InsufficientStock(locked, -delta, before)

        locked.stock = after
        locked.save(update_fields=['stock', 'updated_at'])

        if unit_price is None:
            unit_price = locked.purchase_price if isinstance(locked, Material) else locked.cost_price

        history = StockHistory.objects.create(
            material=locked if isinstance(locked, Material) else None,
            product=locked if isinstance(locked, Product) else None,
            item_name=locked.name,
            item_sku=locked.sku,
            kind=kind,
            quantity=delta,
            quantity_before=before,
            quantity_after=after,
            unit_price=unit_price or Decimal('0.00'),
            reason=reason or '',
            reference=reference or '',
            user=user if user is not None and user.is_authenticated else None,
        )

    item.stock = after
    logger.debug(f"Stock {kind} {delta} on {locked.sku}: {before} -> {after}")
    return history
