import logging

from .models import Customer

logger = logging.getLogger(__name__)


def find_or_create_customer(name, phone):
    """
    Resolve the customer behind a name/phone pair typed at the counter.

    Phone is the stronger identity, so it is matched first; a phone-less
    intake falls back to a case-insensitive name match. Anything else
    becomes a new customer record.
    """
    name = (name or '').strip()
    phone = (phone or '').strip()

    customer = None
    if phone:
        customer = Customer.objects.filter(phone=phone).order_by('created_at').first()
    if customer is None and name:
        customer = Customer.objects.filter(name__iexact=name).order_by('created_at').first()
    if customer is not None:
        return customer, False

    customer = Customer.objects.create(name=name, phone=phone)
    logger.info(f"Created customer {customer.pk} ({name}, {phone}) from counter intake")
    return customer, True
