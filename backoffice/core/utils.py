"""Audit logging, document numbering and draft helpers shared by every app"""
import logging
from decimal import Decimal, InvalidOperation

from django.db import transaction
from django.utils import timezone

from .models import AuditLog, DocumentSequence, FormDraft

logger = logging.getLogger(__name__)

SALE_PREFIX = 'LTN-BH'
REPAIR_PREFIX = 'LTN-SC'
GOODS_RECEIPT_PREFIX = 'LTN-NK'
PURCHASE_ORDER_PREFIX = 'PO'


class PaymentError(ValueError):
    """Raised when a payment or schedule would break a bookkeeping rule"""


def get_client_ip(request):
    """Extract client IP address from request"""
    if not request or not hasattr(request, 'META'):
        return None
    x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
    if x_forwarded_for:
        ip = x_forwarded_for.split(',')[0].strip()
    else:
        ip = request.META.get('REMOTE_ADDR')
    return ip or None


def create_audit_log(request=None, action=None, model_name=None, object_id=None,
                     changes=None, user=None, object_name=None, object_reference=None):
    """
    Create an audit log entry

    Args:
        request: Django request object (for user and IP) - optional if user is provided
        action: Action type (create, sale_create, debt_collect, etc.)
        model_name: Name of the model being acted upon
        object_id: ID of the object (as string)
        changes: Dictionary of changes made
        user: Optional user override (defaults to request.user if request provided)
        object_name: Human-readable name of the object
        object_reference: Document number of the object
    """
    try:
        audit_user = None
        if user:
            audit_user = user
        elif request and hasattr(request, 'user'):
            audit_user = request.user

        ip_address = get_client_ip(request) if request else None

        if not action or not model_name or not object_id:
            logger.warning(f"Audit log creation skipped: missing required fields (action={action}, model_name={model_name}, object_id={object_id})")
            return None

        return AuditLog.objects.create(
            user=audit_user if audit_user and audit_user.is_authenticated else None,
            action=action,
            model_name=model_name,
            object_id=str(object_id),
            object_name=object_name,
            object_reference=object_reference,
            changes=changes or {},
            ip_address=ip_address
        )
    except Exception as e:
        # Don't fail the main operation if audit logging fails
        logger.error(f"Failed to create audit log: {str(e)}")
        return None


def next_document_number(prefix, day=None):
    """
    Return the next PREFIX-YYYYMMDD-NNNN number for the given prefix.

    The counter row is locked for the duration of the surrounding
    transaction so concurrent checkouts never share a number.
    """
    day = day or timezone.localdate()
    with transaction.atomic():
        sequence, _ = DocumentSequence.objects.select_for_update().get_or_create(prefix=prefix, day=day)
        sequence.last_value += 1
        sequence.save(update_fields=['last_value'])
    return f"{prefix}-{day:%Y%m%d}-{sequence.last_value:04d}"


def discard_draft(user, form_key):
    """Remove a user's autosaved draft once the form has been submitted"""
    if not user or not user.is_authenticated:
        return 0
    deleted, _ = FormDraft.objects.filter(user=user, form_key=form_key).delete()
    if deleted:
        logger.debug(f"Discarded draft '{form_key}' for user {user.pk}")
    return deleted


def to_money(value, default='0'):
    """Parse request input into a Decimal, raising ValueError on junk"""
    if value is None or value == '':
        value = default
    try:
        return Decimal(str(value))
    except (InvalidOperation, TypeError):
        raise ValueError(f"Invalid amount: {value!r}")
