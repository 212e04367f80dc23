"""Payment ledger operations.

The ledger is append-only: payments are recorded and, when they turn out to
be wrong, reversed by a second entry carrying the negated amount.
"""

import logging

from django.db import IntegrityError, transaction

from core.exceptions import InvalidStateError, NotFoundError, ValidationError, translate_storage_errors
from core.permissions import ensure_owner
from .models import Payment, PaymentMethod
from .money import Money, ensure_currency, to_whole_number

logger = logging.getLogger(__name__)

METHOD_ALIASES = {
    'momo': PaymentMethod.MOBILE_MONEY,
    'mobile-money': PaymentMethod.MOBILE_MONEY,
    'mobile money': PaymentMethod.MOBILE_MONEY,
}


def clean_method(value) -> PaymentMethod:
    key = str(value or '').strip().lower()
    key = METHOD_ALIASES.get(key, key)
    try:
        return PaymentMethod(key)
    except ValueError:
        allowed = ', '.join(PaymentMethod.values)
        raise ValidationError({'method': f'Payment method must be one of: {allowed}.'})


# Payment.amount is a signed 64-bit column.
MAX_PAYMENT_AMOUNT = 2 ** 63 - 1


def clean_payment_amount(value) -> int:
    amount = to_whole_number(value, 'amount', maximum=MAX_PAYMENT_AMOUNT)
    if amount <= 0:
        raise ValidationError({'amount': 'Amount must be a positive whole number.'})
    return amount


@translate_storage_errors
def add_payment(order, *, actor, amount, method, note=None, currency_code=None) -> Payment:
    """Record a payment received for ``order``."""
    ensure_owner(actor, order)
    ensure_currency(order.currency_code, currency_code)
    if isinstance(amount, Money):
        ensure_currency(order.currency_code, amount.currency)
        amount = amount.amount
    payment = Payment.objects.create(
        order=order,
        amount=clean_payment_amount(amount),
        currency_code=order.currency_code,
        method=clean_method(method),
        reference=str(note or '').strip()[:255],
    )
    logger.info("Recorded payment %s of %s %s on order %s", payment.pk, payment.amount, payment.currency_code, order.pk)
    return payment


@translate_storage_errors
def reverse_payment(order, payment_id, *, actor, note=None) -> Payment:
    """Cancel out an earlier payment with a negative ledger entry.

    Each payment can be reversed once, and reversals themselves cannot be
    reversed.
    """

    ensure_owner(actor, order)
    try:
        original = Payment.objects.get(order=order, pk=int(payment_id))
    except (Payment.DoesNotExist, TypeError, ValueError):
        raise NotFoundError()

    if original.is_reversal:
        raise InvalidStateError('A reversal cannot itself be reversed.')
    if Payment.objects.filter(reverses=original).exists():
        raise InvalidStateError('This payment has already been reversed.')

    try:
        with transaction.atomic():
            reversal = Payment.objects.create(
                order=order,
                amount=-original.amount,
                currency_code=original.currency_code,
                method=original.method,
                reference=str(note or '').strip()[:255] or f'Reversal of payment #{original.pk}',
                reverses=original,
            )
    except IntegrityError:
        raise InvalidStateError('This payment has already been reversed.')

    logger.info("Reversed payment %s on order %s", original.pk, order.pk)
    return reversal


def list_payments(order):
    """Ledger entries for ``order``, newest first."""
    return Payment.objects.filter(order_id=order.pk).order_by('-created_at', '-id')
