"""Order lifecycle and item ledger operations.

Every mutating function takes the acting account explicitly (``actor``) and
checks ownership before touching anything. Totals are never written here;
they are derived on read by :mod:`orders.totals`.
"""

from __future__ import annotations

import logging
from decimal import Decimal

from django.db import transaction
from django.utils import timezone
from django.utils.dateparse import parse_datetime

from clients.models import Customer
from core.exceptions import (
    InvalidStateError,
    NotFoundError,
    ValidationError,
    translate_storage_errors,
)
from core.permissions import ensure_owner, is_owner
from finance.money import Money, ensure_currency, normalize_currency, to_decimal, to_whole_number
from .models import Order, OrderItem
from .status import OrderStatus, ensure_transition

logger = logging.getLogger(__name__)

MAX_DESCRIPTION_LENGTH = 255

# Column limits: OrderItem.quantity is a 32-bit integer, prices and
# adjustments are DecimalField(max_digits=12, decimal_places=2).
MAX_QUANTITY = 2147483647
MAX_AMOUNT = Decimal(10) ** 10


def get_order_for(actor, order_id) -> Order:
    """Load an order the actor owns.

    Missing and foreign orders raise the same ``NotFoundError``.
    """

    try:
        order = Order.objects.select_related('customer').get(pk=int(order_id))
    except (Order.DoesNotExist, TypeError, ValueError):
        raise NotFoundError()
    if not is_owner(actor, order):
        raise NotFoundError()
    return order


def _lock(order: Order) -> Order:
    try:
        return Order.objects.select_for_update().get(pk=order.pk)
    except Order.DoesNotExist:
        raise NotFoundError()


def _ensure_editable(order: Order) -> None:
    if order.is_terminal:
        raise InvalidStateError(f'Order is {order.status}; items can no longer be changed.')


def clean_description(value) -> str:
    description = str(value or '').strip()
    if not description:
        raise ValidationError({'description': 'Description is required.'})
    if len(description) > MAX_DESCRIPTION_LENGTH:
        raise ValidationError({'description': f'Description must be at most {MAX_DESCRIPTION_LENGTH} characters.'})
    return description


def clean_quantity(value) -> int:
    quantity = to_whole_number(value, 'quantity', maximum=MAX_QUANTITY)
    if quantity <= 0:
        raise ValidationError({'quantity': 'Quantity must be at least 1.'})
    return quantity


def clean_amount(value, currency: str, field: str) -> Decimal:
    """Return a non-negative amount with at most two decimals in ``currency``.

    ``value`` may be a plain number or a :class:`Money` (whose currency must match).
    """

    if isinstance(value, Money):
        amount = Money.of(value, currency).amount
    else:
        amount = to_decimal(value, field)
    if amount < 0:
        raise ValidationError({field: 'Amount cannot be negative.'})
    if amount >= MAX_AMOUNT:
        raise ValidationError({field: f'Amount must be below {MAX_AMOUNT:,}.'})
    if amount != amount.quantize(Decimal('0.01')):
        raise ValidationError({field: 'Use at most two decimal places.'})
    return amount


def _clean_ready_at(value):
    if value in (None, ''):
        return None
    if isinstance(value, str):
        parsed = parse_datetime(value)
        if parsed is None:
            raise ValidationError({'ready_at': 'Use an ISO 8601 date and time.'})
        value = parsed
    if timezone.is_naive(value):
        value = timezone.make_aware(value)
    return value


@translate_storage_errors
def create_order(*, actor, customer, currency_code, code=None, notes=None, ready_at=None,
                 tax=None, discount=None, shipping=None, items=()) -> Order:
    """Create a pending order for one of the actor's customers, with its first items."""

    if not isinstance(customer, Customer):
        try:
            customer = Customer.objects.get(pk=int(customer))
        except (Customer.DoesNotExist, TypeError, ValueError):
            raise NotFoundError()
    ensure_owner(actor, customer)

    currency = normalize_currency(currency_code)
    adjustments = {
        name: (clean_amount(value, currency, name) if value not in (None, '') else None)
        for name, value in (('tax', tax), ('discount', discount), ('shipping', shipping))
    }
    cleaned_items = [_clean_item(currency, item) for item in (items or ())]

    with transaction.atomic():
        order = Order.objects.create(
            owner=actor,
            customer=customer,
            currency_code=currency,
            code=str(code or '').strip(),
            notes=str(notes or '').strip(),
            ready_at=_clean_ready_at(ready_at),
            status=OrderStatus.PENDING,
            **adjustments,
        )
        OrderItem.objects.bulk_create([
            OrderItem(order=order, currency_code=currency, **fields) for fields in cleaned_items
        ])

    logger.info("Created order %s for customer %s (%s, %d items)", order.pk, customer.pk, currency, len(cleaned_items))
    return order


def _clean_item(currency: str, item) -> dict:
    if not isinstance(item, dict):
        raise ValidationError({'items': 'Each item must be an object.'})
    ensure_currency(currency, item.get('currency_code'))
    return {
        'description': clean_description(item.get('description')),
        'quantity': clean_quantity(item.get('quantity')),
        'unit_price': clean_amount(item.get('unit_price'), currency, 'unit_price'),
    }


@translate_storage_errors
def add_item(order: Order, *, actor, description, quantity, unit_price, currency_code=None) -> OrderItem:
    """Append a line item to a non-terminal order."""
    ensure_owner(actor, order)
    with transaction.atomic():
        current = _lock(order)
        _ensure_editable(current)
        fields = _clean_item(current.currency_code, {
            'description': description,
            'quantity': quantity,
            'unit_price': unit_price,
            'currency_code': currency_code,
        })
        item = OrderItem.objects.create(order=current, currency_code=current.currency_code, **fields)
    return item


@translate_storage_errors
def update_item(order: Order, item_id, *, actor, description=None, quantity=None, unit_price=None) -> OrderItem:
    """Edit an existing item; omitted fields keep their value."""
    ensure_owner(actor, order)
    with transaction.atomic():
        current = _lock(order)
        _ensure_editable(current)
        item = _get_item(current, item_id)
        if description is not None:
            item.description = clean_description(description)
        if quantity is not None:
            item.quantity = clean_quantity(quantity)
        if unit_price is not None:
            item.unit_price = clean_amount(unit_price, current.currency_code, 'unit_price')
        item.save(update_fields=['description', 'quantity', 'unit_price'])
    return item


@translate_storage_errors
def remove_item(order: Order, item_id, *, actor) -> None:
    ensure_owner(actor, order)
    with transaction.atomic():
        current = _lock(order)
        _ensure_editable(current)
        _get_item(current, item_id).delete()


def _get_item(order: Order, item_id) -> OrderItem:
    try:
        return OrderItem.objects.get(order=order, pk=int(item_id))
    except (OrderItem.DoesNotExist, TypeError, ValueError):
        raise NotFoundError()


def list_items(order: Order):
    """Items in insertion order. The queryset can be iterated again for a fresh read."""
    return OrderItem.objects.filter(order_id=order.pk).order_by('created_at', 'id')


@translate_storage_errors
def set_status(order: Order, new_status, *, actor) -> Order:
    """Move the order along its lifecycle.

    On failure neither the stored row nor ``order`` is modified.
    """

    ensure_owner(actor, order)
    with transaction.atomic():
        current = _lock(order)
        previous = current.status
        target = ensure_transition(previous, new_status)

        current.status = target
        now = timezone.now()
        if target == OrderStatus.DELIVERED and not current.delivered_at:
            current.delivered_at = now
        if target == OrderStatus.CANCELLED and not current.cancelled_at:
            current.cancelled_at = now
        current.save(update_fields=['status', 'delivered_at', 'cancelled_at'])

    order.status = current.status
    order.delivered_at = current.delivered_at
    order.cancelled_at = current.cancelled_at
    logger.info("Order %s status %s -> %s", order.pk, previous, target.value)
    return order


@translate_storage_errors
def set_ready_at(order: Order, ready_at, *, actor) -> Order:
    """Set, revise or clear the promised completion time.

    Not governed by the status machine, but closed once the order is delivered
    or cancelled.
    """

    ensure_owner(actor, order)
    value = _clean_ready_at(ready_at)
    with transaction.atomic():
        current = _lock(order)
        if current.is_terminal:
            raise InvalidStateError(f'Order is {current.status}; the ready date can no longer be changed.')
        current.ready_at = value
        current.save(update_fields=['ready_at'])
    order.ready_at = value
    return order


@translate_storage_errors
def update_adjustments(order: Order, *, actor, **changes) -> Order:
    """Change tax, discount or shipping. Passing ``None`` leaves a value alone."""
    ensure_owner(actor, order)
    unknown = set(changes) - {'tax', 'discount', 'shipping'}
    if unknown:
        raise ValidationError({name: 'Unknown adjustment.' for name in sorted(unknown)})

    with transaction.atomic():
        current = _lock(order)
        if current.is_terminal:
            raise InvalidStateError(f'Order is {current.status}; adjustments can no longer be changed.')
        updated = []
        for name, value in changes.items():
            if value is None:
                continue
            setattr(current, name, None if value == '' else clean_amount(value, current.currency_code, name))
            updated.append(name)
        if updated:
            current.save(update_fields=updated)

    for name in updated:
        setattr(order, name, getattr(current, name))
    return order
