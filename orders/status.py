"""Order lifecycle states and the legal transitions between them.

Orders move forward through the production pipeline
(intake, confirm, cut/sew, ready, pickup). ``cancelled`` can be reached from
any live state and is never left again.
"""

from django.db import models

from core.exceptions import InvalidTransitionError


class OrderStatus(models.TextChoices):
    PENDING = 'pending', 'Pending'
    CONFIRMED = 'confirmed', 'Confirmed'
    ACTIVE = 'active', 'Active'
    IN_PRODUCTION = 'in_production', 'In production'
    READY = 'ready', 'Ready'
    DELIVERED = 'delivered', 'Delivered'
    CANCELLED = 'cancelled', 'Cancelled'


TERMINAL_STATUSES = frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED})

_ALLOWED_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.CONFIRMED, OrderStatus.CANCELLED},
    OrderStatus.CONFIRMED: {OrderStatus.ACTIVE, OrderStatus.CANCELLED},
    OrderStatus.ACTIVE: {OrderStatus.IN_PRODUCTION, OrderStatus.CANCELLED},
    OrderStatus.IN_PRODUCTION: {OrderStatus.READY, OrderStatus.CANCELLED},
    OrderStatus.READY: {OrderStatus.DELIVERED, OrderStatus.CANCELLED},
    OrderStatus.DELIVERED: set(),
    OrderStatus.CANCELLED: set(),
}


def _parse(value):
    try:
        return OrderStatus(str(value or '').strip().lower())
    except ValueError:
        return None


def is_terminal(status) -> bool:
    return _parse(status) in TERMINAL_STATUSES


def allowed_targets(status) -> frozenset:
    current = _parse(status)
    if current is None:
        return frozenset()
    return frozenset(_ALLOWED_TRANSITIONS[current])


def can_transition(current, target) -> bool:
    nxt = _parse(target)
    return nxt is not None and nxt in allowed_targets(current)


def ensure_transition(current, target) -> OrderStatus:
    """Return the parsed target status or raise ``InvalidTransitionError``."""
    nxt = _parse(target)
    if nxt is None:
        raise InvalidTransitionError(f'Unknown status: {target!r}.')
    if is_terminal(current):
        raise InvalidTransitionError(f'Order is already {current}; no further changes are allowed.')
    if not can_transition(current, nxt):
        raise InvalidTransitionError(f'Cannot move an order from {current} to {nxt.value}.')
    return nxt
