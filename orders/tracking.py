"""Public tracking links.

An order owner can share one opaque token per order. Anyone holding the
token gets a read-only snapshot with a fixed set of fields: no internal
notes, no customer contact data, no storage paths.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from django.conf import settings
from django.db import IntegrityError, transaction
from django.urls import reverse
from django.utils.crypto import get_random_string

from attachments.gateway import AttachmentGateway
from attachments.services import list_attachments
from core.exceptions import (
    CurrencyMismatchError,
    NotFoundError,
    StorageFailure,
    ValidationError,
    translate_storage_errors,
)
from core.permissions import ensure_owner
from finance.money import Money
from finance.services import list_payments
from .models import TrackingToken
from .services import list_items
from .totals import Totals, compute_totals, line_total

logger = logging.getLogger(__name__)

TOKEN_CHARS = 'abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789'

_TOKEN_RE = re.compile(r'^[A-Za-z0-9_-]{1,64}$')


@dataclass(frozen=True)
class PublicItem:
    description: str
    quantity: int
    unit_price: Money
    line_total: Money


@dataclass(frozen=True)
class PublicPayment:
    amount: Money
    method: str
    created_at: datetime


@dataclass(frozen=True)
class PublicAttachment:
    id: int
    kind: str
    url: Optional[str]


@dataclass(frozen=True)
class PublicOrderView:
    code: str
    status: str
    currency: str
    customer_name: str
    created_at: datetime
    ready_at: Optional[datetime]
    items: tuple
    totals: Totals
    payments: tuple
    attachments: tuple


def _new_token() -> str:
    return get_random_string(settings.TRACKING_TOKEN_LENGTH, allowed_chars=TOKEN_CHARS)


def _existing_token(order_id):
    return TrackingToken.objects.filter(order_id=order_id).values_list('token', flat=True).first()


@translate_storage_errors
def issue_or_retrieve_token(order, *, actor) -> str:
    """Return the order's tracking token, minting it on first use.

    Tokens are never regenerated so links that were already shared keep
    working. When two callers race, the unique constraint on the order keeps
    exactly one row and the loser returns the winner's token.
    """

    ensure_owner(actor, order)
    token = _existing_token(order.pk)
    if token:
        return token

    try:
        with transaction.atomic():
            row = TrackingToken.objects.create(order_id=order.pk, token=_new_token())
    except IntegrityError:
        token = _existing_token(order.pk)
        if token is None:
            raise StorageFailure()
        return token

    logger.info("Issued tracking token %s... for order %s", row.token[:4], order.pk)
    return row.token


def tracking_url(request, token: str) -> str:
    path = reverse('track-order', kwargs={'token': token})
    return request.build_absolute_uri(path) if request is not None else path


def build_public_view(order, *, gateway=None, request=None) -> PublicOrderView:
    gateway = gateway or AttachmentGateway()
    currency = order.currency_code

    items = tuple(
        PublicItem(
            description=item.description,
            quantity=item.quantity,
            unit_price=Money(item.unit_price, currency),
            line_total=line_total(item.quantity, item.unit_price, item.currency_code, currency),
        )
        for item in list_items(order)
    )
    payments = tuple(
        PublicPayment(amount=Money(p.amount, currency), method=p.method, created_at=p.created_at)
        for p in list_payments(order)
    )
    attachments = tuple(
        PublicAttachment(id=a.pk, kind=a.kind, url=gateway.signed_url(a, request=request))
        for a in list_attachments(order)
    )

    return PublicOrderView(
        code=order.code,
        status=order.status,
        currency=currency,
        customer_name=order.customer.first_name,
        created_at=order.created_at,
        ready_at=order.ready_at,
        items=items,
        totals=compute_totals(order),
        payments=payments,
        attachments=attachments,
    )


@translate_storage_errors
def resolve(token, *, gateway=None, request=None) -> PublicOrderView:
    """Look up the public view for ``token``.

    Malformed and unknown tokens fail identically with ``NotFoundError``.
    Stored rows that fail validation surface as a plain ``StorageFailure``;
    the detailed message only goes to the log.
    """

    if not isinstance(token, str) or not _TOKEN_RE.match(token):
        raise NotFoundError()
    row = TrackingToken.objects.select_related('order', 'order__customer').filter(token=token).first()
    if row is None:
        logger.debug("Tracking lookup miss")
        raise NotFoundError()
    try:
        return build_public_view(row.order, gateway=gateway, request=request)
    except (ValidationError, CurrencyMismatchError) as exc:
        logger.error("Order %s has invalid stored rows: %s", row.order_id, exc.detail)
        raise StorageFailure() from exc
