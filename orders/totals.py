"""Derived order totals.

Totals are computed from the item and payment rows on every read and are
never stored. Nothing is rounded until presentation.
"""

from __future__ import annotations

from dataclasses import dataclass

from core.exceptions import CurrencyMismatchError, ValidationError
from finance.models import Payment
from finance.money import Money, money_sum, normalize_currency, to_decimal
from .models import OrderItem


@dataclass(frozen=True)
class Totals:
    subtotal: Money
    tax: Money
    discount: Money
    shipping: Money
    computed_total: Money
    paid_total: Money
    balance: Money

    @property
    def currency(self) -> str:
        return self.subtotal.currency

    @property
    def display_total(self) -> Money:
        """``computed_total`` floored at zero, for display only."""
        zero = Money.zero(self.currency)
        return zero if self.computed_total < zero else self.computed_total

    def as_dict(self) -> dict:
        data = {
            name: str(getattr(self, name).quantize())
            for name in ('subtotal', 'tax', 'discount', 'shipping', 'computed_total', 'paid_total', 'balance')
        }
        data['display_total'] = str(self.display_total.quantize())
        data['currency'] = self.currency
        return data


def _row_currency(expected: str, code) -> None:
    if normalize_currency(code) != expected:
        raise CurrencyMismatchError(f'Order currency is {expected}, found a row in {code}.')


def line_total(quantity, unit_price, currency_code, order_currency: str) -> Money:
    """Line total of one stored item row, validated before use."""
    _row_currency(order_currency, currency_code)
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise ValidationError({'quantity': f'Stored item has an invalid quantity: {quantity!r}.'})
    price = Money(to_decimal(unit_price, 'unit_price'), order_currency)
    if price.is_negative:
        raise ValidationError({'unit_price': 'Stored item has a negative unit price.'})
    return price * quantity


def _payment_amount(amount, currency_code, order_currency: str) -> Money:
    _row_currency(order_currency, currency_code)
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise ValidationError({'amount': f'Stored payment has an invalid amount: {amount!r}.'})
    return Money(to_decimal(amount), order_currency)


def _adjustment(value, currency: str, field: str) -> Money:
    if value is None:
        return Money.zero(currency)
    return Money(to_decimal(value, field), currency)


def compute_totals(order) -> Totals:
    """Aggregate items, adjustments and payments of ``order`` into one snapshot."""
    currency = normalize_currency(order.currency_code)

    item_rows = OrderItem.objects.filter(order_id=order.pk).values_list('quantity', 'unit_price', 'currency_code')
    subtotal = money_sum((line_total(q, p, c, currency) for q, p, c in item_rows), currency)

    tax = _adjustment(order.tax, currency, 'tax')
    discount = _adjustment(order.discount, currency, 'discount')
    shipping = _adjustment(order.shipping, currency, 'shipping')
    computed_total = subtotal + tax + shipping - discount

    payment_rows = Payment.objects.filter(order_id=order.pk).values_list('amount', 'currency_code')
    paid_total = money_sum((_payment_amount(a, c, currency) for a, c in payment_rows), currency)

    return Totals(
        subtotal=subtotal,
        tax=tax,
        discount=discount,
        shipping=shipping,
        computed_total=computed_total,
        paid_total=paid_total,
        balance=computed_total - paid_total,
    )
