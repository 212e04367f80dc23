"""Exact decimal money values tagged with a currency code."""

from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_EVEN

from core.exceptions import CurrencyMismatchError, ValidationError

CENT = Decimal('0.01')

_CURRENCY_RE = re.compile(r'^[A-Z]{3}$')


def normalize_currency(code) -> str:
    """Validate a 3-letter currency code and return it upper-cased."""
    value = str(code or '').strip().upper()
    if not _CURRENCY_RE.match(value):
        raise ValidationError({'currency_code': 'Use a 3-letter currency code.'})
    return value


def to_decimal(value, field: str = 'amount') -> Decimal:
    """Coerce ``value`` into an exact, finite Decimal.

    Floats go through their shortest string form so ``0.1`` becomes
    ``Decimal('0.1')`` rather than the binary expansion.
    """

    if isinstance(value, bool) or value is None:
        raise ValidationError({field: 'A number is required.'})
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, int):
        result = Decimal(value)
    elif isinstance(value, float):
        result = Decimal(repr(value))
    else:
        try:
            result = Decimal(str(value).strip())
        except InvalidOperation:
            raise ValidationError({field: 'A valid number is required.'})
    if not result.is_finite():
        raise ValidationError({field: 'A valid number is required.'})
    return result


@dataclass(frozen=True)
class Money:
    """An amount in one currency.

    Arithmetic never rounds and never mixes currencies; :meth:`quantize`
    is for presentation only.
    """

    amount: Decimal
    currency: str

    @classmethod
    def of(cls, value, currency) -> Money:
        if isinstance(value, Money):
            if value.currency != normalize_currency(currency):
                raise CurrencyMismatchError(
                    f'Expected {normalize_currency(currency)}, got {value.currency}.'
                )
            return value
        return cls(to_decimal(value), normalize_currency(currency))

    @classmethod
    def zero(cls, currency) -> Money:
        return cls(Decimal('0'), normalize_currency(currency))

    def _check(self, other) -> None:
        if not isinstance(other, Money):
            raise TypeError(f'Cannot combine Money with {type(other).__name__}')
        if other.currency != self.currency:
            raise CurrencyMismatchError(f'Cannot combine {self.currency} with {other.currency}.')

    def __add__(self, other: Money) -> Money:
        self._check(other)
        return Money(self.amount + other.amount, self.currency)

    def __sub__(self, other: Money) -> Money:
        self._check(other)
        return Money(self.amount - other.amount, self.currency)

    def __mul__(self, factor) -> Money:
        if isinstance(factor, bool) or not isinstance(factor, (int, Decimal)):
            return NotImplemented
        return Money(self.amount * factor, self.currency)

    __rmul__ = __mul__

    def __neg__(self) -> Money:
        return Money(-self.amount, self.currency)

    def __lt__(self, other: Money) -> bool:
        self._check(other)
        return self.amount < other.amount

    def __le__(self, other: Money) -> bool:
        self._check(other)
        return self.amount <= other.amount

    def __gt__(self, other: Money) -> bool:
        self._check(other)
        return self.amount > other.amount

    def __ge__(self, other: Money) -> bool:
        self._check(other)
        return self.amount >= other.amount

    @property
    def is_negative(self) -> bool:
        return self.amount < 0

    def quantize(self) -> Decimal:
        """Round half-to-even to two decimal places."""
        return self.amount.quantize(CENT, rounding=ROUND_HALF_EVEN)

    def __str__(self):
        return f'{self.quantize()} {self.currency}'


def money_sum(values, currency) -> Money:
    """Sum an iterable of Money without intermediate rounding."""
    total = Money.zero(currency)
    for value in values:
        total = total + value
    return total


def to_whole_number(value, field: str = 'amount', maximum: int = None) -> int:
    """Coerce ``value`` into an int, rejecting fractional amounts.

    ``maximum`` is checked before conversion so oversized input never
    reaches the database.
    """
    number = to_decimal(value, field)
    if maximum is not None and number > maximum:
        raise ValidationError({field: f'Must be at most {maximum}.'})
    if number != number.to_integral_value():
        raise ValidationError({field: 'A whole number is required.'})
    return int(number)


def ensure_currency(expected: str, currency_code) -> None:
    """Raise ``CurrencyMismatchError`` if a given currency differs from ``expected``.

    An empty ``currency_code`` means "the order's currency" and passes.
    """

    if currency_code in (None, ''):
        return
    actual = normalize_currency(currency_code)
    if actual != expected:
        raise CurrencyMismatchError(f'Order currency is {expected}, got {actual}.')
