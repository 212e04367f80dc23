"""Database models for the append-only payment ledger."""

from django.db import models

from orders.models import Order


class PaymentMethod(models.TextChoices):
    CASH = 'cash', 'Cash'
    MOBILE_MONEY = 'mobile_money', 'Mobile money'
    CARD = 'card', 'Card'


class Payment(models.Model):
    """One ledger entry against an order.

    Entries are never edited or deleted. A correction is a new entry with a
    negative amount that points at the payment it reverses.
    """

    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name='payments')
    amount = models.BigIntegerField()
    currency_code = models.CharField(max_length=3)
    method = models.CharField(max_length=20, choices=PaymentMethod.choices)
    reference = models.CharField(max_length=255, blank=True, default='')
    reverses = models.OneToOneField(
        'self',
        on_delete=models.RESTRICT,
        null=True,
        blank=True,
        related_name='reversal',
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['order', 'created_at'], name='payment_order_created_idx'),
        ]

    def __str__(self):
        return f"{self.amount} {self.currency_code} ({self.method}) for Order #{self.order_id}"

    @property
    def is_reversal(self):
        return self.reverses_id is not None
