"""Database models for orders, order items and public tracking tokens."""

from django.conf import settings
from django.db import models

from clients.models import Customer
from .status import OrderStatus, TERMINAL_STATUSES


class Order(models.Model):
    """A single customer commission.

    The currency is fixed at creation and applies to every item and payment.
    Totals are never stored here; see :func:`orders.totals.compute_totals`.
    """

    owner = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='orders')
    customer = models.ForeignKey(Customer, on_delete=models.CASCADE, related_name='orders')
    code = models.CharField(max_length=120, blank=True, default='')
    currency_code = models.CharField(max_length=3)
    status = models.CharField(max_length=20, choices=OrderStatus.choices, default=OrderStatus.PENDING)
    notes = models.TextField(blank=True, default='')

    # Adjustment inputs for the totals; missing values count as zero.
    tax = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    discount = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    shipping = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    ready_at = models.DateTimeField(null=True, blank=True)
    delivered_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['owner', 'created_at'], name='order_owner_created_idx'),
            models.Index(fields=['owner', 'status', 'created_at'], name='order_owner_status_idx'),
        ]

    def __str__(self):
        return f"Order #{self.id} - {self.code or self.customer}"

    @property
    def is_terminal(self):
        return self.status in TERMINAL_STATUSES


class OrderItem(models.Model):
    """Line item inside an order."""

    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name='items')
    description = models.CharField(max_length=255)
    quantity = models.PositiveIntegerField(default=1)
    unit_price = models.DecimalField(max_digits=12, decimal_places=2)
    currency_code = models.CharField(max_length=3)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['created_at', 'id']
        indexes = [
            models.Index(fields=['order', 'created_at'], name='orderitem_order_created_idx'),
        ]

    def __str__(self):
        return f"{self.quantity} x {self.description}"

    @property
    def line_total(self):
        return self.unit_price * self.quantity


class TrackingToken(models.Model):
    """Opaque credential for the public, read-only view of one order.

    One row per order; the unique constraint on ``order`` settles races
    between concurrent first requests.
    """

    order = models.OneToOneField(Order, on_delete=models.CASCADE, related_name='tracking')
    token = models.CharField(max_length=64, unique=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"Tracking token for Order #{self.order_id}"
