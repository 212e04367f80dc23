"""Database models for customers and their body measurements."""

from django.conf import settings
from django.db import models


class Customer(models.Model):
    """A person the shop makes garments for.

    Every customer belongs to exactly one shop owner account.
    """

    owner = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='customers')
    full_name = models.CharField(max_length=200)
    phone = models.CharField(max_length=30, blank=True, default='')
    email = models.EmailField(blank=True, default='')
    city = models.CharField(max_length=120, blank=True, default='')
    country_code = models.CharField(max_length=2)
    address = models.CharField(max_length=500, blank=True, default='')
    notes = models.TextField(max_length=2000, blank=True, default='')
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['owner', 'created_at'], name='customer_owner_created_idx'),
        ]

    def __str__(self):
        return self.full_name

    @property
    def first_name(self):
        return (self.full_name or '').split(' ')[0]


class Measurement(models.Model):
    """A single named measurement (e.g. chest, 96 cm) taken for a customer."""

    customer = models.ForeignKey(Customer, on_delete=models.CASCADE, related_name='measurements')
    name = models.CharField(max_length=100)
    value = models.DecimalField(max_digits=8, decimal_places=2)
    unit = models.CharField(max_length=10, blank=True, default='')
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['name', 'id']

    def __str__(self):
        return f"{self.name}: {self.value} {self.unit}".strip()
