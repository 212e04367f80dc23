"""Orders app configuration."""

from django.apps import AppConfig


class OrdersConfig(AppConfig):
    """Django app config for orders, items and tracking links."""

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'orders'
