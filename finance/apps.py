"""Finance app configuration."""

from django.apps import AppConfig


class FinanceConfig(AppConfig):
    """Django app config for the payment ledger."""

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'finance'
