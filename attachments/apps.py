"""Attachments app configuration and signal registration."""

from django.apps import AppConfig


class AttachmentsConfig(AppConfig):
    """Django app config for attachments; registers signal handlers."""

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'attachments'

    def ready(self):
        """Import signal handlers on app ready."""
        import attachments.signals  # noqa: F401
