"""Clients app configuration."""

from django.apps import AppConfig


class ClientsConfig(AppConfig):
    """Django app config for customers and measurements."""

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'clients'
