"""REST framework hooks."""

from django.http import Http404
from rest_framework import exceptions
from rest_framework.views import exception_handler as drf_exception_handler

from .exceptions import DomainError, NotFoundError


def exception_handler(exc, context):
    """DRF exception handler that tags domain errors with their kind.

    Body shape: ``{"code": "...", "detail": ...}``. Django's ``Http404`` is
    folded into ``NotFoundError`` so every not-found response looks the same,
    and serializer validation failures share the ``validation_error`` code.
    """

    if isinstance(exc, Http404):
        exc = NotFoundError()
    response = drf_exception_handler(exc, context)
    if response is None:
        return response
    if isinstance(exc, DomainError):
        response.data = {'code': exc.default_code, 'detail': exc.detail}
    elif isinstance(exc, exceptions.ValidationError):
        response.data = {'code': 'validation_error', 'detail': response.data}
    return response
