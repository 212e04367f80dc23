"""Domain error kinds shared by all apps.

Every error is a DRF ``APIException`` so views can let them propagate and
the REST framework renders a JSON body with a stable ``code``. Authorization
failures render exactly like not-found so callers cannot probe for records
they do not own.
"""

import functools

from django.db import DatabaseError
from rest_framework import status
from rest_framework.exceptions import APIException


class DomainError(APIException):
    """Base class for every failure raised by the domain layer."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'The request could not be processed.'
    default_code = 'domain_error'


class ValidationError(DomainError):
    """Malformed input; the caller can correct it and try again."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Invalid input.'
    default_code = 'validation_error'


class CurrencyMismatchError(DomainError):
    """An amount is not in the order's currency."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Currency does not match the order currency.'
    default_code = 'currency_mismatch'


class InvalidStateError(DomainError):
    """The order's current status forbids the operation."""

    status_code = status.HTTP_409_CONFLICT
    default_detail = 'The order cannot be changed in its current status.'
    default_code = 'invalid_state'


class InvalidTransitionError(DomainError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Invalid status transition.'
    default_code = 'invalid_transition'


class NotFoundError(DomainError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'Not found.'
    default_code = 'not_found'


class AuthorizationError(NotFoundError):
    """Caller does not own the resource.

    Rendered as a plain not-found response.
    """


class StorageFailure(DomainError):
    """The database or object store rejected or could not serve the request."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = 'Storage is unavailable, please try again later.'
    default_code = 'storage_failure'


def translate_storage_errors(func):
    """Surface database failures raised inside ``func`` as ``StorageFailure``."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except DatabaseError as exc:
            raise StorageFailure() from exc

    return wrapper

