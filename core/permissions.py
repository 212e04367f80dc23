"""Ownership checks shared by every app.

Customers and orders both carry an ``owner``; only that account may read or
change them through the authenticated API.
"""

from rest_framework import permissions

from .exceptions import AuthorizationError


def is_owner(actor, obj) -> bool:
    """Answer whether ``actor`` owns ``obj``."""
    if actor is None or not getattr(actor, 'is_authenticated', False):
        return False
    owner_id = getattr(obj, 'owner_id', None)
    return owner_id is not None and owner_id == actor.pk


def ensure_owner(actor, obj) -> None:
    """Raise ``AuthorizationError`` unless ``actor`` owns ``obj``."""
    if not is_owner(actor, obj):
        raise AuthorizationError()


class IsOwner(permissions.BasePermission):
    """Object-level permission: only the owning account may access the object."""

    def has_object_permission(self, request, view, obj):
        return is_owner(request.user, obj)
