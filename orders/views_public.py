"""Unauthenticated, read-only order tracking endpoint."""

from rest_framework.decorators import api_view, authentication_classes, permission_classes, throttle_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.throttling import AnonRateThrottle

from .serializers import PublicOrderSerializer
from .tracking import resolve


class TrackingRateThrottle(AnonRateThrottle):
    """Per-client limit on token lookups; token entropy is the only other defence."""

    scope = 'tracking'


@api_view(['GET'])
@authentication_classes([])
@permission_classes([AllowAny])
@throttle_classes([TrackingRateThrottle])
def track_order(request, token):
    """Public snapshot of one order, addressed by its tracking token."""
    view = resolve(token, request=request)
    return Response(PublicOrderSerializer(view).data)
