"""Orders API views.

Owners create orders, edit their items, move them through the lifecycle,
read their totals and share a public tracking link.
"""

from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import filters, mixins, permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from core.exceptions import ValidationError
from core.pagination import StandardResultsSetPagination
from core.permissions import IsOwner
from . import services
from .models import Order
from .serializers import OrderItemSerializer, OrderSerializer
from .status import OrderStatus, allowed_targets
from .totals import compute_totals
from .tracking import issue_or_retrieve_token, tracking_url


class OrderViewSet(
    mixins.CreateModelMixin,
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.UpdateModelMixin,
    viewsets.GenericViewSet,
):
    """Order API endpoints for the shop owner.

    Every queryset is scoped to the authenticated owner, so foreign orders
    look exactly like missing ones.
    """

    permission_classes = [permissions.IsAuthenticated, IsOwner]
    serializer_class = OrderSerializer
    pagination_class = StandardResultsSetPagination
    filter_backends = [DjangoFilterBackend, filters.OrderingFilter]
    filterset_fields = ['status', 'customer']
    ordering_fields = ['created_at', 'ready_at']
    ordering = ['-created_at']
    http_method_names = ['get', 'post', 'patch', 'delete', 'head', 'options']

    def get_queryset(self):
        return (
            Order.objects.filter(owner=self.request.user)
            .select_related('customer', 'tracking')
            .prefetch_related('items')
        )

    def create(self, request, *args, **kwargs):
        data = request.data
        order = services.create_order(
            actor=request.user,
            customer=data.get('customer'),
            currency_code=data.get('currency_code'),
            code=data.get('code'),
            notes=data.get('notes'),
            ready_at=data.get('ready_at'),
            tax=data.get('tax'),
            discount=data.get('discount'),
            shipping=data.get('shipping'),
            items=data.get('items') or (),
        )
        serializer = self.get_serializer(order)
        return Response(serializer.data, status=status.HTTP_201_CREATED)

    @action(detail=False, methods=['get'], url_path='statuses')
    def statuses(self, request):
        """List every status with its legal successors, for dropdowns."""
        return Response([
            {'value': s.value, 'label': s.label, 'next': sorted(t.value for t in allowed_targets(s))}
            for s in OrderStatus
        ])

    @action(detail=True, methods=['post'], url_path='items')
    def add_item(self, request, pk=None):
        order = self.get_object()
        item = services.add_item(
            order,
            actor=request.user,
            description=request.data.get('description'),
            quantity=request.data.get('quantity'),
            unit_price=request.data.get('unit_price'),
            currency_code=request.data.get('currency_code'),
        )
        return Response(OrderItemSerializer(item).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['patch', 'delete'], url_path=r'items/(?P<item_id>[^/.]+)')
    def item_detail(self, request, pk=None, item_id=None):
        order = self.get_object()
        if request.method == 'DELETE':
            services.remove_item(order, item_id, actor=request.user)
            return Response(status=status.HTTP_204_NO_CONTENT)
        item = services.update_item(
            order,
            item_id,
            actor=request.user,
            description=request.data.get('description'),
            quantity=request.data.get('quantity'),
            unit_price=request.data.get('unit_price'),
        )
        return Response(OrderItemSerializer(item).data)

    @action(detail=True, methods=['patch'], url_path='set-status')
    def set_status(self, request, pk=None):
        """Payload: ``{"status": "confirmed"}``."""
        order = self.get_object()
        services.set_status(order, request.data.get('status'), actor=request.user)
        return Response(self.get_serializer(order).data)

    @action(detail=True, methods=['patch'], url_path='set-ready-at')
    def set_ready_at(self, request, pk=None):
        """Payload: ``{"ready_at": "2026-05-01T10:00:00Z"}``; ``null`` clears it."""
        order = self.get_object()
        if 'ready_at' not in request.data:
            raise ValidationError({'ready_at': 'This field is required.'})
        services.set_ready_at(order, request.data.get('ready_at'), actor=request.user)
        return Response(self.get_serializer(order).data)

    @action(detail=True, methods=['patch'], url_path='adjustments')
    def adjustments(self, request, pk=None):
        order = self.get_object()
        services.update_adjustments(
            order,
            actor=request.user,
            **{name: request.data.get(name) for name in ('tax', 'discount', 'shipping')},
        )
        return Response(self.get_serializer(order).data)

    @action(detail=True, methods=['get'], url_path='totals')
    def totals(self, request, pk=None):
        return Response(compute_totals(self.get_object()).as_dict())

    @action(detail=True, methods=['post'], url_path='share')
    def share(self, request, pk=None):
        """Return the public tracking link, creating it on first use."""
        order = self.get_object()
        token = issue_or_retrieve_token(order, actor=request.user)
        return Response({'token': token, 'url': tracking_url(request, token)})
