"""Payment ledger API views, nested under an order.

There is no update or delete; corrections go through the
``reverse`` action.
"""

from rest_framework import permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from orders.services import get_order_for
from . import services
from .serializers import PaymentSerializer


class PaymentViewSet(viewsets.GenericViewSet):
    permission_classes = [permissions.IsAuthenticated]
    serializer_class = PaymentSerializer

    def get_order(self):
        return get_order_for(self.request.user, self.kwargs.get('order_pk'))

    def list(self, request, *args, **kwargs):
        """Payments for the order, newest first."""
        payments = services.list_payments(self.get_order()).select_related('reversal')
        return Response(self.get_serializer(payments, many=True).data)

    def create(self, request, *args, **kwargs):
        payment = services.add_payment(
            self.get_order(),
            actor=request.user,
            amount=request.data.get('amount'),
            method=request.data.get('method'),
            note=request.data.get('reference') or request.data.get('note'),
            currency_code=request.data.get('currency_code'),
        )
        return Response(self.get_serializer(payment).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['post'], url_path='reverse')
    def reverse(self, request, pk=None, *args, **kwargs):
        reversal = services.reverse_payment(
            self.get_order(),
            pk,
            actor=request.user,
            note=request.data.get('reference') or request.data.get('note'),
        )
        return Response(self.get_serializer(reversal).data, status=status.HTTP_201_CREATED)
