"""DRF serializers for orders APIs."""

from rest_framework import serializers

from .models import Order, OrderItem
from .status import allowed_targets
from .totals import compute_totals


def money_str(money):
    return str(money.quantize())


class OrderItemSerializer(serializers.ModelSerializer):
    """Line item as shown to the order owner."""

    line_total = serializers.SerializerMethodField()

    class Meta:
        model = OrderItem
        fields = ['id', 'description', 'quantity', 'unit_price', 'currency_code', 'line_total', 'created_at']
        read_only_fields = fields

    def get_line_total(self, obj):
        return str(obj.line_total)


class OrderSerializer(serializers.ModelSerializer):
    """Owner-facing order representation.

    Only ``code`` and ``notes`` are writable here; status, ready date,
    adjustments, items and payments each have their own endpoint.
    """

    customer_name = serializers.ReadOnlyField(source='customer.full_name')
    status_display = serializers.CharField(source='get_status_display', read_only=True)
    next_statuses = serializers.SerializerMethodField()
    items = OrderItemSerializer(many=True, read_only=True)
    totals = serializers.SerializerMethodField()
    has_tracking_link = serializers.SerializerMethodField()

    class Meta:
        model = Order
        fields = [
            'id',
            'code',
            'customer',
            'customer_name',
            'currency_code',
            'status',
            'status_display',
            'next_statuses',
            'notes',
            'tax',
            'discount',
            'shipping',
            'created_at',
            'ready_at',
            'delivered_at',
            'cancelled_at',
            'items',
            'totals',
            'has_tracking_link',
        ]
        read_only_fields = [
            'id', 'customer', 'currency_code', 'status', 'tax', 'discount', 'shipping',
            'created_at', 'ready_at', 'delivered_at', 'cancelled_at',
        ]

    def get_next_statuses(self, obj):
        return sorted(s.value for s in allowed_targets(obj.status))

    def get_totals(self, obj):
        return compute_totals(obj).as_dict()

    def get_has_tracking_link(self, obj):
        return hasattr(obj, 'tracking')


class PublicItemSerializer(serializers.Serializer):
    description = serializers.CharField()
    quantity = serializers.IntegerField()
    unit_price = serializers.SerializerMethodField()
    line_total = serializers.SerializerMethodField()

    def get_unit_price(self, obj):
        return money_str(obj.unit_price)

    def get_line_total(self, obj):
        return money_str(obj.line_total)


class PublicPaymentSerializer(serializers.Serializer):
    amount = serializers.SerializerMethodField()
    method = serializers.CharField()
    created_at = serializers.DateTimeField()

    def get_amount(self, obj):
        return money_str(obj.amount)


class PublicAttachmentSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    kind = serializers.CharField()
    url = serializers.CharField(allow_null=True)


class PublicOrderSerializer(serializers.Serializer):
    """Renders :class:`orders.tracking.PublicOrderView`; nothing else reaches the public."""

    code = serializers.CharField()
    status = serializers.CharField()
    currency = serializers.CharField()
    customer_name = serializers.CharField()
    created_at = serializers.DateTimeField()
    ready_at = serializers.DateTimeField(allow_null=True)
    items = PublicItemSerializer(many=True)
    totals = serializers.SerializerMethodField()
    payments = PublicPaymentSerializer(many=True)
    attachments = PublicAttachmentSerializer(many=True)

    def get_totals(self, obj):
        return obj.totals.as_dict()
