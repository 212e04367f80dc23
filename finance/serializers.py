"""DRF serializers for finance APIs."""

from rest_framework import serializers

from .models import Payment


class PaymentSerializer(serializers.ModelSerializer):
    """Ledger entry as shown to the order owner."""

    method_display = serializers.CharField(source='get_method_display', read_only=True)
    reversed_by = serializers.SerializerMethodField()

    class Meta:
        model = Payment
        fields = ['id', 'amount', 'currency_code', 'method', 'method_display', 'reference', 'reverses', 'reversed_by', 'created_at']
        read_only_fields = fields

    def get_reversed_by(self, obj):
        try:
            return obj.reversal.pk
        except Payment.DoesNotExist:
            return None
