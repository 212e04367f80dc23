"""Django admin configuration for the payment ledger."""

from django.contrib import admin

from .models import Payment


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    """Read-only admin for payments; the ledger is append-only."""

    list_display = ('id', 'get_order_id', 'amount', 'currency_code', 'method', 'created_at')
    list_filter = ('method', 'currency_code', 'created_at')
    search_fields = ('order__id', 'order__code', 'reference')
    readonly_fields = ('order', 'amount', 'currency_code', 'method', 'reference', 'reverses', 'created_at')

    def get_order_id(self, obj):
        """Render order id in a friendly format."""
        return f"Order #{obj.order_id}"
    get_order_id.short_description = 'Order'

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
