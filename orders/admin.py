"""Django admin configuration for orders and related models."""

from django import forms
from django.contrib import admin

from core.exceptions import DomainError
from finance.models import Payment
from . import services
from .models import Order, OrderItem, TrackingToken


def _run_cleaner(cleaner, value, field):
    """Apply a service-layer cleaner and report its failure as a form error."""
    try:
        return cleaner(value)
    except DomainError as exc:
        detail = exc.detail
        message = detail.get(field, detail) if isinstance(detail, dict) else detail
        raise forms.ValidationError(str(message))


class OrderItemAdminForm(forms.ModelForm):
    """Item form held to the same rules as the API."""

    class Meta:
        model = OrderItem
        fields = ('description', 'quantity', 'unit_price')

    def clean_description(self):
        return _run_cleaner(services.clean_description, self.cleaned_data.get('description'), 'description')

    def clean_quantity(self):
        return _run_cleaner(services.clean_quantity, self.cleaned_data.get('quantity'), 'quantity')

    def clean_unit_price(self):
        currency = self.instance.currency_code
        return _run_cleaner(
            lambda value: services.clean_amount(value, currency, 'unit_price'),
            self.cleaned_data.get('unit_price'),
            'unit_price',
        )


class OrderAdminForm(forms.ModelForm):
    """Adjustments are optional but otherwise follow the API rules."""

    class Meta:
        model = Order
        fields = '__all__'

    def _clean_adjustment(self, field):
        value = self.cleaned_data.get(field)
        if value is None:
            return None
        currency = self.cleaned_data.get('currency_code') or self.instance.currency_code
        return _run_cleaner(lambda v: services.clean_amount(v, currency, field), value, field)

    def clean_tax(self):
        return self._clean_adjustment('tax')

    def clean_discount(self):
        return self._clean_adjustment('discount')

    def clean_shipping(self):
        return self._clean_adjustment('shipping')


class OrderItemInline(admin.TabularInline):
    """Inline display of order line items."""

    model = OrderItem
    form = OrderItemAdminForm
    extra = 0
    fields = ('description', 'quantity', 'unit_price', 'currency_code', 'created_at')
    readonly_fields = ('currency_code', 'created_at')

    # Items of delivered/cancelled orders are frozen for billing history.
    def has_add_permission(self, request, obj=None):
        return not (obj and obj.is_terminal) and super().has_add_permission(request, obj)

    def has_change_permission(self, request, obj=None):
        return not (obj and obj.is_terminal) and super().has_change_permission(request, obj)

    def has_delete_permission(self, request, obj=None):
        return not (obj and obj.is_terminal) and super().has_delete_permission(request, obj)


class PaymentInline(admin.TabularInline):
    """Read-only view of the order's payment ledger."""

    model = Payment
    fk_name = 'order'
    extra = 0
    can_delete = False
    max_num = 0
    fields = ('amount', 'currency_code', 'method', 'reference', 'reverses', 'created_at')
    readonly_fields = fields


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    """Admin configuration for customer orders."""

    form = OrderAdminForm
    list_display = ('id', 'code', 'customer', 'owner', 'status', 'currency_code', 'created_at', 'ready_at')
    list_filter = ('status', 'currency_code', 'created_at')
    search_fields = ('id', 'code', 'customer__full_name', 'owner__username')
    # Status goes through the lifecycle rules in orders.services; currency is fixed.
    readonly_fields = ('status', 'currency_code', 'created_at', 'delivered_at', 'cancelled_at')
    inlines = [OrderItemInline, PaymentInline]

    def get_readonly_fields(self, request, obj=None):
        if obj is None:
            return ('status', 'created_at', 'delivered_at', 'cancelled_at')
        fields = super().get_readonly_fields(request, obj)
        if obj.is_terminal:
            fields = tuple(fields) + ('ready_at', 'tax', 'discount', 'shipping')
        return fields

    def save_formset(self, request, form, formset, change):
        """Stamp new items with the order currency."""
        instances = formset.save(commit=False)
        for obj in formset.deleted_objects:
            obj.delete()
        for instance in instances:
            if isinstance(instance, OrderItem):
                instance.currency_code = form.instance.currency_code
            instance.save()
        formset.save_m2m()


@admin.register(TrackingToken)
class TrackingTokenAdmin(admin.ModelAdmin):
    list_display = ('id', 'order', 'created_at')
    readonly_fields = ('order', 'token', 'created_at')

    def has_add_permission(self, request):
        return False
