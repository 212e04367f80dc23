"""Django admin configuration for customers."""

from django.contrib import admin

from .models import Customer, Measurement


class MeasurementInline(admin.TabularInline):
    model = Measurement
    extra = 0


@admin.register(Customer)
class CustomerAdmin(admin.ModelAdmin):
    list_display = ('id', 'full_name', 'owner', 'phone', 'city', 'country_code', 'created_at')
    list_filter = ('country_code',)
    search_fields = ('full_name', 'phone', 'email', 'owner__username')
    inlines = [MeasurementInline]
