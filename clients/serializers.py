"""DRF serializers for customers and measurements."""

import phonenumbers
from rest_framework import serializers

from .models import Customer, Measurement


class MeasurementSerializer(serializers.ModelSerializer):
    class Meta:
        model = Measurement
        fields = ['id', 'name', 'value', 'unit', 'created_at']
        read_only_fields = ['id', 'created_at']

    def validate_name(self, value):
        value = (value or '').strip()
        if len(value) < 2:
            raise serializers.ValidationError("Name is required.")
        return value

    def validate_value(self, value):
        if value < 0:
            raise serializers.ValidationError("Value cannot be negative.")
        return value

    def validate_unit(self, value):
        value = (value or '').strip()
        if value and not (2 <= len(value) <= 10):
            raise serializers.ValidationError("Unit must be 2 to 10 characters.")
        return value


class CustomerSerializer(serializers.ModelSerializer):
    """Customer record.

    Phone numbers are parsed against the customer's country and stored in
    E.164 form.
    """

    orders_count = serializers.SerializerMethodField()

    class Meta:
        model = Customer
        fields = ['id', 'full_name', 'phone', 'email', 'city', 'country_code', 'address', 'notes', 'created_at', 'orders_count']
        read_only_fields = ['id', 'created_at', 'orders_count']

    def get_orders_count(self, obj):
        return obj.orders.count()

    def validate_full_name(self, value):
        value = (value or '').strip()
        if len(value) < 2:
            raise serializers.ValidationError("Full name is required.")
        return value

    def validate_country_code(self, value):
        value = (value or '').strip().upper()
        if len(value) != 2 or not value.isalpha():
            raise serializers.ValidationError("Use a 2-letter ISO country code.")
        return value

    def validate(self, attrs):
        phone = (attrs.get('phone') or '').strip()
        if phone:
            region = attrs.get('country_code') or getattr(self.instance, 'country_code', None)
            try:
                parsed = phonenumbers.parse(phone, region)
            except phonenumbers.NumberParseException:
                raise serializers.ValidationError({'phone': "Enter a valid phone number."})
            if not phonenumbers.is_valid_number(parsed):
                raise serializers.ValidationError({'phone': "Enter a valid phone number."})
            attrs['phone'] = phonenumbers.format_number(parsed, phonenumbers.PhoneNumberFormat.E164)
        elif 'phone' in attrs:
            attrs['phone'] = ''
        return attrs
