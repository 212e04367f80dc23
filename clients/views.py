"""Customer and measurement API views, scoped to the signed-in owner."""

from django.shortcuts import get_object_or_404
from rest_framework import filters, permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from core.pagination import StandardResultsSetPagination
from core.permissions import IsOwner
from .models import Customer, Measurement
from .serializers import CustomerSerializer, MeasurementSerializer


class CustomerViewSet(viewsets.ModelViewSet):
    permission_classes = [permissions.IsAuthenticated, IsOwner]
    serializer_class = CustomerSerializer
    pagination_class = StandardResultsSetPagination
    filter_backends = [filters.SearchFilter, filters.OrderingFilter]
    search_fields = ['full_name', 'phone', 'email', 'city']
    ordering_fields = ['full_name', 'created_at']
    ordering = ['-created_at']
    http_method_names = ['get', 'post', 'patch', 'delete', 'head', 'options']

    def get_queryset(self):
        return Customer.objects.filter(owner=self.request.user)

    def perform_create(self, serializer):
        serializer.save(owner=self.request.user)

    @action(detail=True, methods=['get', 'post'], url_path='measurements')
    def measurements(self, request, pk=None):
        customer = self.get_object()
        if request.method == 'GET':
            return Response(MeasurementSerializer(customer.measurements.all(), many=True).data)
        serializer = MeasurementSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        serializer.save(customer=customer)
        return Response(serializer.data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['patch', 'delete'], url_path=r'measurements/(?P<measurement_id>\d+)')
    def measurement_detail(self, request, pk=None, measurement_id=None):
        customer = self.get_object()
        measurement = get_object_or_404(Measurement, customer=customer, pk=measurement_id)
        if request.method == 'DELETE':
            measurement.delete()
            return Response(status=status.HTTP_204_NO_CONTENT)
        serializer = MeasurementSerializer(measurement, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        return Response(serializer.data)
