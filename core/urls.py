"""URL configuration for the tailor shop backend.

Authenticated API under ``/api/``; the public tracking page and signed file
downloads are outside it and need no credentials.
"""
from django.contrib import admin
from django.urls import include, path
from drf_spectacular.views import SpectacularAPIView, SpectacularRedocView, SpectacularSwaggerView
from rest_framework.routers import DefaultRouter, SimpleRouter
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

from attachments.views import AttachmentViewSet, attachment_download
from clients.views import CustomerViewSet
from finance.views import PaymentViewSet
from orders.views import OrderViewSet
from orders.views_public import track_order


router = DefaultRouter()
router.register(r'clients', CustomerViewSet, basename='customer')
router.register(r'orders', OrderViewSet, basename='order')

order_router = SimpleRouter()
order_router.register(r'payments', PaymentViewSet, basename='order-payment')
order_router.register(r'attachments', AttachmentViewSet, basename='order-attachment')


urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/', include(router.urls)),
    path('api/orders/<int:order_pk>/', include(order_router.urls)),
    path('api/token/', TokenObtainPairView.as_view(), name='token_obtain_pair'),
    path('api/token/refresh/', TokenRefreshView.as_view(), name='token_refresh'),
    path('track/<str:token>/', track_order, name='track-order'),
    path('files/<str:signed>/', attachment_download, name='attachment-download'),
    path('api/schema/', SpectacularAPIView.as_view(), name='schema'),
    path('api/docs/', SpectacularSwaggerView.as_view(url_name='schema'), name='swagger-ui'),
    path('api/redoc/', SpectacularRedocView.as_view(url_name='schema'), name='redoc'),
]
