"""Attachment API views.

Owners upload and delete files under an order; anyone holding a signed
link can download the file until the link expires.
"""

import os

from django.http import FileResponse
from rest_framework import permissions, status, viewsets
from rest_framework.decorators import api_view, authentication_classes, permission_classes
from rest_framework.parsers import FormParser, MultiPartParser
from rest_framework.response import Response

from core.exceptions import StorageFailure
from orders.services import get_order_for
from . import services
from .gateway import AttachmentGateway
from .serializers import AttachmentSerializer


class AttachmentViewSet(viewsets.GenericViewSet):
    permission_classes = [permissions.IsAuthenticated]
    serializer_class = AttachmentSerializer
    parser_classes = [MultiPartParser, FormParser]

    def get_order(self):
        return get_order_for(self.request.user, self.kwargs.get('order_pk'))

    def list(self, request, *args, **kwargs):
        attachments = services.list_attachments(self.get_order())
        return Response(self.get_serializer(attachments, many=True).data)

    def create(self, request, *args, **kwargs):
        order = self.get_order()
        files = request.FILES.getlist('file') or request.FILES.getlist('files')
        if not files:
            files = [None]
        created = [
            services.upload_attachment(order, actor=request.user, uploaded_file=f, caption=request.data.get('caption'))
            for f in files
        ]
        return Response(self.get_serializer(created, many=True).data, status=status.HTTP_201_CREATED)

    def destroy(self, request, pk=None, *args, **kwargs):
        services.delete_attachment(self.get_order(), pk, actor=request.user)
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@authentication_classes([])
@permission_classes([permissions.AllowAny])
def attachment_download(request, signed):
    """Serve the file behind a signed link."""
    attachment = AttachmentGateway().verify(signed)
    try:
        handle = attachment.file.open('rb')
    except OSError as exc:
        raise StorageFailure() from exc
    ext = os.path.splitext(attachment.file.name)[1]
    response = FileResponse(
        handle,
        content_type=attachment.content_type or 'application/octet-stream',
        filename=f'attachment-{attachment.pk}{ext}',
    )
    response['Cache-Control'] = 'private, no-store'
    return response
