"""DRF serializers for attachments APIs."""

from rest_framework import serializers

from .gateway import AttachmentGateway
from .models import Attachment


class AttachmentSerializer(serializers.ModelSerializer):
    """Attachment metadata plus a freshly signed link.

    The stored file path is never part of the output.
    """

    url = serializers.SerializerMethodField()

    class Meta:
        model = Attachment
        fields = ['id', 'kind', 'content_type', 'caption', 'url', 'created_at']
        read_only_fields = fields

    def get_url(self, obj):
        gateway = self.context.get('gateway') or AttachmentGateway()
        return gateway.signed_url(obj, request=self.context.get('request'))
