"""Django admin configuration for attachments."""

from django.contrib import admin

from .models import Attachment


@admin.register(Attachment)
class AttachmentAdmin(admin.ModelAdmin):
    list_display = ('id', 'order', 'kind', 'content_type', 'created_at')
    list_filter = ('kind',)
    readonly_fields = ('order', 'file', 'content_type', 'kind', 'created_at')

    def has_add_permission(self, request):
        return False
