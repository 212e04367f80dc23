"""Database models for files attached to orders."""

import os

from django.db import models
from django.utils import timezone
from django.utils.crypto import get_random_string

from orders.models import Order


class AttachmentKind(models.TextChoices):
    IMAGE = 'image', 'Image'
    DOCUMENT = 'document', 'Document'
    OTHER = 'other', 'Other'


def attachment_upload_to(instance, filename):
    """Store files as ``orders/<order-id>/<timestamp>_<random>.<ext>``."""
    ext = os.path.splitext(filename or '')[1].lower().lstrip('.')
    stamp = int(timezone.now().timestamp() * 1000)
    name = f"{stamp}_{get_random_string(10).lower()}"
    if ext:
        name = f"{name}.{ext[:10]}"
    return f"orders/{instance.order_id}/{name}"


class Attachment(models.Model):
    """A stored file (usually a photo) belonging to an order.

    ``file`` holds the storage path; it is never rendered to clients.
    """

    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name='attachments')
    file = models.FileField(upload_to=attachment_upload_to, max_length=255)
    content_type = models.CharField(max_length=100, blank=True, default='')
    kind = models.CharField(max_length=20, choices=AttachmentKind.choices, default=AttachmentKind.OTHER)
    caption = models.CharField(max_length=255, blank=True, default='')
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at', '-id']

    def __str__(self):
        return f"Attachment #{self.id} for Order #{self.order_id}"
