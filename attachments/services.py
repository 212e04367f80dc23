"""Uploading, listing and deleting order attachments."""

import logging
import mimetypes

from django.db import transaction

from core.exceptions import NotFoundError, StorageFailure, ValidationError, translate_storage_errors
from core.permissions import ensure_owner
from .models import Attachment, AttachmentKind

logger = logging.getLogger(__name__)

DOCUMENT_TYPES = {
    'application/pdf',
    'application/msword',
    'application/vnd.openxmlformats-officedocument.wordprocessingml.document',
    'application/vnd.ms-excel',
    'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet',
}


def classify(content_type: str) -> str:
    ct = (content_type or '').split(';')[0].strip().lower()
    if ct.startswith('image/'):
        return AttachmentKind.IMAGE
    if ct.startswith('text/') or ct in DOCUMENT_TYPES:
        return AttachmentKind.DOCUMENT
    return AttachmentKind.OTHER


@translate_storage_errors
def upload_attachment(order, *, actor, uploaded_file, caption=None) -> Attachment:
    """Store ``uploaded_file`` and record it against ``order``."""
    ensure_owner(actor, order)
    if uploaded_file is None:
        raise ValidationError({'file': 'A file is required.'})

    content_type = getattr(uploaded_file, 'content_type', None) or mimetypes.guess_type(uploaded_file.name or '')[0] or ''
    try:
        with transaction.atomic():
            attachment = Attachment.objects.create(
                order=order,
                file=uploaded_file,
                content_type=content_type[:100],
                kind=classify(content_type),
                caption=str(caption or '').strip()[:255],
            )
    except OSError as exc:
        raise StorageFailure() from exc

    logger.info("Stored attachment %s (%s) on order %s", attachment.pk, attachment.kind, order.pk)
    return attachment


def list_attachments(order):
    return Attachment.objects.filter(order_id=order.pk).order_by('-created_at', '-id')


@translate_storage_errors
def delete_attachment(order, attachment_id, *, actor) -> None:
    """Delete the record; the stored object goes with it (see signals)."""
    ensure_owner(actor, order)
    try:
        attachment = Attachment.objects.get(order=order, pk=int(attachment_id))
    except (Attachment.DoesNotExist, TypeError, ValueError):
        raise NotFoundError()
    attachment.delete()
