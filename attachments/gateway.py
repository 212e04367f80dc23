"""Short-lived signed links for stored attachments.

A link carries a signed payload (attachment id + expiry) and never the
storage path. Links are minted on every read and not cached.
"""

import logging
import time

from django.conf import settings
from django.core import signing
from django.urls import reverse

from core.exceptions import NotFoundError
from .models import Attachment

logger = logging.getLogger(__name__)

SIGNING_SALT = 'attachments.signed-url'


class AttachmentGateway:
    """Turn attachment records into temporary download URLs and back."""

    def __init__(self, storage=None, ttl=None, max_ttl=None):
        self.storage = storage
        self.ttl = int(ttl if ttl is not None else settings.ATTACHMENT_URL_TTL)
        self.max_ttl = int(max_ttl if max_ttl is not None else settings.ATTACHMENT_URL_MAX_TTL)

    def _storage_for(self, attachment):
        return self.storage if self.storage is not None else attachment.file.storage

    def _effective_ttl(self, ttl_seconds):
        ttl = self.ttl if ttl_seconds is None else int(ttl_seconds)
        return max(1, min(ttl, self.max_ttl))

    def signed_url(self, attachment, ttl_seconds=None, request=None):
        """Return a temporary URL for ``attachment`` or ``None`` if it cannot be signed.

        ``None`` means the caller should show a placeholder; attachment display
        never blocks reading an order.
        """

        name = getattr(attachment.file, 'name', '') or ''
        if not name:
            return None
        try:
            if not self._storage_for(attachment).exists(name):
                logger.warning("Stored object for attachment %s is missing", attachment.pk)
                return None
            expires = int(time.time()) + self._effective_ttl(ttl_seconds)
            value = signing.dumps({'a': attachment.pk, 'e': expires}, salt=SIGNING_SALT, compress=True)
            path = reverse('attachment-download', kwargs={'signed': value})
        except Exception:
            logger.warning("Could not sign a link for attachment %s", attachment.pk, exc_info=True)
            return None
        return request.build_absolute_uri(path) if request is not None else path

    def verify(self, signed_value) -> Attachment:
        """Return the attachment a link points to.

        Tampered, expired and dangling links all raise the same ``NotFoundError``.
        """

        try:
            payload = signing.loads(str(signed_value), salt=SIGNING_SALT)
        except signing.BadSignature:
            raise NotFoundError()
        if not isinstance(payload, dict):
            raise NotFoundError()
        try:
            attachment_id = int(payload['a'])
            expires = int(payload['e'])
        except (KeyError, TypeError, ValueError):
            raise NotFoundError()
        if expires < time.time():
            raise NotFoundError()
        attachment = Attachment.objects.filter(pk=attachment_id).first()
        if attachment is None:
            raise NotFoundError()
        return attachment
