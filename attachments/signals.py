"""Signals keeping the object store in step with attachment rows."""

import logging

from django.db.models.signals import post_delete
from django.dispatch import receiver

from .models import Attachment

logger = logging.getLogger(__name__)


@receiver(post_delete, sender=Attachment)
def delete_stored_object(sender, instance, **kwargs):
    """Remove the stored file once its attachment row is gone.

    Cascading order deletes go through here too.
    """

    if not instance.file:
        return
    try:
        instance.file.delete(save=False)
    except OSError:
        logger.warning("Could not delete stored object for attachment %s", instance.pk, exc_info=True)
