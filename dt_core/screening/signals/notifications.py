# dt_core/screening/signals/notifications.py
import logging

from django.db.models.signals import post_save
from django.dispatch import receiver

from dt_core.screening.models import DrugTest

logger = logging.getLogger(__name__)


@receiver(post_save, sender=DrugTest, dispatch_uid="drug_test_notifications")
def drug_test_post_save(sender, instance: DrugTest, created: bool, **kwargs):
    # history writes from the stager itself
    if getattr(instance, "_suppress_notifications", False):
        return
    if kwargs.get("raw"):
        return

    from dt_core.notifications.stager import NotificationStager

    try:
        NotificationStager().run(instance)
    except Exception:
        # never block saving the test
        logger.exception("Failed to send email notifications for drug test %s", instance.id)
