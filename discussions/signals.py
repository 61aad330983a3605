from django.db.models.signals import post_delete, post_save
from django.dispatch import receiver

from core.realtime import DELETE, broadcast_change, post_save_event
from discussions.models import Discussion

GROUP = "discussions"


@receiver(post_save, sender=Discussion)
def discussion_saved(sender, instance, created, **kwargs):
    broadcast_change(GROUP, post_save_event(created), instance.pk, parent=instance.parent_id)


@receiver(post_delete, sender=Discussion)
def discussion_deleted(sender, instance, **kwargs):
    broadcast_change(GROUP, DELETE, instance.pk, parent=instance.parent_id)
