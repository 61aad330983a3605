from django.db.models.signals import post_delete, post_save, pre_save
from django.dispatch import receiver

from accounts.notifications import notify_study_hall_open
from core.realtime import DELETE, broadcast_change, post_save_event
from studyhalls.models import StudyHall

GROUP = "study_halls"


@receiver(pre_save, sender=StudyHall)
def remember_availability(sender, instance, **kwargs):
    if instance.pk is None:
        instance._was_available = None
        return
    instance._was_available = (
        StudyHall.objects.filter(pk=instance.pk).values_list("is_available", flat=True).first()
    )


@receiver(post_save, sender=StudyHall)
def study_hall_saved(sender, instance, created, **kwargs):
    was_available = getattr(instance, "_was_available", None)
    became_available = bool(instance.is_available and was_available is False)
    broadcast_change(GROUP, post_save_event(created), instance.pk, became_available=became_available)
    if became_available:
        notify_study_hall_open(instance)


@receiver(post_delete, sender=StudyHall)
def study_hall_deleted(sender, instance, **kwargs):
    broadcast_change(GROUP, DELETE, instance.pk, became_available=False)
