from django.conf import settings
from django.db.models.signals import post_delete, post_save
from django.dispatch import receiver

from core.models import CustomRole, RoleAssignment
from core.permissions import invalidate_all, invalidate_user


@receiver([post_save, post_delete], sender=RoleAssignment)
def role_assignment_changed(sender, instance, **kwargs):
    invalidate_user(instance.user_id)


@receiver([post_save, post_delete], sender=CustomRole)
def custom_role_changed(sender, instance, **kwargs):
    invalidate_all()


@receiver(post_save, sender=settings.AUTH_USER_MODEL)
def user_created(sender, instance, created, **kwargs):
    # Primary keys can be reused (SQLite), so a new user never inherits a stale entry.
    if created:
        invalidate_user(instance.pk)


@receiver(post_delete, sender=settings.AUTH_USER_MODEL)
def user_deleted(sender, instance, **kwargs):
    invalidate_user(instance.pk)
