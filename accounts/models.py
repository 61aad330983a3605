from django.conf import settings
from django.contrib.auth.models import AbstractUser
from django.db import models

from .grades import GRADE_CHOICES
from .managers import CustomerUserManager


class CustomUser(AbstractUser):
    """Project user model based on Django's ``AbstractUser``.

    Attributes:
        email: Unique, indexed email address for email-based auth.
        full_name: Display name shown on discussions and the verification queue.
        school: The school whose menus and study halls the user sees.
        grade_level: Current grade (see ``accounts.grades``), blank for staff.
        last_grade_progression: When the grade was last advanced automatically.
        is_graduated: Set once a Senior progresses past the final grade.
    """

    email = models.EmailField("email address", unique=True, db_index=True)
    full_name = models.CharField(max_length=200, blank=True)
    school = models.ForeignKey(
        "core.School",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="members",
    )
    grade_level = models.CharField(max_length=20, choices=GRADE_CHOICES, blank=True)
    last_grade_progression = models.DateTimeField(null=True, blank=True)
    is_graduated = models.BooleanField(default=False)

    objects = CustomerUserManager()

    def __str__(self) -> str:
        """Return string representation as ``username <email>``."""
        return f"{self.username} <{self.email}>"

    @property
    def display_name(self) -> str:
        return self.full_name or self.get_full_name() or self.username


class NotificationPreference(models.Model):
    """Which in-app notifications a user receives. No row means all of them."""

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="notification_preferences",
    )
    new_menu_items = models.BooleanField(default=True)
    study_hall_availability = models.BooleanField(default=True)
    grade_progression = models.BooleanField(default=True)
    discussion_replies = models.BooleanField(default=True)
    task_reminders = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:
        return f"Notification preferences of {self.user_id}"


class Notification(models.Model):
    MENU_UPDATE = "menu_update"
    STUDY_HALL = "study_hall"
    GRADE_UPDATE = "grade_update"
    DISCUSSION_REPLY = "discussion_reply"
    TASK_REMINDER = "task_reminder"
    TYPE_CHOICES = [
        (MENU_UPDATE, "Menu update"),
        (STUDY_HALL, "Study hall"),
        (GRADE_UPDATE, "Grade update"),
        (DISCUSSION_REPLY, "Discussion reply"),
        (TASK_REMINDER, "Task reminder"),
    ]

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="notifications",
    )
    type = models.CharField(max_length=30, choices=TYPE_CHOICES)
    title = models.CharField(max_length=200)
    message = models.TextField(blank=True, null=True)
    data = models.JSONField(default=dict, blank=True)
    is_read = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at", "-id"]

    def __str__(self) -> str:
        return self.title
