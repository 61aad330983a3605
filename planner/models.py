from datetime import date

from django.conf import settings
from django.db import models


class Task(models.Model):
    """A homework item, test or project on the student's planner."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    PRIORITY_CHOICES = [
        (LOW, "Low"),
        (MEDIUM, "Medium"),
        (HIGH, "High"),
    ]

    CATEGORY_CHOICES = [
        ("homework", "Homework"),
        ("test", "Test"),
        ("project", "Project"),
        ("general", "General"),
    ]

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="tasks",
    )
    title = models.CharField(max_length=200)
    description = models.TextField(blank=True, null=True)
    due_date = models.DateField(null=True, blank=True)
    due_time = models.TimeField(null=True, blank=True)
    is_completed = models.BooleanField(default=False)
    priority = models.CharField(max_length=10, choices=PRIORITY_CHOICES, default=MEDIUM)
    category = models.CharField(max_length=20, choices=CATEGORY_CHOICES, default="general")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = [models.F("due_date").asc(nulls_last=True), "title"]

    def __str__(self):
        return self.title

    @property
    def is_overdue(self):
        """Return True if due_date is in the past and the task is not completed."""
        return bool(self.due_date) and self.due_date < date.today() and not self.is_completed


class ClassSchedule(models.Model):
    """A weekly class meeting. ``day_of_week`` counts from Sunday = 0."""

    DAY_CHOICES = [
        (0, "Sunday"),
        (1, "Monday"),
        (2, "Tuesday"),
        (3, "Wednesday"),
        (4, "Thursday"),
        (5, "Friday"),
        (6, "Saturday"),
    ]

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="class_schedules",
    )
    class_name = models.CharField(max_length=200)
    teacher_name = models.CharField(max_length=200, blank=True, null=True)
    room_number = models.CharField(max_length=50, blank=True, null=True)
    day_of_week = models.PositiveSmallIntegerField(choices=DAY_CHOICES)
    start_time = models.TimeField()
    end_time = models.TimeField()
    color = models.CharField(max_length=20, default="#10b981")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["day_of_week", "start_time"]

    def __str__(self):
        return f"{self.class_name} ({self.get_day_of_week_display()} {self.start_time:%H:%M})"
