from django.db import models


class StudyHall(models.Model):
    """A supervised room students can drop into, with a live head count."""

    school = models.ForeignKey(
        "core.School",
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="study_halls",
    )
    name = models.CharField(max_length=200)
    location = models.CharField(max_length=200)
    teacher = models.CharField(max_length=200, blank=True)
    capacity = models.PositiveIntegerField(default=30)
    current_occupancy = models.PositiveIntegerField(default=0)
    is_available = models.BooleanField(default=True)
    periods = models.JSONField(default=list, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]

    def __str__(self):
        return f"{self.name} ({self.location})"

    def set_occupancy(self, occupancy):
        """Record a new head count; the hall is available while below capacity."""
        self.current_occupancy = occupancy
        self.is_available = occupancy < self.capacity

    @property
    def spots_left(self):
        return max(self.capacity - self.current_occupancy, 0)
