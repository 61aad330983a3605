from django.db import models


class MealSchedule(models.Model):
    """One school's breakfast or lunch menu for one day."""

    BREAKFAST = "breakfast"
    LUNCH = "lunch"
    MEAL_TYPE_CHOICES = [
        (BREAKFAST, "Breakfast"),
        (LUNCH, "Lunch"),
    ]

    school = models.ForeignKey(
        "core.School",
        on_delete=models.CASCADE,
        related_name="meal_schedules",
    )
    meal_date = models.DateField()
    meal_type = models.CharField(max_length=20, choices=MEAL_TYPE_CHOICES, default=LUNCH)
    # [{"name": ..., "description"?: ..., "calories"?: int, "dietary_tags"?: [...]}, ...]
    menu_items = models.JSONField(default=list, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["school", "meal_date", "meal_type"],
                name="unique_meal_per_school_day_type",
            ),
        ]
        ordering = ["meal_date", "meal_type"]

    def __str__(self):
        return f"{self.school} {self.meal_date} {self.get_meal_type_display()}"


class MealDietaryTag(models.Model):
    """A label menu items can carry (vegan, gluten free...); no school means shared."""

    name = models.CharField(max_length=50)
    color = models.CharField(max_length=20, default="#10b981")
    icon = models.CharField(max_length=50, blank=True, null=True)
    school = models.ForeignKey(
        "core.School",
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="dietary_tags",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["name"]

    def __str__(self):
        return self.name
