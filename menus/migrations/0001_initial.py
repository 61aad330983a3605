import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("core", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="MealSchedule",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("meal_date", models.DateField()),
                ("meal_type", models.CharField(choices=[("breakfast", "Breakfast"), ("lunch", "Lunch")], default="lunch", max_length=20)),
                ("menu_items", models.JSONField(blank=True, default=list)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("school", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="meal_schedules", to="core.school")),
            ],
            options={
                "ordering": ["meal_date", "meal_type"],
            },
        ),
        migrations.AddConstraint(
            model_name="mealschedule",
            constraint=models.UniqueConstraint(fields=("school", "meal_date", "meal_type"), name="unique_meal_per_school_day_type"),
        ),
    ]
