import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("core", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="StudyHall",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=200)),
                ("location", models.CharField(max_length=200)),
                ("teacher", models.CharField(blank=True, max_length=200)),
                ("capacity", models.PositiveIntegerField(default=30)),
                ("current_occupancy", models.PositiveIntegerField(default=0)),
                ("is_available", models.BooleanField(default=True)),
                ("periods", models.JSONField(blank=True, default=list)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("school", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.CASCADE, related_name="study_halls", to="core.school")),
            ],
            options={
                "ordering": ["name"],
            },
        ),
    ]
