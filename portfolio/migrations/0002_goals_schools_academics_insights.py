import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models

import portfolio.models


class Migration(migrations.Migration):

    dependencies = [
        ("portfolio", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="StudentGoal",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("title", models.CharField(max_length=200)),
                ("description", models.TextField(blank=True, null=True)),
                ("goal_type", models.CharField(choices=[("college", "College"), ("career", "Career"), ("program", "Program"), ("personal", "Personal")], default="college", max_length=20)),
                ("target_date", models.DateField(blank=True, null=True)),
                ("status", models.CharField(choices=[("in_progress", "In progress"), ("completed", "Completed"), ("paused", "Paused")], default="in_progress", max_length=20)),
                ("priority", models.CharField(choices=[("low", "Low"), ("medium", "Medium"), ("high", "High")], default="medium", max_length=10)),
                ("notes", models.TextField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("user", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="goals", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "ordering": ["-created_at", "-id"],
            },
        ),
        migrations.CreateModel(
            name="TargetSchool",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("school_name", models.CharField(max_length=200)),
                ("location", models.CharField(blank=True, max_length=200, null=True)),
                ("application_deadline", models.DateField(blank=True, null=True)),
                ("admission_type", models.CharField(choices=[("early_decision", "Early decision"), ("early_action", "Early action"), ("regular", "Regular decision")], default="regular", max_length=20)),
                ("status", models.CharField(choices=[("researching", "Researching"), ("applying", "Applying"), ("applied", "Applied"), ("accepted", "Accepted"), ("rejected", "Rejected"), ("waitlisted", "Waitlisted"), ("enrolled", "Enrolled")], default="researching", max_length=20)),
                ("notes", models.TextField(blank=True, null=True)),
                ("is_reach", models.BooleanField(default=False)),
                ("is_match", models.BooleanField(default=False)),
                ("is_safety", models.BooleanField(default=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("user", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="target_schools", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "ordering": ["-created_at", "-id"],
            },
        ),
        migrations.CreateModel(
            name="BragSheetAcademics",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("gpa_weighted", models.DecimalField(blank=True, decimal_places=2, max_digits=4, null=True)),
                ("gpa_unweighted", models.DecimalField(blank=True, decimal_places=2, max_digits=4, null=True)),
                ("test_scores", models.JSONField(blank=True, default=list)),
                ("courses", models.JSONField(blank=True, default=list)),
                ("colleges_applying", models.JSONField(blank=True, default=list)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("user", models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name="brag_sheet_academics", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "verbose_name_plural": "brag sheet academics",
            },
        ),
        migrations.CreateModel(
            name="BragSheetInsight",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("question_key", models.CharField(choices=portfolio.models.INSIGHT_QUESTIONS, max_length=50)),
                ("answer", models.TextField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("user", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="brag_sheet_insights", to=settings.AUTH_USER_MODEL)),
            ],
        ),
        migrations.AddConstraint(
            model_name="bragsheetinsight",
            constraint=models.UniqueConstraint(fields=("user", "question_key"), name="unique_insight_per_question"),
        ),
    ]
