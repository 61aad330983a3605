import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="BragSheetEntry",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("title", models.CharField(max_length=200)),
                ("category", models.CharField(choices=[("volunteering", "Volunteering"), ("job", "Job"), ("award", "Award"), ("internship", "Internship"), ("leadership", "Leadership"), ("club", "Club"), ("extracurricular", "Extracurricular"), ("academic", "Academic"), ("other", "Other")], default="other", max_length=20)),
                ("description", models.TextField(blank=True, null=True)),
                ("impact", models.TextField(blank=True, null=True)),
                ("start_date", models.DateField(blank=True, null=True)),
                ("end_date", models.DateField(blank=True, null=True)),
                ("is_ongoing", models.BooleanField(default=False)),
                ("grade_level", models.CharField(choices=[("5th Grade", "5th Grade"), ("6th Grade", "6th Grade"), ("7th Grade", "7th Grade"), ("8th Grade", "8th Grade"), ("Freshman (9th)", "Freshman (9th)"), ("Sophomore (10th)", "Sophomore (10th)"), ("Junior (11th)", "Junior (11th)"), ("Senior (12th)", "Senior (12th)")], max_length=20)),
                ("school_year", models.CharField(max_length=20)),
                ("hours_spent", models.DecimalField(blank=True, decimal_places=1, max_digits=7, null=True)),
                ("position_role", models.CharField(blank=True, max_length=200, null=True)),
                ("verification_status", models.CharField(choices=[("pending", "Pending"), ("verified", "Verified"), ("rejected", "Rejected")], default="pending", max_length=10)),
                ("verified_at", models.DateTimeField(blank=True, null=True)),
                ("verification_notes", models.TextField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("user", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="brag_sheet_entries", to=settings.AUTH_USER_MODEL)),
                ("verified_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="verified_entries", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "verbose_name_plural": "brag sheet entries",
                "ordering": [models.F("start_date").desc(nulls_last=True), "-created_at"],
            },
        ),
    ]
