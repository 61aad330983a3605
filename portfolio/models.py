from django.conf import settings
from django.db import models

from accounts.grades import GRADE_CHOICES


class BragSheetEntry(models.Model):
    """An activity, award or job a student records for college applications."""

    CATEGORY_CHOICES = [
        ("volunteering", "Volunteering"),
        ("job", "Job"),
        ("award", "Award"),
        ("internship", "Internship"),
        ("leadership", "Leadership"),
        ("club", "Club"),
        ("extracurricular", "Extracurricular"),
        ("academic", "Academic"),
        ("other", "Other"),
    ]

    PENDING = "pending"
    VERIFIED = "verified"
    REJECTED = "rejected"
    VERIFICATION_CHOICES = [
        (PENDING, "Pending"),
        (VERIFIED, "Verified"),
        (REJECTED, "Rejected"),
    ]

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="brag_sheet_entries",
    )
    title = models.CharField(max_length=200)
    category = models.CharField(max_length=20, choices=CATEGORY_CHOICES, default="other")
    description = models.TextField(blank=True, null=True)
    impact = models.TextField(blank=True, null=True)
    start_date = models.DateField(null=True, blank=True)
    end_date = models.DateField(null=True, blank=True)
    is_ongoing = models.BooleanField(default=False)
    grade_level = models.CharField(max_length=20, choices=GRADE_CHOICES)
    school_year = models.CharField(max_length=20)
    hours_spent = models.DecimalField(max_digits=7, decimal_places=1, null=True, blank=True)
    position_role = models.CharField(max_length=200, blank=True, null=True)

    verification_status = models.CharField(
        max_length=10, choices=VERIFICATION_CHOICES, default=PENDING,
    )
    verified_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="verified_entries",
    )
    verified_at = models.DateTimeField(null=True, blank=True)
    verification_notes = models.TextField(blank=True, null=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = [models.F("start_date").desc(nulls_last=True), "-created_at"]
        verbose_name_plural = "brag sheet entries"

    def __str__(self):
        return f"{self.title} ({self.user})"


class StudentGoal(models.Model):
    GOAL_TYPE_CHOICES = [
        ("college", "College"),
        ("career", "Career"),
        ("program", "Program"),
        ("personal", "Personal"),
    ]

    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    PAUSED = "paused"
    STATUS_CHOICES = [
        (IN_PROGRESS, "In progress"),
        (COMPLETED, "Completed"),
        (PAUSED, "Paused"),
    ]

    PRIORITY_CHOICES = [
        ("low", "Low"),
        ("medium", "Medium"),
        ("high", "High"),
    ]

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="goals",
    )
    title = models.CharField(max_length=200)
    description = models.TextField(blank=True, null=True)
    goal_type = models.CharField(max_length=20, choices=GOAL_TYPE_CHOICES, default="college")
    target_date = models.DateField(null=True, blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=IN_PROGRESS)
    priority = models.CharField(max_length=10, choices=PRIORITY_CHOICES, default="medium")
    notes = models.TextField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at", "-id"]

    def __str__(self):
        return self.title


class TargetSchool(models.Model):
    """A college on the student's list; at most one of reach / match / safety is set."""

    ADMISSION_TYPE_CHOICES = [
        ("early_decision", "Early decision"),
        ("early_action", "Early action"),
        ("regular", "Regular decision"),
    ]

    ACCEPTED = "accepted"
    STATUS_CHOICES = [
        ("researching", "Researching"),
        ("applying", "Applying"),
        ("applied", "Applied"),
        (ACCEPTED, "Accepted"),
        ("rejected", "Rejected"),
        ("waitlisted", "Waitlisted"),
        ("enrolled", "Enrolled"),
    ]

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="target_schools",
    )
    school_name = models.CharField(max_length=200)
    location = models.CharField(max_length=200, blank=True, null=True)
    application_deadline = models.DateField(null=True, blank=True)
    admission_type = models.CharField(max_length=20, choices=ADMISSION_TYPE_CHOICES, default="regular")
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default="researching")
    notes = models.TextField(blank=True, null=True)
    is_reach = models.BooleanField(default=False)
    is_match = models.BooleanField(default=False)
    is_safety = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at", "-id"]

    def __str__(self):
        return self.school_name


class BragSheetAcademics(models.Model):
    """GPA, test scores and coursework; one row per student."""

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="brag_sheet_academics",
    )
    gpa_weighted = models.DecimalField(max_digits=4, decimal_places=2, null=True, blank=True)
    gpa_unweighted = models.DecimalField(max_digits=4, decimal_places=2, null=True, blank=True)
    # [{"test": "SAT", "score": "1450", "date"?: "2025-03-08"}, ...]
    test_scores = models.JSONField(default=list, blank=True)
    # [{"name": "AP Biology", "grade_level"?: ..., "grade"?: "A"}, ...]
    courses = models.JSONField(default=list, blank=True)
    colleges_applying = models.JSONField(default=list, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name_plural = "brag sheet academics"

    def __str__(self):
        return f"Academics of {self.user}"


INSIGHT_QUESTIONS = [
    ("adjectives", "What are three adjectives you would use to describe yourself and why?"),
    ("major_goals", "What is your intended college major? What are your career goals?"),
    ("recommender_reason", "Why have you chosen this teacher to write a letter of recommendation for you?"),
    ("favorite_lesson", "What is a lesson or unit in the class you enjoyed? Why?"),
    (
        "proudest_moment",
        "Describe a time in the class when you felt most proud. Remember times when you "
        "displayed leadership, intellectual vitality, discipline, maturity, humility, "
        "integrity, or initiative.",
    ),
    ("unknown_fact", "What is something your teacher likely doesn't know about you?"),
    (
        "extracurricular_significance",
        "Describe your most significant extracurricular involvements. Elaborate on your "
        "participation in them and why they are important to you.",
    ),
    (
        "unique_qualities",
        "What makes you stand out from other students? What makes you unique? "
        "What are your greatest strengths?",
    ),
    (
        "application_theme",
        "What is the overarching theme of your application? Do you have a spike? If so, what is it?",
    ),
    (
        "obstacles",
        "Describe any major obstacles you have faced and how you overcame them. Think of "
        "academic, personal, family, or financial struggles.",
    ),
    (
        "transcript_reflection",
        "Do you believe your transcript truly reflects your academic abilities or potential? Elaborate.",
    ),
    (
        "additional_info",
        "Please list any additional information that you would like your recommender to know. "
        "Share anything that will help you stand out (extenuating circumstances, talents, hooks, etc.):",
    ),
]


class BragSheetInsight(models.Model):
    """A student's answer to one of the recommender questions."""

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="brag_sheet_insights",
    )
    question_key = models.CharField(max_length=50, choices=INSIGHT_QUESTIONS)
    answer = models.TextField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["user", "question_key"], name="unique_insight_per_question"),
        ]

    def __str__(self):
        return f"{self.user} {self.question_key}"
