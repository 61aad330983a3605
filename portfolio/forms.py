from django import forms

from planner.forms import OwnedModelForm
from portfolio.models import BragSheetAcademics, BragSheetEntry, StudentGoal, TargetSchool


class BragSheetEntryForm(OwnedModelForm):
    category = forms.ChoiceField(choices=BragSheetEntry.CATEGORY_CHOICES, required=False)
    hours_spent = forms.DecimalField(min_value=0, max_digits=7, decimal_places=1, required=False)

    class Meta:
        model = BragSheetEntry
        fields = (
            "title",
            "category",
            "description",
            "impact",
            "start_date",
            "end_date",
            "is_ongoing",
            "grade_level",
            "school_year",
            "hours_spent",
            "position_role",
        )

    def clean_category(self):
        return self.cleaned_data.get("category") or "other"

    def clean(self):
        cleaned = super().clean()
        if cleaned.get("is_ongoing"):
            cleaned["end_date"] = None
        start, end = cleaned.get("start_date"), cleaned.get("end_date")
        if start and end and end < start:
            self.add_error("end_date", "End date cannot be before start date.")
        return cleaned

    def save(self, commit=True):
        entry = super().save(commit=False)
        # Any owner edit sends the entry back to the verification queue.
        if self.instance.pk and self.changed_data:
            entry.verification_status = BragSheetEntry.PENDING
            entry.verified_by = None
            entry.verified_at = None
            entry.verification_notes = None
        if commit:
            entry.save()
        return entry


class VerificationForm(forms.Form):
    status = forms.ChoiceField(
        choices=[
            (BragSheetEntry.VERIFIED, "Verified"),
            (BragSheetEntry.REJECTED, "Rejected"),
        ],
    )
    notes = forms.CharField(required=False, max_length=2000)


class StudentGoalForm(OwnedModelForm):
    goal_type = forms.ChoiceField(choices=StudentGoal.GOAL_TYPE_CHOICES, required=False)
    status = forms.ChoiceField(choices=StudentGoal.STATUS_CHOICES, required=False)
    priority = forms.ChoiceField(choices=StudentGoal.PRIORITY_CHOICES, required=False)

    class Meta:
        model = StudentGoal
        fields = ("title", "description", "goal_type", "target_date", "status", "priority", "notes")

    def clean_title(self):
        title = self.cleaned_data["title"].strip()
        if not title:
            raise forms.ValidationError("A goal needs a title.")
        return title

    def clean_goal_type(self):
        return self.cleaned_data.get("goal_type") or "college"

    def clean_status(self):
        return self.cleaned_data.get("status") or StudentGoal.IN_PROGRESS

    def clean_priority(self):
        return self.cleaned_data.get("priority") or "medium"


class TargetSchoolForm(OwnedModelForm):
    admission_type = forms.ChoiceField(choices=TargetSchool.ADMISSION_TYPE_CHOICES, required=False)
    status = forms.ChoiceField(choices=TargetSchool.STATUS_CHOICES, required=False)

    class Meta:
        model = TargetSchool
        fields = (
            "school_name",
            "location",
            "application_deadline",
            "admission_type",
            "status",
            "notes",
            "is_reach",
            "is_match",
            "is_safety",
        )

    def clean_admission_type(self):
        return self.cleaned_data.get("admission_type") or "regular"

    def clean_status(self):
        return self.cleaned_data.get("status") or "researching"

    def clean(self):
        cleaned = super().clean()
        flags = [cleaned.get(name) for name in ("is_reach", "is_match", "is_safety")]
        if sum(bool(flag) for flag in flags) > 1:
            raise forms.ValidationError("A school is a reach, a match or a safety, not several.")
        return cleaned


def _clean_json_list(value, label):
    if value in (None, ""):
        return []
    if not isinstance(value, list):
        raise forms.ValidationError(f"{label} must be a list.")
    return value


class BragSheetAcademicsForm(OwnedModelForm):
    gpa_weighted = forms.DecimalField(min_value=0, max_value=5, max_digits=4, decimal_places=2, required=False)
    gpa_unweighted = forms.DecimalField(min_value=0, max_value=4, max_digits=4, decimal_places=2, required=False)
    test_scores = forms.JSONField(required=False)
    courses = forms.JSONField(required=False)
    colleges_applying = forms.JSONField(required=False)

    class Meta:
        model = BragSheetAcademics
        fields = ("gpa_weighted", "gpa_unweighted", "test_scores", "courses", "colleges_applying")

    def clean_test_scores(self):
        scores = _clean_json_list(self.cleaned_data.get("test_scores"), "Test scores")
        for position, score in enumerate(scores, start=1):
            if not isinstance(score, dict) or not str(score.get("test", "")).strip():
                raise forms.ValidationError(f"Score {position}: a test name is required.")
        return scores

    def clean_courses(self):
        courses = _clean_json_list(self.cleaned_data.get("courses"), "Courses")
        for position, course in enumerate(courses, start=1):
            if not isinstance(course, dict) or not str(course.get("name", "")).strip():
                raise forms.ValidationError(f"Course {position}: a name is required.")
        return courses

    def clean_colleges_applying(self):
        colleges = _clean_json_list(self.cleaned_data.get("colleges_applying"), "Colleges")
        return [str(college).strip() for college in colleges if str(college).strip()]


class InsightAnswerForm(forms.Form):
    answer = forms.CharField(required=False, max_length=5000)
