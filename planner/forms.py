from django import forms

from planner.models import ClassSchedule, Task


class OwnedModelForm(forms.ModelForm):
    """ModelForm that stamps ``user`` on save."""

    def __init__(self, *args, user=None, **kwargs):
        super().__init__(*args, **kwargs)
        self.user = user

    def save(self, commit=True):
        obj = super().save(commit=False)
        if self.user is not None:
            obj.user = self.user
        if commit:
            obj.save()
        return obj


class TaskForm(OwnedModelForm):
    priority = forms.ChoiceField(choices=Task.PRIORITY_CHOICES, required=False)
    category = forms.ChoiceField(choices=Task.CATEGORY_CHOICES, required=False)

    class Meta:
        model = Task
        fields = (
            "title",
            "description",
            "due_date",
            "due_time",
            "is_completed",
            "priority",
            "category",
        )

    def clean_title(self):
        title = self.cleaned_data["title"].strip()
        if not title:
            raise forms.ValidationError("Title is required.")
        return title

    def clean_description(self):
        return self.cleaned_data.get("description") or None

    def clean_priority(self):
        return self.cleaned_data.get("priority") or Task.MEDIUM

    def clean_category(self):
        return self.cleaned_data.get("category") or "general"


class ClassScheduleForm(OwnedModelForm):
    day_of_week = forms.IntegerField(min_value=0, max_value=6)
    color = forms.CharField(max_length=20, required=False)

    class Meta:
        model = ClassSchedule
        fields = (
            "class_name",
            "teacher_name",
            "room_number",
            "day_of_week",
            "start_time",
            "end_time",
            "color",
        )

    def clean_teacher_name(self):
        return self.cleaned_data.get("teacher_name") or None

    def clean_room_number(self):
        return self.cleaned_data.get("room_number") or None

    def clean_color(self):
        return self.cleaned_data.get("color") or "#10b981"

    def clean(self):
        cleaned = super().clean()
        start, end = cleaned.get("start_time"), cleaned.get("end_time")
        if start and end and end <= start:
            self.add_error("end_time", "End time must be after start time.")
        return cleaned
