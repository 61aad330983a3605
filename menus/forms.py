from django import forms
from django.core.validators import URLValidator

from core.forms import SchoolFilterForm
from core.models import School
from menus.models import MealDietaryTag, MealSchedule


def clean_menu_items(items):
    """Validate a list of menu item dicts and drop unknown keys."""
    if not isinstance(items, list):
        raise forms.ValidationError("Menu items must be a list.")
    cleaned = []
    for position, item in enumerate(items, start=1):
        if not isinstance(item, dict) or not str(item.get("name", "")).strip():
            raise forms.ValidationError(f"Item {position}: a name is required.")
        entry = {"name": str(item["name"]).strip()}
        if item.get("description"):
            entry["description"] = str(item["description"]).strip()
        if item.get("calories") not in (None, ""):
            try:
                entry["calories"] = int(item["calories"])
            except (TypeError, ValueError):
                raise forms.ValidationError(f"Item {position}: calories must be a number.")
        tags = item.get("dietary_tags") or []
        if not isinstance(tags, list):
            raise forms.ValidationError(f"Item {position}: dietary_tags must be a list.")
        if tags:
            entry["dietary_tags"] = [str(tag) for tag in tags]
        cleaned.append(entry)
    return cleaned


class MealScheduleForm(forms.Form):
    """Create or replace the menu of one school, day and meal."""

    school = forms.ModelChoiceField(queryset=School.objects.all())
    meal_date = forms.DateField()
    meal_type = forms.ChoiceField(choices=MealSchedule.MEAL_TYPE_CHOICES, required=False)
    menu_items = forms.JSONField(required=False)

    def clean_meal_type(self):
        return self.cleaned_data.get("meal_type") or MealSchedule.LUNCH

    def clean_menu_items(self):
        return clean_menu_items(self.cleaned_data.get("menu_items") or [])


class ScrapeForm(forms.Form):
    url = forms.CharField(validators=[URLValidator(schemes=["http", "https"])])
    multi_day = forms.BooleanField(required=False)


class ScheduleRangeForm(SchoolFilterForm):
    start = forms.DateField(required=False)
    end = forms.DateField(required=False)


class MealDietaryTagForm(forms.ModelForm):
    color = forms.CharField(max_length=20, required=False)

    class Meta:
        model = MealDietaryTag
        fields = ("name", "color", "icon", "school")

    def clean_name(self):
        name = self.cleaned_data["name"].strip()
        if not name:
            raise forms.ValidationError("A tag needs a name.")
        return name

    def clean_color(self):
        return self.cleaned_data.get("color") or MealDietaryTag._meta.get_field("color").default

    def clean(self):
        cleaned = super().clean()
        name = cleaned.get("name")
        if name and MealDietaryTag.objects.filter(
            name__iexact=name, school=cleaned.get("school"),
        ).exists():
            self.add_error("name", "This tag already exists.")
        return cleaned
