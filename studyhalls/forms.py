from django import forms

from studyhalls.models import StudyHall


class StudyHallForm(forms.ModelForm):
    periods = forms.JSONField(required=False)

    class Meta:
        model = StudyHall
        fields = ("school", "name", "location", "teacher", "capacity", "periods")

    def clean_periods(self):
        periods = self.cleaned_data.get("periods") or []
        if not isinstance(periods, list) or not all(
            isinstance(p, str) and p.strip() for p in periods
        ):
            raise forms.ValidationError("Periods must be a list of non-empty strings.")
        return [p.strip() for p in periods]

    def save(self, commit=True):
        hall = super().save(commit=False)
        hall.set_occupancy(min(hall.current_occupancy, hall.capacity))
        if commit:
            hall.save()
        return hall


class OccupancyForm(forms.Form):
    current_occupancy = forms.IntegerField(min_value=0)

    def __init__(self, *args, hall=None, **kwargs):
        super().__init__(*args, **kwargs)
        self.hall = hall

    def clean_current_occupancy(self):
        occupancy = self.cleaned_data["current_occupancy"]
        if occupancy > self.hall.capacity:
            raise forms.ValidationError(
                f"Occupancy cannot exceed capacity ({self.hall.capacity})."
            )
        return occupancy
