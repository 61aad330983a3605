from django.contrib import admin

from .models import StudyHall


@admin.register(StudyHall)
class StudyHallAdmin(admin.ModelAdmin):
    list_display = ["name", "school", "location", "current_occupancy", "capacity", "is_available"]
    list_filter = ["school", "is_available"]
