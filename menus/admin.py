from django.contrib import admin

from .models import MealDietaryTag, MealSchedule


@admin.register(MealSchedule)
class MealScheduleAdmin(admin.ModelAdmin):
    list_display = ["school", "meal_date", "meal_type"]
    list_filter = ["school", "meal_type"]
    date_hierarchy = "meal_date"


@admin.register(MealDietaryTag)
class MealDietaryTagAdmin(admin.ModelAdmin):
    list_display = ["name", "color", "school"]
    list_filter = ["school"]
