from django.contrib import admin

from .models import ClassSchedule, Task


@admin.register(Task)
class TaskAdmin(admin.ModelAdmin):
    list_display = ["title", "user", "due_date", "priority", "is_completed"]
    list_filter = ["priority", "category", "is_completed"]


@admin.register(ClassSchedule)
class ClassScheduleAdmin(admin.ModelAdmin):
    list_display = ["class_name", "user", "day_of_week", "start_time", "end_time"]
    list_filter = ["day_of_week"]
