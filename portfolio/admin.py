from django.contrib import admin

from .models import BragSheetAcademics, BragSheetEntry, BragSheetInsight, StudentGoal, TargetSchool


@admin.register(BragSheetEntry)
class BragSheetEntryAdmin(admin.ModelAdmin):
    list_display = ["title", "user", "category", "grade_level", "verification_status"]
    list_filter = ["category", "verification_status", "grade_level"]
    search_fields = ["title", "user__email"]


@admin.register(StudentGoal)
class StudentGoalAdmin(admin.ModelAdmin):
    list_display = ["title", "user", "goal_type", "status", "priority"]
    list_filter = ["goal_type", "status"]


@admin.register(TargetSchool)
class TargetSchoolAdmin(admin.ModelAdmin):
    list_display = ["school_name", "user", "admission_type", "status"]
    list_filter = ["status", "admission_type"]
    search_fields = ["school_name", "user__email"]


admin.site.register(BragSheetAcademics)
admin.site.register(BragSheetInsight)
