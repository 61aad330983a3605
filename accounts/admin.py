from django.contrib import admin
from django.contrib.auth.admin import UserAdmin

from .models import CustomUser, Notification, NotificationPreference


@admin.register(CustomUser)
class CustomUserAdmin(UserAdmin):
    """
    Customizing the Django admin to display our user model correctly.
    This adds the profile fields (school, grade) to the admin interface.
    """

    fieldsets = UserAdmin.fieldsets + (
        ("Profile", {
            "fields": (
                "full_name",
                "school",
                "grade_level",
                "last_grade_progression",
                "is_graduated",
            ),
        }),
    )
    list_display = ("username", "email", "school", "grade_level", "is_graduated", "is_active")
    list_filter = ("grade_level", "is_graduated", "is_active")
    search_fields = ("username", "email", "full_name")


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ("title", "user", "type", "is_read", "created_at")
    list_filter = ("type", "is_read")
    search_fields = ("title", "user__username")


@admin.register(NotificationPreference)
class NotificationPreferenceAdmin(admin.ModelAdmin):
    list_display = ("user", "new_menu_items", "study_hall_availability", "task_reminders")
