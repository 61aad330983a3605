from django.contrib import admin

from .models import Discussion, DiscussionCategory


@admin.register(Discussion)
class DiscussionAdmin(admin.ModelAdmin):
    list_display = ["__str__", "user", "category", "is_pinned", "created_at"]
    list_filter = ["category", "is_pinned"]
    raw_id_fields = ["user", "parent"]


@admin.register(DiscussionCategory)
class DiscussionCategoryAdmin(admin.ModelAdmin):
    list_display = ["name", "school", "created_by", "created_at"]
    list_filter = ["school"]
