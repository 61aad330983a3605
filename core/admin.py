from django.contrib import admin

from .models import (
    AllowedEmailDomain,
    CustomRole,
    RoleAssignment,
    RoleAuditLog,
    RoleRequest,
    School,
    Suggestion,
)


@admin.register(School)
class SchoolAdmin(admin.ModelAdmin):
    list_display = ["name", "address"]
    search_fields = ["name"]


class RoleAssignmentInline(admin.TabularInline):
    model = RoleAssignment
    fk_name = "custom_role"
    extra = 0


@admin.register(CustomRole)
class CustomRoleAdmin(admin.ModelAdmin):
    list_display = ["display_name", "name", "priority", "is_active"]
    list_filter = ["is_active"]
    prepopulated_fields = {"name": ("display_name",)}
    inlines = [RoleAssignmentInline]


@admin.register(RoleAssignment)
class RoleAssignmentAdmin(admin.ModelAdmin):
    list_display = ["user", "role", "custom_role", "school"]
    list_filter = ["role", "school"]
    raw_id_fields = ["user"]


@admin.register(AllowedEmailDomain)
class AllowedEmailDomainAdmin(admin.ModelAdmin):
    list_display = ["domain", "auto_assign_role", "school"]
    list_filter = ["auto_assign_role"]


@admin.register(RoleRequest)
class RoleRequestAdmin(admin.ModelAdmin):
    list_display = ["user", "requested_role", "status", "created_at"]
    list_filter = ["status", "requested_role"]


@admin.register(RoleAuditLog)
class RoleAuditLogAdmin(admin.ModelAdmin):
    list_display = ["action_type", "performed_by", "target_user", "created_at"]
    list_filter = ["action_type"]


@admin.register(Suggestion)
class SuggestionAdmin(admin.ModelAdmin):
    list_display = ["title", "user", "category", "status", "created_at"]
    list_filter = ["status", "category"]
