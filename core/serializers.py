from rest_framework import serializers

from core.models import (
    AllowedEmailDomain,
    CustomRole,
    RoleAssignment,
    RoleAuditLog,
    RoleRequest,
    School,
    Suggestion,
)


class SchoolSerializer(serializers.ModelSerializer):
    class Meta:
        model = School
        fields = ("id", "name", "address", "created_at")


class CustomRoleSerializer(serializers.ModelSerializer):
    class Meta:
        model = CustomRole
        fields = (
            "id",
            "name",
            "display_name",
            "description",
            "color",
            "icon",
            "priority",
            "is_active",
            "permissions",
            "created_at",
            "updated_at",
        )


class RoleAssignmentSerializer(serializers.ModelSerializer):
    custom_role = CustomRoleSerializer(read_only=True)

    class Meta:
        model = RoleAssignment
        fields = ("id", "user", "role", "custom_role", "school", "email_domain", "created_at")


class AllowedEmailDomainSerializer(serializers.ModelSerializer):
    class Meta:
        model = AllowedEmailDomain
        fields = ("id", "domain", "auto_assign_role", "school", "description", "created_at")


class RoleRequestSerializer(serializers.ModelSerializer):
    user_email = serializers.EmailField(source="user.email", read_only=True)

    class Meta:
        model = RoleRequest
        fields = (
            "id",
            "user",
            "user_email",
            "requested_role",
            "school",
            "reason",
            "status",
            "admin_notes",
            "reviewed_by",
            "reviewed_at",
            "created_at",
        )


class RoleAuditLogSerializer(serializers.ModelSerializer):
    class Meta:
        model = RoleAuditLog
        fields = (
            "id",
            "action_type",
            "performed_by",
            "target_user",
            "custom_role_id",
            "details",
            "created_at",
        )


class SuggestionSerializer(serializers.ModelSerializer):
    status_label = serializers.CharField(source="get_status_display", read_only=True)

    class Meta:
        model = Suggestion
        fields = (
            "id",
            "user",
            "title",
            "description",
            "category",
            "status",
            "status_label",
            "created_at",
            "updated_at",
        )
