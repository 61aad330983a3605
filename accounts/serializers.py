from django.contrib.auth import get_user_model
from rest_framework import serializers

from accounts.grades import display_grade
from accounts.models import Notification, NotificationPreference

User = get_user_model()


class UserSerializer(serializers.ModelSerializer):
    grade_display = serializers.SerializerMethodField()
    school_name = serializers.CharField(source="school.name", default=None, read_only=True)

    class Meta:
        model = User
        fields = (
            "id",
            "username",
            "email",
            "full_name",
            "school",
            "school_name",
            "grade_level",
            "grade_display",
            "is_graduated",
            "last_grade_progression",
        )
        read_only_fields = fields

    def get_grade_display(self, obj):
        return display_grade(obj.grade_level)


class NotificationSerializer(serializers.ModelSerializer):
    class Meta:
        model = Notification
        fields = ("id", "type", "title", "message", "data", "is_read", "created_at")
        read_only_fields = fields


class NotificationPreferenceSerializer(serializers.ModelSerializer):
    class Meta:
        model = NotificationPreference
        fields = (
            "new_menu_items",
            "study_hall_availability",
            "grade_progression",
            "discussion_replies",
            "task_reminders",
            "updated_at",
        )
        read_only_fields = fields
