from rest_framework import serializers

from accounts.grades import display_grade
from portfolio.models import BragSheetAcademics, BragSheetEntry, StudentGoal, TargetSchool


class BragSheetEntrySerializer(serializers.ModelSerializer):
    grade_display = serializers.SerializerMethodField()
    verified_by_name = serializers.CharField(
        source="verified_by.full_name", default=None, read_only=True,
    )

    class Meta:
        model = BragSheetEntry
        fields = (
            "id",
            "user",
            "title",
            "category",
            "description",
            "impact",
            "start_date",
            "end_date",
            "is_ongoing",
            "grade_level",
            "grade_display",
            "school_year",
            "hours_spent",
            "position_role",
            "verification_status",
            "verified_by",
            "verified_by_name",
            "verified_at",
            "verification_notes",
            "created_at",
            "updated_at",
        )

    def get_grade_display(self, obj):
        return display_grade(obj.grade_level)


class PendingEntrySerializer(BragSheetEntrySerializer):
    student_name = serializers.CharField(source="user.full_name", read_only=True)
    student_email = serializers.EmailField(source="user.email", read_only=True)

    class Meta(BragSheetEntrySerializer.Meta):
        fields = BragSheetEntrySerializer.Meta.fields + ("student_name", "student_email")


class StudentGoalSerializer(serializers.ModelSerializer):
    class Meta:
        model = StudentGoal
        fields = (
            "id",
            "title",
            "description",
            "goal_type",
            "target_date",
            "status",
            "priority",
            "notes",
            "created_at",
            "updated_at",
        )


class TargetSchoolSerializer(serializers.ModelSerializer):
    class Meta:
        model = TargetSchool
        fields = (
            "id",
            "school_name",
            "location",
            "application_deadline",
            "admission_type",
            "status",
            "notes",
            "is_reach",
            "is_match",
            "is_safety",
            "created_at",
            "updated_at",
        )


class BragSheetAcademicsSerializer(serializers.ModelSerializer):
    class Meta:
        model = BragSheetAcademics
        fields = (
            "gpa_weighted",
            "gpa_unweighted",
            "test_scores",
            "courses",
            "colleges_applying",
            "updated_at",
        )
