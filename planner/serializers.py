from rest_framework import serializers

from planner.models import ClassSchedule, Task


class TaskSerializer(serializers.ModelSerializer):
    is_overdue = serializers.BooleanField(read_only=True)

    class Meta:
        model = Task
        fields = (
            "id",
            "title",
            "description",
            "due_date",
            "due_time",
            "is_completed",
            "is_overdue",
            "priority",
            "category",
            "created_at",
            "updated_at",
        )


class ClassScheduleSerializer(serializers.ModelSerializer):
    day_name = serializers.CharField(source="get_day_of_week_display", read_only=True)

    class Meta:
        model = ClassSchedule
        fields = (
            "id",
            "class_name",
            "teacher_name",
            "room_number",
            "day_of_week",
            "day_name",
            "start_time",
            "end_time",
            "color",
        )
