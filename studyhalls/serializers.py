from rest_framework import serializers

from studyhalls.models import StudyHall


class StudyHallSerializer(serializers.ModelSerializer):
    spots_left = serializers.IntegerField(read_only=True)

    class Meta:
        model = StudyHall
        fields = (
            "id",
            "school",
            "name",
            "location",
            "teacher",
            "capacity",
            "current_occupancy",
            "is_available",
            "spots_left",
            "periods",
            "updated_at",
        )
