from rest_framework import serializers

from menus.models import MealDietaryTag, MealSchedule


class MealScheduleSerializer(serializers.ModelSerializer):
    class Meta:
        model = MealSchedule
        fields = ("id", "school", "meal_date", "meal_type", "menu_items", "updated_at")


class MealDietaryTagSerializer(serializers.ModelSerializer):
    class Meta:
        model = MealDietaryTag
        fields = ("id", "name", "color", "icon", "school")
