from rest_framework import serializers

from core.permissions import priority_from_assignments
from discussions.models import Discussion, DiscussionCategory


class AuthorSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    name = serializers.CharField(source="display_name")
    role = serializers.SerializerMethodField()

    def get_role(self, user):
        # role_assignments is prefetched with custom_role by with_authors().
        return priority_from_assignments(user.role_assignments.all()).as_dict()


class DiscussionSerializer(serializers.ModelSerializer):
    author = AuthorSerializer(source="user", read_only=True)
    reply_count = serializers.IntegerField(read_only=True, default=0)

    class Meta:
        model = Discussion
        fields = (
            "id",
            "author",
            "school",
            "parent",
            "title",
            "content",
            "category",
            "is_pinned",
            "reply_count",
            "created_at",
            "updated_at",
        )


class DiscussionCategorySerializer(serializers.ModelSerializer):
    class Meta:
        model = DiscussionCategory
        fields = ("id", "name", "description", "color", "icon", "school", "created_at")
