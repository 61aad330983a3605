from django.conf import settings
from django.db import models


class DiscussionQuerySet(models.QuerySet):
    def threads(self):
        """Top-level posts, pinned first, then newest first."""
        return (
            self.filter(parent__isnull=True)
            .annotate(reply_count=models.Count("replies"))
            .order_by("-is_pinned", "-created_at", "-id")
        )

    def with_authors(self):
        return self.select_related("user").prefetch_related("user__role_assignments__custom_role")


class Discussion(models.Model):
    """A community thread, or a reply when ``parent`` is set."""

    DEFAULT_CATEGORY = "general"
    CATEGORY_CHOICES = [
        ("general", "General"),
        ("homework", "Homework Help"),
        ("clubs", "Clubs & Activities"),
        ("college", "College & Careers"),
        ("events", "Events"),
    ]

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="discussions",
    )
    school = models.ForeignKey(
        "core.School",
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="discussions",
    )
    parent = models.ForeignKey(
        "self",
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="replies",
    )
    title = models.CharField(max_length=200, blank=True)
    content = models.TextField()
    # One of CATEGORY_CHOICES or the name of a DiscussionCategory.
    category = models.CharField(max_length=50, default="general")
    is_pinned = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = DiscussionQuerySet.as_manager()

    class Meta:
        ordering = ["created_at", "id"]

    def __str__(self):
        return self.title or self.content[:50]

    @property
    def is_reply(self):
        return self.parent_id is not None


class DiscussionCategory(models.Model):
    """An extra thread category; ``school`` unset means every school sees it."""

    name = models.CharField(max_length=50)
    description = models.TextField(blank=True, null=True)
    color = models.CharField(max_length=20, blank=True, null=True)
    icon = models.CharField(max_length=50, blank=True, null=True)
    school = models.ForeignKey(
        "core.School",
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="discussion_categories",
    )
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["name"]
        verbose_name_plural = "discussion categories"

    def __str__(self):
        return self.name

    @classmethod
    def visible_to(cls, school_id):
        qs = cls.objects.all()
        if school_id:
            return qs.filter(models.Q(school_id=school_id) | models.Q(school__isnull=True))
        return qs.filter(school__isnull=True)
