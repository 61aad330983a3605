import re

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models

MANAGE_USERS = "manage_users"
MANAGE_SCHOOLS = "manage_schools"
MANAGE_MENUS = "manage_menus"
MANAGE_STUDY_HALLS = "manage_study_halls"
VERIFY_ENTRIES = "verify_entries"
MANAGE_DISCUSSIONS = "manage_discussions"
VIEW_ANALYTICS = "view_analytics"
MANAGE_ROLES = "manage_roles"

PERMISSION_CHOICES = [
    (MANAGE_USERS, "Manage Users"),
    (MANAGE_SCHOOLS, "Manage Schools"),
    (MANAGE_MENUS, "Manage Menus"),
    (MANAGE_STUDY_HALLS, "Manage Study Halls"),
    (VERIFY_ENTRIES, "Verify Brag Sheet Entries"),
    (MANAGE_DISCUSSIONS, "Manage Discussions"),
    (VIEW_ANALYTICS, "View Analytics"),
    (MANAGE_ROLES, "Manage Roles"),
]

ALL_PERMISSIONS = frozenset(value for value, _ in PERMISSION_CHOICES)

ADMIN = "admin"
TEACHER = "teacher"
COUNSELOR = "counselor"
STUDENT = "student"

BASE_ROLE_CHOICES = [
    (ADMIN, "Admin"),
    (TEACHER, "Teacher"),
    (COUNSELOR, "Counselor"),
    (STUDENT, "Student"),
]


def slugify_role_name(display_name: str) -> str:
    """``"Club Advisor"`` -> ``"club_advisor"``."""
    return re.sub(r"\s+", "_", display_name.strip().lower())


def validate_permission_list(value):
    if not isinstance(value, list):
        raise ValidationError("Permissions must be a list.")
    unknown = sorted({str(item) for item in value} - ALL_PERMISSIONS)
    if unknown:
        raise ValidationError(f"Unknown permissions: {', '.join(unknown)}")


class School(models.Model):
    """A school whose members share menus, study halls and discussions."""

    name = models.CharField(max_length=200)
    address = models.CharField(max_length=300, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]

    def __str__(self):
        return self.name


class CustomRole(models.Model):
    """An admin-defined role layered on top of a base role assignment."""

    MIN_PRIORITY = 0
    MAX_PRIORITY = 5

    name = models.SlugField(max_length=100, unique=True)
    display_name = models.CharField(max_length=100)
    description = models.TextField(blank=True)
    color = models.CharField(max_length=20, default="#6366f1")
    icon = models.CharField(max_length=50, default="shield")
    priority = models.PositiveSmallIntegerField(default=0)
    is_active = models.BooleanField(default=True)
    permissions = models.JSONField(default=list, blank=True, validators=[validate_permission_list])
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="created_custom_roles",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-priority", "display_name"]

    def __str__(self):
        return self.display_name

    def clean(self):
        if not self.MIN_PRIORITY <= (self.priority or 0) <= self.MAX_PRIORITY:
            raise ValidationError(
                {"priority": f"Priority must be between {self.MIN_PRIORITY} and {self.MAX_PRIORITY}."}
            )
        if not self.name and self.display_name:
            self.name = slugify_role_name(self.display_name)


class RoleAssignment(models.Model):
    """Grants a user a base role, optionally refined by a custom role."""

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="role_assignments",
    )
    role = models.CharField(max_length=20, choices=BASE_ROLE_CHOICES)
    custom_role = models.ForeignKey(
        CustomRole,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="assignments",
    )
    school = models.ForeignKey(
        School,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="role_assignments",
    )
    email_domain = models.CharField(max_length=255, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["user", "role"],
                condition=models.Q(custom_role__isnull=True),
                name="unique_base_role_per_user",
            ),
        ]
        ordering = ["user", "role"]

    def __str__(self):
        if self.custom_role_id:
            return f"{self.user} - {self.get_role_display()} / {self.custom_role}"
        return f"{self.user} - {self.get_role_display()}"


class AllowedEmailDomain(models.Model):
    """Sign-ups from this domain are automatically granted ``auto_assign_role``."""

    domain = models.CharField(max_length=255, unique=True)
    auto_assign_role = models.CharField(max_length=20, choices=BASE_ROLE_CHOICES, default=STUDENT)
    school = models.ForeignKey(
        School,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="email_domains",
    )
    description = models.CharField(max_length=255, blank=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["domain"]

    def __str__(self):
        return f"@{self.domain} → {self.auto_assign_role}"

    @staticmethod
    def normalize(domain: str) -> str:
        return domain.strip().lower().lstrip("@")

    def save(self, *args, **kwargs):
        self.domain = self.normalize(self.domain)
        super().save(*args, **kwargs)


class RoleRequest(models.Model):
    """A user's request to be upgraded to a base role."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    STATUS_CHOICES = [
        (PENDING, "Pending"),
        (APPROVED, "Approved"),
        (REJECTED, "Rejected"),
    ]

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="role_requests",
    )
    requested_role = models.CharField(max_length=20, choices=BASE_ROLE_CHOICES)
    school = models.ForeignKey(
        School,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    reason = models.TextField(blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=PENDING)
    admin_notes = models.TextField(blank=True)
    reviewed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="reviewed_role_requests",
    )
    reviewed_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["user", "requested_role"],
                condition=models.Q(status="pending"),
                name="unique_pending_role_request",
            ),
        ]
        ordering = ["-created_at"]

    def __str__(self):
        return f"{self.user} → {self.requested_role} ({self.status})"


class RoleAuditLog(models.Model):
    """Append-only record of role and custom-role changes."""

    ROLE_ADDED = "role_added"
    ROLE_REMOVED = "role_removed"
    ROLE_UPDATED = "role_updated"
    PERMISSION_CHANGED = "permission_changed"
    BULK_ASSIGNMENT = "bulk_assignment"
    CUSTOM_ROLE_CREATED = "custom_role_created"
    CUSTOM_ROLE_UPDATED = "custom_role_updated"
    CUSTOM_ROLE_DELETED = "custom_role_deleted"
    ACTION_CHOICES = [
        (ROLE_ADDED, "Role added"),
        (ROLE_REMOVED, "Role removed"),
        (ROLE_UPDATED, "Role updated"),
        (PERMISSION_CHANGED, "Permission changed"),
        (BULK_ASSIGNMENT, "Bulk assignment"),
        (CUSTOM_ROLE_CREATED, "Custom role created"),
        (CUSTOM_ROLE_UPDATED, "Custom role updated"),
        (CUSTOM_ROLE_DELETED, "Custom role deleted"),
    ]

    action_type = models.CharField(max_length=30, choices=ACTION_CHOICES)
    performed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        related_name="+",
    )
    target_user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    # Plain id so the entry survives deletion of the custom role.
    custom_role_id = models.PositiveBigIntegerField(null=True, blank=True)
    details = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at", "-id"]

    def __str__(self):
        return f"{self.get_action_type_display()} by {self.performed_by}"


class Suggestion(models.Model):
    """Feedback submitted by a user, triaged by admins."""

    PENDING = "pending"
    REVIEWED = "reviewed"
    PLANNED = "planned"
    COMPLETED = "completed"
    DECLINED = "declined"
    STATUS_CHOICES = [
        (PENDING, "Pending"),
        (REVIEWED, "Reviewed"),
        (PLANNED, "Planned for Development"),
        (COMPLETED, "Completed"),
        (DECLINED, "Declined"),
    ]

    CATEGORY_CHOICES = [
        ("feature", "Feature"),
        ("bug", "Bug"),
        ("improvement", "Improvement"),
        ("other", "Other"),
    ]

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="suggestions",
    )
    title = models.CharField(max_length=200)
    description = models.TextField()
    category = models.CharField(max_length=20, choices=CATEGORY_CHOICES, default="feature")
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=PENDING)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return self.title
