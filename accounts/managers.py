from django.contrib.auth.models import UserManager
from django.db.models import Q


class CustomerUserManager(UserManager):
    """Custom manager for ``CustomUser`` with email normalization and audience helpers.

    Inherits from Django's :class:`UserManager`, overrides ``_create_user`` to
    normalize emails, and adds the queryset used to address school-wide
    notifications.
    """

    def _create_user(self, username: str, email: str | None, password: str | None, **extra_fields):
        """Create and save a user with the given username, email, and password.

        Args:
            username: Username value (kept for AbstractUser compatibility).
            email: Email address; will be normalized and lowercased.
            password: Raw password.
            **extra_fields: Additional model fields (e.g., school, grade_level).

        Returns:
            CustomUser: The created user.
        """
        email = (self.normalize_email(email) or "").strip().lower()
        return super()._create_user(username, email, password, **extra_fields)

    def in_school(self, school_id):
        """Active members of *school_id* plus active users without a school.

        With no *school_id*, every active user.
        """
        qs = self.get_queryset().filter(is_active=True)
        if school_id:
            qs = qs.filter(Q(school_id=school_id) | Q(school__isnull=True))
        return qs
