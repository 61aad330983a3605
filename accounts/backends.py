from django.contrib.auth import get_user_model
from django.contrib.auth.backends import ModelBackend
from django.db.models import Q

User = get_user_model()


class EmailOrUsernameModelBackend(ModelBackend):
    """Authenticate with either email or username.

    Email comparison is case-insensitive, which matches how emails are stored
    (normalized and lower-cased by the manager).
    """

    def authenticate(self, request, username: str | None = None, password: str | None = None, **kwargs):
        """Authenticate a user by email or username and password.

        Args:
            request: HttpRequest object (may be None).
            username: The username or email provided by the user.
            password: The raw password.

        Returns:
            CustomUser | None: Authenticated user or None.
        """
        if username is None:
            username = kwargs.get(User.USERNAME_FIELD) or kwargs.get("email")
        if not username or not password:
            return None

        user = (
            User.objects
            .filter(Q(email__iexact=username) | Q(username__iexact=username))
            .order_by("pk")
            .first()
        )
        if user is None:
            # Run the hasher once to keep timing similar for unknown accounts.
            User().set_password(password)
            return None

        if user.check_password(password) and self.user_can_authenticate(user):
            return user
        return None
