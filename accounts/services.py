import logging

from django.apps import apps
from django.conf import settings
from django.contrib.auth import get_user_model
from django.contrib.auth.tokens import default_token_generator
from django.core.mail import send_mail
from django.db import DatabaseError, transaction
from django.template.loader import render_to_string
from django.urls import reverse
from django.utils.encoding import force_bytes
from django.utils.http import urlsafe_base64_encode
from rest_framework.authtoken.models import Token

from accounts.grades import display_grade

User = get_user_model()
logger = logging.getLogger(__name__)

FEEDBACK_STATUS_LABELS = {
    "reviewed": "Reviewed",
    "planned": "Planned for Development",
    "completed": "Completed",
    "declined": "Declined",
    "pending": "Pending",
}


class UserService:
    """Service layer for user operations (verification links/emails)."""

    @staticmethod
    def build_verify_link(request, user: User) -> str:
        """Construct a signed verification URL for the given user.

        Args:
            request: The current HttpRequest.
            user: The user to build a verification link for.

        Returns:
            str: Absolute URL the user can click to verify their email.
        """
        uid = urlsafe_base64_encode(force_bytes(user.pk))
        token = default_token_generator.make_token(user)
        return request.build_absolute_uri(
            reverse("accounts:verify", kwargs={"uidb64": uid, "token": token})
        )

    @staticmethod
    def send_verification_email(*, user: User, verify_url: str) -> None:
        ctx = {"user": user, "verify_url": verify_url}
        subject = render_to_string("accounts/emails/verify_subject.txt", ctx).strip()
        body = render_to_string("accounts/emails/verify_email.txt", ctx)
        send_mail(subject, body, settings.DEFAULT_FROM_EMAIL, [user.email])


class NotificationService:
    """Transactional emails sent when an admin changes something about a user.

    Every message has a plain-text body and an HTML alternative rendered from
    ``templates/accounts/emails/<name>.txt|.html``.
    """

    @staticmethod
    def _send(*, template: str, subject: str, recipient: str, ctx: dict) -> None:
        text = render_to_string(f"accounts/emails/{template}.txt", ctx)
        html = render_to_string(f"accounts/emails/{template}.html", ctx)
        send_mail(
            subject,
            text,
            settings.DEFAULT_FROM_EMAIL,
            [recipient],
            html_message=html,
            fail_silently=False,
        )
        logger.info("Sent %s email to user %s", template, ctx["user"].pk)

    @classmethod
    def send_role_notification(cls, *, user: User, role_name: str, action: str) -> None:
        """Tell *user* that *role_name* was ``"added"`` to or ``"removed"`` from their account."""
        verb = "updated" if action == "added" else "changed"
        cls._send(
            template="role_changed",
            subject=f"Your role has been {verb}",
            recipient=user.email,
            ctx={"user": user, "role_name": role_name, "action": action},
        )

    @classmethod
    def send_role_request_notification(cls, *, role_request) -> None:
        user = role_request.user
        cls._send(
            template="request_reviewed",
            subject=f"Your role upgrade request has been {role_request.status}",
            recipient=user.email,
            ctx={
                "user": user,
                "role_name": role_request.get_requested_role_display(),
                "status": role_request.status,
                "admin_notes": role_request.admin_notes,
            },
        )

    @classmethod
    def send_grade_notification(cls, *, user: User, progression) -> None:
        if progression.graduated:
            subject = "Congratulations, Graduate! - LunchLit"
        else:
            subject = f"Welcome to {display_grade(progression.to_grade)}! - LunchLit"
        cls._send(
            template="grade_changed",
            subject=subject,
            recipient=user.email,
            ctx={
                "user": user,
                "progression": progression,
                "from_grade": display_grade(progression.from_grade),
                "to_grade": display_grade(progression.to_grade),
            },
        )

    @classmethod
    def send_feedback_notification(cls, *, suggestion) -> None:
        label = FEEDBACK_STATUS_LABELS.get(suggestion.status, suggestion.status)
        cls._send(
            template="feedback_status",
            subject=f'Your feedback "{suggestion.title}" has been {label.lower()}',
            recipient=suggestion.user.email,
            ctx={"user": suggestion.user, "suggestion": suggestion, "status_label": label},
        )


# Per-user rows removed before the identity itself, in this order.
ACCOUNT_DATA_MODELS = [
    "accounts.NotificationPreference",
    "accounts.Notification",
    "portfolio.BragSheetInsight",
    "portfolio.BragSheetAcademics",
    "portfolio.BragSheetEntry",
    "portfolio.StudentGoal",
    "portfolio.TargetSchool",
    "chat.ChatMessage",
    "planner.Task",
    "planner.ClassSchedule",
    "discussions.Discussion",
    "core.RoleAssignment",
    "core.RoleRequest",
    "core.Suggestion",
]


class AccountService:
    """Account deletion shared by the self-service and admin endpoints."""

    @staticmethod
    def delete_account(user: User) -> None:
        """Delete *user*'s rows table by table, then the user.

        A failure on one table is logged and does not stop the others; there
        is no rollback across tables.
        """
        user_id = user.pk
        for label in ACCOUNT_DATA_MODELS:
            try:
                model = apps.get_model(label)
                with transaction.atomic():
                    deleted, _ = model.objects.filter(user_id=user_id).delete()
            except (LookupError, DatabaseError):
                logger.exception("Error deleting %s rows for user %s", label, user_id)
                continue
            logger.info("Deleted %d %s rows for user %s", deleted, label, user_id)

        Token.objects.filter(user_id=user_id).delete()
        user.delete()
        logger.info("Deleted account %s", user_id)
