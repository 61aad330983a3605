import logging

from django.contrib.auth import get_user_model, logout
from django.contrib.auth.tokens import default_token_generator
from django.forms.models import model_to_dict
from django.shortcuts import get_object_or_404
from django.utils.encoding import force_str
from django.utils.http import urlsafe_base64_decode
from rest_framework import status
from rest_framework.authtoken.models import Token
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from accounts.forms import (
    AdminDeleteAccountForm,
    EmailOrUsernameAuthenticationForm,
    NotificationFilterForm,
    NotificationPreferenceForm,
    ProfileForm,
    RegisterForm,
)
from accounts.grades import progress_grade, revert_grade
from accounts.models import Notification
from accounts.notifications import preferences_for
from accounts.serializers import (
    NotificationPreferenceSerializer,
    NotificationSerializer,
    UserSerializer,
)
from accounts.services import AccountService, UserService
from core.models import MANAGE_USERS
from core.permissions import HasPermission, IsAdminRole, resolve_permissions, user_priority
from core.utils import assign_signup_role

User = get_user_model()
logger = logging.getLogger(__name__)


@api_view(["POST"])
@permission_classes([AllowAny])
def register(request):
    """Register a new user, grant the initial role and send a verification email."""
    form = RegisterForm(request.data)
    if not form.is_valid():
        return Response(form.errors, status=status.HTTP_400_BAD_REQUEST)

    user = form.save()
    assign_signup_role(user)
    verify_url = UserService.build_verify_link(request, user)
    UserService.send_verification_email(user=user, verify_url=verify_url)
    return Response(
        {"detail": "If that email is valid, we sent a verification link. Please check your inbox."},
        status=status.HTTP_201_CREATED,
    )


@api_view(["GET"])
@permission_classes([AllowAny])
def verify(request, uidb64: str, token: str):
    """Activate a user if token is valid; otherwise return a safe error."""
    try:
        uid = force_str(urlsafe_base64_decode(uidb64))
        user = User.objects.get(pk=uid)
    except (User.DoesNotExist, ValueError, TypeError):
        user = None

    if user and default_token_generator.check_token(user, token):
        if not user.is_active:
            user.is_active = True
            user.save(update_fields=["is_active"])
        return Response({"detail": "Email verified. You may now log in."})

    return Response(
        {"detail": "The verification link is invalid or has expired."},
        status=status.HTTP_400_BAD_REQUEST,
    )


@api_view(["POST"])
@permission_classes([AllowAny])
def login_view(request):
    """Exchange email-or-username and password for a bearer token."""
    form = EmailOrUsernameAuthenticationForm(request._request, data=request.data)
    if not form.is_valid():
        return Response(form.errors, status=status.HTTP_400_BAD_REQUEST)
    user = form.get_user()
    token, _ = Token.objects.get_or_create(user=user)
    return Response({"token": token.key, "user": UserSerializer(user).data})


@api_view(["POST"])
def logout_view(request):
    """Revoke the bearer token and end the session."""
    Token.objects.filter(user=request.user).delete()
    logout(request._request)
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(["GET", "PATCH"])
def me(request):
    """Read or update the current user's profile (full name, school, grade)."""
    user = request.user
    if request.method == "PATCH":
        data = model_to_dict(user, fields=ProfileForm._meta.fields)
        data.update(request.data)
        form = ProfileForm(data, instance=user)
        if not form.is_valid():
            return Response(form.errors, status=status.HTTP_400_BAD_REQUEST)
        user = form.save()
    return Response(UserSerializer(user).data)


@api_view(["GET"])
def my_permissions(request):
    """Effective roles, permissions and role priority of the current user."""
    payload = resolve_permissions(request.user).as_dict()
    payload["priority"] = user_priority(request.user).as_dict()
    return Response(payload)


@api_view(["POST"])
def check_grade(request):
    """Advance the current user's grade if a new school year has started."""
    progression = progress_grade(request.user)
    return Response({
        "progressed": progression is not None,
        "graduated": bool(progression and progression.graduated),
        "user": UserSerializer(request.user).data,
    })


@api_view(["POST"])
@permission_classes([HasPermission(MANAGE_USERS)])
def revert_user_grade(request, user_id: int):
    """Move a user back one grade (admin correction)."""
    target = get_object_or_404(User, pk=user_id)
    if revert_grade(target) is None:
        return Response(
            {"detail": "There is no earlier grade to revert to."},
            status=status.HTTP_400_BAD_REQUEST,
        )
    return Response(UserSerializer(target).data)


@api_view(["POST"])
def delete_account(request):
    """Delete the current user's account and data."""
    logger.info("User %s requested account deletion", request.user.pk)
    AccountService.delete_account(request.user)
    return Response({"success": True})


@api_view(["POST"])
@permission_classes([IsAdminRole])
def admin_delete_account(request):
    """Delete another user's account (admin only, never your own)."""
    form = AdminDeleteAccountForm(request.data)
    if not form.is_valid():
        return Response(form.errors, status=status.HTTP_400_BAD_REQUEST)

    target_id = form.cleaned_data["targetUserId"]
    if target_id == request.user.pk:
        return Response(
            {"detail": "Cannot delete your own account from admin panel"},
            status=status.HTTP_400_BAD_REQUEST,
        )
    target = get_object_or_404(User, pk=target_id)
    logger.info("Admin %s deleting account %s", request.user.pk, target_id)
    AccountService.delete_account(target)
    return Response({"success": True})


NOTIFICATION_PAGE_SIZE = 50


@api_view(["GET"])
def notification_list(request):
    """The current user's latest notifications; ``?unread=true`` for unread only."""
    form = NotificationFilterForm(request.query_params)
    if not form.is_valid():
        return Response(form.errors, status=status.HTTP_400_BAD_REQUEST)

    notifications = Notification.objects.filter(user=request.user)
    if form.cleaned_data["unread"]:
        notifications = notifications.filter(is_read=False)
    unread_count = Notification.objects.filter(user=request.user, is_read=False).count()
    return Response({
        "unread_count": unread_count,
        "notifications": NotificationSerializer(
            notifications[:NOTIFICATION_PAGE_SIZE], many=True,
        ).data,
    })


@api_view(["POST"])
def notification_read(request, pk: int):
    notification = get_object_or_404(Notification, pk=pk, user=request.user)
    if not notification.is_read:
        notification.is_read = True
        notification.save(update_fields=["is_read"])
    return Response(NotificationSerializer(notification).data)


@api_view(["POST"])
def notification_read_all(request):
    updated = Notification.objects.filter(user=request.user, is_read=False).update(is_read=True)
    return Response({"updated": updated})


@api_view(["DELETE"])
def notification_delete(request, pk: int):
    notification = get_object_or_404(Notification, pk=pk, user=request.user)
    notification.delete()
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(["GET", "PATCH"])
def notification_preferences(request):
    """Read or update which notification types the current user receives."""
    preferences = preferences_for(request.user)
    if request.method == "PATCH":
        data = model_to_dict(preferences, fields=NotificationPreferenceForm._meta.fields)
        data.update(request.data)
        form = NotificationPreferenceForm(data, instance=preferences)
        if not form.is_valid():
            return Response(form.errors, status=status.HTTP_400_BAD_REQUEST)
        preferences = form.save()
    return Response(NotificationPreferenceSerializer(preferences).data)
