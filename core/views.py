import logging

from django.contrib.auth import get_user_model
from django.forms.models import model_to_dict
from django.shortcuts import get_object_or_404
from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import PermissionDenied
from rest_framework.response import Response

from accounts.services import NotificationService
from core.forms import (
    AllowedEmailDomainForm,
    CustomRoleForm,
    RoleAssignmentForm,
    RoleRequestForm,
    RoleRequestReviewForm,
    SchoolForm,
    SuggestionForm,
    SuggestionStatusForm,
    VerifierRoleForm,
)
from core.models import (
    MANAGE_ROLES,
    MANAGE_SCHOOLS,
    MANAGE_USERS,
    AllowedEmailDomain,
    CustomRole,
    RoleAssignment,
    RoleAuditLog,
    RoleRequest,
    School,
    Suggestion,
)
from core.permissions import (
    HasPermission,
    can_assign_role,
    can_manage_custom_role,
    can_manage_user,
    require_permission,
    user_priority,
)
from core.serializers import (
    AllowedEmailDomainSerializer,
    CustomRoleSerializer,
    RoleAssignmentSerializer,
    RoleAuditLogSerializer,
    RoleRequestSerializer,
    SchoolSerializer,
    SuggestionSerializer,
)
from core.utils import record_audit

User = get_user_model()
logger = logging.getLogger(__name__)

AUDIT_LOG_LIMIT = 100


def _errors(form):
    return Response(form.errors, status=status.HTTP_400_BAD_REQUEST)


def _merged(instance, form_class, data):
    """Current field values of *instance* overlaid with the submitted ones (PATCH)."""
    merged = model_to_dict(instance, fields=form_class._meta.fields)
    merged.update(data)
    return merged


def _check_custom_role(actor, cleaned):
    if not can_manage_custom_role(actor, cleaned["priority"], cleaned["permissions"]):
        raise PermissionDenied(
            "You cannot define a role that outranks you or grants permissions you do not hold."
        )


def _role_label(assignment):
    if assignment.custom_role_id:
        return assignment.custom_role.display_name
    return assignment.get_role_display()


# ---------------------------------------------------------------------------
# Custom roles
# ---------------------------------------------------------------------------

@api_view(["GET", "POST"])
def custom_role_list(request):
    """List custom roles, or create one (manage_roles)."""
    if request.method == "GET":
        roles = CustomRole.objects.all()
        return Response(CustomRoleSerializer(roles, many=True).data)

    require_permission(request.user, MANAGE_ROLES)
    data = {"is_active": True}
    data.update(request.data)
    form = CustomRoleForm(data)
    if not form.is_valid():
        return _errors(form)
    _check_custom_role(request.user, form.cleaned_data)
    role = form.save(commit=False)
    role.created_by = request.user
    role.save()
    record_audit(
        RoleAuditLog.CUSTOM_ROLE_CREATED,
        request.user,
        custom_role_id=role.pk,
        name=role.name,
        permissions=role.permissions,
    )
    return Response(CustomRoleSerializer(role).data, status=status.HTTP_201_CREATED)


@api_view(["PATCH", "DELETE"])
@permission_classes([HasPermission(MANAGE_ROLES)])
def custom_role_detail(request, pk: int):
    """Update or delete a custom role; assignments using it are removed with it."""
    role = get_object_or_404(CustomRole, pk=pk)
    if not can_manage_custom_role(request.user, role.priority):
        raise PermissionDenied("You cannot manage a role with an equal or higher priority.")

    if request.method == "DELETE":
        record_audit(
            RoleAuditLog.CUSTOM_ROLE_DELETED,
            request.user,
            custom_role_id=role.pk,
            name=role.name,
        )
        role.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)

    before = role.permissions
    form = CustomRoleForm(_merged(role, CustomRoleForm, request.data), instance=role)
    if not form.is_valid():
        return _errors(form)
    _check_custom_role(request.user, form.cleaned_data)
    role = form.save()
    action = (
        RoleAuditLog.PERMISSION_CHANGED
        if sorted(before) != sorted(role.permissions)
        else RoleAuditLog.CUSTOM_ROLE_UPDATED
    )
    record_audit(
        action,
        request.user,
        custom_role_id=role.pk,
        name=role.name,
        changed=sorted(form.changed_data),
    )
    return Response(CustomRoleSerializer(role).data)


# ---------------------------------------------------------------------------
# User role assignments
# ---------------------------------------------------------------------------

@api_view(["GET", "POST"])
@permission_classes([HasPermission(MANAGE_USERS)])
def user_roles(request, user_id: int):
    """List a user's role assignments with their priority, or assign a role."""
    target = get_object_or_404(User, pk=user_id)

    if request.method == "GET":
        assignments = target.role_assignments.select_related("custom_role").order_by("id")
        return Response({
            "user": target.pk,
            "priority": user_priority(target).as_dict(),
            "roles": RoleAssignmentSerializer(assignments, many=True).data,
        })

    form = RoleAssignmentForm(request.data, user=target)
    if not form.is_valid():
        return _errors(form)

    role = form.cleaned_data["role"]
    custom_role = form.cleaned_data.get("custom_role")
    if not can_manage_user(request.user, user_priority(target).priority):
        raise PermissionDenied("You cannot manage a user with an equal or higher role.")
    if not can_assign_role(request.user, role, custom_role):
        raise PermissionDenied("You cannot assign a role with an equal or higher priority.")

    assignment = form.save()
    record_audit(
        RoleAuditLog.ROLE_ADDED,
        request.user,
        target_user=target,
        custom_role_id=assignment.custom_role_id,
        role=role,
    )
    NotificationService.send_role_notification(
        user=target, role_name=_role_label(assignment), action="added",
    )
    return Response(RoleAssignmentSerializer(assignment).data, status=status.HTTP_201_CREATED)


@api_view(["DELETE"])
@permission_classes([HasPermission(MANAGE_USERS)])
def user_role_detail(request, user_id: int, assignment_id: int):
    """Remove one role assignment from a user."""
    assignment = get_object_or_404(
        RoleAssignment.objects.select_related("user", "custom_role"),
        pk=assignment_id,
        user_id=user_id,
    )
    target = assignment.user
    if not can_manage_user(request.user, user_priority(target).priority):
        raise PermissionDenied("You cannot manage a user with an equal or higher role.")

    label = _role_label(assignment)
    record_audit(
        RoleAuditLog.ROLE_REMOVED,
        request.user,
        target_user=target,
        custom_role_id=assignment.custom_role_id,
        role=assignment.role,
    )
    assignment.delete()
    NotificationService.send_role_notification(user=target, role_name=label, action="removed")
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(["POST"])
def request_verifier_role(request):
    """Self-assign the teacher or counselor role with a school email address."""
    form = VerifierRoleForm(request.data, user=request.user)
    if not form.is_valid():
        return _errors(form)
    user = request.user
    assignment = RoleAssignment.objects.create(
        user=user,
        role=form.cleaned_data["role"],
        school=form.cleaned_data["school"],
        email_domain=user.email.rsplit("@", 1)[1].lower(),
    )
    logger.info("User %s registered as %s", user.pk, assignment.role)
    return Response(RoleAssignmentSerializer(assignment).data, status=status.HTTP_201_CREATED)


# ---------------------------------------------------------------------------
# Role upgrade requests
# ---------------------------------------------------------------------------

@api_view(["GET", "POST"])
def role_request_list(request):
    """All requests (manage_roles, ``?status=`` filter) or submit one."""
    if request.method == "POST":
        form = RoleRequestForm(request.data, user=request.user)
        if not form.is_valid():
            return _errors(form)
        role_request = form.save()
        return Response(RoleRequestSerializer(role_request).data, status=status.HTTP_201_CREATED)

    require_permission(request.user, MANAGE_ROLES)
    requests = RoleRequest.objects.select_related("user")
    status_filter = request.query_params.get("status")
    if status_filter:
        requests = requests.filter(status=status_filter)
    return Response(RoleRequestSerializer(requests, many=True).data)


@api_view(["GET"])
def my_role_requests(request):
    requests = RoleRequest.objects.filter(user=request.user).select_related("user")
    return Response(RoleRequestSerializer(requests, many=True).data)


@api_view(["POST"])
@permission_classes([HasPermission(MANAGE_ROLES)])
def review_role_request(request, pk: int):
    """Approve (granting the role) or reject a pending request."""
    role_request = get_object_or_404(RoleRequest.objects.select_related("user"), pk=pk)
    if role_request.user_id == request.user.pk:
        raise PermissionDenied("You cannot review your own request.")
    if role_request.status != RoleRequest.PENDING:
        return Response(
            {"detail": "This request has already been reviewed."},
            status=status.HTTP_400_BAD_REQUEST,
        )
    form = RoleRequestReviewForm(request.data)
    if not form.is_valid():
        return _errors(form)

    if form.cleaned_data["status"] == RoleRequest.APPROVED:
        if not can_manage_user(request.user, user_priority(role_request.user).priority):
            raise PermissionDenied("You cannot manage a user with an equal or higher role.")
        if not can_assign_role(request.user, role_request.requested_role):
            raise PermissionDenied("You cannot assign a role with an equal or higher priority.")

    role_request.status = form.cleaned_data["status"]
    role_request.admin_notes = form.cleaned_data["admin_notes"]
    role_request.reviewed_by = request.user
    role_request.reviewed_at = timezone.now()
    role_request.save()

    if role_request.status == RoleRequest.APPROVED:
        _, created = RoleAssignment.objects.get_or_create(
            user=role_request.user,
            role=role_request.requested_role,
            custom_role=None,
            defaults={"school": role_request.school},
        )
        if created:
            record_audit(
                RoleAuditLog.ROLE_ADDED,
                request.user,
                target_user=role_request.user,
                role=role_request.requested_role,
                role_request=role_request.pk,
            )
    NotificationService.send_role_request_notification(role_request=role_request)
    return Response(RoleRequestSerializer(role_request).data)


# ---------------------------------------------------------------------------
# Allowed email domains
# ---------------------------------------------------------------------------

@api_view(["GET", "POST"])
@permission_classes([HasPermission(MANAGE_USERS)])
def email_domain_list(request):
    if request.method == "GET":
        domains = AllowedEmailDomain.objects.select_related("school")
        return Response(AllowedEmailDomainSerializer(domains, many=True).data)

    form = AllowedEmailDomainForm(request.data)
    if not form.is_valid():
        return _errors(form)
    domain = form.save(commit=False)
    domain.created_by = request.user
    domain.save()
    return Response(AllowedEmailDomainSerializer(domain).data, status=status.HTTP_201_CREATED)


@api_view(["DELETE"])
@permission_classes([HasPermission(MANAGE_USERS)])
def email_domain_detail(request, pk: int):
    get_object_or_404(AllowedEmailDomain, pk=pk).delete()
    return Response(status=status.HTTP_204_NO_CONTENT)


# ---------------------------------------------------------------------------
# Audit log
# ---------------------------------------------------------------------------

@api_view(["GET"])
@permission_classes([HasPermission(MANAGE_ROLES)])
def audit_log(request):
    """The most recent role audit entries."""
    entries = RoleAuditLog.objects.all()[:AUDIT_LOG_LIMIT]
    return Response(RoleAuditLogSerializer(entries, many=True).data)


# ---------------------------------------------------------------------------
# Schools
# ---------------------------------------------------------------------------

@api_view(["GET", "POST"])
def school_list(request):
    if request.method == "GET":
        return Response(SchoolSerializer(School.objects.all(), many=True).data)

    require_permission(request.user, MANAGE_SCHOOLS)
    form = SchoolForm(request.data)
    if not form.is_valid():
        return _errors(form)
    school = form.save()
    return Response(SchoolSerializer(school).data, status=status.HTTP_201_CREATED)


@api_view(["DELETE"])
@permission_classes([HasPermission(MANAGE_SCHOOLS)])
def school_detail(request, pk: int):
    get_object_or_404(School, pk=pk).delete()
    return Response(status=status.HTTP_204_NO_CONTENT)


# ---------------------------------------------------------------------------
# Suggestions (feedback)
# ---------------------------------------------------------------------------

@api_view(["GET", "POST"])
def suggestion_list(request):
    """The current user's suggestions, or submit a new one."""
    if request.method == "GET":
        suggestions = Suggestion.objects.filter(user=request.user)
        return Response(SuggestionSerializer(suggestions, many=True).data)

    form = SuggestionForm(request.data)
    if not form.is_valid():
        return _errors(form)
    suggestion = form.save(commit=False)
    suggestion.user = request.user
    suggestion.save()
    return Response(SuggestionSerializer(suggestion).data, status=status.HTTP_201_CREATED)


@api_view(["GET"])
@permission_classes([HasPermission(MANAGE_USERS)])
def admin_suggestion_list(request):
    suggestions = Suggestion.objects.select_related("user")
    status_filter = request.query_params.get("status")
    if status_filter:
        suggestions = suggestions.filter(status=status_filter)
    return Response(SuggestionSerializer(suggestions, many=True).data)


@api_view(["PATCH"])
@permission_classes([HasPermission(MANAGE_USERS)])
def admin_suggestion_status(request, pk: int):
    """Change a suggestion's status and email its author."""
    suggestion = get_object_or_404(Suggestion.objects.select_related("user"), pk=pk)
    form = SuggestionStatusForm(request.data)
    if not form.is_valid():
        return _errors(form)

    new_status = form.cleaned_data["status"]
    if new_status != suggestion.status:
        suggestion.status = new_status
        suggestion.save(update_fields=["status", "updated_at"])
        NotificationService.send_feedback_notification(suggestion=suggestion)
    return Response(SuggestionSerializer(suggestion).data)
