from django import forms
from django.core.exceptions import ValidationError

from core.exceptions import InvalidPermissionError
from core.models import (
    BASE_ROLE_CHOICES,
    COUNSELOR,
    PERMISSION_CHOICES,
    TEACHER,
    AllowedEmailDomain,
    CustomRole,
    RoleAssignment,
    RoleRequest,
    School,
    Suggestion,
    slugify_role_name,
)
from core.permissions import parse_permissions
from core.utils import is_educational_email


class PermissionListField(forms.Field):
    """A list of permission strings; unknown strings are rejected."""

    widget = forms.SelectMultiple(choices=PERMISSION_CHOICES)

    def to_python(self, value):
        if value in self.empty_values:
            return []
        if isinstance(value, str):
            value = [value]
        try:
            return parse_permissions(value)
        except InvalidPermissionError as exc:
            raise ValidationError(str(exc), code="invalid_permission") from exc


class SchoolFilterForm(forms.Form):
    """``?school=<id>`` query parameter shared by list endpoints."""

    school = forms.IntegerField(required=False, min_value=1)

    def school_id(self, default=None):
        return self.cleaned_data.get("school") or default


class CustomRoleForm(forms.ModelForm):
    permissions = PermissionListField(required=False)
    priority = forms.IntegerField(
        min_value=CustomRole.MIN_PRIORITY,
        max_value=CustomRole.MAX_PRIORITY,
        required=False,
    )
    color = forms.CharField(max_length=20, required=False)
    icon = forms.CharField(max_length=50, required=False)

    class Meta:
        model = CustomRole
        fields = (
            "name",
            "display_name",
            "description",
            "color",
            "icon",
            "priority",
            "is_active",
            "permissions",
        )

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields["name"].required = False

    def clean_priority(self):
        priority = self.cleaned_data.get("priority")
        return 0 if priority is None else priority

    def clean_color(self):
        return self.cleaned_data.get("color") or CustomRole._meta.get_field("color").default

    def clean_icon(self):
        return self.cleaned_data.get("icon") or CustomRole._meta.get_field("icon").default

    def clean(self):
        cleaned = super().clean()
        if not cleaned.get("name") and cleaned.get("display_name"):
            cleaned["name"] = slugify_role_name(cleaned["display_name"])
        return cleaned


class RoleAssignmentForm(forms.ModelForm):
    """Assign a base role (and optionally a custom role) to ``user``."""

    class Meta:
        model = RoleAssignment
        fields = ("role", "custom_role", "school")

    def __init__(self, *args, user=None, **kwargs):
        super().__init__(*args, **kwargs)
        self.user = user

    def clean(self):
        cleaned = super().clean()
        role = cleaned.get("role")
        if role and not cleaned.get("custom_role") and RoleAssignment.objects.filter(
            user=self.user, role=role, custom_role__isnull=True,
        ).exists():
            raise forms.ValidationError("User already has this role.")
        return cleaned

    def save(self, commit=True):
        assignment = super().save(commit=False)
        assignment.user = self.user
        if commit:
            assignment.save()
        return assignment


class VerifierRoleForm(forms.Form):
    """Self-service teacher / counselor role for users with a school email."""

    role = forms.ChoiceField(choices=[(TEACHER, "Teacher"), (COUNSELOR, "Counselor")])
    school = forms.ModelChoiceField(queryset=School.objects.all())

    def __init__(self, *args, user=None, **kwargs):
        super().__init__(*args, **kwargs)
        self.user = user

    def clean(self):
        cleaned = super().clean()
        if not is_educational_email(self.user.email):
            raise forms.ValidationError(
                "Please use a school email address (.edu, .k12, etc.) to register as a verifier"
            )
        role = cleaned.get("role")
        if role and RoleAssignment.objects.filter(
            user=self.user, role=role, custom_role__isnull=True,
        ).exists():
            raise forms.ValidationError("You already have this role.")
        return cleaned


class RoleRequestForm(forms.ModelForm):
    class Meta:
        model = RoleRequest
        fields = ("requested_role", "school", "reason")

    def __init__(self, *args, user=None, **kwargs):
        super().__init__(*args, **kwargs)
        self.user = user

    def clean_requested_role(self):
        role = self.cleaned_data["requested_role"]
        if RoleRequest.objects.filter(
            user=self.user, requested_role=role, status=RoleRequest.PENDING,
        ).exists():
            raise forms.ValidationError("You already have a pending request for this role.")
        return role

    def save(self, commit=True):
        role_request = super().save(commit=False)
        role_request.user = self.user
        if commit:
            role_request.save()
        return role_request


class RoleRequestReviewForm(forms.Form):
    status = forms.ChoiceField(choices=[
        (RoleRequest.APPROVED, "Approved"),
        (RoleRequest.REJECTED, "Rejected"),
    ])
    admin_notes = forms.CharField(required=False)


class AllowedEmailDomainForm(forms.ModelForm):
    auto_assign_role = forms.ChoiceField(choices=BASE_ROLE_CHOICES)

    class Meta:
        model = AllowedEmailDomain
        fields = ("domain", "auto_assign_role", "school", "description")

    def clean_domain(self):
        domain = AllowedEmailDomain.normalize(self.cleaned_data["domain"])
        if not domain or "." not in domain or " " in domain:
            raise forms.ValidationError("Enter a valid domain, e.g. school.edu")
        if AllowedEmailDomain.objects.filter(domain=domain).exists():
            raise forms.ValidationError("This domain is already configured.")
        return domain


class SchoolForm(forms.ModelForm):
    class Meta:
        model = School
        fields = ("name", "address")


class SuggestionForm(forms.ModelForm):
    class Meta:
        model = Suggestion
        fields = ("title", "description", "category")


class SuggestionStatusForm(forms.Form):
    status = forms.ChoiceField(choices=Suggestion.STATUS_CHOICES)
