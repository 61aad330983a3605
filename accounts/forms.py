from django import forms
from django.contrib.auth import get_user_model
from django.contrib.auth.forms import AuthenticationForm, UsernameField

from accounts.models import NotificationPreference

User = get_user_model()


class EmailOrUsernameAuthenticationForm(AuthenticationForm):
    """Authentication form with field labeled 'Email or Username'."""

    username = UsernameField(label="Email or Username")


class RegisterForm(forms.ModelForm):
    """User registration form with password confirmation.

    Creates the user as inactive; a verification email is required to activate.
    """

    password1 = forms.CharField(strip=False)
    password2 = forms.CharField(strip=False)

    class Meta:
        model = User
        fields = ("email", "username", "full_name", "school", "grade_level")

    def clean_email(self):
        email = self.cleaned_data["email"].strip().lower()
        if User.objects.filter(email__iexact=email).exists():
            raise forms.ValidationError("An account with this email already exists.")
        return email

    def clean(self):
        """Ensure password fields match."""
        cleaned = super().clean()
        if cleaned.get("password1") != cleaned.get("password2"):
            self.add_error("password2", "Passwords do not match.")
        return cleaned

    def save(self, commit: bool = True):
        """Persist the user with `is_active=False` until verified."""
        user = super().save(commit=False)
        user.set_password(self.cleaned_data["password1"])
        user.is_active = False
        if commit:
            user.save()
        return user


class ProfileForm(forms.ModelForm):
    class Meta:
        model = User
        fields = ("full_name", "school", "grade_level")


class AdminDeleteAccountForm(forms.Form):
    targetUserId = forms.IntegerField(
        error_messages={"required": "targetUserId is required"},
    )


class NotificationPreferenceForm(forms.ModelForm):
    class Meta:
        model = NotificationPreference
        fields = (
            "new_menu_items",
            "study_hall_availability",
            "grade_progression",
            "discussion_replies",
            "task_reminders",
        )


class NotificationFilterForm(forms.Form):
    unread = forms.BooleanField(required=False)
