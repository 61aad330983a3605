from datetime import datetime, timezone as dt_timezone
from unittest.mock import patch

from django.contrib.auth import get_user_model
from django.contrib.auth.tokens import default_token_generator
from django.core import mail
from django.core.cache import cache
from django.test import TestCase
from django.urls import reverse
from django.utils.encoding import force_bytes
from django.utils.http import urlsafe_base64_encode
from rest_framework.authtoken.models import Token
from rest_framework.test import APIClient

from accounts.grades import (
    FIFTH,
    FRESHMAN,
    JUNIOR,
    SENIOR,
    SOPHOMORE,
    display_grade,
    grade_order,
    is_high_school,
    progress_grade,
    revert_grade,
    school_year_start,
    should_progress,
)
from accounts.models import Notification, NotificationPreference
from chat.models import ChatMessage
from accounts.notifications import notify_menu_update, notify_task_due
from core.models import ADMIN, STUDENT, TEACHER, AllowedEmailDomain, RoleAssignment, School
from planner.models import Task

User = get_user_model()


def utc(*args):
    return datetime(*args, tzinfo=dt_timezone.utc)


class GradeRuleTests(TestCase):
    """Pure date arithmetic of the once-per-school-year rule."""

    def test_school_year_starts_august_first(self):
        self.assertEqual(school_year_start(utc(2025, 9, 15, 10, 30)), utc(2025, 8, 1))
        self.assertEqual(school_year_start(utc(2026, 3, 2)), utc(2025, 8, 1))
        self.assertEqual(school_year_start(utc(2025, 8, 1)), utc(2025, 8, 1))

    def test_never_progressed_is_due(self):
        self.assertTrue(should_progress(None, utc(2025, 8, 2)))

    def test_progressed_this_year_is_not_due(self):
        self.assertFalse(should_progress(utc(2025, 8, 5), utc(2026, 1, 10)))

    def test_progressed_last_year_is_due(self):
        self.assertTrue(should_progress(utc(2025, 3, 1), utc(2025, 8, 1)))
        self.assertFalse(should_progress(utc(2025, 3, 1), utc(2025, 7, 31)))

    def test_grade_helpers(self):
        self.assertEqual(grade_order(FIFTH), 1)
        self.assertEqual(grade_order(SENIOR), 8)
        self.assertEqual(grade_order("Kindergarten"), 0)
        self.assertTrue(is_high_school(JUNIOR))
        self.assertFalse(is_high_school(FIFTH))
        self.assertEqual(display_grade(FRESHMAN), "Freshman")
        self.assertEqual(display_grade(""), "")


class GradeProgressionTests(TestCase):
    def setUp(self):
        self.user = User.objects.create_user(
            username="kid", email="kid@example.com", password="testpass123",
            grade_level=FRESHMAN,
        )

    def test_advances_exactly_one_step(self):
        progression = progress_grade(self.user, now=utc(2025, 9, 1))

        self.assertEqual(progression.from_grade, FRESHMAN)
        self.assertEqual(progression.to_grade, SOPHOMORE)
        self.user.refresh_from_db()
        self.assertEqual(self.user.grade_level, SOPHOMORE)
        self.assertEqual(self.user.last_grade_progression, utc(2025, 9, 1))
        self.assertEqual(mail.outbox[0].subject, "Welcome to Sophomore! - LunchLit")
        notification = Notification.objects.get(user=self.user)
        self.assertEqual(notification.type, Notification.GRADE_UPDATE)
        self.assertEqual(notification.data["new_grade"], SOPHOMORE)

    def test_does_not_advance_twice_in_one_year(self):
        progress_grade(self.user, now=utc(2025, 9, 1))
        self.assertIsNone(progress_grade(self.user, now=utc(2026, 5, 20)))
        self.user.refresh_from_db()
        self.assertEqual(self.user.grade_level, SOPHOMORE)

    def test_advances_again_next_year(self):
        progress_grade(self.user, now=utc(2025, 9, 1))
        progress_grade(self.user, now=utc(2026, 8, 1))
        self.user.refresh_from_db()
        self.assertEqual(self.user.grade_level, JUNIOR)

    def test_senior_graduates(self):
        self.user.grade_level = SENIOR
        self.user.save()

        progression = progress_grade(self.user, now=utc(2025, 8, 15))

        self.assertTrue(progression.graduated)
        self.user.refresh_from_db()
        self.assertTrue(self.user.is_graduated)
        self.assertEqual(self.user.grade_level, SENIOR)
        self.assertEqual(mail.outbox[0].subject, "Congratulations, Graduate! - LunchLit")
        self.assertIsNone(progress_grade(self.user, now=utc(2026, 8, 15)))

    def test_unknown_grade_left_alone(self):
        self.user.grade_level = ""
        self.user.save()
        self.assertIsNone(progress_grade(self.user, now=utc(2025, 9, 1)))
        self.assertEqual(mail.outbox, [])

    def test_revert_steps_back(self):
        self.assertEqual(revert_grade(self.user), "8th Grade")
        self.user.grade_level = FIFTH
        self.assertIsNone(revert_grade(self.user))

    def test_revert_ungraduates(self):
        self.user.grade_level = SENIOR
        self.user.is_graduated = True
        self.user.save()
        self.assertEqual(revert_grade(self.user), SENIOR)
        self.user.refresh_from_db()
        self.assertFalse(self.user.is_graduated)


class RegistrationTests(TestCase):
    """Tests for user registration and email verification."""

    @classmethod
    def setUpTestData(cls):
        cls.existing_user = User.objects.create_user(
            username="existing",
            email="existing@example.com",
            password="testpass123",
            is_active=True,
        )

    def setUp(self):
        cache.clear()
        self.client = APIClient()

    def register(self, **overrides):
        data = {
            "username": "newuser",
            "email": "NewUser@Example.com",
            "password1": "securepass123",
            "password2": "securepass123",
            "grade_level": FRESHMAN,
        }
        data.update(overrides)
        return self.client.post(reverse("accounts:register"), data, format="json")

    def test_register_valid_user(self):
        """Creates an inactive user with the student role."""
        response = self.register()
        self.assertEqual(response.status_code, 201, response.data)

        user = User.objects.get(username="newuser")
        self.assertFalse(user.is_active)
        self.assertEqual(user.email, "newuser@example.com")
        self.assertEqual(
            list(RoleAssignment.objects.filter(user=user).values_list("role", flat=True)),
            [STUDENT],
        )

    def test_register_sends_verification_email(self):
        self.register(username="emailtest", email="emailtest@example.com")
        self.assertEqual(len(mail.outbox), 1)
        self.assertIn("emailtest@example.com", mail.outbox[0].to)

    def test_register_with_allowed_domain(self):
        school = School.objects.create(name="Lincoln")
        AllowedEmailDomain.objects.create(domain="lincoln.edu", auto_assign_role=TEACHER, school=school)

        self.register(email="teach@lincoln.edu")

        user = User.objects.get(username="newuser")
        self.assertEqual(user.school, school)
        self.assertTrue(RoleAssignment.objects.filter(user=user, role=TEACHER).exists())

    def test_register_password_mismatch(self):
        response = self.register(password2="differentpass")
        self.assertEqual(response.status_code, 400)
        self.assertIn("Passwords do not match.", response.data["password2"])

    def test_register_duplicate_email(self):
        response = self.register(email="EXISTING@example.com")
        self.assertEqual(response.status_code, 400)
        self.assertIn("An account with this email already exists.", response.data["email"])

    def test_register_duplicate_username(self):
        response = self.register(username="existing", email="different@example.com")
        self.assertEqual(response.status_code, 400)
        self.assertIn("username", response.data)

    def test_verify_valid_token_activates_user(self):
        user = User.objects.create_user(
            username="toverify",
            email="toverify@example.com",
            password="testpass123",
            is_active=False,
        )
        uidb64 = urlsafe_base64_encode(force_bytes(user.pk))
        token = default_token_generator.make_token(user)

        response = self.client.get(reverse("accounts:verify", kwargs={"uidb64": uidb64, "token": token}))
        self.assertEqual(response.status_code, 200)

        user.refresh_from_db()
        self.assertTrue(user.is_active)

    def test_verify_invalid_token_rejected(self):
        user = User.objects.create_user(
            username="badtoken",
            email="badtoken@example.com",
            password="testpass123",
            is_active=False,
        )
        uidb64 = urlsafe_base64_encode(force_bytes(user.pk))
        response = self.client.get(
            reverse("accounts:verify", kwargs={"uidb64": uidb64, "token": "bad-token"})
        )
        self.assertEqual(response.status_code, 400)
        user.refresh_from_db()
        self.assertFalse(user.is_active)


class LoginTests(TestCase):
    """Token login with email or username."""

    def setUp(self):
        cache.clear()
        self.client = APIClient()
        self.user = User.objects.create_user(
            username="loginuser", email="login@example.com", password="testpass123",
        )

    def login(self, username, password="testpass123"):
        return self.client.post(
            reverse("accounts:login"), {"username": username, "password": password}, format="json",
        )

    def test_login_with_email_case_insensitive(self):
        response = self.login("LOGIN@Example.com")
        self.assertEqual(response.status_code, 200, response.data)
        self.assertEqual(response.data["token"], Token.objects.get(user=self.user).key)
        self.assertEqual(response.data["user"]["email"], "login@example.com")

    def test_login_with_username(self):
        self.assertEqual(self.login("loginuser").status_code, 200)

    def test_wrong_password(self):
        self.assertEqual(self.login("loginuser", "nope").status_code, 400)

    def test_inactive_user_cannot_login(self):
        self.user.is_active = False
        self.user.save()
        self.assertEqual(self.login("loginuser").status_code, 400)

    def test_bearer_token_and_logout(self):
        token = self.login("loginuser").data["token"]
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {token}")
        self.assertEqual(self.client.get(reverse("accounts:me")).status_code, 200)

        self.assertEqual(self.client.post(reverse("accounts:logout")).status_code, 204)
        self.assertFalse(Token.objects.filter(user=self.user).exists())
        self.assertEqual(self.client.get(reverse("accounts:me")).status_code, 401)


class ProfileTests(TestCase):
    def setUp(self):
        cache.clear()
        self.client = APIClient()
        self.school = School.objects.create(name="Central")
        self.user = User.objects.create_user(
            username="me", email="me@example.com", password="testpass123",
            grade_level=JUNIOR,
        )
        RoleAssignment.objects.create(user=self.user, role=TEACHER)
        self.client.force_authenticate(self.user)

    def test_patch_keeps_unsent_fields(self):
        response = self.client.patch(
            reverse("accounts:me"), {"school": self.school.pk}, format="json",
        )
        self.assertEqual(response.status_code, 200, response.data)
        self.assertEqual(response.data["school_name"], "Central")
        self.assertEqual(response.data["grade_level"], JUNIOR)
        self.assertEqual(response.data["grade_display"], "Junior")

    def test_my_permissions(self):
        response = self.client.get(reverse("accounts:my_permissions"))
        self.assertEqual(response.data["roles"], [TEACHER])
        self.assertTrue(response.data["is_verifier"])
        self.assertEqual(response.data["priority"]["priority"], 50)

    def test_check_grade(self):
        response = self.client.post(reverse("accounts:check_grade"))
        self.assertTrue(response.data["progressed"])
        self.assertFalse(response.data["graduated"])
        self.assertEqual(response.data["user"]["grade_level"], SENIOR)

        response = self.client.post(reverse("accounts:check_grade"))
        self.assertFalse(response.data["progressed"])


class AccountDeletionTests(TestCase):
    def setUp(self):
        cache.clear()
        self.client = APIClient()
        self.admin = User.objects.create_user("boss", "boss@example.com", "testpass123")
        RoleAssignment.objects.create(user=self.admin, role=ADMIN)
        self.user = User.objects.create_user("leaver", "leaver@example.com", "testpass123")
        RoleAssignment.objects.create(user=self.user, role=STUDENT)
        Task.objects.create(user=self.user, title="Essay")
        Notification.objects.create(user=self.user, type=Notification.TASK_REMINDER, title="Essay")
        NotificationPreference.objects.create(user=self.user, task_reminders=False)
        ChatMessage.objects.create(user=self.user, role="user", content="Help")

    def test_self_delete_removes_rows_and_user(self):
        self.client.force_authenticate(self.user)
        response = self.client.post(reverse("accounts:delete_account"))

        self.assertEqual(response.data, {"success": True})
        self.assertFalse(User.objects.filter(pk=self.user.pk).exists())
        self.assertFalse(Task.objects.exists())
        self.assertFalse(RoleAssignment.objects.filter(user_id=self.user.pk).exists())
        self.assertFalse(Notification.objects.exists())
        self.assertFalse(NotificationPreference.objects.exists())
        self.assertFalse(ChatMessage.objects.exists())

    def test_failing_table_does_not_stop_deletion(self):
        self.client.force_authenticate(self.user)
        models = ["missing.Model", "planner.Task"]
        with patch("accounts.services.ACCOUNT_DATA_MODELS", models), \
                self.assertLogs("accounts.services", level="ERROR"):
            response = self.client.post(reverse("accounts:delete_account"))

        self.assertEqual(response.status_code, 200)
        self.assertFalse(Task.objects.exists())
        self.assertFalse(User.objects.filter(pk=self.user.pk).exists())

    def test_admin_deletes_other_account(self):
        self.client.force_authenticate(self.admin)
        response = self.client.post(
            reverse("accounts:admin_delete_account"), {"targetUserId": self.user.pk}, format="json",
        )
        self.assertEqual(response.status_code, 200)
        self.assertFalse(User.objects.filter(pk=self.user.pk).exists())

    def test_admin_cannot_delete_self(self):
        self.client.force_authenticate(self.admin)
        response = self.client.post(
            reverse("accounts:admin_delete_account"), {"targetUserId": self.admin.pk}, format="json",
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["detail"], "Cannot delete your own account from admin panel")

    def test_admin_delete_validation(self):
        self.client.force_authenticate(self.admin)
        url = reverse("accounts:admin_delete_account")
        response = self.client.post(url, {}, format="json")
        self.assertEqual(response.status_code, 400)
        self.assertIn("targetUserId is required", response.data["targetUserId"])

        response = self.client.post(url, {"targetUserId": 99999}, format="json")
        self.assertEqual(response.status_code, 404)

    def test_non_admin_forbidden(self):
        self.client.force_authenticate(self.user)
        response = self.client.post(
            reverse("accounts:admin_delete_account"), {"targetUserId": self.admin.pk}, format="json",
        )
        self.assertEqual(response.status_code, 403)
        self.assertTrue(User.objects.filter(pk=self.admin.pk).exists())


class RevertGradeAPITests(TestCase):
    def setUp(self):
        cache.clear()
        self.client = APIClient()
        admin = User.objects.create_user("boss", "boss@example.com", "testpass123")
        RoleAssignment.objects.create(user=admin, role=ADMIN)
        self.client.force_authenticate(admin)

    def test_revert(self):
        user = User.objects.create_user("kid", "kid@example.com", "testpass123", grade_level=SOPHOMORE)
        response = self.client.post(reverse("accounts:revert_grade", args=[user.pk]))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["grade_level"], FRESHMAN)

    def test_nothing_to_revert(self):
        user = User.objects.create_user("kid", "kid@example.com", "testpass123", grade_level=FIFTH)
        response = self.client.post(reverse("accounts:revert_grade", args=[user.pk]))
        self.assertEqual(response.status_code, 400)


class NotificationFanOutTests(TestCase):
    def setUp(self):
        self.school = School.objects.create(name="Central")
        other = School.objects.create(name="Elsewhere")
        self.member = User.objects.create_user("member", "member@example.com", "testpass123", school=self.school)
        self.drifter = User.objects.create_user("drifter", "drifter@example.com", "testpass123")
        self.outsider = User.objects.create_user("outsider", "out@example.com", "testpass123", school=other)
        self.inactive = User.objects.create_user("asleep", "asleep@example.com", "testpass123", school=self.school)
        self.inactive.is_active = False
        self.inactive.save()

    def test_in_school_includes_users_without_school(self):
        self.assertCountEqual(
            User.objects.in_school(self.school.pk), [self.member, self.drifter],
        )
        self.assertEqual(User.objects.in_school(None).count(), 3)

    def test_menu_update_reaches_school(self):
        created = notify_menu_update(self.school.pk, utc(2025, 9, 1).date())

        self.assertEqual(created, 2)
        notification = Notification.objects.get(user=self.member)
        self.assertEqual(notification.title, "New Menu Available!")
        self.assertEqual(notification.data, {"school_id": self.school.pk, "date": "2025-09-01"})
        self.assertFalse(Notification.objects.filter(user=self.outsider).exists())

    def test_opted_out_users_skipped(self):
        NotificationPreference.objects.create(user=self.member, new_menu_items=False)
        notify_menu_update(self.school.pk, utc(2025, 9, 1).date())
        self.assertEqual(
            list(Notification.objects.values_list("user__username", flat=True)), ["drifter"],
        )

    def test_task_reminder_sent_once(self):
        task = Task.objects.create(user=self.member, title="Essay", due_date=utc(2025, 9, 2).date())
        self.assertEqual(notify_task_due(task), 1)
        self.assertEqual(notify_task_due(task), 0)
        self.assertEqual(Notification.objects.get().data["task_id"], task.pk)


class NotificationAPITests(TestCase):
    def setUp(self):
        cache.clear()
        self.client = APIClient()
        self.user = User.objects.create_user("me", "me@example.com", "testpass123")
        self.other = User.objects.create_user("other", "other@example.com", "testpass123")
        self.first = Notification.objects.create(user=self.user, type=Notification.MENU_UPDATE, title="Menu")
        self.second = Notification.objects.create(
            user=self.user, type=Notification.STUDY_HALL, title="Hall", is_read=True,
        )
        self.foreign = Notification.objects.create(user=self.other, type=Notification.MENU_UPDATE, title="Not yours")
        self.client.force_authenticate(self.user)

    def test_list_newest_first(self):
        response = self.client.get(reverse("accounts:notification_list"))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["unread_count"], 1)
        self.assertEqual([n["title"] for n in response.data["notifications"]], ["Hall", "Menu"])

    def test_list_unread_only(self):
        response = self.client.get(reverse("accounts:notification_list"), {"unread": "true"})
        self.assertEqual([n["id"] for n in response.data["notifications"]], [self.first.pk])

    def test_mark_read(self):
        response = self.client.post(reverse("accounts:notification_read", args=[self.first.pk]))
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.data["is_read"])

        response = self.client.post(reverse("accounts:notification_read", args=[self.foreign.pk]))
        self.assertEqual(response.status_code, 404)

    def test_mark_all_read(self):
        response = self.client.post(reverse("accounts:notification_read_all"))
        self.assertEqual(response.data, {"updated": 1})
        self.foreign.refresh_from_db()
        self.assertFalse(self.foreign.is_read)

    def test_delete(self):
        response = self.client.delete(reverse("accounts:notification_delete", args=[self.first.pk]))
        self.assertEqual(response.status_code, 204)
        response = self.client.delete(reverse("accounts:notification_delete", args=[self.foreign.pk]))
        self.assertEqual(response.status_code, 404)
        self.assertTrue(Notification.objects.filter(pk=self.foreign.pk).exists())

    def test_preferences_default_on(self):
        response = self.client.get(reverse("accounts:notification_preferences"))
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.data["new_menu_items"])
        self.assertTrue(response.data["task_reminders"])

    def test_preferences_patch_keeps_unsent_fields(self):
        response = self.client.patch(
            reverse("accounts:notification_preferences"), {"study_hall_availability": False}, format="json",
        )
        self.assertEqual(response.status_code, 200, response.data)
        self.assertFalse(response.data["study_hall_availability"])
        self.assertTrue(response.data["discussion_replies"])
        self.assertFalse(NotificationPreference.objects.get(user=self.user).study_hall_availability)
