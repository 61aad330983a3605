from django.contrib.auth.models import AnonymousUser
from django.core import mail
from django.core.cache import cache
from django.test import TestCase
from django.urls import reverse
from rest_framework.test import APIClient

from accounts.models import CustomUser
from core.exceptions import InvalidPermissionError
from core.forms import CustomRoleForm
from core.models import (
    ADMIN,
    ALL_PERMISSIONS,
    COUNSELOR,
    MANAGE_DISCUSSIONS,
    MANAGE_MENUS,
    MANAGE_ROLES,
    MANAGE_STUDY_HALLS,
    MANAGE_USERS,
    STUDENT,
    TEACHER,
    VERIFY_ENTRIES,
    VIEW_ANALYTICS,
    AllowedEmailDomain,
    CustomRole,
    RoleAssignment,
    RoleAuditLog,
    RoleRequest,
    School,
    Suggestion,
)
from core.permissions import (
    EMPTY,
    can_assign_role,
    can_manage_user,
    parse_permission,
    parse_permissions,
    resolve_permissions,
    user_priority,
)
from core.utils import assign_signup_role, is_educational_email


class RoleFixturesMixin:
    """Helpers to create users with role assignments."""

    def make_user(self, username, *roles, email=None, **extra):
        user = CustomUser.objects.create_user(
            username=username,
            email=email or f"{username}@example.com",
            password="testpass123",
            **extra,
        )
        for role in roles:
            if isinstance(role, tuple):
                base, custom_role = role
                RoleAssignment.objects.create(user=user, role=base, custom_role=custom_role)
            else:
                RoleAssignment.objects.create(user=user, role=role)
        return user

    def make_custom_role(self, name, permissions=(), priority=0, is_active=True, **extra):
        return CustomRole.objects.create(
            name=name,
            display_name=extra.pop("display_name", name.replace("_", " ").title()),
            permissions=list(permissions),
            priority=priority,
            is_active=is_active,
            **extra,
        )


# ---------------------------------------------------------------------------
# Permission resolver
# ---------------------------------------------------------------------------

class PermissionResolverTests(RoleFixturesMixin, TestCase):
    def setUp(self):
        cache.clear()

    def test_student_only_has_no_permissions(self):
        user = self.make_user("stu", STUDENT)
        resolved = resolve_permissions(user)
        self.assertEqual(resolved.permissions, frozenset())
        self.assertEqual(resolved.roles, (STUDENT,))
        self.assertFalse(resolved.is_admin)
        self.assertFalse(resolved.is_verifier)

    def test_admin_has_every_permission_regardless_of_other_roles(self):
        user = self.make_user("boss", STUDENT, ADMIN)
        resolved = resolve_permissions(user)
        for permission in ALL_PERMISSIONS:
            self.assertTrue(resolved.has_permission(permission), permission)
        self.assertTrue(resolved.is_admin)
        self.assertEqual(len(ALL_PERMISSIONS), 8)

    def test_teacher_and_counselor_union(self):
        user = self.make_user("both", TEACHER, COUNSELOR)
        resolved = resolve_permissions(user)
        self.assertEqual(
            resolved.permissions,
            {MANAGE_STUDY_HALLS, VERIFY_ENTRIES, MANAGE_DISCUSSIONS, VIEW_ANALYTICS},
        )
        self.assertTrue(resolved.is_verifier)
        self.assertFalse(resolved.is_admin)

    def test_inactive_custom_role_changes_nothing(self):
        plain = self.make_user("plain", TEACHER)
        inactive = self.make_custom_role("dormant", [MANAGE_MENUS, MANAGE_USERS], is_active=False)
        with_inactive = self.make_user("dormant_user", TEACHER, (STUDENT, inactive))

        self.assertEqual(
            resolve_permissions(with_inactive).permissions,
            resolve_permissions(plain).permissions,
        )

    def test_active_custom_role_adds_permissions(self):
        role = self.make_custom_role("menu_editor", [MANAGE_MENUS])
        user = self.make_user("editor", (STUDENT, role))
        resolved = resolve_permissions(user)
        self.assertEqual(resolved.permissions, {MANAGE_MENUS})
        self.assertTrue(resolved.can_manage_menus())
        self.assertFalse(resolved.can_manage_users())

    def test_end_to_end_example(self):
        custom = self.make_custom_role("lunch_lead", [MANAGE_MENUS], priority=2)
        user = self.make_user("example", TEACHER, (COUNSELOR, custom))

        resolved = resolve_permissions(user)
        self.assertEqual(
            resolved.permissions,
            {MANAGE_STUDY_HALLS, VERIFY_ENTRIES, MANAGE_DISCUSSIONS, VIEW_ANALYTICS, MANAGE_MENUS},
        )
        self.assertEqual(user_priority(user).priority, 50)

    def test_any_and_all_reductions(self):
        user = self.make_user("t", TEACHER)
        resolved = resolve_permissions(user)
        self.assertTrue(resolved.has_any_permission([MANAGE_MENUS, VERIFY_ENTRIES]))
        self.assertFalse(resolved.has_any_permission([MANAGE_MENUS, MANAGE_USERS]))
        self.assertTrue(resolved.has_all_permissions([VERIFY_ENTRIES, MANAGE_DISCUSSIONS]))
        self.assertFalse(resolved.has_all_permissions([VERIFY_ENTRIES, VIEW_ANALYTICS]))
        self.assertTrue(resolved.has_all_permissions([]))

    def test_anonymous_user_resolves_empty(self):
        self.assertIs(resolve_permissions(AnonymousUser()), EMPTY)
        self.assertIs(resolve_permissions(None), EMPTY)
        self.assertFalse(EMPTY.is_admin)

    def test_unknown_stored_permission_is_ignored(self):
        # Rows written before validation existed.
        role = self.make_custom_role("legacy", ["manage_everything", VIEW_ANALYTICS])
        user = self.make_user("legacy_user", (STUDENT, role))
        with self.assertLogs("core.permissions", level="WARNING"):
            resolved = resolve_permissions(user)
        self.assertEqual(resolved.permissions, {VIEW_ANALYTICS})

    def test_new_assignment_invalidates_cache(self):
        user = self.make_user("grow", STUDENT)
        self.assertFalse(resolve_permissions(user).is_verifier)

        RoleAssignment.objects.create(user=user, role=TEACHER)
        self.assertTrue(resolve_permissions(user).is_verifier)

    def test_removed_assignment_invalidates_cache(self):
        user = self.make_user("shrink", TEACHER)
        self.assertTrue(resolve_permissions(user).is_verifier)

        RoleAssignment.objects.filter(user=user, role=TEACHER).delete()
        self.assertFalse(resolve_permissions(user).is_verifier)

    def test_custom_role_edit_invalidates_every_holder(self):
        role = self.make_custom_role("helper", [VIEW_ANALYTICS])
        a = self.make_user("a", (STUDENT, role))
        b = self.make_user("b", (STUDENT, role))
        resolve_permissions(a)
        resolve_permissions(b)

        role.permissions = [MANAGE_MENUS]
        role.save()

        self.assertEqual(resolve_permissions(a).permissions, {MANAGE_MENUS})
        self.assertEqual(resolve_permissions(b).permissions, {MANAGE_MENUS})

    def test_as_dict(self):
        user = self.make_user("c", COUNSELOR)
        data = resolve_permissions(user).as_dict()
        self.assertEqual(data["roles"], [COUNSELOR])
        self.assertEqual(data["permissions"], sorted([VERIFY_ENTRIES, VIEW_ANALYTICS]))
        self.assertTrue(data["is_verifier"])
        self.assertFalse(data["is_admin"])


class PermissionParsingTests(TestCase):
    def test_known_permission_passes(self):
        self.assertEqual(parse_permission(MANAGE_MENUS), MANAGE_MENUS)

    def test_unknown_permission_raises(self):
        with self.assertRaises(InvalidPermissionError) as ctx:
            parse_permission("launch_rockets")
        self.assertEqual(ctx.exception.permission, "launch_rockets")

    def test_list_is_deduplicated_in_order(self):
        self.assertEqual(
            parse_permissions([VIEW_ANALYTICS, MANAGE_MENUS, VIEW_ANALYTICS]),
            [VIEW_ANALYTICS, MANAGE_MENUS],
        )


# ---------------------------------------------------------------------------
# Role hierarchy
# ---------------------------------------------------------------------------

class RoleHierarchyTests(RoleFixturesMixin, TestCase):
    def setUp(self):
        cache.clear()

    def test_user_without_roles_has_default_priority(self):
        user = self.make_user("nobody")
        priority = user_priority(user)
        self.assertEqual(priority.priority, 0)
        self.assertEqual(priority.role_name, "User")
        self.assertEqual(user_priority(AnonymousUser()).priority, 0)

    def test_priority_is_maximum_not_sum(self):
        user = self.make_user("multi", STUDENT, TEACHER, COUNSELOR)
        self.assertEqual(user_priority(user).priority, 50)

    def test_custom_role_priority_is_scaled(self):
        role = self.make_custom_role("captain", priority=4)
        user = self.make_user("cap", (STUDENT, role))
        self.assertEqual(user_priority(user).priority, 40)

    def test_inactive_custom_role_contributes_nothing(self):
        role = self.make_custom_role("retired", priority=5, is_active=False)
        user = self.make_user("ret", (STUDENT, role))
        self.assertEqual(user_priority(user).priority, 10)
        self.assertEqual(user_priority(user).role_name, STUDENT)

    def test_equal_custom_priority_takes_display_metadata(self):
        role = self.make_custom_role(
            "department_head",
            priority=5,
            display_name="Department Head",
            icon="star",
            color="#ff0000",
        )
        user = self.make_user("head", TEACHER, (STUDENT, role))
        priority = user_priority(user)
        self.assertEqual(priority.priority, 50)
        self.assertEqual(priority.role_name, "Department Head")
        self.assertEqual(priority.icon, "star")

    def test_admin_metadata(self):
        user = self.make_user("adm", ADMIN)
        self.assertEqual(
            user_priority(user).as_dict(),
            {"priority": 100, "role_name": ADMIN, "icon": "crown", "color": "#eab308"},
        )

    def test_admin_can_manage_anyone(self):
        admin = self.make_user("adm", ADMIN)
        self.assertTrue(can_manage_user(admin, 100))
        self.assertTrue(can_manage_user(admin, 1000))

    def test_equal_priority_cannot_manage(self):
        teacher = self.make_user("teach", TEACHER)
        self.assertFalse(can_manage_user(teacher, 50))
        self.assertTrue(can_manage_user(teacher, 49))

    def test_can_assign_role_strictly_lower(self):
        teacher = self.make_user("teach", TEACHER)
        self.assertTrue(can_assign_role(teacher, STUDENT))
        self.assertFalse(can_assign_role(teacher, COUNSELOR))
        self.assertFalse(can_assign_role(teacher, ADMIN))

    def test_can_assign_role_with_custom_role(self):
        teacher = self.make_user("teach", TEACHER)
        low = self.make_custom_role("helper", priority=3)
        high = self.make_custom_role("lead", priority=5)
        self.assertTrue(can_assign_role(teacher, STUDENT, low))
        self.assertTrue(can_assign_role(teacher, STUDENT, low.pk))
        self.assertFalse(can_assign_role(teacher, STUDENT, high))

    def test_can_assign_role_ignores_inactive_custom_role(self):
        teacher = self.make_user("teach", TEACHER)
        inactive = self.make_custom_role("old_lead", priority=5, is_active=False)
        self.assertTrue(can_assign_role(teacher, STUDENT, inactive))

    def test_admin_can_assign_admin(self):
        admin = self.make_user("adm", ADMIN)
        self.assertTrue(can_assign_role(admin, ADMIN))


# ---------------------------------------------------------------------------
# Forms and helpers
# ---------------------------------------------------------------------------

class CustomRoleFormTests(TestCase):
    def test_unknown_permission_rejected(self):
        form = CustomRoleForm(data={
            "display_name": "Wizard",
            "permissions": [MANAGE_MENUS, "cast_spells"],
            "is_active": True,
        })
        self.assertFalse(form.is_valid())
        self.assertIn("permissions", form.errors)

    def test_priority_out_of_range_rejected(self):
        form = CustomRoleForm(data={"display_name": "Too High", "priority": 6})
        self.assertFalse(form.is_valid())
        self.assertIn("priority", form.errors)

    def test_name_derived_from_display_name(self):
        form = CustomRoleForm(data={
            "display_name": "Club   Advisor",
            "permissions": [VERIFY_ENTRIES],
        })
        self.assertTrue(form.is_valid(), form.errors)
        role = form.save()
        self.assertEqual(role.name, "club_advisor")
        self.assertEqual(role.priority, 0)
        self.assertEqual(role.permissions, [VERIFY_ENTRIES])


class SignupRoleTests(TestCase):
    def setUp(self):
        cache.clear()
        self.school = School.objects.create(name="Lincoln High")

    def test_matching_domain_assigns_role_and_school(self):
        AllowedEmailDomain.objects.create(
            domain="@Lincoln.K12.us", auto_assign_role=TEACHER, school=self.school,
        )
        user = CustomUser.objects.create_user("t1", "t1@lincoln.k12.us", "testpass123")

        assignment = assign_signup_role(user)

        self.assertEqual(assignment.role, TEACHER)
        self.assertEqual(assignment.email_domain, "lincoln.k12.us")
        user.refresh_from_db()
        self.assertEqual(user.school, self.school)

    def test_no_domain_rule_assigns_student(self):
        user = CustomUser.objects.create_user("s1", "s1@gmail.com", "testpass123")
        assignment = assign_signup_role(user)
        self.assertEqual(assignment.role, STUDENT)
        self.assertIsNone(user.school)

    def test_educational_email_heuristic(self):
        self.assertTrue(is_educational_email("a@state.edu"))
        self.assertTrue(is_educational_email("b@district.k12.ca.us"))
        self.assertFalse(is_educational_email("c@gmail.com"))
        self.assertFalse(is_educational_email("not-an-email"))


# ---------------------------------------------------------------------------
# API
# ---------------------------------------------------------------------------

class APITestMixin(RoleFixturesMixin):
    def setUp(self):
        cache.clear()
        self.client = APIClient()

    def login(self, user):
        self.client.force_authenticate(user)


class CustomRoleAPITests(APITestMixin, TestCase):
    def setUp(self):
        super().setUp()
        self.admin = self.make_user("adm", ADMIN)
        self.url = reverse("core:custom_role_list")

    def test_admin_creates_role_and_audit_entry(self):
        self.login(self.admin)
        response = self.client.post(
            self.url,
            {"display_name": "Menu Lead", "permissions": [MANAGE_MENUS], "priority": 2},
            format="json",
        )
        self.assertEqual(response.status_code, 201, response.data)
        self.assertEqual(response.data["name"], "menu_lead")
        self.assertTrue(response.data["is_active"])

        entry = RoleAuditLog.objects.get()
        self.assertEqual(entry.action_type, RoleAuditLog.CUSTOM_ROLE_CREATED)
        self.assertEqual(entry.custom_role_id, response.data["id"])
        self.assertEqual(entry.performed_by, self.admin)

    def test_unknown_permission_rejected(self):
        self.login(self.admin)
        response = self.client.post(
            self.url,
            {"display_name": "Bad", "permissions": ["delete_school"]},
            format="json",
        )
        self.assertEqual(response.status_code, 400)
        self.assertIn("permissions", response.data)
        self.assertFalse(CustomRole.objects.exists())

    def test_student_cannot_create(self):
        self.login(self.make_user("stu", STUDENT))
        response = self.client.post(self.url, {"display_name": "Nope"}, format="json")
        self.assertEqual(response.status_code, 403)

    def test_anyone_signed_in_can_list(self):
        self.make_custom_role("helper")
        self.login(self.make_user("stu", STUDENT))
        response = self.client.get(self.url)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.data), 1)

    def test_anonymous_rejected(self):
        response = self.client.get(self.url)
        self.assertIn(response.status_code, (401, 403))

    def test_permission_change_logged(self):
        role = self.make_custom_role("helper", [VIEW_ANALYTICS])
        self.login(self.admin)
        response = self.client.patch(
            reverse("core:custom_role_detail", args=[role.pk]),
            {"permissions": [VIEW_ANALYTICS, MANAGE_MENUS]},
            format="json",
        )
        self.assertEqual(response.status_code, 200, response.data)
        self.assertEqual(
            RoleAuditLog.objects.get().action_type, RoleAuditLog.PERMISSION_CHANGED,
        )
        role.refresh_from_db()
        self.assertEqual(role.permissions, [VIEW_ANALYTICS, MANAGE_MENUS])

    def test_metadata_change_logged_as_update(self):
        role = self.make_custom_role("helper", [VIEW_ANALYTICS])
        self.login(self.admin)
        response = self.client.patch(
            reverse("core:custom_role_detail", args=[role.pk]),
            {"color": "#123456"},
            format="json",
        )
        self.assertEqual(response.status_code, 200, response.data)
        self.assertEqual(
            RoleAuditLog.objects.get().action_type, RoleAuditLog.CUSTOM_ROLE_UPDATED,
        )

    def test_delete_removes_assignments(self):
        role = self.make_custom_role("helper", [VIEW_ANALYTICS])
        holder = self.make_user("holder", (STUDENT, role))
        self.assertTrue(resolve_permissions(holder).can_view_analytics())

        self.login(self.admin)
        response = self.client.delete(reverse("core:custom_role_detail", args=[role.pk]))

        self.assertEqual(response.status_code, 204)
        self.assertFalse(RoleAssignment.objects.filter(user=holder).exists())
        self.assertFalse(resolve_permissions(holder).can_view_analytics())
        self.assertEqual(
            RoleAuditLog.objects.get().action_type, RoleAuditLog.CUSTOM_ROLE_DELETED,
        )

    def test_color_and_icon_default(self):
        self.login(self.admin)
        response = self.client.post(self.url, {"display_name": "Club Lead"}, format="json")
        self.assertEqual(response.status_code, 201, response.data)
        self.assertEqual(response.data["color"], "#6366f1")
        self.assertEqual(response.data["icon"], "shield")

        response = self.client.post(
            self.url, {"display_name": "Chess Lead", "color": "#000000", "icon": "crown"}, format="json",
        )
        self.assertEqual((response.data["color"], response.data["icon"]), ("#000000", "crown"))


class CustomRoleHierarchyTests(APITestMixin, TestCase):
    """Role managers below admin cannot raise a role past themselves."""

    def setUp(self):
        super().setUp()
        self.lead_role = self.make_custom_role("role_lead", [MANAGE_ROLES], priority=1)
        self.lead = self.make_user("lead", TEACHER, (TEACHER, self.lead_role))
        self.login(self.lead)

    def test_cannot_raise_own_role(self):
        response = self.client.patch(
            reverse("core:custom_role_detail", args=[self.lead_role.pk]),
            {"permissions": [MANAGE_ROLES, MANAGE_USERS], "priority": 5},
            format="json",
        )
        self.assertEqual(response.status_code, 403)
        self.lead_role.refresh_from_db()
        self.assertEqual(self.lead_role.priority, 1)
        self.assertFalse(resolve_permissions(self.lead).has_permission(MANAGE_USERS))
        self.assertFalse(RoleAuditLog.objects.exists())

    def test_cannot_grant_permissions_not_held(self):
        response = self.client.patch(
            reverse("core:custom_role_detail", args=[self.lead_role.pk]),
            {"permissions": [MANAGE_ROLES, MANAGE_USERS]},
            format="json",
        )
        self.assertEqual(response.status_code, 403)

        response = self.client.post(
            reverse("core:custom_role_list"),
            {"display_name": "User Admin", "permissions": [MANAGE_USERS], "priority": 1},
            format="json",
        )
        self.assertEqual(response.status_code, 403)
        self.assertEqual(CustomRole.objects.count(), 1)

    def test_can_create_lower_role_with_held_permissions(self):
        response = self.client.post(
            reverse("core:custom_role_list"),
            {"display_name": "Hall Monitor", "permissions": [MANAGE_STUDY_HALLS], "priority": 4},
            format="json",
        )
        self.assertEqual(response.status_code, 201, response.data)

        response = self.client.post(
            reverse("core:custom_role_list"),
            {"display_name": "Co-Teacher", "permissions": [MANAGE_STUDY_HALLS], "priority": 5},
            format="json",
        )
        self.assertEqual(response.status_code, 403)

    def test_cannot_touch_higher_role(self):
        senior = self.make_custom_role("senior_staff", [VIEW_ANALYTICS], priority=5)
        url = reverse("core:custom_role_detail", args=[senior.pk])
        self.assertEqual(self.client.patch(url, {"color": "#000000"}, format="json").status_code, 403)
        self.assertEqual(self.client.delete(url).status_code, 403)
        self.assertTrue(CustomRole.objects.filter(pk=senior.pk).exists())


class UserRoleAPITests(APITestMixin, TestCase):
    def setUp(self):
        super().setUp()
        manager_role = self.make_custom_role("user_manager", [MANAGE_USERS])
        self.manager = self.make_user("mgr", TEACHER, (STUDENT, manager_role))
        self.target = self.make_user("newbie")
        self.url = reverse("core:user_roles", args=[self.target.pk])

    def test_assign_lower_role(self):
        self.login(self.manager)
        response = self.client.post(self.url, {"role": STUDENT}, format="json")

        self.assertEqual(response.status_code, 201, response.data)
        self.assertTrue(RoleAssignment.objects.filter(user=self.target, role=STUDENT).exists())
        self.assertEqual(RoleAuditLog.objects.get().action_type, RoleAuditLog.ROLE_ADDED)
        self.assertEqual(len(mail.outbox), 1)
        self.assertEqual(mail.outbox[0].subject, "Your role has been updated")
        self.assertEqual(mail.outbox[0].to, [self.target.email])

    def test_cannot_assign_equal_role(self):
        self.login(self.manager)
        response = self.client.post(self.url, {"role": COUNSELOR}, format="json")
        self.assertEqual(response.status_code, 403)
        self.assertFalse(RoleAssignment.objects.filter(user=self.target).exists())

    def test_cannot_manage_peer(self):
        peer = self.make_user("peer", COUNSELOR)
        self.login(self.manager)
        response = self.client.post(
            reverse("core:user_roles", args=[peer.pk]), {"role": STUDENT}, format="json",
        )
        self.assertEqual(response.status_code, 403)

    def test_duplicate_base_role_rejected(self):
        RoleAssignment.objects.create(user=self.target, role=STUDENT)
        self.login(self.manager)
        response = self.client.post(self.url, {"role": STUDENT}, format="json")
        self.assertEqual(response.status_code, 400)
        self.assertIn("User already has this role.", response.data["__all__"])

    def test_without_manage_users_forbidden(self):
        self.login(self.make_user("teach", TEACHER))
        response = self.client.get(self.url)
        self.assertEqual(response.status_code, 403)

    def test_list_includes_priority(self):
        RoleAssignment.objects.create(user=self.target, role=STUDENT)
        self.login(self.manager)
        response = self.client.get(self.url)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["priority"]["priority"], 10)
        self.assertEqual(len(response.data["roles"]), 1)

    def test_remove_role(self):
        assignment = RoleAssignment.objects.create(user=self.target, role=STUDENT)
        self.login(self.manager)
        response = self.client.delete(
            reverse("core:user_role_detail", args=[self.target.pk, assignment.pk]),
        )
        self.assertEqual(response.status_code, 204)
        self.assertFalse(RoleAssignment.objects.filter(pk=assignment.pk).exists())
        self.assertEqual(RoleAuditLog.objects.get().action_type, RoleAuditLog.ROLE_REMOVED)
        self.assertEqual(mail.outbox[0].subject, "Your role has been changed")


class VerifierRoleAPITests(APITestMixin, TestCase):
    def setUp(self):
        super().setUp()
        self.school = School.objects.create(name="Central High")
        self.url = reverse("core:request_verifier_role")

    def test_school_email_gets_role(self):
        user = self.make_user("teach", STUDENT, email="teach@central.k12.us")
        self.login(user)
        response = self.client.post(
            self.url, {"role": TEACHER, "school": self.school.pk}, format="json",
        )
        self.assertEqual(response.status_code, 201, response.data)
        self.assertTrue(resolve_permissions(user).is_verifier)

    def test_personal_email_rejected(self):
        self.login(self.make_user("fake", STUDENT, email="fake@gmail.com"))
        response = self.client.post(
            self.url, {"role": TEACHER, "school": self.school.pk}, format="json",
        )
        self.assertEqual(response.status_code, 400)
        self.assertIn(
            "Please use a school email address (.edu, .k12, etc.) to register as a verifier",
            response.data["__all__"],
        )


class RoleRequestAPITests(APITestMixin, TestCase):
    def setUp(self):
        super().setUp()
        self.admin = self.make_user("adm", ADMIN)
        self.student = self.make_user("stu", STUDENT)

    def submit(self):
        self.login(self.student)
        return self.client.post(
            reverse("core:role_request_list"),
            {"requested_role": TEACHER, "reason": "I teach chemistry"},
            format="json",
        )

    def test_submit_and_duplicate_pending(self):
        self.assertEqual(self.submit().status_code, 201)
        response = self.submit()
        self.assertEqual(response.status_code, 400)
        self.assertIn("requested_role", response.data)

    def test_mine_lists_own_requests(self):
        self.submit()
        response = self.client.get(reverse("core:my_role_requests"))
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]["status"], RoleRequest.PENDING)

    def test_listing_requires_manage_roles(self):
        self.submit()
        response = self.client.get(reverse("core:role_request_list"))
        self.assertEqual(response.status_code, 403)

        self.login(self.admin)
        response = self.client.get(reverse("core:role_request_list"), {"status": "pending"})
        self.assertEqual(len(response.data), 1)

    def test_approve_grants_role(self):
        request_id = self.submit().data["id"]
        self.login(self.admin)
        response = self.client.post(
            reverse("core:review_role_request", args=[request_id]),
            {"status": "approved", "admin_notes": "Welcome"},
            format="json",
        )
        self.assertEqual(response.status_code, 200, response.data)
        self.assertTrue(resolve_permissions(self.student).has_role(TEACHER))
        self.assertEqual(RoleAuditLog.objects.get().action_type, RoleAuditLog.ROLE_ADDED)
        self.assertEqual(
            mail.outbox[-1].subject, "Your role upgrade request has been approved",
        )

    def test_reject_and_review_twice(self):
        request_id = self.submit().data["id"]
        self.login(self.admin)
        url = reverse("core:review_role_request", args=[request_id])
        self.assertEqual(
            self.client.post(url, {"status": "rejected"}, format="json").status_code, 200,
        )
        self.assertFalse(resolve_permissions(self.student).has_role(TEACHER))

        response = self.client.post(url, {"status": "approved"}, format="json")
        self.assertEqual(response.status_code, 400)

    def test_reviewer_cannot_approve_own_request(self):
        lead_role = self.make_custom_role("role_lead", [MANAGE_ROLES], priority=1)
        lead = self.make_user("lead", TEACHER, (TEACHER, lead_role))
        self.login(lead)
        request_id = self.client.post(
            reverse("core:role_request_list"), {"requested_role": ADMIN}, format="json",
        ).data["id"]

        response = self.client.post(
            reverse("core:review_role_request", args=[request_id]),
            {"status": "approved"},
            format="json",
        )

        self.assertEqual(response.status_code, 403)
        self.assertFalse(resolve_permissions(lead).is_admin)
        self.assertEqual(RoleRequest.objects.get().status, RoleRequest.PENDING)

    def test_approval_respects_hierarchy(self):
        lead_role = self.make_custom_role("role_lead", [MANAGE_ROLES], priority=1)
        lead = self.make_user("lead", TEACHER, (TEACHER, lead_role))
        self.login(self.student)
        request_id = self.client.post(
            reverse("core:role_request_list"), {"requested_role": ADMIN}, format="json",
        ).data["id"]
        url = reverse("core:review_role_request", args=[request_id])

        self.login(lead)
        self.assertEqual(self.client.post(url, {"status": "approved"}, format="json").status_code, 403)
        self.assertFalse(resolve_permissions(self.student).is_admin)
        self.assertEqual(RoleRequest.objects.get().status, RoleRequest.PENDING)

        response = self.client.post(url, {"status": "rejected"}, format="json")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(RoleRequest.objects.get().status, RoleRequest.REJECTED)


class EmailDomainAPITests(APITestMixin, TestCase):
    def setUp(self):
        super().setUp()
        self.login(self.make_user("adm", ADMIN))
        self.url = reverse("core:email_domain_list")

    def test_domain_normalized(self):
        response = self.client.post(
            self.url, {"domain": " @Lincoln.EDU ", "auto_assign_role": TEACHER}, format="json",
        )
        self.assertEqual(response.status_code, 201, response.data)
        self.assertEqual(response.data["domain"], "lincoln.edu")

    def test_duplicate_and_invalid_rejected(self):
        AllowedEmailDomain.objects.create(domain="lincoln.edu", auto_assign_role=TEACHER)
        response = self.client.post(
            self.url, {"domain": "@LINCOLN.edu", "auto_assign_role": STUDENT}, format="json",
        )
        self.assertEqual(response.status_code, 400)

        response = self.client.post(
            self.url, {"domain": "localhost", "auto_assign_role": STUDENT}, format="json",
        )
        self.assertEqual(response.status_code, 400)


class AuditLogAPITests(APITestMixin, TestCase):
    def test_requires_manage_roles(self):
        self.login(self.make_user("teach", TEACHER))
        self.assertEqual(self.client.get(reverse("core:audit_log")).status_code, 403)

    def test_custom_role_grants_access(self):
        role = self.make_custom_role("auditor", [MANAGE_ROLES])
        self.login(self.make_user("aud", (STUDENT, role)))
        self.assertEqual(self.client.get(reverse("core:audit_log")).status_code, 200)


class SuggestionAPITests(APITestMixin, TestCase):
    def setUp(self):
        super().setUp()
        self.author = self.make_user("writer", STUDENT)
        self.suggestion = Suggestion.objects.create(
            user=self.author, title="Dark mode", description="Please", category="feature",
        )
        self.login(self.make_user("adm", ADMIN))
        self.url = reverse("core:admin_suggestion_status", args=[self.suggestion.pk])

    def test_status_change_emails_author(self):
        response = self.client.patch(self.url, {"status": "planned"}, format="json")
        self.assertEqual(response.status_code, 200, response.data)
        self.assertEqual(len(mail.outbox), 1)
        self.assertEqual(
            mail.outbox[0].subject,
            'Your feedback "Dark mode" has been planned for development',
        )

    def test_unchanged_status_sends_nothing(self):
        response = self.client.patch(self.url, {"status": "pending"}, format="json")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(mail.outbox, [])

    def test_user_submits_suggestion(self):
        self.login(self.author)
        response = self.client.post(
            reverse("core:suggestion_list"),
            {"title": "Bug", "description": "Broken", "category": "bug"},
            format="json",
        )
        self.assertEqual(response.status_code, 201)
        self.assertEqual(Suggestion.objects.filter(user=self.author).count(), 2)
