from unittest.mock import patch

from django.core.cache import cache
from django.test import TestCase
from django.urls import reverse
from rest_framework.test import APIClient

from accounts.models import CustomUser, Notification
from core.models import ADMIN, STUDENT, TEACHER, CustomRole, RoleAssignment, School
from discussions.models import Discussion, DiscussionCategory


class DiscussionTestMixin:
    def setUp(self):
        cache.clear()
        self.client = APIClient()
        self.school = School.objects.create(name="Central")
        self.other_school = School.objects.create(name="North")
        self.author = self.make_user("author", STUDENT, full_name="Avery Author")
        self.reader = self.make_user("reader", STUDENT)
        self.teacher = self.make_user("teach", TEACHER)

    def make_user(self, username, role, school=None, **extra):
        user = CustomUser.objects.create_user(
            username, f"{username}@example.com", "testpass123",
            school=school or self.school, **extra,
        )
        RoleAssignment.objects.create(user=user, role=role)
        return user

    def make_thread(self, user=None, **extra):
        user = user or self.author
        return Discussion.objects.create(
            user=user,
            school=user.school,
            title=extra.pop("title", "Study group?"),
            content=extra.pop("content", "Anyone up for chemistry?"),
            **extra,
        )


class ThreadListTests(DiscussionTestMixin, TestCase):
    def test_create_thread_uses_author_school(self):
        self.client.force_authenticate(self.author)
        response = self.client.post(
            reverse("discussions:list"),
            {"title": " Prom ", "content": "Who is going?", "category": "events"},
            format="json",
        )
        self.assertEqual(response.status_code, 201, response.data)
        self.assertEqual(response.data["title"], "Prom")
        self.assertEqual(response.data["school"], self.school.pk)
        self.assertEqual(response.data["author"]["name"], "Avery Author")

    def test_thread_requires_title(self):
        self.client.force_authenticate(self.author)
        response = self.client.post(
            reverse("discussions:list"), {"title": "  ", "content": "x"}, format="json",
        )
        self.assertEqual(response.status_code, 400)
        self.assertIn("title", response.data)

    def test_pinned_first_then_newest_with_reply_counts(self):
        old = self.make_thread(title="Old")
        pinned = self.make_thread(title="Pinned", is_pinned=True)
        new = self.make_thread(title="New")
        Discussion.objects.create(user=self.reader, school=self.school, parent=old, content="Reply")

        self.client.force_authenticate(self.reader)
        response = self.client.get(reverse("discussions:list"))

        self.assertEqual([t["id"] for t in response.data], [pinned.pk, new.pk, old.pk])
        self.assertEqual(response.data[2]["reply_count"], 1)

    def test_other_schools_hidden_and_category_filter(self):
        self.make_thread(title="Ours", category="clubs")
        self.make_thread(title="Homework", category="homework")
        outsider = self.make_user("outsider", STUDENT, school=self.other_school)
        self.make_thread(user=outsider, title="Theirs")

        self.client.force_authenticate(self.reader)
        response = self.client.get(reverse("discussions:list"), {"category": "clubs"})
        self.assertEqual([t["title"] for t in response.data], ["Ours"])

        response = self.client.get(reverse("discussions:list"))
        self.assertNotIn("Theirs", [t["title"] for t in response.data])

    def test_author_role_badge(self):
        role = CustomRole.objects.create(
            name="club_president", display_name="Club President", priority=2, icon="star",
        )
        RoleAssignment.objects.create(user=self.author, role=STUDENT, custom_role=role)
        self.make_thread()

        self.client.force_authenticate(self.reader)
        author = self.client.get(reverse("discussions:list")).data[0]["author"]
        self.assertEqual(author["role"]["role_name"], "Club President")
        self.assertEqual(author["role"]["priority"], 20)


class ThreadDetailTests(DiscussionTestMixin, TestCase):
    def setUp(self):
        super().setUp()
        self.thread = self.make_thread()

    def test_reply_inherits_thread(self):
        self.client.force_authenticate(self.reader)
        response = self.client.post(
            reverse("discussions:reply", args=[self.thread.pk]),
            {"content": "Count me in"},
            format="json",
        )
        self.assertEqual(response.status_code, 201, response.data)
        self.assertEqual(response.data["parent"], self.thread.pk)

        detail = self.client.get(reverse("discussions:detail", args=[self.thread.pk])).data
        self.assertEqual(detail["reply_count"], 1)
        self.assertEqual(detail["replies"][0]["content"], "Count me in")

    def test_empty_reply_rejected(self):
        self.client.force_authenticate(self.reader)
        response = self.client.post(
            reverse("discussions:reply", args=[self.thread.pk]), {"content": "   "}, format="json",
        )
        self.assertEqual(response.status_code, 400)

    def test_only_author_or_moderator_deletes(self):
        url = reverse("discussions:detail", args=[self.thread.pk])
        self.client.force_authenticate(self.reader)
        self.assertEqual(self.client.delete(url).status_code, 403)

        self.client.force_authenticate(self.teacher)
        self.assertEqual(self.client.delete(url).status_code, 204)
        self.assertFalse(Discussion.objects.exists())

    def test_author_deletes_own_post(self):
        self.client.force_authenticate(self.author)
        response = self.client.delete(reverse("discussions:detail", args=[self.thread.pk]))
        self.assertEqual(response.status_code, 204)

    def test_pin_requires_manage_discussions(self):
        url = reverse("discussions:pin", args=[self.thread.pk])
        self.client.force_authenticate(self.author)
        self.assertEqual(self.client.post(url).status_code, 403)

        self.client.force_authenticate(self.teacher)
        self.assertTrue(self.client.post(url).data["is_pinned"])
        self.assertFalse(self.client.post(url).data["is_pinned"])

    def test_reply_broadcasts_parent(self):
        with patch("core.realtime.send_to_group") as send, \
                self.captureOnCommitCallbacks(execute=True):
            reply = Discussion.objects.create(
                user=self.reader, school=self.school, parent=self.thread, content="Hi",
            )
        send.assert_called_once_with("discussions", {
            "type": "change",
            "table": "discussions",
            "event": "INSERT",
            "id": reply.pk,
            "parent": self.thread.pk,
        })

    def test_reply_notifies_thread_author(self):
        self.client.force_authenticate(self.reader)
        self.client.post(
            reverse("discussions:reply", args=[self.thread.pk]), {"content": "Count me in"}, format="json",
        )
        notification = Notification.objects.get(user=self.author)
        self.assertEqual(notification.type, Notification.DISCUSSION_REPLY)
        self.assertEqual(notification.data["discussion_id"], self.thread.pk)

        self.client.force_authenticate(self.author)
        self.client.post(
            reverse("discussions:reply", args=[self.thread.pk]), {"content": "Great"}, format="json",
        )
        self.assertEqual(Notification.objects.count(), 1)


class CategoryTests(DiscussionTestMixin, TestCase):
    def setUp(self):
        super().setUp()
        self.admin = self.make_user("boss", ADMIN)

    def test_list_builtin_and_visible_custom(self):
        DiscussionCategory.objects.create(name="Robotics", school=self.school)
        DiscussionCategory.objects.create(name="Announcements")
        DiscussionCategory.objects.create(name="North only", school=self.other_school)

        self.client.force_authenticate(self.reader)
        response = self.client.get(reverse("discussions:category_list"))

        self.assertEqual(response.status_code, 200)
        self.assertIn("general", [c["name"] for c in response.data["builtin"]])
        self.assertEqual([c["name"] for c in response.data["custom"]], ["Announcements", "Robotics"])

    def test_thread_category_must_be_known(self):
        DiscussionCategory.objects.create(name="Robotics", school=self.school)
        self.client.force_authenticate(self.author)
        url = reverse("discussions:list")

        response = self.client.post(url, {"title": "Bots", "content": "Build night", "category": "Robotics"}, format="json")
        self.assertEqual(response.status_code, 201, response.data)
        self.assertEqual(response.data["category"], "Robotics")

        response = self.client.post(url, {"title": "?", "content": "??", "category": "Nonsense"}, format="json")
        self.assertEqual(response.status_code, 400)
        self.assertIn("category", response.data)

        response = self.client.post(url, {"title": "Hi", "content": "Hello"}, format="json")
        self.assertEqual(response.data["category"], "general")

    def test_moderator_creates_for_own_school_only(self):
        self.client.force_authenticate(self.teacher)
        response = self.client.post(
            reverse("discussions:category_list"),
            {"name": "Robotics", "school": self.other_school.pk},
            format="json",
        )
        self.assertEqual(response.status_code, 201, response.data)
        category = DiscussionCategory.objects.get()
        self.assertEqual(category.school, self.school)
        self.assertEqual(category.created_by, self.teacher)

    def test_students_cannot_manage_categories(self):
        category = DiscussionCategory.objects.create(name="Robotics", school=self.school)
        self.client.force_authenticate(self.reader)
        response = self.client.post(reverse("discussions:category_list"), {"name": "Mine"}, format="json")
        self.assertEqual(response.status_code, 403)
        response = self.client.delete(reverse("discussions:category_delete", args=[category.pk]))
        self.assertEqual(response.status_code, 403)

    def test_builtin_and_duplicate_names_rejected(self):
        self.client.force_authenticate(self.admin)
        url = reverse("discussions:category_list")
        self.assertEqual(self.client.post(url, {"name": "general"}, format="json").status_code, 400)
        self.assertEqual(self.client.post(url, {"name": "Clubs+"}, format="json").status_code, 201)
        self.assertEqual(self.client.post(url, {"name": "Clubs+"}, format="json").status_code, 400)

    def test_delete_scoped_to_school(self):
        global_category = DiscussionCategory.objects.create(name="Announcements")
        own = DiscussionCategory.objects.create(name="Robotics", school=self.school)

        self.client.force_authenticate(self.teacher)
        url = reverse("discussions:category_delete", args=[global_category.pk])
        self.assertEqual(self.client.delete(url).status_code, 403)
        url = reverse("discussions:category_delete", args=[own.pk])
        self.assertEqual(self.client.delete(url).status_code, 204)

        self.client.force_authenticate(self.admin)
        url = reverse("discussions:category_delete", args=[global_category.pk])
        self.assertEqual(self.client.delete(url).status_code, 204)
