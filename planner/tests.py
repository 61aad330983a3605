import json
from datetime import date, datetime, time, timedelta, timezone as dt_timezone
from io import StringIO

from django.core.cache import cache
from django.core.files.uploadedfile import SimpleUploadedFile
from django.core.management import call_command
from django.test import TestCase
from django.urls import reverse
from django.utils import timezone
from rest_framework.test import APIClient

from accounts.models import CustomUser, Notification, NotificationPreference
from planner import exports
from planner.forms import TaskForm
from planner.models import ClassSchedule, Task


class PlannerTestMixin:
    def setUp(self):
        cache.clear()
        self.client = APIClient()
        self.user = CustomUser.objects.create_user("stu", "stu@example.com", "testpass123")
        self.other = CustomUser.objects.create_user("other", "other@example.com", "testpass123")
        self.client.force_authenticate(self.user)


class TaskAPITests(PlannerTestMixin, TestCase):
    def test_create_applies_defaults(self):
        response = self.client.post(reverse("planner:task_list"), {"title": "Read ch. 4"}, format="json")
        self.assertEqual(response.status_code, 201, response.data)
        self.assertEqual(response.data["priority"], Task.MEDIUM)
        self.assertEqual(response.data["category"], "general")
        self.assertFalse(response.data["is_completed"])
        self.assertIsNone(response.data["description"])

    def test_blank_title_rejected(self):
        response = self.client.post(reverse("planner:task_list"), {"title": "   "}, format="json")
        self.assertEqual(response.status_code, 400)
        self.assertIn("title", response.data)

    def test_list_only_own_tasks(self):
        Task.objects.create(user=self.user, title="Mine")
        Task.objects.create(user=self.other, title="Theirs")
        response = self.client.get(reverse("planner:task_list"))
        self.assertEqual([t["title"] for t in response.data], ["Mine"])

    def test_patch_keeps_other_fields(self):
        task = Task.objects.create(
            user=self.user, title="Lab report", due_date=date(2025, 10, 20), priority=Task.HIGH,
        )
        response = self.client.patch(
            reverse("planner:task_detail", args=[task.pk]), {"is_completed": True}, format="json",
        )
        self.assertEqual(response.status_code, 200, response.data)
        self.assertTrue(response.data["is_completed"])
        self.assertEqual(response.data["priority"], Task.HIGH)
        self.assertEqual(response.data["due_date"], "2025-10-20")

    def test_other_users_task_is_not_found(self):
        task = Task.objects.create(user=self.other, title="Theirs")
        url = reverse("planner:task_detail", args=[task.pk])
        self.assertEqual(self.client.get(url).status_code, 404)
        self.assertEqual(self.client.delete(url).status_code, 404)
        self.assertTrue(Task.objects.filter(pk=task.pk).exists())

    def test_overdue(self):
        task = Task(title="Old", due_date=date(2000, 1, 1))
        self.assertTrue(task.is_overdue)
        task.is_completed = True
        self.assertFalse(task.is_overdue)
        self.assertFalse(Task(title="Someday").is_overdue)


class ClassScheduleAPITests(PlannerTestMixin, TestCase):
    def test_create_with_default_color(self):
        response = self.client.post(reverse("planner:class_list"), {
            "class_name": "Biology",
            "day_of_week": 1,
            "start_time": "09:00",
            "end_time": "09:50",
        }, format="json")
        self.assertEqual(response.status_code, 201, response.data)
        self.assertEqual(response.data["color"], "#10b981")
        self.assertEqual(response.data["day_name"], "Monday")

    def test_end_must_follow_start(self):
        response = self.client.post(reverse("planner:class_list"), {
            "class_name": "Biology",
            "day_of_week": 1,
            "start_time": "10:00",
            "end_time": "10:00",
        }, format="json")
        self.assertEqual(response.status_code, 400)
        self.assertIn("End time must be after start time.", response.data["end_time"])

    def test_day_out_of_range(self):
        response = self.client.post(reverse("planner:class_list"), {
            "class_name": "Biology",
            "day_of_week": 7,
            "start_time": "09:00",
            "end_time": "10:00",
        }, format="json")
        self.assertEqual(response.status_code, 400)
        self.assertIn("day_of_week", response.data)


class ExportTests(PlannerTestMixin, TestCase):
    def setUp(self):
        super().setUp()
        Task.objects.create(
            user=self.user, title="Essay", due_date=date(2025, 10, 20), priority=Task.HIGH,
            category="homework",
        )
        Task.objects.create(user=self.other, title="Not mine")

    def test_json_export(self):
        response = self.client.get(reverse("planner:export", args=["tasks", "json"]))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response["Content-Disposition"], 'attachment; filename="tasks.json"')
        self.assertEqual(json.loads(response.content), [{
            "title": "Essay",
            "description": None,
            "due_date": "2025-10-20",
            "due_time": None,
            "is_completed": False,
            "priority": "high",
            "category": "homework",
        }])

    def test_csv_export(self):
        response = self.client.get(reverse("planner:export", args=["tasks", "csv"]))
        self.assertEqual(response["Content-Type"], "text/csv")
        self.assertEqual(
            response.content.decode().splitlines(),
            [
                "title,description,due_date,due_time,is_completed,priority,category",
                "Essay,,2025-10-20,,false,high,homework",
            ],
        )

    def test_unknown_dataset_or_format(self):
        self.assertEqual(
            self.client.get(reverse("planner:export", args=["grades", "json"])).status_code, 404,
        )
        self.assertEqual(
            self.client.get(reverse("planner:export", args=["tasks", "xml"])).status_code, 404,
        )

    def test_csv_export_imports_back(self):
        body = self.client.get(reverse("planner:export", args=["tasks", "csv"])).content.decode()
        Task.objects.filter(user=self.user).delete()

        upload = SimpleUploadedFile("tasks.csv", body.encode(), content_type="text/csv")
        response = self.client.post(
            reverse("planner:import", args=["tasks"]), {"file": upload}, format="multipart",
        )

        self.assertEqual(response.data, {"success": 1, "failed": 0, "errors": []})
        task = Task.objects.get(user=self.user)
        self.assertEqual(task.due_date, date(2025, 10, 20))
        self.assertIsNone(task.due_time)
        self.assertFalse(task.is_completed)


class ImportTests(PlannerTestMixin, TestCase):
    def test_per_row_errors_do_not_stop_import(self):
        rows = [
            {"title": "Ok"},
            {"title": ""},
            "junk",
            {"title": "Bad date", "due_date": "tomorrow"},
        ]
        response = self.client.post(reverse("planner:import", args=["tasks"]), rows, format="json")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["success"], 1)
        self.assertEqual(response.data["failed"], 3)
        self.assertEqual(response.data["errors"], [
            "Row 2: title: This field is required.",
            "Row 3: Invalid data",
            "Row 4: due_date: Enter a valid date.",
        ])
        self.assertEqual(list(Task.objects.values_list("title", flat=True)), ["Ok"])
        self.assertEqual(Task.objects.get().user, self.user)

    def test_class_rows_checked_like_the_api(self):
        upload = SimpleUploadedFile("classes.json", json.dumps([
            {"class_name": "Art", "day_of_week": 3, "start_time": "13:00", "end_time": "14:00"},
            {"class_name": "Gym", "day_of_week": 3, "start_time": "15:00", "end_time": "14:00"},
        ]).encode(), content_type="application/json")
        response = self.client.post(
            reverse("planner:import", args=["classes"]), {"file": upload}, format="multipart",
        )
        self.assertEqual(response.data["success"], 1)
        self.assertEqual(response.data["errors"], ["Row 2: end_time: End time must be after start time."])
        self.assertEqual(ClassSchedule.objects.get().class_name, "Art")

    def test_malformed_json_file(self):
        upload = SimpleUploadedFile("tasks.json", b"{not json", content_type="application/json")
        response = self.client.post(
            reverse("planner:import", args=["tasks"]), {"file": upload}, format="multipart",
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data["detail"], "File must contain a valid JSON array")

    def test_json_object_body_rejected(self):
        response = self.client.post(
            reverse("planner:import", args=["tasks"]), {"title": "x"}, format="json",
        )
        self.assertEqual(response.status_code, 400)

    def test_import_rows_helper(self):
        result = exports.import_rows([{"title": "A"}, {"title": "B", "priority": "urgent"}], TaskForm, self.user)
        self.assertEqual(result["success"], 1)
        self.assertTrue(result["errors"][0].startswith("Row 2: priority: "))


class CalendarTests(PlannerTestMixin, TestCase):
    now = datetime(2025, 10, 15, 12, 0, tzinfo=dt_timezone.utc)

    def test_next_monday_is_strictly_after(self):
        self.assertEqual(exports.next_monday(date(2025, 10, 15)), date(2025, 10, 20))
        self.assertEqual(exports.next_monday(date(2025, 10, 13)), date(2025, 10, 20))
        self.assertEqual(exports.next_monday(date(2025, 10, 19)), date(2025, 10, 20))

    def test_build_calendar(self):
        task = Task.objects.create(
            user=self.user, title="Essay; draft, v2", due_date=date(2025, 10, 21), is_completed=True,
        )
        sunday = ClassSchedule.objects.create(
            user=self.user, class_name="Choir", day_of_week=0,
            start_time=time(9, 0), end_time=time(10, 30), room_number="A1",
        )

        body = exports.build_calendar([task], [sunday], self.now)
        lines = body.split("\r\n")

        self.assertEqual(lines[0], "BEGIN:VCALENDAR")
        self.assertIn("PRODID:-//LunchLit//Student Planner//EN", lines)
        self.assertIn(f"UID:task-{task.pk}@lunchlit.app", lines)
        self.assertIn("DTSTART;VALUE=DATE:20251021", lines)
        self.assertIn("DTEND;VALUE=DATE:20251022", lines)
        self.assertIn("SUMMARY:Essay\\; draft\\, v2", lines)
        self.assertIn("STATUS:COMPLETED", lines)
        self.assertIn("DTSTART:20251026T090000", lines)
        self.assertIn("DTEND:20251026T103000", lines)
        self.assertIn("DESCRIPTION:Sunday\\nRoom: A1", lines)
        self.assertIn("RRULE:FREQ=WEEKLY;COUNT=16", lines)
        self.assertIn("DTSTAMP:20251015T120000Z", lines)
        self.assertTrue(body.endswith("END:VCALENDAR\r\n"))

    def test_calendar_download_skips_undated_tasks(self):
        Task.objects.create(user=self.user, title="Someday")
        Task.objects.create(user=self.user, title="Quiz", due_date=date(2025, 11, 3))
        Task.objects.create(user=self.other, title="Theirs", due_date=date(2025, 11, 3))

        response = self.client.get(reverse("planner:calendar"))

        self.assertEqual(response.status_code, 200)
        self.assertTrue(response["Content-Type"].startswith("text/calendar"))
        self.assertIn("lunchlit-calendar-", response["Content-Disposition"])
        body = response.content.decode()
        self.assertIn("SUMMARY:Quiz", body)
        self.assertNotIn("Someday", body)
        self.assertNotIn("Theirs", body)


class TaskReminderCommandTests(TestCase):
    def setUp(self):
        self.user = CustomUser.objects.create_user("stu", "stu@example.com", "testpass123")
        self.tomorrow = timezone.localdate() + timedelta(days=1)

    def test_reminds_about_tomorrows_open_tasks_once(self):
        task = Task.objects.create(user=self.user, title="Essay", due_date=self.tomorrow)
        Task.objects.create(user=self.user, title="Done", due_date=self.tomorrow, is_completed=True)
        Task.objects.create(user=self.user, title="Later", due_date=self.tomorrow + timedelta(days=5))

        out = StringIO()
        call_command("send_task_reminders", stdout=out)
        call_command("send_task_reminders", stdout=StringIO())

        self.assertIn("Sent 1 task reminders.", out.getvalue())
        reminder = Notification.objects.get()
        self.assertEqual(reminder.type, Notification.TASK_REMINDER)
        self.assertEqual(reminder.data["task_id"], task.pk)

    def test_respects_preference(self):
        NotificationPreference.objects.create(user=self.user, task_reminders=False)
        Task.objects.create(user=self.user, title="Essay", due_date=self.tomorrow)
        call_command("send_task_reminders", "--days", "3", stdout=StringIO())
        self.assertFalse(Notification.objects.exists())
