from unittest.mock import patch

from channels.layers import get_channel_layer
from channels.routing import URLRouter
from channels.testing import WebsocketCommunicator
from django.contrib.auth.models import AnonymousUser
from django.core.cache import cache
from django.test import SimpleTestCase, TestCase
from django.urls import reverse
from rest_framework.test import APIClient

from accounts.models import CustomUser, Notification
from core.models import STUDENT, TEACHER, RoleAssignment, School
from core.realtime import CLOSE_UNAUTHENTICATED
from lunchlit.routing import websocket_urlpatterns
from studyhalls.models import StudyHall


class StudyHallModelTests(TestCase):
    def test_occupancy_sets_availability(self):
        hall = StudyHall(name="Library", location="Room 101", capacity=10)
        hall.set_occupancy(10)
        self.assertFalse(hall.is_available)
        self.assertEqual(hall.spots_left, 0)

        hall.set_occupancy(4)
        self.assertTrue(hall.is_available)
        self.assertEqual(hall.spots_left, 6)


class StudyHallAPITests(TestCase):
    def setUp(self):
        cache.clear()
        self.client = APIClient()
        self.school = School.objects.create(name="Central")
        self.other_school = School.objects.create(name="North")
        self.teacher = CustomUser.objects.create_user(
            "teach", "teach@example.com", "testpass123", school=self.school,
        )
        RoleAssignment.objects.create(user=self.teacher, role=TEACHER)
        self.student = CustomUser.objects.create_user(
            "stu", "stu@example.com", "testpass123", school=self.school,
        )
        RoleAssignment.objects.create(user=self.student, role=STUDENT)
        self.hall = StudyHall.objects.create(
            school=self.school, name="Library", location="Room 101", capacity=10,
        )
        StudyHall.objects.create(school=self.other_school, name="Gym", location="Gym")

    def occupancy(self, value):
        return self.client.post(
            reverse("studyhalls:occupancy", args=[self.hall.pk]),
            {"current_occupancy": value},
            format="json",
        )

    def test_list_defaults_to_users_school(self):
        self.client.force_authenticate(self.student)
        response = self.client.get(reverse("studyhalls:list"))
        self.assertEqual([h["name"] for h in response.data], ["Library"])

        response = self.client.get(reverse("studyhalls:list"), {"school": self.other_school.pk})
        self.assertEqual([h["name"] for h in response.data], ["Gym"])

    def test_non_numeric_school_filter_rejected(self):
        self.client.force_authenticate(self.student)
        response = self.client.get(reverse("studyhalls:list"), {"school": "abc"})
        self.assertEqual(response.status_code, 400)
        self.assertIn("school", response.data)

    def test_full_hall_becomes_unavailable(self):
        self.client.force_authenticate(self.teacher)
        response = self.occupancy(10)
        self.assertEqual(response.status_code, 200, response.data)
        self.assertFalse(response.data["is_available"])
        self.assertEqual(response.data["spots_left"], 0)

        response = self.occupancy(3)
        self.assertTrue(response.data["is_available"])

    def test_occupancy_over_capacity_rejected(self):
        self.client.force_authenticate(self.teacher)
        response = self.occupancy(11)
        self.assertEqual(response.status_code, 400)
        self.assertIn("current_occupancy", response.data)
        response = self.occupancy(-1)
        self.assertEqual(response.status_code, 400)

    def test_student_cannot_update_occupancy(self):
        self.client.force_authenticate(self.student)
        self.assertEqual(self.occupancy(5).status_code, 403)

    def test_create_requires_permission(self):
        data = {"school": self.school.pk, "name": "Lab", "location": "B2", "periods": ["1", "2"]}
        self.client.force_authenticate(self.student)
        self.assertEqual(
            self.client.post(reverse("studyhalls:list"), data, format="json").status_code, 403,
        )

        self.client.force_authenticate(self.teacher)
        response = self.client.post(reverse("studyhalls:list"), data, format="json")
        self.assertEqual(response.status_code, 201, response.data)
        self.assertEqual(response.data["periods"], ["1", "2"])
        self.assertTrue(response.data["is_available"])

    def test_shrinking_capacity_clamps_occupancy(self):
        self.hall.set_occupancy(8)
        self.hall.save()
        self.client.force_authenticate(self.teacher)
        response = self.client.patch(
            reverse("studyhalls:detail", args=[self.hall.pk]), {"capacity": 5}, format="json",
        )
        self.assertEqual(response.status_code, 200, response.data)
        self.assertEqual(response.data["current_occupancy"], 5)
        self.assertFalse(response.data["is_available"])

    def test_invalid_periods_rejected(self):
        self.client.force_authenticate(self.teacher)
        response = self.client.patch(
            reverse("studyhalls:detail", args=[self.hall.pk]), {"periods": [""]}, format="json",
        )
        self.assertEqual(response.status_code, 400)


class StudyHallBroadcastTests(TestCase):
    """Saved halls notify the ``study_halls`` group after commit."""

    def setUp(self):
        self.hall = StudyHall.objects.create(name="Library", location="101", capacity=2)
        self.hall.set_occupancy(2)
        self.hall.save()

    def test_update_broadcasts_when_spot_opens(self):
        with patch("core.realtime.send_to_group") as send, \
                self.captureOnCommitCallbacks(execute=True):
            self.hall.set_occupancy(1)
            self.hall.save()

        send.assert_called_once_with("study_halls", {
            "type": "change",
            "table": "study_halls",
            "event": "UPDATE",
            "id": self.hall.pk,
            "became_available": True,
        })

    def test_reopening_notifies_school(self):
        school = School.objects.create(name="Central")
        member = CustomUser.objects.create_user("stu", "stu@example.com", "testpass123", school=school)
        self.hall.school = school
        self.hall.save()
        self.assertFalse(Notification.objects.exists())

        self.hall.set_occupancy(1)
        self.hall.save()
        self.hall.set_occupancy(0)
        self.hall.save()

        notification = Notification.objects.get(user=member)
        self.assertEqual(notification.title, "Study Hall Now Open!")
        self.assertEqual(notification.data, {"study_hall_id": self.hall.pk, "name": "Library"})

    def test_delete_broadcasts(self):
        pk = self.hall.pk
        with patch("core.realtime.send_to_group") as send, \
                self.captureOnCommitCallbacks(execute=True):
            self.hall.delete()
        group, message = send.call_args.args
        self.assertEqual(group, "study_halls")
        self.assertEqual(message["event"], "DELETE")
        self.assertEqual(message["id"], pk)

    def test_nothing_sent_without_commit(self):
        with patch("core.realtime.send_to_group") as send, \
                self.captureOnCommitCallbacks(execute=False) as callbacks:
            StudyHall.objects.create(name="Annex", location="A1")
        self.assertEqual(len(callbacks), 1)
        send.assert_not_called()


class WithUser:
    """ASGI wrapper that puts a fixed user into the scope."""

    def __init__(self, inner, user):
        self.inner = inner
        self.user = user

    async def __call__(self, scope, receive, send):
        return await self.inner(dict(scope, user=self.user), receive, send)


class StudyHallConsumerTests(SimpleTestCase):
    def communicator(self, user):
        app = WithUser(URLRouter(websocket_urlpatterns), user)
        return WebsocketCommunicator(app, "/ws/study-halls/")

    async def test_anonymous_rejected(self):
        communicator = self.communicator(AnonymousUser())
        connected, code = await communicator.connect()
        self.assertFalse(connected)
        self.assertEqual(code, CLOSE_UNAUTHENTICATED)

    async def test_ping_and_change_relay(self):
        communicator = self.communicator(CustomUser(username="viewer"))
        connected, _ = await communicator.connect()
        self.assertTrue(connected)

        await communicator.send_json_to({"type": "ping"})
        self.assertEqual(await communicator.receive_json_from(), {"type": "pong"})

        message = {"type": "change", "table": "study_halls", "event": "UPDATE", "id": 3}
        await get_channel_layer().group_send(
            "study_halls", {"type": "change.message", "message": message},
        )
        self.assertEqual(await communicator.receive_json_from(), message)
        await communicator.disconnect()
