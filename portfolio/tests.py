from django.core.cache import cache
from django.test import TestCase
from django.urls import reverse
from rest_framework.test import APIClient

from accounts.grades import JUNIOR
from accounts.models import CustomUser
from core.models import COUNSELOR, STUDENT, RoleAssignment, School
from portfolio.models import BragSheetAcademics, BragSheetEntry, BragSheetInsight, StudentGoal, TargetSchool


class PortfolioTestMixin:
    def setUp(self):
        cache.clear()
        self.client = APIClient()
        self.school = School.objects.create(name="Central")
        self.student = CustomUser.objects.create_user(
            "stu", "stu@example.com", "testpass123", full_name="Sam Student", school=self.school,
        )
        RoleAssignment.objects.create(user=self.student, role=STUDENT)
        self.counselor = CustomUser.objects.create_user(
            "coun", "coun@example.com", "testpass123", full_name="Casey Counselor",
        )
        RoleAssignment.objects.create(user=self.counselor, role=COUNSELOR)

    def make_entry(self, user=None, **extra):
        return BragSheetEntry.objects.create(
            user=user or self.student,
            title=extra.pop("title", "Food bank volunteer"),
            category=extra.pop("category", "volunteering"),
            grade_level=JUNIOR,
            school_year="2025-2026",
            **extra,
        )


class BragSheetAPITests(PortfolioTestMixin, TestCase):
    def test_create_entry(self):
        self.client.force_authenticate(self.student)
        response = self.client.post(reverse("portfolio:entry_list"), {
            "title": "Robotics club captain",
            "category": "leadership",
            "grade_level": JUNIOR,
            "school_year": "2025-2026",
            "hours_spent": "40.5",
            "start_date": "2025-09-01",
        }, format="json")
        self.assertEqual(response.status_code, 201, response.data)
        self.assertEqual(response.data["verification_status"], BragSheetEntry.PENDING)
        self.assertEqual(response.data["grade_display"], "Junior")
        self.assertEqual(BragSheetEntry.objects.get().user, self.student)

    def test_end_date_before_start_rejected(self):
        self.client.force_authenticate(self.student)
        response = self.client.post(reverse("portfolio:entry_list"), {
            "title": "Job",
            "grade_level": JUNIOR,
            "school_year": "2025-2026",
            "start_date": "2025-09-01",
            "end_date": "2025-08-01",
        }, format="json")
        self.assertEqual(response.status_code, 400)
        self.assertIn("end_date", response.data)

    def test_ongoing_clears_end_date(self):
        self.client.force_authenticate(self.student)
        response = self.client.post(reverse("portfolio:entry_list"), {
            "title": "Tutor",
            "grade_level": JUNIOR,
            "school_year": "2025-2026",
            "is_ongoing": True,
            "end_date": "2025-12-01",
        }, format="json")
        self.assertEqual(response.status_code, 201, response.data)
        self.assertIsNone(response.data["end_date"])
        self.assertEqual(response.data["category"], "other")

    def test_owner_scoping_and_category_filter(self):
        self.make_entry(title="Mine", category="award")
        self.make_entry(title="Also mine")
        self.make_entry(user=self.counselor, title="Not mine")
        self.client.force_authenticate(self.student)

        titles = [e["title"] for e in self.client.get(reverse("portfolio:entry_list")).data]
        self.assertCountEqual(titles, ["Mine", "Also mine"])

        response = self.client.get(reverse("portfolio:entry_list"), {"category": "award"})
        self.assertEqual([e["title"] for e in response.data], ["Mine"])

        other = BragSheetEntry.objects.get(title="Not mine")
        self.assertEqual(
            self.client.get(reverse("portfolio:entry_detail", args=[other.pk])).status_code, 404,
        )

    def test_edit_resets_verification(self):
        entry = self.make_entry(
            verification_status=BragSheetEntry.VERIFIED,
            verified_by=self.counselor,
            verification_notes="Confirmed",
        )
        self.client.force_authenticate(self.student)
        response = self.client.patch(
            reverse("portfolio:entry_detail", args=[entry.pk]), {"hours_spent": "12"}, format="json",
        )
        self.assertEqual(response.status_code, 200, response.data)
        self.assertEqual(response.data["verification_status"], BragSheetEntry.PENDING)
        self.assertIsNone(response.data["verified_by"])
        self.assertIsNone(response.data["verification_notes"])


class VerificationAPITests(PortfolioTestMixin, TestCase):
    def test_queue_requires_verify_entries(self):
        self.client.force_authenticate(self.student)
        self.assertEqual(self.client.get(reverse("portfolio:verification_queue")).status_code, 403)

    def test_queue_lists_pending_oldest_first(self):
        first = self.make_entry(title="First")
        second = self.make_entry(title="Second")
        self.make_entry(title="Done", verification_status=BragSheetEntry.VERIFIED)

        self.client.force_authenticate(self.counselor)
        response = self.client.get(reverse("portfolio:verification_queue"))

        self.assertEqual([e["id"] for e in response.data], [first.pk, second.pk])
        self.assertEqual(response.data[0]["student_name"], "Sam Student")

        response = self.client.get(
            reverse("portfolio:verification_queue"), {"school": self.school.pk + 1},
        )
        self.assertEqual(response.data, [])

    def test_verify_with_notes(self):
        entry = self.make_entry()
        self.client.force_authenticate(self.counselor)
        response = self.client.post(
            reverse("portfolio:verify_entry", args=[entry.pk]),
            {"status": "verified", "notes": "Called the food bank"},
            format="json",
        )
        self.assertEqual(response.status_code, 200, response.data)
        entry.refresh_from_db()
        self.assertEqual(entry.verification_status, BragSheetEntry.VERIFIED)
        self.assertEqual(entry.verified_by, self.counselor)
        self.assertIsNotNone(entry.verified_at)
        self.assertEqual(response.data["verified_by_name"], "Casey Counselor")

    def test_reject_and_invalid_status(self):
        entry = self.make_entry()
        self.client.force_authenticate(self.counselor)
        url = reverse("portfolio:verify_entry", args=[entry.pk])
        self.assertEqual(self.client.post(url, {"status": "maybe"}, format="json").status_code, 400)

        response = self.client.post(url, {"status": "rejected"}, format="json")
        self.assertEqual(response.data["verification_status"], BragSheetEntry.REJECTED)
        self.assertIsNone(response.data["verification_notes"])

    def test_non_numeric_school_filter_rejected(self):
        self.client.force_authenticate(self.counselor)
        response = self.client.get(reverse("portfolio:verification_queue"), {"school": "abc"})
        self.assertEqual(response.status_code, 400)
        self.assertIn("school", response.data)

    def test_student_cannot_verify(self):
        entry = self.make_entry()
        self.client.force_authenticate(self.student)
        response = self.client.post(
            reverse("portfolio:verify_entry", args=[entry.pk]), {"status": "verified"}, format="json",
        )
        self.assertEqual(response.status_code, 403)


class GoalAPITests(PortfolioTestMixin, TestCase):
    def setUp(self):
        super().setUp()
        self.client.force_authenticate(self.student)

    def test_create_applies_defaults(self):
        response = self.client.post(reverse("portfolio:goal_list"), {"title": "Apply to MIT"}, format="json")
        self.assertEqual(response.status_code, 201, response.data)
        self.assertEqual(response.data["goal_type"], "college")
        self.assertEqual(response.data["status"], StudentGoal.IN_PROGRESS)
        self.assertEqual(response.data["priority"], "medium")

    def test_patch_and_owner_scope(self):
        goal = StudentGoal.objects.create(user=self.student, title="Learn Spanish", goal_type="personal")
        response = self.client.patch(
            reverse("portfolio:goal_detail", args=[goal.pk]), {"status": "completed"}, format="json",
        )
        self.assertEqual(response.status_code, 200, response.data)
        self.assertEqual(response.data["goal_type"], "personal")

        self.client.force_authenticate(self.counselor)
        response = self.client.get(reverse("portfolio:goal_detail", args=[goal.pk]))
        self.assertEqual(response.status_code, 404)

    def test_invalid_goal_type_rejected(self):
        response = self.client.post(
            reverse("portfolio:goal_list"), {"title": "x", "goal_type": "space"}, format="json",
        )
        self.assertEqual(response.status_code, 400)
        self.assertIn("goal_type", response.data)


class TargetSchoolAPITests(PortfolioTestMixin, TestCase):
    def setUp(self):
        super().setUp()
        self.client.force_authenticate(self.student)

    def test_create_applies_defaults(self):
        response = self.client.post(
            reverse("portfolio:target_school_list"), {"school_name": "State U", "is_safety": True}, format="json",
        )
        self.assertEqual(response.status_code, 201, response.data)
        self.assertEqual(response.data["admission_type"], "regular")
        self.assertEqual(response.data["status"], "researching")
        self.assertTrue(response.data["is_safety"])

    def test_only_one_fit_flag(self):
        response = self.client.post(
            reverse("portfolio:target_school_list"),
            {"school_name": "State U", "is_reach": True, "is_safety": True},
            format="json",
        )
        self.assertEqual(response.status_code, 400)

        school = TargetSchool.objects.create(user=self.student, school_name="Tech", is_reach=True)
        response = self.client.patch(
            reverse("portfolio:target_school_detail", args=[school.pk]), {"is_match": True}, format="json",
        )
        self.assertEqual(response.status_code, 400)


class AcademicsAPITests(PortfolioTestMixin, TestCase):
    def setUp(self):
        super().setUp()
        self.client.force_authenticate(self.student)
        self.url = reverse("portfolio:academics")

    def test_empty_before_first_save(self):
        response = self.client.get(self.url)
        self.assertEqual(response.status_code, 200)
        self.assertIsNone(response.data["gpa_weighted"])
        self.assertEqual(response.data["courses"], [])
        self.assertFalse(BragSheetAcademics.objects.exists())

    def test_put_creates_then_replaces(self):
        response = self.client.put(self.url, {
            "gpa_weighted": "4.25",
            "gpa_unweighted": "3.90",
            "test_scores": [{"test": "SAT", "score": "1450"}],
            "colleges_applying": [" State U ", ""],
        }, format="json")
        self.assertEqual(response.status_code, 200, response.data)
        self.assertEqual(response.data["colleges_applying"], ["State U"])

        response = self.client.put(self.url, {"gpa_unweighted": "3.95"}, format="json")
        self.assertEqual(response.status_code, 200, response.data)
        academics = BragSheetAcademics.objects.get()
        self.assertIsNone(academics.gpa_weighted)
        self.assertEqual(academics.test_scores, [])

    def test_out_of_range_and_malformed(self):
        response = self.client.put(self.url, {"gpa_unweighted": "4.5"}, format="json")
        self.assertIn("gpa_unweighted", response.data)
        response = self.client.put(self.url, {"courses": [{"grade": "A"}]}, format="json")
        self.assertEqual(response.status_code, 400)
        self.assertIn("Course 1: a name is required.", response.data["courses"])


class InsightAPITests(PortfolioTestMixin, TestCase):
    def setUp(self):
        super().setUp()
        self.client.force_authenticate(self.student)

    def test_lists_every_question(self):
        BragSheetInsight.objects.create(user=self.student, question_key="obstacles", answer="Moved twice")
        response = self.client.get(reverse("portfolio:insight_list"))
        self.assertEqual(len(response.data), 12)
        self.assertEqual(response.data[0]["question_key"], "adjectives")
        answers = {row["question_key"]: row["answer"] for row in response.data}
        self.assertEqual(answers["obstacles"], "Moved twice")
        self.assertIsNone(answers["adjectives"])

    def test_answer_upserts(self):
        url = reverse("portfolio:insight_answer", args=["major_goals"])
        self.client.put(url, {"answer": "Biology"}, format="json")
        response = self.client.put(url, {"answer": " Chemistry "}, format="json")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["answer"], "Chemistry")
        self.assertEqual(BragSheetInsight.objects.get().answer, "Chemistry")

    def test_unknown_question(self):
        response = self.client.put(
            reverse("portfolio:insight_answer", args=["favorite_color"]), {"answer": "Blue"}, format="json",
        )
        self.assertEqual(response.status_code, 404)


class OverviewAPITests(PortfolioTestMixin, TestCase):
    def test_counts(self):
        StudentGoal.objects.create(user=self.student, title="A", status=StudentGoal.COMPLETED)
        StudentGoal.objects.create(user=self.student, title="B")
        TargetSchool.objects.create(user=self.student, school_name="Tech", is_reach=True, status="accepted")
        TargetSchool.objects.create(user=self.student, school_name="State", is_safety=True)
        TargetSchool.objects.create(user=self.counselor, school_name="Elsewhere", is_match=True)
        self.make_entry(verification_status=BragSheetEntry.VERIFIED)
        BragSheetInsight.objects.create(user=self.student, question_key="obstacles", answer="")

        self.client.force_authenticate(self.student)
        response = self.client.get(reverse("portfolio:overview"))

        self.assertEqual(response.data["goals"], {"total": 2, "completed": 1, "in_progress": 1})
        self.assertEqual(
            response.data["schools"],
            {"total": 2, "reaches": 1, "matches": 0, "safeties": 1, "accepted": 1},
        )
        self.assertEqual(response.data["entries"], {"total": 1, "verified": 1})
        self.assertEqual(response.data["insights"], {"answered": 0, "total": 12})
        self.assertFalse(response.data["has_academics"])
