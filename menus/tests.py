from datetime import date
from unittest.mock import Mock, patch

import requests
from django.core.cache import cache
from django.test import TestCase
from django.urls import reverse
from rest_framework.test import APIClient

from accounts.models import CustomUser, Notification
from core.exceptions import ScrapeError
from core.models import ADMIN, STUDENT, RoleAssignment, School
from menus import scraper
from menus.models import MealDietaryTag, MealSchedule
from menus.services import week_bounds, weekly_menu

MENU_URL = "https://schools.mealviewer.com/school/CentralHigh"


def page(text, status_code=200):
    return Mock(ok=200 <= status_code < 400, status_code=status_code, text=text)


class WeekBoundsTests(TestCase):
    def test_weekday_shows_current_week(self):
        self.assertEqual(week_bounds(date(2025, 10, 15)), (date(2025, 10, 13), date(2025, 10, 19)))
        self.assertEqual(week_bounds(date(2025, 10, 13)), (date(2025, 10, 13), date(2025, 10, 19)))

    def test_weekend_shows_next_week(self):
        self.assertEqual(week_bounds(date(2025, 10, 18)), (date(2025, 10, 20), date(2025, 10, 26)))
        self.assertEqual(week_bounds(date(2025, 10, 19)), (date(2025, 10, 20), date(2025, 10, 26)))


class WeeklyMenuTests(TestCase):
    def setUp(self):
        self.school = School.objects.create(name="Central")
        other = School.objects.create(name="North")
        self.lunch = MealSchedule.objects.create(
            school=self.school,
            meal_date=date(2025, 10, 14),
            menu_items=[
                {"name": "Pizza", "calories": 300},
                {"name": "Salad", "dietary_tags": ["vegetarian"]},
            ],
        )
        MealSchedule.objects.create(
            school=other, meal_date=date(2025, 10, 14), menu_items=[{"name": "Tacos"}],
        )
        MealSchedule.objects.create(
            school=self.school, meal_date=date(2025, 10, 18), menu_items=[{"name": "Brunch"}],
        )

    def test_flattens_items_for_school_days(self):
        menu = weekly_menu(self.school.pk, date(2025, 10, 15))

        self.assertEqual(menu["week_start"], "2025-10-13")
        self.assertEqual(menu["week_end"], "2025-10-19")
        self.assertFalse(menu["is_weekend"])
        self.assertEqual([d["day_name"] for d in menu["days"]],
                         ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday"])

        tuesday = menu["days"][1]
        self.assertEqual(tuesday["items"][0], {
            "id": f"{self.lunch.pk}-0",
            "name": "Pizza",
            "description": "",
            "dietary": [],
            "meal_type": "lunch",
            "calories": 300,
        })
        self.assertEqual(tuesday["items"][1]["dietary"], ["vegetarian"])
        self.assertEqual(len(tuesday["items"]), 2)
        self.assertTrue(all(not d["items"] for d in menu["days"] if d["date"] != "2025-10-14"))

    def test_weekend_request(self):
        menu = weekly_menu(self.school.pk, date(2025, 10, 18))
        self.assertTrue(menu["is_weekend"])
        self.assertEqual(menu["week_start"], "2025-10-20")
        self.assertTrue(all(not d["items"] for d in menu["days"]))


class MealScheduleAPITests(TestCase):
    def setUp(self):
        cache.clear()
        self.client = APIClient()
        self.school = School.objects.create(name="Central")
        self.admin = CustomUser.objects.create_user("adm", "adm@example.com", "testpass123")
        RoleAssignment.objects.create(user=self.admin, role=ADMIN)
        self.student = CustomUser.objects.create_user(
            "stu", "stu@example.com", "testpass123", school=self.school,
        )
        RoleAssignment.objects.create(user=self.student, role=STUDENT)

    def upsert(self, items):
        return self.client.post(
            reverse("menus:upsert"),
            {"school": self.school.pk, "meal_date": "2025-10-14", "menu_items": items},
            format="json",
        )

    def test_upsert_creates_then_replaces(self):
        self.client.force_authenticate(self.admin)
        response = self.upsert([{"name": " Pizza ", "calories": "300", "color": "red"}])
        self.assertEqual(response.status_code, 201, response.data)
        self.assertEqual(response.data["menu_items"], [{"name": "Pizza", "calories": 300}])
        self.assertEqual(response.data["meal_type"], "lunch")

        response = self.upsert([{"name": "Soup"}])
        self.assertEqual(response.status_code, 200)
        self.assertEqual(MealSchedule.objects.get().menu_items, [{"name": "Soup"}])
        notifications = Notification.objects.filter(user=self.student)
        self.assertEqual([n.type for n in notifications], [Notification.MENU_UPDATE])

    def test_invalid_items_rejected(self):
        self.client.force_authenticate(self.admin)
        response = self.upsert([{"calories": 100}])
        self.assertEqual(response.status_code, 400)
        self.assertIn("Item 1: a name is required.", response.data["menu_items"])

    def test_student_cannot_edit(self):
        self.client.force_authenticate(self.student)
        self.assertEqual(self.upsert([{"name": "Pizza"}]).status_code, 403)

    def test_student_reads_own_school_schedules(self):
        MealSchedule.objects.create(school=self.school, meal_date=date(2025, 10, 14))
        MealSchedule.objects.create(school=self.school, meal_date=date(2025, 11, 1))
        self.client.force_authenticate(self.student)
        response = self.client.get(
            reverse("menus:schedule_list"), {"start": "2025-10-01", "end": "2025-10-31"},
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual([s["meal_date"] for s in response.data], ["2025-10-14"])

        response = self.client.get(reverse("menus:schedule_list"), {"start": "not-a-date"})
        self.assertEqual(response.status_code, 400)

    def test_week_endpoint(self):
        self.client.force_authenticate(self.student)
        response = self.client.get(reverse("menus:week"))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.data["days"]), 5)

    def test_non_numeric_school_filter_rejected(self):
        self.client.force_authenticate(self.student)
        for name in ("menus:week", "menus:schedule_list"):
            with self.subTest(name=name):
                response = self.client.get(reverse(name), {"school": "abc"})
                self.assertEqual(response.status_code, 400)
                self.assertIn("school", response.data)

    @patch("menus.scraper.requests.get")
    def test_import_returns_items_without_saving(self, get):
        get.return_value = page('<div data-item-name="Chicken Tenders"></div>')
        self.client.force_authenticate(self.admin)
        response = self.client.post(reverse("menus:import"), {"url": MENU_URL}, format="json")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data, {"success": True, "items": [{"name": "Chicken Tenders"}]})
        self.assertFalse(MealSchedule.objects.exists())

    @patch("menus.scraper.requests.get")
    def test_import_rejects_other_hosts(self, get):
        self.client.force_authenticate(self.admin)
        response = self.client.post(
            reverse("menus:import"), {"url": "https://example.com/menu"}, format="json",
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(
            response.data, {"success": False, "error": "Only MealViewer URLs are supported"},
        )
        get.assert_not_called()


class DietaryTagAPITests(TestCase):
    def setUp(self):
        cache.clear()
        self.client = APIClient()
        self.school = School.objects.create(name="Central")
        self.other_school = School.objects.create(name="North")
        self.admin = CustomUser.objects.create_user("adm", "adm@example.com", "testpass123")
        RoleAssignment.objects.create(user=self.admin, role=ADMIN)
        self.student = CustomUser.objects.create_user(
            "stu", "stu@example.com", "testpass123", school=self.school,
        )
        RoleAssignment.objects.create(user=self.student, role=STUDENT)

    def test_list_shared_and_school_tags(self):
        MealDietaryTag.objects.create(name="Vegan")
        MealDietaryTag.objects.create(name="Halal", school=self.school)
        MealDietaryTag.objects.create(name="Kosher", school=self.other_school)
        self.client.force_authenticate(self.student)

        response = self.client.get(reverse("menus:dietary_tag_list"))
        self.assertEqual([t["name"] for t in response.data], ["Halal", "Vegan"])

        response = self.client.get(reverse("menus:dietary_tag_list"), {"school": self.other_school.pk})
        self.assertEqual([t["name"] for t in response.data], ["Kosher", "Vegan"])

    def test_create_defaults_color_and_rejects_duplicates(self):
        self.client.force_authenticate(self.admin)
        url = reverse("menus:dietary_tag_list")
        response = self.client.post(url, {"name": "Gluten Free", "school": self.school.pk}, format="json")
        self.assertEqual(response.status_code, 201, response.data)
        self.assertEqual(response.data["color"], "#10b981")

        response = self.client.post(url, {"name": "gluten free", "school": self.school.pk}, format="json")
        self.assertEqual(response.status_code, 400)

    def test_student_cannot_manage_tags(self):
        tag = MealDietaryTag.objects.create(name="Vegan")
        self.client.force_authenticate(self.student)
        response = self.client.post(reverse("menus:dietary_tag_list"), {"name": "Mine"}, format="json")
        self.assertEqual(response.status_code, 403)
        response = self.client.delete(reverse("menus:dietary_tag_delete", args=[tag.pk]))
        self.assertEqual(response.status_code, 403)

        self.client.force_authenticate(self.admin)
        response = self.client.delete(reverse("menus:dietary_tag_delete", args=[tag.pk]))
        self.assertEqual(response.status_code, 204)


class ScraperTests(TestCase):
    def test_check_url(self):
        scraper.check_url(MENU_URL)
        scraper.check_url("https://mealviewer.com/school/X")
        for url in ("https://mealviewer.com.evil.net/", "https://notmealviewer.com/"):
            with self.assertRaisesMessage(ScrapeError, "Only MealViewer URLs are supported"):
                scraper.check_url(url)
        with self.assertRaises(ScrapeError):
            scraper.check_url("ftp://mealviewer.com/menu")

    def test_normalize_date(self):
        self.assertEqual(scraper.normalize_date("3/7/2025"), "2025-03-07")
        self.assertEqual(scraper.normalize_date("2025-03-07"), "2025-03-07")

    def test_meal_item_from_json(self):
        item = scraper.meal_item_from_json({
            "itemName": "Taco &amp; Salsa",
            "calories": "250 kcal",
            "dietaryTags": ["vegetarian"],
        })
        self.assertEqual(
            item, {"name": "Taco & Salsa", "calories": 250, "dietary_tags": ["vegetarian"]},
        )
        self.assertIsNone(scraper.meal_item_from_json({"name": "ab"}))
        self.assertIsNone(scraper.meal_item_from_json(["Pizza"]))

    def test_menu_items_from_markup(self):
        html = (
            '<span class="food-name">Mac &amp; Cheese</span>'
            '<div class="menu-item">  Garden   Salad </div>'
            '<div data-item-name="mac &amp; cheese"></div>'
        )
        self.assertEqual(
            scraper.parse_menu_items(html),
            [{"name": "mac & cheese"}, {"name": "Garden Salad"}],
        )

    def test_multi_day_from_embedded_state(self):
        html = (
            "<script>window.__INITIAL_STATE__ = {\"weeks\": ["
            "{\"date\": \"10/14/2025\", \"items\": [{\"name\": \"Pizza\", \"calories\": 300}]},"
            "{\"date\": \"2025-10-13\", \"items\": [{\"itemName\": \"Burger\"}]}"
            "]};</script>"
        )
        self.assertEqual(scraper.parse_multi_day(html), [
            {"date": "2025-10-13", "items": [{"name": "Burger"}]},
            {"date": "2025-10-14", "items": [{"name": "Pizza", "calories": 300}]},
        ])

    def test_multi_day_from_weekday_headings(self):
        html = (
            "<h2>Monday</h2><p>Chicken tenders, green beans</p>"
            "<h2>Tuesday</h2><p>Pizza</p>"
            "<h2>Wednesday</h2><p>Closed</p>"
        )
        days = scraper.parse_multi_day(html, today=date(2025, 10, 15))
        self.assertEqual(days, [
            {"date": "2025-10-13", "items": [{"name": "Chicken tenders"}, {"name": "green beans"}]},
            {"date": "2025-10-14", "items": [{"name": "Pizza"}]},
        ])

    def test_week_monday_treats_sunday_as_next_week(self):
        self.assertEqual(scraper.week_monday(date(2025, 10, 15)), date(2025, 10, 13))
        self.assertEqual(scraper.week_monday(date(2025, 10, 19)), date(2025, 10, 20))

    def test_extract_food_names_fallback(self):
        html = (
            "<script>var chicken = 1;</script>"
            "<ul><li>Grilled Cheese</li><li>Homepage</li><li>Fresh Fruit Cup</li></ul>"
        )
        self.assertEqual(
            scraper.extract_food_names(html),
            [{"name": "Grilled Cheese"}, {"name": "Fresh Fruit Cup"}],
        )

    @patch("menus.scraper.requests.get")
    def test_scrape_nothing_found(self, get):
        get.return_value = page("<html><body>Loading...</body></html>")
        with self.assertRaisesMessage(ScrapeError, "No menu items found."):
            scraper.scrape(MENU_URL)
        get.assert_called_once()
        self.assertEqual(get.call_args.kwargs["headers"], scraper.REQUEST_HEADERS)

    @patch("menus.scraper.requests.get")
    def test_scrape_multi_day_falls_back_to_items(self, get):
        get.return_value = page('<div data-item-name="Nachos"></div>')
        self.assertEqual(scraper.scrape(MENU_URL, multi_day=True), {"items": [{"name": "Nachos"}]})

    @patch("menus.scraper.requests.get")
    def test_fetch_failures(self, get):
        get.return_value = page("", status_code=404)
        with self.assertRaisesMessage(ScrapeError, "Failed to fetch page: 404"):
            scraper.scrape(MENU_URL)

        get.side_effect = requests.ConnectionError("down")
        with self.assertRaisesMessage(ScrapeError, "Failed to fetch page"):
            scraper.scrape(MENU_URL)
