"""Best-effort extraction of menu items from MealViewer pages.

MealViewer renders menus client-side, so what arrives over HTTP varies. The
parsers below try, in order: embedded JSON state, elements tagged with a
date, weekday headings, menu-ish class names, and finally any short text that
mentions a food word. Nothing here guarantees a schema; callers should treat
the result as a suggestion to be reviewed before saving.

Items are dicts shaped like ``MealSchedule.menu_items`` entries::

    {"name": "Chicken Tenders", "description": "...", "calories": 320,
     "dietary_tags": ["gluten-free"]}
"""

import html as html_lib
import json
import logging
import re
from datetime import date, timedelta
from urllib.parse import urlparse

import requests
from django.conf import settings

from core.exceptions import ScrapeError

logger = logging.getLogger(__name__)

REQUEST_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.5",
}

NAME_FIELDS = ("name", "itemName", "foodName", "title", "recipeName", "mealName", "displayName")
DATE_FIELDS = ("date", "menuDate", "day", "dateStr")
ITEM_FIELDS = ("items", "menuItems", "foods", "meals", "menu")

WEEKDAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday")

FALLBACK_LIMIT = 30
SECTION_LIMIT = 15

STATE_PATTERNS = [
    re.compile(r"window\.__INITIAL_STATE__\s*=\s*({.+?});", re.S),
    re.compile(r"window\.__NUXT__\s*=\s*({.+?});", re.S),
    re.compile(r'"menuData"\s*:\s*({.+?})\s*[,}]', re.S),
    re.compile(r'"weekMenu"\s*:\s*(\[.+?\])\s*[,}]', re.S),
    re.compile(r'"dailyMenus"\s*:\s*(\[.+?\])\s*[,}]', re.S),
]

DATE_ATTR_PATTERNS = [
    re.compile(r'(?:data-date|data-menu-date)="(\d{4}-\d{2}-\d{2})"', re.I),
    re.compile(r'(?:class="[^"]*day[^"]*"[^>]*data-date)="(\d{4}-\d{2}-\d{2})"', re.I),
]

SECTION_ITEM_PATTERNS = [
    re.compile(r'<[^>]*class="[^"]*(?:menu-item|food-name|item-title|recipe-name)[^"]*"[^>]*>([^<]+)', re.I),
    re.compile(r'data-item-name="([^"]+)"', re.I),
]

ITEM_PATTERNS = [
    re.compile(r'data-item-name="([^"]+)"', re.I),
    re.compile(r'<div[^>]*class="[^"]*menu-item[^"]*"[^>]*>([^<]+)', re.I),
    re.compile(r'<span[^>]*class="[^"]*food-name[^"]*"[^>]*>([^<]+)', re.I),
    re.compile(r'<[^>]*class="[^"]*item-title[^"]*"[^>]*>([^<]+)', re.I),
    re.compile(r'<[^>]*class="[^"]*recipe-name[^"]*"[^>]*>([^<]+)', re.I),
    re.compile(r'<[^>]*class="[^"]*meal-name[^"]*"[^>]*>([^<]+)', re.I),
    re.compile(r'class="[^"]*entree[^"]*"[^>]*>([^<]+)', re.I),
    re.compile(r'class="[^"]*side[^"]*"[^>]*>([^<]+)', re.I),
]

EMBEDDED_JSON_PATTERNS = [
    re.compile(r"window\.__INITIAL_STATE__\s*=\s*({.+?});", re.S),
    re.compile(r'data-menu="([^"]+)"'),
    re.compile(r'"menuItems"\s*:\s*(\[[^\]]+\])'),
    re.compile(r'"items"\s*:\s*(\[[^\]]+\])'),
]

SECTION_FOOD_WORDS = re.compile(
    r"(?:chicken|beef|pork|fish|turkey|ham|bacon|sausage|burger|pizza|pasta|rice|salad|soup|"
    r"sandwich|wrap|taco|burrito|bowl|steak|wings|nuggets|fries|vegetables?|fruit|bread|roll|"
    r"milk|juice|dessert|cookie|brownie|cake|yogurt|cheese|eggs?|beans?|corn|potatoes?|"
    r"mac\s*(?:and|&)?\s*cheese|hot\s*dog|grilled|baked|fried|roasted)",
    re.I,
)

FALLBACK_FOOD_WORDS = re.compile(
    r"(?:chicken|beef|pork|fish|turkey|ham|bacon|sausage|burger|pizza|pasta|rice|salad|soup|"
    r"sandwich|wrap|taco|burrito|bowl|steak|wings|nuggets|fries|vegetables?|fruit|bread|roll|"
    r"milk|juice|water|tea|coffee|dessert|cookie|brownie|cake|pie|yogurt|cheese|eggs?|beans?|"
    r"corn|potatoes?|carrots?|broccoli|peas|green beans?|mac\s*(?:and|&|'n')?\s*cheese|"
    r"hot\s*dog|grilled|baked|fried|roasted|steamed)",
    re.I,
)

STRIP_BLOCKS = re.compile(r"<(script|style|nav|header|footer)[^>]*>[\s\S]*?</\1>", re.I)
SHORT_ELEMENTS = re.compile(r"<(?:li|div|span|p)[^>]*>([^<]{3,50})</(?:li|div|span|p)>", re.I)
TAG = re.compile(r"<[^>]+>")


def clean_text(text):
    """Unescape HTML entities and collapse whitespace."""
    return re.sub(r"\s+", " ", html_lib.unescape(text)).strip()


def normalize_date(value):
    """``MM/DD/YYYY`` -> ``YYYY-MM-DD``; ISO dates and anything else pass through."""
    match = re.fullmatch(r"(\d{1,2})/(\d{1,2})/(\d{4})", value)
    if match:
        month, day, year = match.groups()
        return f"{year}-{int(month):02d}-{int(day):02d}"
    return value


def _load_json(raw):
    try:
        return json.loads(raw.replace("&quot;", '"'))
    except ValueError:
        return None


class _Collector:
    """Accumulates items, skipping case-insensitive duplicates."""

    def __init__(self):
        self.items = []
        self.seen = set()

    def add(self, item):
        key = item["name"].lower()
        if key in self.seen:
            return False
        self.seen.add(key)
        self.items.append(item)
        return True

    def add_name(self, raw, max_length=100):
        name = clean_text(raw)
        if 2 < len(name) < max_length:
            return self.add({"name": name})
        return False


def meal_item_from_json(data):
    """Build an item from a JSON object carrying a name-like field, or return None."""
    if not isinstance(data, dict):
        return None
    for field in NAME_FIELDS:
        value = data.get(field)
        if not isinstance(value, str):
            continue
        name = clean_text(value)
        if len(name) <= 2:
            continue
        item = {"name": name}
        if isinstance(data.get("description"), str):
            item["description"] = clean_text(data["description"])
        calories = data.get("calories")
        if isinstance(calories, (int, float)) and not isinstance(calories, bool):
            item["calories"] = int(calories)
        elif isinstance(calories, str) and re.match(r"\s*-?\d+", calories):
            item["calories"] = int(re.match(r"\s*(-?\d+)", calories).group(1))
        tags = data.get("dietary") or data.get("dietaryTags")
        if isinstance(tags, list):
            item["dietary_tags"] = [str(tag) for tag in tags]
        return item
    return None


def _items_from_json(data, collector):
    if isinstance(data, list):
        for value in data:
            _items_from_json(value, collector)
        return
    if not isinstance(data, dict):
        return
    item = meal_item_from_json(data)
    if item is not None:
        collector.add(item)
    for value in data.values():
        if isinstance(value, (dict, list)):
            _items_from_json(value, collector)


def _days_from_json(data, days, seen_dates):
    if isinstance(data, list):
        for value in data:
            _days_from_json(value, days, seen_dates)
        return
    if not isinstance(data, dict):
        return

    found_date = None
    for field in DATE_FIELDS:
        value = data.get(field)
        if isinstance(value, str) and re.search(r"\d{4}-\d{2}-\d{2}|\d{1,2}/\d{1,2}/\d{4}", value):
            found_date = normalize_date(value)
            break

    items = []
    for field in ITEM_FIELDS:
        value = data.get(field)
        if isinstance(value, list):
            items.extend(i for i in map(meal_item_from_json, value) if i is not None)

    if found_date and items and found_date not in seen_dates:
        seen_dates.add(found_date)
        days.append({"date": found_date, "items": items})

    for value in data.values():
        if isinstance(value, (dict, list)):
            _days_from_json(value, days, seen_dates)


def _items_near(html, marker):
    index = html.find(marker)
    if index == -1:
        return []
    section = html[index:index + 5000]
    collector = _Collector()
    for pattern in SECTION_ITEM_PATTERNS:
        for match in pattern.finditer(section):
            collector.add_name(match.group(1))
    return collector.items


def _food_from_section(section):
    text = re.sub(r"\s+", " ", TAG.sub(" ", section))
    collector = _Collector()
    for sentence in re.split(r"[.;,]", text):
        if not 3 < len(sentence.strip()) < 100:
            continue
        if SECTION_FOOD_WORDS.search(sentence):
            name = clean_text(sentence)
            if name:
                collector.add({"name": name})
    return collector.items[:SECTION_LIMIT]


def week_monday(today):
    """Monday of *today*'s week, where a Sunday belongs to the week after it."""
    return today - timedelta(days=(today.isoweekday() % 7) - 1)


def parse_weekday_sections(html, today=None):
    monday = week_monday(today or date.today())
    days = []
    for index, weekday in enumerate(WEEKDAYS):
        following = WEEKDAYS[index + 1] if index + 1 < len(WEEKDAYS) else "Saturday"
        pattern = re.compile(
            rf"{weekday}[^<]*(?:<[^>]*>)*([\s\S]{{0,3000}}?)(?:{following})", re.I,
        )
        match = pattern.search(html)
        if not match:
            continue
        items = _food_from_section(match.group(1))
        if items:
            days.append({"date": (monday + timedelta(days=index)).isoformat(), "items": items})
    return days


def parse_multi_day(html, today=None):
    """Return ``[{"date": "YYYY-MM-DD", "items": [...]}, ...]`` sorted by date."""
    days = []
    seen_dates = set()

    for pattern in STATE_PATTERNS:
        match = pattern.search(html)
        if match:
            data = _load_json(match.group(1))
            if data is None:
                logger.debug("Embedded state did not parse as JSON")
            else:
                _days_from_json(data, days, seen_dates)

    found_dates = []
    for pattern in DATE_ATTR_PATTERNS:
        for match in pattern.finditer(html):
            if match.group(1) not in seen_dates:
                found_dates.append(match.group(1))
                seen_dates.add(match.group(1))

    if found_dates and not days:
        for found in found_dates:
            items = _items_near(html, found)
            if items:
                days.append({"date": found, "items": items})

    if not days:
        weekday_days = parse_weekday_sections(html, today=today)
        if weekday_days:
            return weekday_days

    return sorted(days, key=lambda day: day["date"])


def parse_menu_items(html):
    """Items for a single day from class names, data attributes and embedded JSON."""
    collector = _Collector()
    for pattern in ITEM_PATTERNS:
        for match in pattern.finditer(html):
            collector.add_name(match.group(1))

    for pattern in EMBEDDED_JSON_PATTERNS:
        for match in pattern.finditer(html):
            data = _load_json(match.group(1))
            if data is not None:
                _items_from_json(data, collector)
    return collector.items


def extract_food_names(html):
    """Last resort: short text elements that mention a food word."""
    cleaned = STRIP_BLOCKS.sub("", html)
    collector = _Collector()
    for match in SHORT_ELEMENTS.finditer(cleaned):
        text = TAG.sub("", match.group(0)).strip()
        if FALLBACK_FOOD_WORDS.search(text):
            collector.add_name(text, max_length=60)
    return collector.items[:FALLBACK_LIMIT]


def check_url(url):
    """Raise ``ScrapeError`` unless *url* is http(s) on an allowed host."""
    parsed = urlparse(url)
    host = (parsed.hostname or "").lower()
    if parsed.scheme not in ("http", "https") or not host:
        raise ScrapeError("A valid http(s) URL is required")
    allowed = settings.MENU_SCRAPE_ALLOWED_HOSTS
    if not any(host == h or host.endswith(f".{h}") for h in allowed):
        raise ScrapeError("Only MealViewer URLs are supported")


def fetch_page(url):
    check_url(url)
    logger.info("Fetching menu page %s", url)
    try:
        response = requests.get(
            url, headers=REQUEST_HEADERS, timeout=settings.MENU_SCRAPE_TIMEOUT,
        )
    except requests.RequestException as exc:
        logger.error("Menu page fetch failed for %s: %s", url, exc)
        raise ScrapeError("Failed to fetch page") from exc
    if not response.ok:
        logger.error("Menu page fetch for %s returned %s", url, response.status_code)
        raise ScrapeError(f"Failed to fetch page: {response.status_code}")
    logger.info("Fetched %d characters from %s", len(response.text), url)
    return response.text


def scrape(url, multi_day=False, today=None):
    """Fetch *url* and return ``{"days": [...]}`` or ``{"items": [...]}``.

    Raises ``ScrapeError`` when the page cannot be fetched or nothing that
    looks like a menu item is found.
    """
    html = fetch_page(url)

    if multi_day:
        days = parse_multi_day(html, today=today)
        if days:
            logger.info("Found %d days of meals at %s", len(days), url)
            return {"days": days}

    items = parse_menu_items(html) or extract_food_names(html)
    if not items:
        raise ScrapeError(
            "No menu items found. The page may use dynamic loading. Try copying items manually."
        )
    return {"items": items}
