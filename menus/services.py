from datetime import timedelta

from menus.models import MealSchedule

SCHOOL_DAYS = 5


def week_bounds(today):
    """Monday and Sunday of the menu week shown on *today*.

    On Saturday and Sunday the coming week is shown.
    """
    monday = today - timedelta(days=today.weekday())
    if today.weekday() >= 5:
        monday += timedelta(days=7)
    return monday, monday + timedelta(days=6)


def weekly_menu(school_id, today):
    """Monday-Friday of the menu week, each day with its flattened menu items."""
    start, end = week_bounds(today)
    schedules = MealSchedule.objects.filter(meal_date__range=(start, end))
    if school_id:
        schedules = schedules.filter(school_id=school_id)

    by_date = {}
    for schedule in schedules:
        by_date.setdefault(schedule.meal_date, []).append(schedule)

    days = []
    for offset in range(SCHOOL_DAYS):
        day = start + timedelta(days=offset)
        items = []
        for schedule in by_date.get(day, []):
            for index, item in enumerate(schedule.menu_items or []):
                items.append({
                    "id": f"{schedule.pk}-{index}",
                    "name": item.get("name", ""),
                    "description": item.get("description", ""),
                    "dietary": item.get("dietary_tags", []),
                    "meal_type": schedule.meal_type,
                    "calories": item.get("calories"),
                })
        days.append({"date": day.isoformat(), "day_name": day.strftime("%A"), "items": items})

    return {
        "week_start": start.isoformat(),
        "week_end": end.isoformat(),
        "is_weekend": today.weekday() >= 5,
        "days": days,
    }
