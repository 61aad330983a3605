"""JSON / CSV import and export of tasks and class schedules, and ICS calendars.

Exported rows carry only the user-editable fields (no id, owner or
timestamps), so an export can be imported back by anyone. Imports validate
each row with the same form used by the API and report per-row failures
instead of aborting::

    {"success": 3, "failed": 1, "errors": ["Row 2: title: This field is required."]}
"""

import csv
import io
import json
import logging
from datetime import timedelta

from planner.forms import ClassScheduleForm, TaskForm
from planner.models import ClassSchedule, Task

logger = logging.getLogger(__name__)

TASK_FIELDS = list(TaskForm._meta.fields)
CLASS_FIELDS = list(ClassScheduleForm._meta.fields)

DATASETS = {
    "tasks": (Task, TaskForm, TASK_FIELDS),
    "classes": (ClassSchedule, ClassScheduleForm, CLASS_FIELDS),
}

CALENDAR_PRODID = "-//LunchLit//Student Planner//EN"
CLASS_RECURRENCE = "RRULE:FREQ=WEEKLY;COUNT=16"


class ImportFormatError(ValueError):
    """The uploaded document as a whole could not be read."""


def _plain(value):
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    return value.isoformat()


def export_rows(queryset, fields):
    return [{field: _plain(getattr(obj, field)) for field in fields} for obj in queryset]


def to_json(rows):
    return json.dumps(rows, indent=2)


def to_csv(rows, fields):
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=fields, lineterminator="\n")
    writer.writeheader()
    for row in rows:
        writer.writerow({
            key: "" if value is None else str(value).lower() if isinstance(value, bool) else value
            for key, value in row.items()
        })
    return buffer.getvalue()


def parse_json(text):
    try:
        data = json.loads(text)
    except ValueError as exc:
        raise ImportFormatError("File must contain a valid JSON array") from exc
    if not isinstance(data, list):
        raise ImportFormatError("File must contain a valid JSON array")
    return data


def parse_csv(text):
    reader = csv.DictReader(io.StringIO(text.strip()))
    return [
        {(key or "").strip(): (value or "").strip() for key, value in row.items()}
        for row in reader
    ]


def _describe(errors):
    field, messages = next(iter(errors.items()))
    message = messages[0]
    return message if field == "__all__" else f"{field}: {message}"


def import_rows(rows, form_class, user):
    """Validate and save each row for *user*; failures are counted, not raised."""
    result = {"success": 0, "failed": 0, "errors": []}
    for number, row in enumerate(rows, start=1):
        if not isinstance(row, dict):
            result["failed"] += 1
            result["errors"].append(f"Row {number}: Invalid data")
            continue
        form = form_class(row, user=user)
        if form.is_valid():
            form.save()
            result["success"] += 1
        else:
            result["failed"] += 1
            result["errors"].append(f"Row {number}: {_describe(form.errors)}")
    logger.info(
        "Imported %s for user %s: %d ok, %d failed",
        form_class._meta.model.__name__, user.pk, result["success"], result["failed"],
    )
    return result


# ---------------------------------------------------------------------------
# iCalendar
# ---------------------------------------------------------------------------

def _ics_escape(text):
    return (
        str(text)
        .replace("\\", "\\\\")
        .replace(";", "\\;")
        .replace(",", "\\,")
        .replace("\r\n", "\\n")
        .replace("\n", "\\n")
    )


def next_monday(today):
    """The first Monday strictly after *today*."""
    return today + timedelta(days=7 - today.weekday())


def build_calendar(tasks, classes, now):
    """Return an iCalendar document for *tasks* with a due date and weekly *classes*.

    Classes recur weekly for sixteen weeks starting the week after *now*.
    """
    stamp = now.strftime("%Y%m%dT%H%M%SZ")
    lines = [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        f"PRODID:{CALENDAR_PRODID}",
        "CALSCALE:GREGORIAN",
        "METHOD:PUBLISH",
    ]

    for task in tasks:
        if not task.due_date:
            continue
        day = task.due_date.strftime("%Y%m%d")
        description = f"Category: {task.category}\nPriority: {task.priority}"
        if task.description:
            description += f"\n{task.description}"
        lines += [
            "BEGIN:VEVENT",
            f"UID:task-{task.pk}@lunchlit.app",
            f"DTSTAMP:{stamp}",
            f"DTSTART;VALUE=DATE:{day}",
            f"DTEND;VALUE=DATE:{(task.due_date + timedelta(days=1)).strftime('%Y%m%d')}",
            f"SUMMARY:{_ics_escape(task.title)}",
            f"DESCRIPTION:{_ics_escape(description)}",
            f"STATUS:{'COMPLETED' if task.is_completed else 'NEEDS-ACTION'}",
            "END:VEVENT",
        ]

    week_start = next_monday(now.date())
    for cls in classes:
        # Monday-based offset; Sunday (0) is the last day of the week.
        day = week_start + timedelta(days=6 if cls.day_of_week == 0 else cls.day_of_week - 1)
        description = cls.get_day_of_week_display()
        if cls.teacher_name:
            description += f"\nTeacher: {cls.teacher_name}"
        if cls.room_number:
            description += f"\nRoom: {cls.room_number}"
        lines += [
            "BEGIN:VEVENT",
            f"UID:class-{cls.pk}@lunchlit.app",
            f"DTSTAMP:{stamp}",
            f"DTSTART:{day:%Y%m%d}T{cls.start_time:%H%M%S}",
            f"DTEND:{day:%Y%m%d}T{cls.end_time:%H%M%S}",
            f"SUMMARY:{_ics_escape(cls.class_name)}",
            f"DESCRIPTION:{_ics_escape(description)}",
            CLASS_RECURRENCE,
            "END:VEVENT",
        ]

    lines.append("END:VCALENDAR")
    return "\r\n".join(lines) + "\r\n"
