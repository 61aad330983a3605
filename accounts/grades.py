"""Grade levels and the once-per-school-year progression rule.

A student's stored grade advances one step the first time they are seen on or
after August 1st of a new school year. Seniors progressing past the last grade
are marked graduated instead. The rule is idempotent within a school year: the
``last_grade_progression`` stamp is compared against the current school-year
start before anything changes.
"""

import logging
from dataclasses import dataclass
from datetime import datetime

from django.utils import timezone

logger = logging.getLogger(__name__)

FIFTH = "5th Grade"
SIXTH = "6th Grade"
SEVENTH = "7th Grade"
EIGHTH = "8th Grade"
FRESHMAN = "Freshman (9th)"
SOPHOMORE = "Sophomore (10th)"
JUNIOR = "Junior (11th)"
SENIOR = "Senior (12th)"

GRADE_ORDER = [FIFTH, SIXTH, SEVENTH, EIGHTH, FRESHMAN, SOPHOMORE, JUNIOR, SENIOR]

GRADE_CHOICES = [(grade, grade) for grade in GRADE_ORDER]

HIGH_SCHOOL_GRADES = (FRESHMAN, SOPHOMORE, JUNIOR, SENIOR)

# Next grade for each grade; None means graduation.
GRADE_PROGRESSION = {
    FIFTH: SIXTH,
    SIXTH: SEVENTH,
    SEVENTH: EIGHTH,
    EIGHTH: FRESHMAN,
    FRESHMAN: SOPHOMORE,
    SOPHOMORE: JUNIOR,
    JUNIOR: SENIOR,
    SENIOR: None,
}

GRADE_REVERSION = {
    SIXTH: FIFTH,
    SEVENTH: SIXTH,
    EIGHTH: SEVENTH,
    FRESHMAN: EIGHTH,
    SOPHOMORE: FRESHMAN,
    JUNIOR: SOPHOMORE,
    SENIOR: JUNIOR,
}

GRADE_DISPLAY = {
    FIFTH: "5th Grade",
    SIXTH: "6th Grade",
    SEVENTH: "7th Grade",
    EIGHTH: "8th Grade",
    FRESHMAN: "Freshman",
    SOPHOMORE: "Sophomore",
    JUNIOR: "Junior",
    SENIOR: "Senior",
}

SCHOOL_YEAR_START_MONTH = 8
SCHOOL_YEAR_START_DAY = 1


@dataclass(frozen=True)
class GradeProgression:
    """Outcome of a single progression step."""

    from_grade: str
    to_grade: str | None

    @property
    def graduated(self) -> bool:
        return self.to_grade is None


def is_high_school(grade: str | None) -> bool:
    return grade in HIGH_SCHOOL_GRADES


def grade_order(grade: str | None) -> int:
    """Return the 1-based position of *grade*, or 0 for unknown grades."""
    try:
        return GRADE_ORDER.index(grade) + 1
    except ValueError:
        return 0


def display_grade(grade: str | None) -> str:
    if not grade:
        return ""
    return GRADE_DISPLAY.get(grade, grade)


def school_year_start(now: datetime) -> datetime:
    """Return August 1st (midnight, *now*'s timezone) of the school year containing *now*."""
    year = now.year if now.month >= SCHOOL_YEAR_START_MONTH else now.year - 1
    return now.replace(
        year=year,
        month=SCHOOL_YEAR_START_MONTH,
        day=SCHOOL_YEAR_START_DAY,
        hour=0,
        minute=0,
        second=0,
        microsecond=0,
    )


def should_progress(last_progression: datetime | None, now: datetime) -> bool:
    """Return True if a progression is due for the school year containing *now*."""
    start = school_year_start(now)
    if last_progression is None:
        return now >= start
    return last_progression < start <= now


def progress_grade(user, now=None, notify=True):
    """Advance *user* one grade if a new school year has started.

    Returns a :class:`GradeProgression` when the user was changed, else None.
    Graduated users and users without a known grade are left alone.
    """
    if user.is_graduated or user.grade_level not in GRADE_PROGRESSION:
        return None

    now = now or timezone.now()
    if not should_progress(user.last_grade_progression, now):
        return None

    from_grade = user.grade_level
    next_grade = GRADE_PROGRESSION[from_grade]
    if next_grade is None:
        user.is_graduated = True
        user.last_grade_progression = now
        user.save(update_fields=["is_graduated", "last_grade_progression"])
        logger.info("User %s graduated from %s", user.pk, from_grade)
    else:
        user.grade_level = next_grade
        user.last_grade_progression = now
        user.save(update_fields=["grade_level", "last_grade_progression"])
        logger.info("User %s progressed from %s to %s", user.pk, from_grade, next_grade)

    progression = GradeProgression(from_grade=from_grade, to_grade=next_grade)
    if notify:
        from .notifications import notify_grade_progression
        from .services import NotificationService

        notify_grade_progression(user, progression)
        NotificationService.send_grade_notification(user=user, progression=progression)
    return progression


def revert_grade(user):
    """Move *user* back one grade (admin correction).

    A graduated Senior is un-graduated and stays a Senior. Returns the new
    grade, or None when there is nothing to revert.
    """
    if user.is_graduated:
        user.is_graduated = False
        user.save(update_fields=["is_graduated"])
        logger.info("User %s graduation reverted", user.pk)
        return user.grade_level

    previous = GRADE_REVERSION.get(user.grade_level)
    if previous is None:
        return None
    user.grade_level = previous
    user.save(update_fields=["grade_level"])
    logger.info("User %s reverted to %s", user.pk, previous)
    return previous
