"""In-app notifications.

Each notification type is tied to one ``NotificationPreference`` flag; users
who switched that flag off are skipped. Users without a preference row get
everything.
"""

import logging

from django.contrib.auth import get_user_model

from accounts.grades import display_grade
from accounts.models import Notification, NotificationPreference

User = get_user_model()
logger = logging.getLogger(__name__)

PREFERENCE_FOR_TYPE = {
    Notification.MENU_UPDATE: "new_menu_items",
    Notification.STUDY_HALL: "study_hall_availability",
    Notification.GRADE_UPDATE: "grade_progression",
    Notification.DISCUSSION_REPLY: "discussion_replies",
    Notification.TASK_REMINDER: "task_reminders",
}


def preferences_for(user):
    """Return *user*'s preferences, creating the all-on defaults on first access."""
    preferences, _ = NotificationPreference.objects.get_or_create(user=user)
    return preferences


def notify(users, notification_type, title, message=None, data=None) -> int:
    """Create a *notification_type* notification for every user in *users* who wants it.

    *users* is a user queryset. Returns the number of notifications created.
    """
    flag = PREFERENCE_FOR_TYPE[notification_type]
    recipients = users.exclude(**{f"notification_preferences__{flag}": False})
    notifications = [
        Notification(
            user_id=user_id,
            type=notification_type,
            title=title,
            message=message,
            data=data or {},
        )
        for user_id in recipients.values_list("pk", flat=True)
    ]
    Notification.objects.bulk_create(notifications)
    logger.info("Created %d %s notifications", len(notifications), notification_type)
    return len(notifications)


def notify_menu_update(school_id, meal_date, message=None) -> int:
    return notify(
        User.objects.in_school(school_id),
        Notification.MENU_UPDATE,
        "New Menu Available!",
        message or "New lunch menu items have been added for this week.",
        {"school_id": school_id, "date": meal_date.isoformat()},
    )


def notify_study_hall_open(hall) -> int:
    return notify(
        User.objects.in_school(hall.school_id),
        Notification.STUDY_HALL,
        "Study Hall Now Open!",
        f"{hall.name} is now available.",
        {"study_hall_id": hall.pk, "name": hall.name},
    )


def notify_grade_progression(user, progression) -> int:
    if progression.graduated:
        message = "Congratulations, Graduate! You have completed Senior year."
    else:
        message = f"Congratulations! You've been promoted to {display_grade(progression.to_grade)}."
    return notify(
        User.objects.filter(pk=user.pk),
        Notification.GRADE_UPDATE,
        "Grade Level Updated!",
        message,
        {"new_grade": progression.to_grade, "graduated": progression.graduated},
    )


def notify_discussion_reply(reply) -> int:
    """Tell the thread's author about a reply from someone else."""
    thread = reply.parent
    if thread is None or thread.user_id == reply.user_id:
        return 0
    return notify(
        User.objects.filter(pk=thread.user_id),
        Notification.DISCUSSION_REPLY,
        "New reply to your post",
        f'{reply.user.display_name} replied to "{thread.title}".',
        {"discussion_id": thread.pk, "reply_id": reply.pk},
    )


def notify_task_due(task) -> int:
    """Remind the owner of *task* once; later calls for the same task do nothing."""
    already_sent = Notification.objects.filter(
        user_id=task.user_id,
        type=Notification.TASK_REMINDER,
        data__task_id=task.pk,
    ).exists()
    if already_sent:
        return 0
    return notify(
        User.objects.filter(pk=task.user_id),
        Notification.TASK_REMINDER,
        "Task due soon",
        f'"{task.title}" is due on {task.due_date:%A, %B} {task.due_date.day}.',
        {"task_id": task.pk, "due_date": task.due_date.isoformat()},
    )
