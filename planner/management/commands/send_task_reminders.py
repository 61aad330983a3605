from datetime import timedelta

from django.core.management.base import BaseCommand
from django.utils import timezone

from accounts.notifications import notify_task_due
from planner.models import Task


class Command(BaseCommand):
    help = "Create in-app reminders for incomplete tasks due within the next few days."

    def add_arguments(self, parser):
        parser.add_argument(
            "--days",
            type=int,
            default=1,
            help="Remind about tasks due up to this many days ahead (default: 1, i.e. tomorrow).",
        )

    def handle(self, *args, **options):
        today = timezone.localdate()
        until = today + timedelta(days=max(1, options["days"]))
        tasks = Task.objects.filter(
            is_completed=False,
            due_date__gt=today,
            due_date__lte=until,
        ).select_related("user")

        sent = 0
        for task in tasks:
            sent += notify_task_due(task)
        self.stdout.write(f"Sent {sent} task reminders.")
