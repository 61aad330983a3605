from django.apps import AppConfig


class StudyHallsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "studyhalls"
    verbose_name = "Study halls"

    def ready(self):
        from studyhalls import signals  # noqa: F401
