# semesters/apps.py

from django.apps import AppConfig


class SemestersConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "semesters"
    verbose_name = "Semester Cohorts"

    def ready(self):
        """
        Import signal handlers when the app is ready.
        Keeps event participants in step with cohort rosters.
        """
        import semesters.signals  # noqa: F401
