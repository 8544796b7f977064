# semesters/management/commands/progress_semesters.py

from django.core.management.base import BaseCommand
from common.context import CallerContext
from common.conf import get_setting
from semesters.services import SemesterManagementService


class Command(BaseCommand):
    help = 'Move validated students into their next semester cohort'

    def handle(self, *args, **options):
        with CallerContext(caller_id=get_setting('SYSTEM_VALIDATOR_ID'), role='admin'):
            results = SemesterManagementService.progress_validated_students()

        for progression in results['progressions']:
            self.stdout.write(
                f"  ✓ {progression['student_id']}: "
                f"S{progression['from_semester']} -> S{progression['to_semester']}"
            )

        for skipped in results['skipped']:
            self.stdout.write(self.style.WARNING(
                f"  - {skipped['student_id']}: {skipped['reason']}"
            ))

        for error in results['errors']:
            self.stderr.write(self.style.ERROR(
                f"  ✗ {error['student_id']}: {error['error_type']}: {error['error']}"
            ))

        self.stdout.write(self.style.SUCCESS(
            f"Progressed {results['students_progressed']} students "
            f"({len(results['errors'])} errors)"
        ))
