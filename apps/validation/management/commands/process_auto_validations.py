# validation/management/commands/process_auto_validations.py

from django.core.management.base import BaseCommand
from common.context import CallerContext
from common.conf import get_setting
from validation.services import ValidationCriteriaEngine


class Command(BaseCommand):
    help = 'Approve pending students whose cohort allows auto-validation and who meet the criteria'

    def handle(self, *args, **options):
        with CallerContext(caller_id=get_setting('SYSTEM_VALIDATOR_ID'), role='admin'):
            results = ValidationCriteriaEngine.process_auto_validations()

        summary = results['summary']

        for failure in results['failed']:
            self.stderr.write(self.style.ERROR(
                f"  ✗ {failure['student_id']}: {failure['error']}"
            ))

        self.stdout.write(self.style.SUCCESS(
            f"Auto-validated {summary['approved']} of {summary['total']} candidates "
            f"({summary['errors']} errors)"
        ))
