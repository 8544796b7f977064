# semesters/management/commands/flag_for_validation.py

from django.core.management.base import BaseCommand, CommandError
from common.context import CallerContext
from common.conf import get_setting
from common.exceptions import NotFound
from semesters.services import SemesterManagementService


class Command(BaseCommand):
    help = 'Move eligible progress records into the validation review queue'

    def add_arguments(self, parser):
        parser.add_argument(
            '--cohort',
            dest='cohort_ids',
            action='append',
            default=[],
            help='Limit to a cohort id (repeatable)'
        )

    def handle(self, *args, **options):
        try:
            with CallerContext(caller_id=get_setting('SYSTEM_VALIDATOR_ID'), role='admin'):
                flagged = SemesterManagementService.flag_students_for_validation(
                    options['cohort_ids'] or None
                )
        except NotFound as e:
            raise CommandError(str(e))

        self.stdout.write(self.style.SUCCESS(f"Flagged {flagged} students for validation"))
