# semesters/management/commands/init_semesters.py

from django.core.management.base import BaseCommand, CommandError
from common.context import CallerContext
from common.conf import get_setting
from semesters.services import SemesterRegistryService


class Command(BaseCommand):
    help = 'Create or refresh the ten semester cohorts of an academic year'

    def add_arguments(self, parser):
        parser.add_argument(
            '--academic-year',
            dest='academic_year',
            help='Academic year as YYYY-YYYY (defaults to the current one)'
        )

    def handle(self, *args, **options):
        try:
            with CallerContext(caller_id=get_setting('SYSTEM_VALIDATOR_ID'), role='admin'):
                results = SemesterRegistryService.initialize_semesters(options.get('academic_year'))
        except ValueError as e:
            raise CommandError(str(e))

        self.stdout.write(self.style.MIGRATE_HEADING(f"Semesters for {results['academic_year']}"))
        self.stdout.write(f"  Created:  {results['created']}")
        self.stdout.write(f"  Updated:  {results['updated']}")
        self.stdout.write(f"  Existing: {results['existing']}")

        for error in results['errors']:
            self.stderr.write(self.style.ERROR(f"  {error}"))

        if results['errors']:
            self.stdout.write(self.style.WARNING(f"Completed with {len(results['errors'])} errors"))
        else:
            self.stdout.write(self.style.SUCCESS('Semester initialization complete'))
