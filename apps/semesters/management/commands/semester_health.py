# semesters/management/commands/semester_health.py

from django.core.management.base import BaseCommand
from semesters.services import SemesterManagementService


class Command(BaseCommand):
    help = 'Report the health of the semester system for the current academic year'

    def handle(self, *args, **options):
        health = SemesterManagementService.perform_health_check()

        self.stdout.write(self.style.MIGRATE_HEADING(f"Semester system {health['academic_year']}"))
        self.stdout.write(f"  Semesters:             {health['total_semesters']}/10")
        self.stdout.write(f"  Students:              {health['total_students']}")
        self.stdout.write(f"  Average utilization:   {health['average_utilization']}%")
        self.stdout.write(f"  Pending validation:    {health['pending_validation']}")
        self.stdout.write(f"  Ready for progression: {health['ready_for_progression']}")

        if health['semester_system_healthy']:
            self.stdout.write(self.style.SUCCESS('Healthy'))
        else:
            missing = ', '.join(str(n) for n in health['missing_semesters'])
            self.stdout.write(self.style.WARNING(f"Missing semesters: {missing}"))
