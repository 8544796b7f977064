# attendance/services.py

"""
Attendance Ledger

- Marking attendance per event and student (single and bulk)
- Attendance rate for a student within a cohort
- Absence streaks, low-attendance alerts and attendance trends

Every mark refreshes the student's progress record for the event's cohort.
"""

from django.db import transaction
from django.db.models import Count, Q
from django.utils import timezone
from datetime import timedelta
import logging

from common.conf import get_setting
from common.exceptions import NotFound, InvalidCohort, describe_error
from common.utils import resolve_instance
from semesters.models import SemesterCohort
from students.services import StudentDirectoryService
from .models import Event, AttendanceRecord

logger = logging.getLogger(__name__)


# =============================================================================
# ATTENDANCE RATE
# =============================================================================

def calculate_rate(attended, total):
    """attended / total as a percentage; 100 when nothing was marked"""
    if not total:
        return 100.0
    return round(attended / total * 100, 2)


def attendance_counts(student, cohort):
    """
    Returns:
        tuple: (events attended, events marked)
    """
    counts = AttendanceRecord.objects.filter(
        student=student,
        cohort=cohort
    ).aggregate(
        total=Count('id'),
        attended=Count('id', filter=Q(attended=True))
    )
    return counts['attended'] or 0, counts['total'] or 0


# =============================================================================
# ATTENDANCE LEDGER SERVICE
# =============================================================================

class AttendanceLedgerService:
    """Record presence and derive attendance figures"""

    @staticmethod
    def attendance_rate(student, cohort):
        """
        Attendance rate of ``student`` in ``cohort``.

        Returns:
            float: 0-100, 100.0 when no attendance has been marked yet
        """
        attended, total = attendance_counts(student, cohort)
        return calculate_rate(attended, total)

    @staticmethod
    def resolve_event_cohort(event, student):
        """
        Cohort through which ``student`` takes part in ``event``.

        Raises:
            InvalidCohort: the event is linked to no cohort the student is on
        """
        cohort = event.cohorts.filter(
            students=student
        ).exclude(
            status=SemesterCohort.STATUS_ARCHIVED
        ).order_by('-academic_year', '-semester').first()

        if cohort is None:
            raise InvalidCohort(
                f"Event '{event.title}' is not linked to any cohort of {student.get_full_name()}"
            )

        return cohort

    @staticmethod
    @transaction.atomic
    def mark_attendance(event, student, attended, marked_by, notes=''):
        """
        Record one student's presence at one event.

        Args:
            event: Event instance or id
            student: Student instance or id
            attended (bool): present or absent
            marked_by (str): id of the caller marking attendance
            notes (str): free text

        Returns:
            AttendanceRecord

        Raises:
            NotFound: unknown event or student
            InvalidCohort: the event does not belong to the student
        """
        event = resolve_instance(Event, event)
        student = StudentDirectoryService.get_student(student)
        cohort = AttendanceLedgerService.resolve_event_cohort(event, student)

        record = AttendanceLedgerService._upsert(event, student, cohort, attended, marked_by, notes)

        from progress.services import ProgressTrackingService
        ProgressTrackingService.recalculate_for_student(student, cohort)

        logger.info(
            f"Marked {student.get_full_name()} {'present' if attended else 'absent'} "
            f"at '{event.title}' by {marked_by}"
        )

        return record

    @staticmethod
    def bulk_mark_attendance(event, cohort, records, marked_by):
        """
        Mark attendance for several students of one cohort at one event.

        Each entry is applied in its own transaction. A failing entry is
        reported and the others still go through.

        Args:
            event: Event instance or id
            cohort: SemesterCohort instance or id
            records (list): dicts with ``student_id``, ``attended`` and
                optional ``notes``
            marked_by (str): id of the caller marking attendance

        Returns:
            dict: marked, failed, summary

        Raises:
            NotFound: unknown event or cohort
            InvalidCohort: the event is not linked to the cohort
        """
        event = resolve_instance(Event, event)
        cohort = resolve_instance(SemesterCohort, cohort, label="Cohort")

        if not cohort.events.filter(pk=event.pk).exists():
            raise InvalidCohort(f"Event '{event.title}' is not linked to {cohort}")

        from progress.services import ProgressTrackingService

        results = {
            'marked': [],
            'failed': [],
            'summary': {
                'total': len(records),
                'marked': 0,
                'present': 0,
                'absent': 0,
                'errors': 0,
            }
        }

        for entry in records:
            student_id = entry.get('student_id')
            attended = bool(entry.get('attended', False))

            try:
                with transaction.atomic():
                    student = StudentDirectoryService.get_student(student_id)

                    if not cohort.students.filter(pk=student.pk).exists():
                        raise InvalidCohort(
                            f"{student.get_full_name()} is not enrolled in {cohort}"
                        )

                    record = AttendanceLedgerService._upsert(
                        event, student, cohort, attended, marked_by, entry.get('notes', '')
                    )
                    ProgressTrackingService.recalculate_for_student(student, cohort)

                results['marked'].append({
                    'student_id': str(student.pk),
                    'record_id': str(record.pk),
                    'attended': attended,
                })
                results['summary']['marked'] += 1
                results['summary']['present' if attended else 'absent'] += 1

            except Exception as e:
                logger.error(f"Error marking attendance for student {student_id} at '{event.title}': {e}")
                results['failed'].append(describe_error(student_id, e))
                results['summary']['errors'] += 1

        logger.info(
            f"Bulk attendance for '{event.title}': {results['summary']['marked']} marked, "
            f"{results['summary']['errors']} failed out of {results['summary']['total']}"
        )

        return results

    @staticmethod
    def _upsert(event, student, cohort, attended, marked_by, notes):
        record, created = AttendanceRecord.objects.update_or_create(
            event=event,
            student=student,
            defaults={
                'cohort': cohort,
                'attended': attended,
                'marked_by': str(marked_by),
                'marked_at': timezone.now(),
                'notes': notes or '',
            }
        )
        return record

    # -------------------------------------------------------------------------
    # QUERIES
    # -------------------------------------------------------------------------

    @staticmethod
    def get_event_attendance(event):
        """
        Attendance sheet of one event.

        Returns:
            dict: records plus present/absent/unmarked counts
        """
        event = resolve_instance(Event, event)

        records = list(
            AttendanceRecord.objects.filter(event=event).select_related('student', 'cohort')
        )
        marked_ids = {r.student_id for r in records}
        unmarked = event.participants.exclude(pk__in=marked_ids)

        present = sum(1 for r in records if r.attended)

        return {
            'event': event,
            'records': records,
            'present': present,
            'absent': len(records) - present,
            'unmarked': list(unmarked),
            'attendance_rate': calculate_rate(present, len(records)),
        }

    @staticmethod
    def get_student_attendance(student, cohort=None):
        """Attendance records of a student, optionally limited to one cohort"""
        student = StudentDirectoryService.get_student(student)

        records = AttendanceRecord.objects.filter(student=student).select_related('event', 'cohort')
        if cohort is not None:
            cohort = resolve_instance(SemesterCohort, cohort, label="Cohort")
            records = records.filter(cohort=cohort)

        records = list(records.order_by('-event__start'))
        attended = sum(1 for r in records if r.attended)

        return {
            'student': student,
            'records': records,
            'total_events': len(records),
            'events_attended': attended,
            'attendance_rate': calculate_rate(attended, len(records)),
        }

    @staticmethod
    def consecutive_absences(student, cohort, window=10):
        """Length of the current absence streak over the latest ``window`` marks"""
        recent = AttendanceRecord.objects.filter(
            student=student,
            cohort=cohort
        ).order_by('-event__start', '-marked_at').values_list('attended', flat=True)[:window]

        streak = 0
        for attended in recent:
            if attended:
                break
            streak += 1

        return streak

    # -------------------------------------------------------------------------
    # ALERTS & TRENDS
    # -------------------------------------------------------------------------

    @staticmethod
    def get_attendance_alerts(cohort):
        """
        Detect students whose attendance needs attention.

        Two alert kinds are produced: ``low_attendance`` when the rate falls
        below LOW_ATTENDANCE_THRESHOLD and ``consecutive_absences`` when the
        current absence streak reaches CONSECUTIVE_ABSENCE_LIMIT.

        Returns:
            list: alert dicts
        """
        cohort = resolve_instance(SemesterCohort, cohort, label="Cohort")
        threshold = get_setting('LOW_ATTENDANCE_THRESHOLD')
        absence_limit = get_setting('CONSECUTIVE_ABSENCE_LIMIT')

        alerts = []

        for student in cohort.students.filter(is_active=True):
            rate = AttendanceLedgerService.attendance_rate(student, cohort)

            if rate < threshold:
                alerts.append({
                    'type': 'low_attendance',
                    'student_id': str(student.pk),
                    'student_name': student.get_full_name(),
                    'cohort_id': str(cohort.pk),
                    'severity': 'high' if rate < 50 else 'medium',
                    'details': f"Attendance rate is {rate:.1f}%, below the required {threshold}%",
                    'threshold': threshold,
                    'current_value': rate,
                })

            streak = AttendanceLedgerService.consecutive_absences(student, cohort)

            if streak >= absence_limit:
                alerts.append({
                    'type': 'consecutive_absences',
                    'student_id': str(student.pk),
                    'student_name': student.get_full_name(),
                    'cohort_id': str(cohort.pk),
                    'severity': 'high' if streak >= 5 else 'medium',
                    'details': f"{streak} consecutive absences detected",
                    'threshold': absence_limit,
                    'current_value': streak,
                })

        if alerts:
            logger.info(f"Generated {len(alerts)} attendance alert(s) for {cohort}")

        return alerts

    @staticmethod
    def attendance_trend(cohort, period_days=None):
        """
        Compare the attendance rate of the first and second half of a window.

        Returns:
            dict: first_half_rate, second_half_rate, decline_rate,
                is_decreasing, severity
        """
        cohort = resolve_instance(SemesterCohort, cohort, label="Cohort")
        period_days = period_days or get_setting('TREND_ANALYSIS_DAYS')

        now = timezone.now()
        start = now - timedelta(days=period_days)
        middle = now - timedelta(days=period_days / 2)

        records = AttendanceRecord.objects.filter(cohort=cohort)

        def half_rate(queryset):
            counts = queryset.aggregate(
                total=Count('id'),
                attended=Count('id', filter=Q(attended=True))
            )
            return calculate_rate(counts['attended'] or 0, counts['total'] or 0)

        first_half = half_rate(records.filter(marked_at__gte=start, marked_at__lt=middle))
        second_half = half_rate(records.filter(marked_at__gte=middle))

        decline = round(first_half - second_half, 2)

        if decline > 20:
            severity = 'high'
        elif decline > 10:
            severity = 'medium'
        else:
            severity = 'low'

        return {
            'cohort_id': str(cohort.pk),
            'period_days': period_days,
            'first_half_rate': first_half,
            'second_half_rate': second_half,
            'decline_rate': decline,
            'is_decreasing': decline > 5,
            'severity': severity,
        }
