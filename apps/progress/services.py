# progress/services.py

"""
Progress Tracking Services

- Progress record lookup and lazy creation
- Recalculation of the cached attendance/progress figures
- Course progress updates and grade ingestion
- At-risk queries, top performers and cohort reports
"""

from django.db import transaction
from django.db.models import Q, F
from django.utils import timezone
from django.core.exceptions import ValidationError
import logging

from common.conf import get_setting
from common.exceptions import NotFound, InvalidCohort, describe_error
from common.utils import resolve_instance, chunked, pause_between_chunks, clamp_percentage
from attendance.services import attendance_counts, calculate_rate
from semesters.models import SemesterCohort
from students.services import StudentDirectoryService
from .models import Course, CourseProgress, ProgressRecord
from .stats import get_cohort_progress_statistics
from .utils import (
    course_completion_percentage,
    overall_progress,
    average_score,
    classify_progress,
)

logger = logging.getLogger(__name__)


# =============================================================================
# PROGRESS TRACKING SERVICE
# =============================================================================

class ProgressTrackingService:
    """Maintain progress records and their derived figures"""

    # -------------------------------------------------------------------------
    # LOOKUP
    # -------------------------------------------------------------------------

    @staticmethod
    @transaction.atomic
    def find_or_create(student, cohort, activate=False):
        """
        Progress record of ``student`` in ``cohort``, created on first need.

        A newly created record becomes the student's active one; any other
        active record (left behind in an archived cohort) is retired first.
        With ``activate``, an existing retired record is brought back the
        same way, as when a removed student re-joins the cohort.

        Returns:
            ProgressRecord
        """
        record = ProgressRecord.objects.filter(student=student, cohort=cohort).first()
        if record and (record.is_active or not activate):
            return record

        now = timezone.now()
        stale = list(
            ProgressRecord.objects.select_for_update().filter(
                student=student, is_active=True
            ).exclude(pk=getattr(record, 'pk', None))
        )
        for old in stale:
            old.is_active = False
            old.superseded_at = now
            old.save(update_fields=['is_active', 'superseded_at'])
            logger.warning(
                f"Retired active progress record {old.pk} of {student.get_full_name()} "
                f"(S{old.current_semester}) on joining {cohort}"
            )

        if record:
            record.is_active = True
            record.superseded_at = None
            record.superseded_by = None
            record.save(update_fields=['is_active', 'superseded_at', 'superseded_by'])
            logger.info(f"Reactivated progress record for {student.get_full_name()} in {cohort}")
        else:
            record = ProgressRecord.objects.create(
                student=student,
                cohort=cohort,
                current_semester=cohort.semester,
                validation_status=ProgressRecord.STATUS_NOT_STARTED,
            )
            logger.info(f"Created progress record for {student.get_full_name()} in {cohort}")

        for old in stale:
            old.superseded_by = record
            old.save(update_fields=['superseded_by'])

        return record

    @staticmethod
    def require_enrolled(student, cohort):
        """
        Raises:
            InvalidCohort: ``student`` is not on the roster of ``cohort``
        """
        if not cohort.students.filter(pk=student.pk).exists():
            raise InvalidCohort(f"{student.get_full_name()} is not enrolled in {cohort}")

    @staticmethod
    def get_active_record(student_id):
        """
        The student's active progress record.

        Raises:
            NotFound: no active record for the student
        """
        try:
            return ProgressRecord.objects.select_related('cohort', 'student').get(
                student_id=getattr(student_id, 'pk', student_id),
                is_active=True
            )
        except (ProgressRecord.DoesNotExist, ValidationError, ValueError):
            raise NotFound(f"No active progress record for student {student_id}") from None

    @staticmethod
    def get_student_progress(student, cohort):
        """Up-to-date progress record of ``student`` in ``cohort``"""
        student = StudentDirectoryService.get_student(student)
        cohort = resolve_instance(SemesterCohort, cohort, label="Cohort")
        if not ProgressRecord.objects.filter(student=student, cohort=cohort).exists():
            ProgressTrackingService.require_enrolled(student, cohort)
        return ProgressTrackingService.recalculate_for_student(student, cohort)

    # -------------------------------------------------------------------------
    # RECALCULATION
    # -------------------------------------------------------------------------

    @staticmethod
    def recalculate(record):
        """
        Rebuild the cached figures of ``record`` from the attendance ledger
        and its course items, and stamp milestones reached for the first time.

        Returns:
            ProgressRecord
        """
        now = timezone.now()

        attended, total = attendance_counts(record.student_id, record.cohort_id)
        record.events_attended = attended
        record.total_events = total
        record.attendance_rate = calculate_rate(attended, total)

        items = list(record.course_items.all())

        for item in items:
            if item.progress_percentage >= 100 and item.completed_at is None:
                item.completed_at = now
                item.save(update_fields=['completed_at'])

        record.overall_progress = overall_progress(
            [item.progress_percentage for item in items],
            record.attendance_rate
        )

        graded = average_score([item.average_score for item in items])
        if graded is not None:
            record.average_grade = graded

        completed = sum(1 for item in items if item.progress_percentage >= 100)
        halfway = len(items) // 2

        if items and record.first_course_started_at is None:
            record.first_course_started_at = now
        if completed and record.first_course_completed_at is None:
            record.first_course_completed_at = now
        if halfway and completed >= halfway and record.halfway_completed_at is None:
            record.halfway_completed_at = now
        if items and completed == len(items) and record.all_courses_completed_at is None:
            record.all_courses_completed_at = now

        record.last_calculated = now
        record.save()

        logger.debug(
            f"Recalculated {record.pk}: {record.overall_progress}% overall, "
            f"{record.attendance_rate}% attendance"
        )
        return record

    @staticmethod
    @transaction.atomic
    def recalculate_for_student(student, cohort):
        record = ProgressTrackingService.find_or_create(student, cohort)
        return ProgressTrackingService.recalculate(record)

    @staticmethod
    def recalculate_cohort(cohort):
        """
        Recalculate every progress record of a cohort in chunks.

        Returns:
            dict: recalculated count and failed entries
        """
        cohort = resolve_instance(SemesterCohort, cohort, label="Cohort")
        records = list(ProgressRecord.objects.filter(cohort=cohort).select_related('student'))

        results = {'recalculated': 0, 'failed': [], 'total': len(records)}
        chunks = list(chunked(records, get_setting('RECALCULATION_BATCH_SIZE')))

        for index, chunk in enumerate(chunks):
            for record in chunk:
                try:
                    ProgressTrackingService.recalculate(record)
                    results['recalculated'] += 1
                except Exception as e:
                    logger.error(f"Error recalculating progress record {record.pk}: {e}")
                    results['failed'].append(describe_error(record.student_id, e))

            if index < len(chunks) - 1:
                pause_between_chunks()

        logger.info(
            f"Recalculated {results['recalculated']}/{results['total']} progress records in {cohort}"
        )
        return results

    # -------------------------------------------------------------------------
    # COURSES & GRADES
    # -------------------------------------------------------------------------

    @staticmethod
    def calculate_course_completion(course, chapters_completed, exercises_completed):
        """
        Completion percentage of a course from chapter and exercise counts.

        Totals come from the course directory.
        """
        course = resolve_instance(Course, course)
        return course_completion_percentage(
            chapters_completed, course.total_chapters,
            exercises_completed, course.total_exercises
        )

    @staticmethod
    @transaction.atomic
    def update_course_progress(student, cohort, course, **fields):
        """
        Update one course item of a student's progress record.

        Args:
            student: Student instance or id
            cohort: SemesterCohort instance or id
            course: Course instance or id
            **fields: Any of
                - progress_percentage
                - chapters_completed
                - exercises_completed
                - average_score

        When counters are given without a percentage, the percentage is
        derived from them.

        Returns:
            CourseProgress
        """
        student = StudentDirectoryService.get_student(student)
        cohort = resolve_instance(SemesterCohort, cohort, label="Cohort")
        course = resolve_instance(Course, course)

        allowed = {'progress_percentage', 'chapters_completed', 'exercises_completed', 'average_score'}
        unknown = set(fields) - allowed
        if unknown:
            raise ValueError(f"Unknown course progress field(s): {', '.join(sorted(unknown))}")

        ProgressTrackingService.require_enrolled(student, cohort)
        record = ProgressTrackingService.find_or_create(student, cohort)
        now = timezone.now()

        item, created = CourseProgress.objects.get_or_create(
            progress_record=record,
            course=course,
            defaults={
                'started_at': now,
                'total_chapters': course.total_chapters,
                'total_exercises': course.total_exercises,
            }
        )

        for name, value in fields.items():
            setattr(item, name, value)

        if 'progress_percentage' in fields:
            item.progress_percentage = clamp_percentage(fields['progress_percentage'])
        elif 'chapters_completed' in fields or 'exercises_completed' in fields:
            item.progress_percentage = course_completion_percentage(
                item.chapters_completed, item.total_chapters,
                item.exercises_completed, item.total_exercises
            )

        if item.progress_percentage >= 100 and item.completed_at is None:
            item.completed_at = now

        item.last_activity_at = now
        item.save()

        ProgressTrackingService.recalculate(record)

        logger.info(
            f"Course {course.code} at {item.progress_percentage:.0f}% for {student.get_full_name()}"
        )
        return item

    @staticmethod
    @transaction.atomic
    def mark_course_completed(student, cohort, course):
        course = resolve_instance(Course, course)
        return ProgressTrackingService.update_course_progress(
            student,
            cohort,
            course,
            progress_percentage=100,
            chapters_completed=course.total_chapters,
            exercises_completed=course.total_exercises,
        )

    @staticmethod
    @transaction.atomic
    def record_grade(student, cohort, average_grade):
        """
        Ingest a student's average grade for a cohort.

        Raises:
            ValueError: grade is not a number between 0 and 100
            InvalidCohort: the student is not enrolled in the cohort
        """
        if isinstance(average_grade, bool) or not isinstance(average_grade, (int, float)):
            raise ValueError(f"Average grade must be a number, got {average_grade!r}")
        if not 0 <= average_grade <= 100:
            raise ValueError(f"Average grade must be between 0 and 100, got {average_grade!r}")

        student = StudentDirectoryService.get_student(student)
        cohort = resolve_instance(SemesterCohort, cohort, label="Cohort")

        ProgressTrackingService.require_enrolled(student, cohort)
        record = ProgressTrackingService.find_or_create(student, cohort)
        record.average_grade = float(average_grade)
        record.save(update_fields=['average_grade'])

        logger.info(f"Recorded average grade {average_grade} for {student.get_full_name()} in {cohort}")
        return record

    # -------------------------------------------------------------------------
    # QUERIES & REPORTS
    # -------------------------------------------------------------------------

    @staticmethod
    def get_at_risk_students(cohort, progress_threshold=None, attendance_threshold=None):
        """Records below either threshold, weakest first"""
        cohort = resolve_instance(SemesterCohort, cohort, label="Cohort")

        if progress_threshold is None:
            progress_threshold = get_setting('AT_RISK_PROGRESS_THRESHOLD')
        if attendance_threshold is None:
            attendance_threshold = get_setting('AT_RISK_ATTENDANCE_THRESHOLD')

        return ProgressRecord.objects.filter(
            cohort=cohort
        ).filter(
            Q(overall_progress__lt=progress_threshold) |
            Q(attendance_rate__lt=attendance_threshold)
        ).select_related('student').order_by('overall_progress')

    @staticmethod
    def get_top_performers(cohort, limit=10):
        cohort = resolve_instance(SemesterCohort, cohort, label="Cohort")
        return ProgressRecord.objects.filter(
            cohort=cohort
        ).select_related('student').order_by(
            '-overall_progress',
            F('average_grade').desc(nulls_last=True)
        )[:limit]

    @staticmethod
    def get_cohort_statistics(cohort):
        cohort = resolve_instance(SemesterCohort, cohort, label="Cohort")
        return get_cohort_progress_statistics(cohort)

    @staticmethod
    def generate_progress_report(cohort):
        """
        One line per student of the cohort, best progress first.

        Returns:
            list: dicts with progress figures and an on-track status
        """
        cohort = resolve_instance(SemesterCohort, cohort, label="Cohort")
        at_risk_progress = get_setting('AT_RISK_PROGRESS_THRESHOLD')
        at_risk_attendance = get_setting('AT_RISK_ATTENDANCE_THRESHOLD')

        records = ProgressRecord.objects.filter(
            cohort=cohort
        ).select_related('student').order_by('-overall_progress')

        report = []
        for record in records:
            report.append({
                'student_id': str(record.student_id),
                'student_name': record.student.get_full_name(),
                'overall_progress': record.overall_progress,
                'attendance_rate': record.attendance_rate,
                'courses_completed': record.get_completed_courses().count(),
                'courses_in_progress': record.get_in_progress_courses().count(),
                'average_grade': record.average_grade,
                'status': classify_progress(
                    record.overall_progress,
                    record.attendance_rate,
                    at_risk_progress,
                    at_risk_attendance,
                ),
            })

        return report

