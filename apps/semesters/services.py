# semesters/services.py

"""
Semester Services Module

Business logic for the ten-semester pipeline:
- Cohort Registry (initialization, CRUD, rosters, event links)
- Semester Management (review flagging, progression, S1 intake, health)

Roster moves run in one transaction per student so a student is never left
on two cohorts, or on none.
"""

from django.db import transaction
from django.db.models import Q
from django.utils import timezone
from datetime import timedelta
import logging

from common.conf import get_setting
from common.exceptions import (
    NotFound,
    ConflictingEnrollment,
    MigrationInconsistency,
    describe_error,
)
from common.utils import resolve_instance, round_half_up
from attendance.models import Event
from progress.models import ProgressRecord
from progress.services import ProgressTrackingService
from students.models import Student
from students.services import StudentDirectoryService, CohortMembershipService
from .models import (
    SemesterCohort,
    FIRST_SEMESTER,
    FINAL_SEMESTER,
    INTAKE_CHOICES,
    INTAKE_SEPTEMBER,
    intake_for_semester,
)
from .stats import get_semester_statistics
from .utils import (
    get_current_academic_year,
    parse_academic_year,
    validate_semester_number,
    get_next_semester,
    build_cohort_metadata,
    is_cohort_stale,
)

logger = logging.getLogger(__name__)

# Fields a caller may change through update_cohort
UPDATABLE_COHORT_FIELDS = (
    'name',
    'description',
    'status',
    'start_date',
    'end_date',
    'max_students',
    'level',
    'department',
    'min_grade',
    'min_attendance',
    'courses_required',
    'auto_validation',
    'custom_rules',
)


def _get_cohort(cohort):
    return resolve_instance(SemesterCohort, cohort, label="Cohort")


def _other_roster_entries(student_ids, cohort):
    """Roster rows of ``student_ids`` on non-archived cohorts other than ``cohort``"""
    Roster = SemesterCohort.students.through
    return Roster.objects.filter(
        student_id__in=student_ids
    ).exclude(
        semestercohort_id=cohort.pk
    ).exclude(
        semestercohort__status=SemesterCohort.STATUS_ARCHIVED
    )


# =============================================================================
# COHORT REGISTRY SERVICE
# =============================================================================

class SemesterRegistryService:
    """Catalog of semester cohorts and their rosters"""

    # -------------------------------------------------------------------------
    # INITIALIZATION
    # -------------------------------------------------------------------------

    @staticmethod
    def initialize_semesters(academic_year=None):
        """
        Make sure all ten semester cohorts exist for an academic year.

        Missing cohorts are created, stale ones get their metadata and
        criteria defaults refreshed. Rosters are never touched. A failure on
        one semester is reported and the other semesters still go through.

        Args:
            academic_year (str): 'YYYY-YYYY', defaults to the current one

        Returns:
            dict: academic_year, created, updated, existing, errors, semesters

        Raises:
            ValueError: malformed academic year
        """
        academic_year = academic_year or get_current_academic_year()
        parse_academic_year(academic_year)

        logger.info(f"Initializing semesters for {academic_year}")

        results = {
            'academic_year': academic_year,
            'created': 0,
            'updated': 0,
            'existing': 0,
            'errors': [],
            'semesters': [],
        }

        for semester in range(FIRST_SEMESTER, FINAL_SEMESTER + 1):
            try:
                with transaction.atomic():
                    cohort, outcome = SemesterRegistryService._ensure_semester(semester, academic_year)
                results[outcome] += 1
                results['semesters'].append(cohort)
            except Exception as e:
                logger.error(f"Error initializing semester {semester} for {academic_year}: {e}")
                results['errors'].append(f"Semester {semester}: {e}")

        logger.info(
            f"Semester initialization for {academic_year}: {results['created']} created, "
            f"{results['updated']} updated, {results['existing']} existing, "
            f"{len(results['errors'])} errors"
        )

        return results

    @staticmethod
    def _ensure_semester(semester, academic_year):
        """
        Returns:
            tuple: (cohort, 'created' | 'updated' | 'existing')
        """
        metadata = build_cohort_metadata(semester, academic_year)

        existing = SemesterCohort.objects.filter(
            semester=semester,
            academic_year=academic_year
        ).exclude(
            status=SemesterCohort.STATUS_ARCHIVED
        ).order_by('status').first()

        if existing:
            if not is_cohort_stale(existing, metadata):
                return existing, 'existing'

            # Dates are left alone; only the catalog metadata is refreshed
            for field, value in metadata.items():
                if field in ('start_date', 'end_date'):
                    continue
                setattr(existing, field, value)
            existing.change_reason = "Refreshed by semester initialization"
            existing.save()

            logger.info(f"Updated stale metadata on {existing.name}")
            return existing, 'updated'

        cohort = SemesterCohort(
            semester=semester,
            academic_year=academic_year,
            status=SemesterCohort.STATUS_ACTIVE,
            **metadata
        )
        cohort.full_clean()
        cohort.save()

        return cohort, 'created'

    # -------------------------------------------------------------------------
    # QUERIES
    # -------------------------------------------------------------------------

    @staticmethod
    def get_all_semesters(academic_year=None):
        """
        Permanent cohorts ordered by semester.

        Returns:
            dict: semesters, missing_semesters, total
        """
        cohorts = SemesterCohort.objects.filter(is_permanent=True)
        if academic_year:
            cohorts = cohorts.filter(academic_year=academic_year)

        cohorts = list(cohorts.order_by('semester', 'academic_year'))
        present = {c.semester for c in cohorts}
        missing = [n for n in range(FIRST_SEMESTER, FINAL_SEMESTER + 1) if n not in present]

        if missing:
            logger.warning(f"Missing semesters for {academic_year or 'all years'}: {missing}")

        return {
            'semesters': cohorts,
            'missing_semesters': missing,
            'total': len(cohorts),
        }

    @staticmethod
    def get_statistics(academic_year=None):
        cohorts = SemesterRegistryService.get_all_semesters(academic_year)['semesters']
        return get_semester_statistics(cohorts)

    @staticmethod
    def get_cohort(cohort_id):
        return _get_cohort(cohort_id)

    @staticmethod
    def get_next_semester(semester):
        return get_next_semester(semester)

    # -------------------------------------------------------------------------
    # CRUD
    # -------------------------------------------------------------------------

    @staticmethod
    @transaction.atomic
    def create_cohort(semester, academic_year, **fields):
        """
        Create a cohort outside the initialization sweep.

        Missing fields take the canonical metadata for the semester.

        Raises:
            ValueError: bad semester, bad academic year or an active cohort
                already exists for the pair
        """
        validate_semester_number(semester)
        parse_academic_year(academic_year)

        unknown = set(fields) - set(UPDATABLE_COHORT_FIELDS) - {'intake', 'is_permanent'}
        if unknown:
            raise ValueError(f"Unknown cohort field(s): {', '.join(sorted(unknown))}")

        if 'custom_rules' in fields:
            _validate_custom_rules(fields['custom_rules'])

        data = build_cohort_metadata(semester, academic_year)
        data['status'] = SemesterCohort.STATUS_ACTIVE
        data.update(fields)

        if data['status'] == SemesterCohort.STATUS_ACTIVE and SemesterCohort.objects.filter(
            semester=semester,
            academic_year=academic_year,
            status=SemesterCohort.STATUS_ACTIVE
        ).exists():
            raise ValueError(
                f"An active cohort already exists for semester {semester} in {academic_year}"
            )

        cohort = SemesterCohort(semester=semester, academic_year=academic_year, **data)
        cohort.full_clean()
        cohort.save()

        return cohort

    @staticmethod
    @transaction.atomic
    def update_cohort(cohort_id, **fields):
        """
        Update display metadata, schedule, status or criteria defaults.

        Raises:
            NotFound: unknown cohort
            ValueError: unknown field, capacity below the roster size, or a
                second active cohort for the same semester and year
            InvalidCriteria: malformed custom rules
        """
        cohort = _get_cohort(cohort_id)

        unknown = set(fields) - set(UPDATABLE_COHORT_FIELDS)
        if unknown:
            raise ValueError(f"Cohort field(s) cannot be updated: {', '.join(sorted(unknown))}")

        if 'custom_rules' in fields:
            _validate_custom_rules(fields['custom_rules'])

        if 'max_students' in fields and fields['max_students'] < cohort.get_roster_size():
            raise ValueError(
                f"Capacity {fields['max_students']} is below the current roster "
                f"of {cohort.get_roster_size()} students"
            )

        if fields.get('status') == SemesterCohort.STATUS_ACTIVE and SemesterCohort.objects.filter(
            semester=cohort.semester,
            academic_year=cohort.academic_year,
            status=SemesterCohort.STATUS_ACTIVE
        ).exclude(pk=cohort.pk).exists():
            raise ValueError(
                f"An active cohort already exists for semester {cohort.semester} "
                f"in {cohort.academic_year}"
            )

        for field, value in fields.items():
            setattr(cohort, field, value)

        cohort.full_clean()
        cohort.save()

        logger.info(f"Updated {cohort}: {', '.join(sorted(fields))}")
        return cohort

    @staticmethod
    @transaction.atomic
    def delete_cohort(cohort_id):
        """
        Delete an empty cohort.

        Raises:
            NotFound: unknown cohort
            ValueError: the roster is not empty
        """
        cohort = _get_cohort(cohort_id)

        roster_size = cohort.get_roster_size()
        if roster_size:
            raise ValueError(f"Cannot delete {cohort}: {roster_size} students are enrolled")

        name = str(cohort)
        cohort.delete()

        logger.warning(f"Deleted semester cohort {name}")
        return True

    # -------------------------------------------------------------------------
    # ROSTER
    # -------------------------------------------------------------------------

    @staticmethod
    @transaction.atomic
    def add_students(cohort, student_ids):
        """
        Enroll students in a cohort.

        Every new student gets an open membership entry, the cohort as current
        cohort, a progress record, and access to the cohort's events.

        Args:
            cohort: SemesterCohort instance or id
            student_ids (list): Student instances or ids

        Returns:
            dict: added, already_enrolled, roster_size

        Raises:
            NotFound: unknown cohort or student ids
            ConflictingEnrollment: students on another non-archived roster
            ValueError: archived cohort or not enough capacity
        """
        cohort = _get_cohort(cohort)

        if cohort.is_archived:
            raise ValueError(f"Cannot add students to archived cohort {cohort}")

        students = StudentDirectoryService.get_students(student_ids)

        unique = {}
        for student in students:
            unique.setdefault(student.pk, student)
        students = list(unique.values())

        offenders = sorted({
            str(pk) for pk in _other_roster_entries(
                [s.pk for s in students], cohort
            ).values_list('student_id', flat=True)
        })
        if offenders:
            raise ConflictingEnrollment(offenders)

        enrolled_ids = set(
            cohort.students.filter(pk__in=[s.pk for s in students]).values_list('pk', flat=True)
        )
        new_students = [s for s in students if s.pk not in enrolled_ids]

        if new_students and not cohort.has_capacity(len(new_students)):
            raise ValueError(
                f"{cohort} is at full capacity "
                f"({cohort.get_roster_size()}/{cohort.max_students}), "
                f"cannot add {len(new_students)} students"
            )

        if new_students:
            cohort.students.add(*new_students)

        for student in new_students:
            CohortMembershipService.open_membership(student, cohort, reason='Enrolled')
            student.current_cohort = cohort
            student.save(update_fields=['current_cohort'])
            ProgressTrackingService.find_or_create(student, cohort, activate=True)

        logger.info(
            f"Added {len(new_students)} students to {cohort} "
            f"({len(enrolled_ids)} already enrolled)"
        )

        return {
            'cohort_id': str(cohort.pk),
            'added': [str(s.pk) for s in new_students],
            'already_enrolled': [str(pk) for pk in enrolled_ids],
            'roster_size': cohort.get_roster_size(),
        }

    @staticmethod
    @transaction.atomic
    def remove_student(cohort, student_id):
        """
        Take a student off a cohort roster.

        The open membership entry is closed and the student's active progress
        record in the cohort is retired.

        Raises:
            NotFound: unknown cohort or student, or student not enrolled
        """
        cohort = _get_cohort(cohort)
        student = StudentDirectoryService.get_student(student_id)

        if not cohort.students.filter(pk=student.pk).exists():
            raise NotFound(f"{student.get_full_name()} is not enrolled in {cohort}")

        now = timezone.now()

        cohort.students.remove(student)
        CohortMembershipService.close_membership(student, cohort, left_at=now)

        if student.current_cohort_id == cohort.pk:
            student.current_cohort = None
            student.save(update_fields=['current_cohort'])

        ProgressRecord.objects.filter(
            student=student,
            cohort=cohort,
            is_active=True
        ).update(is_active=False, superseded_at=now, updated_at=now)

        logger.info(f"Removed {student.get_full_name()} from {cohort}")

        return {
            'cohort_id': str(cohort.pk),
            'student_id': str(student.pk),
            'left_at': now,
        }

    # -------------------------------------------------------------------------
    # EVENTS
    # -------------------------------------------------------------------------

    @staticmethod
    @transaction.atomic
    def link_events(cohort, event_ids):
        """
        Link events to a cohort; the roster becomes their participants.

        Raises:
            NotFound: unknown cohort or event
        """
        cohort = _get_cohort(cohort)
        events = [resolve_instance(Event, event_id) for event_id in event_ids]

        if events:
            cohort.events.add(*events)

        logger.info(f"Linked {len(events)} events to {cohort}")
        return cohort.events.count()

    @staticmethod
    @transaction.atomic
    def unlink_event(cohort, event_id):
        """
        Unlink an event from a cohort.

        Roster students stop being participants unless another cohort linked
        to the event still holds them.

        Raises:
            NotFound: unknown cohort or event, or event not linked
        """
        cohort = _get_cohort(cohort)
        event = resolve_instance(Event, event_id)

        if not cohort.events.filter(pk=event.pk).exists():
            raise NotFound(f"Event '{event.title}' is not linked to {cohort}")

        cohort.events.remove(event)

        still_linked = Student.objects.filter(
            semester_cohorts__in=event.cohorts.all()
        ).values_list('pk', flat=True)

        leaving = cohort.students.exclude(pk__in=list(still_linked))
        event.participants.remove(*leaving)

        logger.info(f"Unlinked '{event.title}' from {cohort}")
        return cohort.events.count()


def _validate_custom_rules(rules):
    from validation.criteria import ValidationCriteria

    ValidationCriteria.defaults().merged({'custom_rules': rules})


# =============================================================================
# SEMESTER MANAGEMENT SERVICE
# =============================================================================

class SemesterManagementService:
    """Review queue, progression sweeps and first-semester intake"""

    # -------------------------------------------------------------------------
    # REVIEW QUEUE
    # -------------------------------------------------------------------------

    @staticmethod
    @transaction.atomic
    def flag_students_for_validation(cohort_ids=None):
        """
        Put eligible students into the review queue.

        Eligible are active records that are ``not_started``, and ``failed``
        records whose review date has come. They move to
        ``pending_validation`` with a review date VALIDATION_PERIOD_DAYS out.

        Args:
            cohort_ids (list): limit to these cohorts; all cohorts when empty

        Returns:
            int: number of records flagged

        Raises:
            NotFound: unknown cohort id
        """
        now = timezone.now()
        next_validation_date = now + timedelta(days=get_setting('VALIDATION_PERIOD_DAYS'))

        records = ProgressRecord.objects.filter(is_active=True).filter(
            Q(validation_status=ProgressRecord.STATUS_NOT_STARTED) |
            Q(validation_status=ProgressRecord.STATUS_FAILED) & (
                Q(next_validation_date__isnull=True) |
                Q(next_validation_date__lte=now)
            )
        )

        if cohort_ids:
            cohorts = [_get_cohort(cohort_id) for cohort_id in cohort_ids]
            records = records.filter(cohort__in=cohorts)

        flagged = records.update(
            validation_status=ProgressRecord.STATUS_PENDING,
            next_validation_date=next_validation_date,
            target_semester=None,
            updated_at=now,
        )

        logger.info(f"Flagged {flagged} students for validation")
        return flagged

    # -------------------------------------------------------------------------
    # PROGRESSION
    # -------------------------------------------------------------------------

    @staticmethod
    def find_destination_cohort(target_semester, source_year):
        """
        Cohort a student moves into.

        An even target follows in the same academic year (September ->
        March), an odd one in the next. When that year has no cohort, the
        most recent non-archived cohort for the semester is used.

        Raises:
            NotFound: no non-archived cohort for the semester
        """
        _, second = parse_academic_year(source_year)
        if intake_for_semester(target_semester) == INTAKE_SEPTEMBER:
            expected_year = f"{second}-{second + 1}"
        else:
            expected_year = source_year

        candidates = SemesterCohort.objects.filter(
            semester=target_semester
        ).exclude(
            status=SemesterCohort.STATUS_ARCHIVED
        ).order_by('status', '-academic_year')

        cohort = candidates.filter(academic_year=expected_year).first() or candidates.first()

        if cohort is None:
            raise NotFound(f"Target semester {target_semester} cohort not found")

        return cohort

    @staticmethod
    def progress_validated_students():
        """
        Move every validated student into the next semester's cohort.

        Each student moves in its own transaction. Students in the final
        semester are never moved, and a target beyond the pipeline is
        skipped and reported.

        Returns:
            dict: students_progressed, progressions, skipped, errors
        """
        candidates = list(
            ProgressRecord.objects.filter(
                is_active=True,
                validation_status=ProgressRecord.STATUS_VALIDATED,
                target_semester__isnull=False,
                current_semester__lt=FINAL_SEMESTER,
            ).select_related('student', 'cohort')
        )

        logger.info(f"Processing {len(candidates)} validated students for progression")

        results = {
            'students_progressed': 0,
            'progressions': [],
            'skipped': [],
            'errors': [],
        }

        for record in candidates:
            if record.target_semester > FINAL_SEMESTER:
                logger.warning(
                    f"Skipping {record.student.get_full_name()}: target semester "
                    f"{record.target_semester} is beyond the pipeline"
                )
                results['skipped'].append({
                    'student_id': str(record.student_id),
                    'target_semester': record.target_semester,
                    'reason': 'Target semester beyond final semester',
                })
                continue

            try:
                progression = SemesterManagementService._progress_student(record)
                results['progressions'].append(progression)
                results['students_progressed'] += 1
            except Exception as e:
                logger.error(f"Failed to progress student {record.student_id}: {e}")
                results['errors'].append(describe_error(record.student_id, e))

        logger.info(
            f"Progression completed: {results['students_progressed']} progressed, "
            f"{len(results['errors'])} errors, {len(results['skipped'])} skipped"
        )

        return results

    @staticmethod
    @transaction.atomic
    def _progress_student(record):
        """
        Move one student from the record's cohort to the target cohort.

        Raises:
            NotFound: no destination cohort
            ValueError: destination full
            MigrationInconsistency: roster check failed after the move
        """
        student = record.student
        source = record.cohort
        from_semester = record.current_semester
        to_semester = record.target_semester

        destination = SemesterManagementService.find_destination_cohort(
            to_semester, source.academic_year
        )

        on_destination = destination.students.filter(pk=student.pk).exists()
        if not on_destination and not destination.has_capacity():
            raise ValueError(f"{destination} is at full capacity")

        now = timezone.now()

        # Retire the old record before the new one becomes active
        record.is_active = False
        record.superseded_at = now
        record.save(update_fields=['is_active', 'superseded_at'])

        successor = ProgressRecord.objects.filter(student=student, cohort=destination).first()
        if successor:
            successor.is_active = True
            successor.current_semester = destination.semester
            successor.target_semester = None
            successor.validation_status = ProgressRecord.STATUS_NOT_STARTED
            successor.next_validation_date = None
            successor.superseded_at = None
            successor.superseded_by = None
            successor.save()
        else:
            successor = ProgressTrackingService.find_or_create(student, destination)

        record.superseded_by = successor
        record.save(update_fields=['superseded_by'])

        source.students.remove(student)
        if not on_destination:
            destination.students.add(student)

        CohortMembershipService.close_membership(student, source, left_at=now)
        CohortMembershipService.open_membership(
            student,
            destination,
            progressed_from=from_semester,
            reason=f"Progressed from semester {from_semester}",
        )

        student.current_cohort = destination
        student.save(update_fields=['current_cohort'])

        rosters = list(
            student.semester_cohorts.exclude(
                status=SemesterCohort.STATUS_ARCHIVED
            ).values_list('pk', flat=True)
        )
        if rosters != [destination.pk]:
            raise MigrationInconsistency(
                f"{student.get_full_name()} is on {len(rosters)} non-archived rosters "
                f"after moving to {destination}"
            )

        ProgressTrackingService.recalculate(successor)

        logger.info(
            f"Progressed {student.get_full_name()} from S{from_semester} to S{to_semester}"
        )

        return {
            'student_id': str(student.pk),
            'from_semester': from_semester,
            'to_semester': to_semester,
            'cohort_id': str(destination.pk),
            'progress_record_id': str(successor.pk),
        }

    # -------------------------------------------------------------------------
    # FIRST SEMESTER INTAKE
    # -------------------------------------------------------------------------

    @staticmethod
    def assign_new_students_to_s1(student_ids, intake=INTAKE_SEPTEMBER, academic_year=None):
        """
        Enroll new students in the first semester cohort of an intake.

        Args:
            student_ids (list): Student ids
            intake (str): 'september' or 'march'
            academic_year (str): preferred academic year, current by default

        Returns:
            dict: assigned, failed, summary

        Raises:
            ValueError: unknown intake
            NotFound: no first semester cohort for the intake
        """
        valid_intakes = [choice for choice, _ in INTAKE_CHOICES]
        if intake not in valid_intakes:
            raise ValueError(f"Intake must be one of {', '.join(valid_intakes)}, got {intake!r}")

        academic_year = academic_year or get_current_academic_year()

        candidates = SemesterCohort.objects.filter(
            semester=FIRST_SEMESTER,
            intake=intake
        ).exclude(
            status=SemesterCohort.STATUS_ARCHIVED
        ).order_by('status', '-academic_year')

        cohort = candidates.filter(academic_year=academic_year).first() or candidates.first()
        if cohort is None:
            raise NotFound(f"S1 cohort for {intake} intake not found")

        logger.info(f"Assigning {len(student_ids)} new students to {cohort}")

        results = {
            'cohort_id': str(cohort.pk),
            'assigned': [],
            'failed': [],
            'summary': {
                'total': len(student_ids),
                'assigned': 0,
                'errors': 0,
            }
        }

        for student_id in student_ids:
            try:
                SemesterRegistryService.add_students(cohort, [student_id])
                results['assigned'].append(str(student_id))
                results['summary']['assigned'] += 1
            except Exception as e:
                logger.error(f"Failed to assign student {student_id} to S1: {e}")
                results['failed'].append(describe_error(student_id, e))
                results['summary']['errors'] += 1

        logger.info(f"Assigned {results['summary']['assigned']} students to {cohort}")
        return results

    # -------------------------------------------------------------------------
    # HEALTH
    # -------------------------------------------------------------------------

    @staticmethod
    def perform_health_check():
        """
        Overview of the semester system for the current academic year.

        Returns:
            dict: semester_system_healthy, total_semesters, missing_semesters,
                total_students, average_utilization, pending_validation,
                ready_for_progression, academic_year, last_checked
        """
        academic_year = get_current_academic_year()
        catalog = SemesterRegistryService.get_all_semesters(academic_year)
        stats = get_semester_statistics(catalog['semesters'])

        active = ProgressRecord.objects.filter(is_active=True)

        pending = active.filter(validation_status=ProgressRecord.STATUS_PENDING).count()
        ready = active.filter(
            validation_status=ProgressRecord.STATUS_VALIDATED,
            target_semester__isnull=False,
            current_semester__lt=FINAL_SEMESTER,
        ).count()

        health = {
            'semester_system_healthy': not catalog['missing_semesters'],
            'total_semesters': catalog['total'],
            'missing_semesters': catalog['missing_semesters'],
            'total_students': stats['total_students'],
            'average_utilization': round_half_up(stats['average_utilization']),
            'pending_validation': pending,
            'ready_for_progression': ready,
            'academic_year': academic_year,
            'last_checked': timezone.now(),
        }

        if not health['semester_system_healthy']:
            logger.warning(
                f"Semester system unhealthy for {academic_year}: "
                f"missing {health['missing_semesters']}"
            )

        return health
