# students/services.py
"""
Student directory and enrollment history.

Resolves student ids for the rest of the engine and keeps the
per-student cohort membership trail.
"""

from django.utils import timezone
from django.core.exceptions import ValidationError
import logging

from common.exceptions import NotFound
from .models import Student, CohortMembership

logger = logging.getLogger(__name__)


# =============================================================================
# STUDENT DIRECTORY
# =============================================================================

class StudentDirectoryService:
    """Resolve student ids into Student instances"""

    @staticmethod
    def get_student(student_id):
        """
        Resolve a single active student.

        Args:
            student_id: Student instance, UUID or UUID string

        Returns:
            Student

        Raises:
            NotFound: unknown id, inactive account, or not a student
        """
        if isinstance(student_id, Student):
            student = student_id
        else:
            try:
                student = Student.objects.get(pk=student_id)
            except (Student.DoesNotExist, ValidationError, ValueError):
                raise NotFound(f"Student {student_id} not found") from None

        if not student.is_student or not student.is_active:
            raise NotFound(f"Student {student_id} not found")

        return student

    @staticmethod
    def get_students(student_ids):
        """
        Resolve a list of student ids at once.

        Returns:
            list: Students in input order

        Raises:
            NotFound: listing every id that did not resolve
        """
        resolved = []
        missing = []

        for student_id in student_ids:
            try:
                resolved.append(StudentDirectoryService.get_student(student_id))
            except NotFound:
                missing.append(str(student_id))

        if missing:
            raise NotFound(f"Students not found: {', '.join(missing)}")

        return resolved


# =============================================================================
# ENROLLMENT HISTORY
# =============================================================================

class CohortMembershipService:
    """Open and close cohort membership entries on a student"""

    @staticmethod
    def open_membership(student, cohort, progressed_from=None, reason=''):
        """
        Record that ``student`` joined ``cohort``.

        An already-open entry for the same cohort is returned unchanged.
        """
        existing = CohortMembership.objects.filter(
            student=student,
            cohort=cohort,
            left_at__isnull=True
        ).first()

        if existing:
            return existing

        membership = CohortMembership.objects.create(
            student=student,
            cohort=cohort,
            joined_at=timezone.now(),
            progressed_from=progressed_from,
            reason=reason,
        )

        logger.debug(f"Opened membership for {student.get_full_name()} in {cohort}")
        return membership

    @staticmethod
    def close_membership(student, cohort, left_at=None):
        """
        Stamp ``left_at`` on the open entry for ``cohort``.

        Returns:
            int: number of entries closed (0 or 1)
        """
        closed = CohortMembership.objects.filter(
            student=student,
            cohort=cohort,
            left_at__isnull=True
        ).update(left_at=left_at or timezone.now(), updated_at=timezone.now())

        if not closed:
            logger.warning(
                f"No open membership to close for {student.get_full_name()} in {cohort}"
            )

        return closed

    @staticmethod
    def get_history(student):
        """Complete membership history for a student, most recent first"""
        return CohortMembership.objects.filter(
            student=student
        ).select_related('cohort').order_by('-joined_at')
