# students/models.py

from django.db import models
from django.db.models import Q
from common.models import BaseModel
import logging

logger = logging.getLogger(__name__)


# =============================================================================
# STUDENT MODEL
# =============================================================================

class Student(BaseModel):
    """
    Minimal student identity.

    Account management lives in the user service; the engine only needs to
    know that an id resolves to an active student and which cohort the
    student is currently in.
    """

    # -------------------------------------------------------------------------
    # CHOICE FIELDS
    # -------------------------------------------------------------------------

    ROLE_STUDENT = 'student'
    ROLE_TEACHER = 'teacher'
    ROLE_ADMIN = 'admin'

    ROLE_CHOICES = (
        (ROLE_STUDENT, 'Student'),
        (ROLE_TEACHER, 'Teacher'),
        (ROLE_ADMIN, 'Administrator'),
    )

    # -------------------------------------------------------------------------
    # IDENTIFICATION
    # -------------------------------------------------------------------------

    student_number = models.CharField(
        "Student Number",
        max_length=30,
        unique=True,
        db_index=True
    )
    first_name = models.CharField("First Name", max_length=50)
    last_name = models.CharField("Last Name", max_length=50)
    email = models.EmailField("Email", blank=True)

    role = models.CharField(
        "Role",
        max_length=20,
        choices=ROLE_CHOICES,
        default=ROLE_STUDENT,
        db_index=True
    )
    is_active = models.BooleanField("Is Active", default=True)

    # -------------------------------------------------------------------------
    # CURRENT PLACEMENT
    # -------------------------------------------------------------------------

    current_cohort = models.ForeignKey(
        'semesters.SemesterCohort',
        verbose_name="Current Cohort",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='current_students'
    )

    def __str__(self):
        return f"{self.get_full_name()} ({self.student_number})"

    def get_full_name(self):
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def is_student(self):
        return self.role == self.ROLE_STUDENT

    class Meta:
        ordering = ['last_name', 'first_name']
        verbose_name = "Student"
        verbose_name_plural = "Students"
        indexes = [
            models.Index(fields=['role', 'is_active']),
        ]


# =============================================================================
# COHORT MEMBERSHIP HISTORY
# =============================================================================

class CohortMembership(BaseModel):
    """Track every cohort a student has joined and left"""

    student = models.ForeignKey(
        Student,
        verbose_name="Student",
        on_delete=models.CASCADE,
        related_name='cohort_history'
    )

    cohort = models.ForeignKey(
        'semesters.SemesterCohort',
        verbose_name="Cohort",
        on_delete=models.CASCADE,
        related_name='membership_history'
    )

    joined_at = models.DateTimeField("Joined At")
    left_at = models.DateTimeField("Left At", null=True, blank=True)

    progressed_from = models.PositiveSmallIntegerField(
        "Progressed From Semester",
        null=True,
        blank=True,
        help_text="Semester number the student progressed from, if any"
    )

    reason = models.CharField("Reason", max_length=255, blank=True)

    @property
    def is_open(self):
        return self.left_at is None

    def __str__(self):
        return f"{self.student.get_full_name()} in {self.cohort}"

    class Meta:
        verbose_name = "Cohort Membership"
        verbose_name_plural = "Cohort Memberships"
        ordering = ['-joined_at']
        indexes = [
            models.Index(fields=['student', 'joined_at']),
            models.Index(fields=['cohort', 'left_at']),
        ]
        constraints = [
            # A student has at most one open entry per cohort
            models.UniqueConstraint(
                fields=['student', 'cohort'],
                condition=Q(left_at__isnull=True),
                name='unique_open_membership_per_cohort'
            ),
        ]
