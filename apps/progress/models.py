# progress/models.py

from django.db import models
from django.db.models import Q
from django.core.validators import MinValueValidator, MaxValueValidator
from common.models import BaseModel
import logging

logger = logging.getLogger(__name__)


# =============================================================================
# COURSE MODEL
# =============================================================================

class Course(BaseModel):
    """
    Course directory entry.

    Course content lives in the course service; only the totals needed for
    completion percentages are kept here.
    """

    code = models.CharField("Course Code", max_length=30, unique=True)
    title = models.CharField("Title", max_length=200)
    total_chapters = models.PositiveIntegerField("Total Chapters", default=0)
    total_exercises = models.PositiveIntegerField("Total Exercises", default=0)

    def __str__(self):
        return f"{self.code} - {self.title}"

    class Meta:
        verbose_name = "Course"
        verbose_name_plural = "Courses"
        ordering = ['code']


# =============================================================================
# PROGRESS RECORD MODEL
# =============================================================================

class ProgressRecord(BaseModel):
    """
    Academic standing of one student within one semester cohort.

    ``attendance_rate`` and ``overall_progress`` are caches rebuilt by
    ``ProgressTrackingService.recalculate`` from the attendance ledger and
    the course items; they are never edited by hand. When the student
    progresses, the record is retired (``is_active=False``) and points at its
    successor through ``superseded_by``.
    """

    STATUS_NOT_STARTED = 'not_started'
    STATUS_PENDING = 'pending_validation'
    STATUS_VALIDATED = 'validated'
    STATUS_CONDITIONAL = 'conditional'
    STATUS_FAILED = 'failed'

    VALIDATION_STATUS_CHOICES = (
        (STATUS_NOT_STARTED, 'Not Started'),
        (STATUS_PENDING, 'Pending Validation'),
        (STATUS_VALIDATED, 'Validated'),
        (STATUS_CONDITIONAL, 'Conditional'),
        (STATUS_FAILED, 'Failed'),
    )

    # Statuses that allow a target semester
    PROGRESSING_STATUSES = (STATUS_VALIDATED, STATUS_CONDITIONAL)

    # -------------------------------------------------------------------------
    # IDENTITY
    # -------------------------------------------------------------------------

    student = models.ForeignKey(
        'students.Student',
        verbose_name="Student",
        on_delete=models.CASCADE,
        related_name='progress_records'
    )

    cohort = models.ForeignKey(
        'semesters.SemesterCohort',
        verbose_name="Cohort",
        on_delete=models.CASCADE,
        related_name='progress_records'
    )

    current_semester = models.PositiveSmallIntegerField(
        "Current Semester",
        validators=[MinValueValidator(1), MaxValueValidator(10)]
    )
    target_semester = models.PositiveSmallIntegerField(
        "Target Semester",
        null=True,
        blank=True,
        help_text="Set once a progression decision has been made"
    )

    # -------------------------------------------------------------------------
    # METRICS
    # -------------------------------------------------------------------------

    average_grade = models.FloatField(
        "Average Grade",
        null=True,
        blank=True,
        validators=[MinValueValidator(0), MaxValueValidator(100)],
        help_text="Empty until grades are ingested"
    )

    total_events = models.PositiveIntegerField("Events Marked", default=0)
    events_attended = models.PositiveIntegerField("Events Attended", default=0)

    attendance_rate = models.FloatField(
        "Attendance Rate",
        default=100,
        validators=[MinValueValidator(0), MaxValueValidator(100)]
    )
    overall_progress = models.FloatField(
        "Overall Progress",
        default=0,
        validators=[MinValueValidator(0), MaxValueValidator(100)]
    )

    # -------------------------------------------------------------------------
    # VALIDATION
    # -------------------------------------------------------------------------

    validation_status = models.CharField(
        "Validation Status",
        max_length=30,
        choices=VALIDATION_STATUS_CHOICES,
        default=STATUS_NOT_STARTED,
        db_index=True
    )
    next_validation_date = models.DateTimeField("Next Validation Date", null=True, blank=True)

    # Per-record criteria; empty fields fall back to the cohort defaults
    override_min_grade = models.FloatField(
        "Minimum Grade Override",
        null=True,
        blank=True,
        validators=[MinValueValidator(0), MaxValueValidator(100)]
    )
    override_min_attendance = models.FloatField(
        "Minimum Attendance Override",
        null=True,
        blank=True,
        validators=[MinValueValidator(0), MaxValueValidator(100)]
    )
    override_courses_required = models.PositiveIntegerField(
        "Courses Required Override",
        null=True,
        blank=True
    )
    override_auto_validation = models.BooleanField(
        "Auto Validation Override",
        null=True,
        blank=True
    )

    # -------------------------------------------------------------------------
    # SUPERSESSION
    # -------------------------------------------------------------------------

    is_active = models.BooleanField("Is Active", default=True, db_index=True)
    superseded_at = models.DateTimeField("Superseded At", null=True, blank=True)
    superseded_by = models.ForeignKey(
        'self',
        verbose_name="Superseded By",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='supersedes'
    )

    # -------------------------------------------------------------------------
    # MILESTONES
    # -------------------------------------------------------------------------

    first_course_started_at = models.DateTimeField("First Course Started", null=True, blank=True)
    first_course_completed_at = models.DateTimeField("First Course Completed", null=True, blank=True)
    halfway_completed_at = models.DateTimeField("Halfway Completed", null=True, blank=True)
    all_courses_completed_at = models.DateTimeField("All Courses Completed", null=True, blank=True)
    semester_validated_at = models.DateTimeField("Semester Validated", null=True, blank=True)

    last_calculated = models.DateTimeField("Last Calculated", null=True, blank=True)
    notes = models.TextField("Notes", blank=True)

    # -------------------------------------------------------------------------
    # CRITERIA
    # -------------------------------------------------------------------------

    def get_criteria_override(self):
        """Only the override fields that are actually set"""
        override = {}
        if self.override_min_grade is not None:
            override['min_grade'] = self.override_min_grade
        if self.override_min_attendance is not None:
            override['min_attendance'] = self.override_min_attendance
        if self.override_courses_required is not None:
            override['courses_required'] = self.override_courses_required
        if self.override_auto_validation is not None:
            override['auto_validation'] = self.override_auto_validation
        return override

    def get_effective_criteria(self):
        """
        Cohort defaults with the per-record override applied field by field.

        Returns:
            ValidationCriteria
        """
        from validation.criteria import ValidationCriteria

        base = ValidationCriteria.from_mapping(self.cohort.get_default_criteria())
        return base.merged(self.get_criteria_override())

    # -------------------------------------------------------------------------
    # COURSE SETS
    # -------------------------------------------------------------------------

    def get_completed_courses(self):
        return self.course_items.filter(progress_percentage__gte=100)

    def get_in_progress_courses(self):
        return self.course_items.filter(progress_percentage__gt=0, progress_percentage__lt=100)

    @property
    def completed_course_count(self):
        return self.get_completed_courses().count()

    @property
    def milestones(self):
        return {
            'first_course_started': self.first_course_started_at,
            'first_course_completed': self.first_course_completed_at,
            'halfway_completed': self.halfway_completed_at,
            'all_courses_completed': self.all_courses_completed_at,
            'semester_validated': self.semester_validated_at,
        }

    def __str__(self):
        return f"{self.student} - S{self.current_semester} ({self.get_validation_status_display()})"

    class Meta:
        verbose_name = "Progress Record"
        verbose_name_plural = "Progress Records"
        ordering = ['-created_at']
        unique_together = [['student', 'cohort']]
        indexes = [
            models.Index(fields=['validation_status', 'is_active']),
            models.Index(fields=['cohort', 'validation_status']),
            models.Index(fields=['student', 'is_active']),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=['student'],
                condition=Q(is_active=True),
                name='unique_active_progress_per_student'
            ),
        ]


# =============================================================================
# COURSE PROGRESS MODEL
# =============================================================================

class CourseProgress(BaseModel):
    """Progress of one student in one course within a progress record"""

    progress_record = models.ForeignKey(
        ProgressRecord,
        verbose_name="Progress Record",
        on_delete=models.CASCADE,
        related_name='course_items'
    )
    course = models.ForeignKey(
        Course,
        verbose_name="Course",
        on_delete=models.CASCADE,
        related_name='progress_items'
    )

    started_at = models.DateTimeField("Started At")
    completed_at = models.DateTimeField("Completed At", null=True, blank=True)

    progress_percentage = models.FloatField(
        "Progress (%)",
        default=0,
        validators=[MinValueValidator(0), MaxValueValidator(100)]
    )

    chapters_completed = models.PositiveIntegerField("Chapters Completed", default=0)
    total_chapters = models.PositiveIntegerField("Total Chapters", default=0)
    exercises_completed = models.PositiveIntegerField("Exercises Completed", default=0)
    total_exercises = models.PositiveIntegerField("Total Exercises", default=0)

    average_score = models.FloatField(
        "Average Score",
        null=True,
        blank=True,
        validators=[MinValueValidator(0), MaxValueValidator(100)]
    )
    last_activity_at = models.DateTimeField("Last Activity", null=True, blank=True)

    @property
    def is_completed(self):
        return self.progress_percentage >= 100

    def __str__(self):
        return f"{self.course.code}: {self.progress_percentage:.0f}%"

    class Meta:
        verbose_name = "Course Progress"
        verbose_name_plural = "Course Progress"
        ordering = ['started_at']
        unique_together = [['progress_record', 'course']]


# =============================================================================
# VALIDATION HISTORY
# =============================================================================

class ValidationHistoryEntry(BaseModel):
    """
    One validation decision applied to a progress record.

    Rows are only ever inserted; concurrent decisions on the same record each
    leave their own entry even though only the last one sets the status.
    """

    DECISION_APPROVE = 'approve'
    DECISION_REJECT = 'reject'
    DECISION_CONDITIONAL = 'conditional'

    DECISION_CHOICES = (
        (DECISION_APPROVE, 'Approve'),
        (DECISION_REJECT, 'Reject'),
        (DECISION_CONDITIONAL, 'Conditional'),
    )

    progress_record = models.ForeignKey(
        ProgressRecord,
        verbose_name="Progress Record",
        on_delete=models.CASCADE,
        related_name='validation_history'
    )

    validator_id = models.CharField("Validator ID", max_length=50, db_index=True)
    decision = models.CharField("Decision", max_length=20, choices=DECISION_CHOICES)
    resulting_status = models.CharField(
        "Resulting Status",
        max_length=30,
        choices=ProgressRecord.VALIDATION_STATUS_CHOICES
    )
    target_semester = models.PositiveSmallIntegerField("Target Semester", null=True, blank=True)

    reason = models.TextField("Reason", blank=True)
    notes = models.TextField("Notes", blank=True)
    decided_at = models.DateTimeField("Decided At", db_index=True)

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValueError("Validation history entries cannot be modified")
        return super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.decision} by {self.validator_id} at {self.decided_at:%Y-%m-%d %H:%M}"

    class Meta:
        verbose_name = "Validation History Entry"
        verbose_name_plural = "Validation History"
        ordering = ['decided_at']
