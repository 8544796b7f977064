# semesters/models.py

from django.db import models
from django.db.models import Q
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator, MaxValueValidator, RegexValidator
from common.models import BaseModel
import logging

logger = logging.getLogger(__name__)

FIRST_SEMESTER = 1
FINAL_SEMESTER = 10

INTAKE_SEPTEMBER = 'september'
INTAKE_MARCH = 'march'

INTAKE_CHOICES = (
    (INTAKE_SEPTEMBER, 'September'),
    (INTAKE_MARCH, 'March'),
)

academic_year_validator = RegexValidator(
    regex=r'^\d{4}-\d{4}$',
    message="Academic year must look like 2024-2025"
)


# =============================================================================
# SEMESTER COHORT MODEL
# =============================================================================

class SemesterCohort(BaseModel):
    """
    A permanent semester-numbered group of students.

    Ten cohorts exist per academic year, one for each stage of the
    pipeline. Odd semesters take the September intake, even semesters the
    March intake. Each cohort carries the default validation criteria used
    for its students' progress records.
    """

    STATUS_DRAFT = 'draft'
    STATUS_ACTIVE = 'active'
    STATUS_ARCHIVED = 'archived'

    STATUS_CHOICES = (
        (STATUS_DRAFT, 'Draft'),
        (STATUS_ACTIVE, 'Active'),
        (STATUS_ARCHIVED, 'Archived'),
    )

    # -------------------------------------------------------------------------
    # IDENTITY
    # -------------------------------------------------------------------------

    name = models.CharField("Name", max_length=120)

    semester = models.PositiveSmallIntegerField(
        "Semester",
        validators=[
            MinValueValidator(FIRST_SEMESTER),
            MaxValueValidator(FINAL_SEMESTER)
        ],
        db_index=True
    )

    intake = models.CharField(
        "Intake",
        max_length=20,
        choices=INTAKE_CHOICES,
        db_index=True
    )

    academic_year = models.CharField(
        "Academic Year",
        max_length=9,
        validators=[academic_year_validator],
        db_index=True,
        help_text="Format: YYYY-YYYY"
    )

    description = models.TextField("Description", blank=True)
    level = models.CharField("Level", max_length=50, default='Bachelor')
    department = models.CharField("Department", max_length=100, default='Computer Science')

    # -------------------------------------------------------------------------
    # SCHEDULE & LIFECYCLE
    # -------------------------------------------------------------------------

    start_date = models.DateField("Start Date")
    end_date = models.DateField("End Date")

    status = models.CharField(
        "Status",
        max_length=20,
        choices=STATUS_CHOICES,
        default=STATUS_ACTIVE,
        db_index=True
    )

    is_permanent = models.BooleanField(
        "Is Permanent",
        default=True,
        help_text="Permanent cohorts are created by initialization and reused"
    )

    # -------------------------------------------------------------------------
    # ROSTER & EVENTS
    # -------------------------------------------------------------------------

    students = models.ManyToManyField(
        'students.Student',
        verbose_name="Students",
        related_name='semester_cohorts',
        blank=True
    )

    events = models.ManyToManyField(
        'attendance.Event',
        verbose_name="Events",
        related_name='cohorts',
        blank=True
    )

    max_students = models.PositiveIntegerField(
        "Maximum Students",
        default=50,
        validators=[MinValueValidator(1)]
    )

    # -------------------------------------------------------------------------
    # DEFAULT VALIDATION CRITERIA
    # -------------------------------------------------------------------------

    min_grade = models.FloatField(
        "Minimum Grade",
        default=60,
        validators=[MinValueValidator(0), MaxValueValidator(100)]
    )
    min_attendance = models.FloatField(
        "Minimum Attendance (%)",
        default=70,
        validators=[MinValueValidator(0), MaxValueValidator(100)]
    )
    courses_required = models.PositiveIntegerField("Courses Required", default=1)
    auto_validation = models.BooleanField(
        "Auto Validation",
        default=False,
        help_text="Approve pending students automatically when they meet the criteria"
    )
    custom_rules = models.JSONField(
        "Custom Rules",
        default=list,
        blank=True,
        help_text="List of {field, operator, value, required} rules"
    )

    # -------------------------------------------------------------------------
    # VALIDATION AND HELPERS
    # -------------------------------------------------------------------------

    def clean(self):
        """Custom validation"""
        super().clean()

        if self.start_date and self.end_date and self.start_date >= self.end_date:
            raise ValidationError({'end_date': "End date must be after start date"})

        if self.semester and self.intake and self.intake != intake_for_semester(self.semester):
            raise ValidationError({
                'intake': f"Semester {self.semester} belongs to the "
                          f"{intake_for_semester(self.semester)} intake"
            })

    @property
    def is_archived(self):
        return self.status == self.STATUS_ARCHIVED

    @property
    def is_final_semester(self):
        return self.semester == FINAL_SEMESTER

    @property
    def next_semester(self):
        """Next semester number, or None at the end of the pipeline"""
        if self.semester >= FINAL_SEMESTER:
            return None
        return self.semester + 1

    def get_roster_size(self):
        return self.students.count()

    def has_capacity(self, additional=1):
        return self.get_roster_size() + additional <= self.max_students

    def get_utilization(self):
        """Roster size as a percentage of capacity, capped at 100"""
        if not self.max_students:
            return 0.0
        return min(100.0, round(self.get_roster_size() / self.max_students * 100, 2))

    def get_default_criteria(self):
        """Criteria defaults as a plain mapping"""
        return {
            'min_grade': self.min_grade,
            'min_attendance': self.min_attendance,
            'courses_required': self.courses_required,
            'auto_validation': self.auto_validation,
            'custom_rules': list(self.custom_rules or []),
        }

    def __str__(self):
        return self.name or f"Semester {self.semester} ({self.academic_year})"

    class Meta:
        verbose_name = "Semester Cohort"
        verbose_name_plural = "Semester Cohorts"
        ordering = ['academic_year', 'semester']
        indexes = [
            models.Index(fields=['semester', 'academic_year']),
            models.Index(fields=['status', 'academic_year']),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=['semester', 'academic_year'],
                condition=Q(status='active'),
                name='unique_active_cohort_per_semester_year'
            ),
        ]


def intake_for_semester(semester):
    """Odd semesters start in September, even semesters in March."""
    return INTAKE_SEPTEMBER if semester % 2 == 1 else INTAKE_MARCH
