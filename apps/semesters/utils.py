# semesters/utils.py
"""
Utility functions for the semesters app
Academic year arithmetic and cohort metadata builders
"""

from django.utils import timezone
from datetime import date
import logging

from common.conf import get_setting
from .models import (
    FIRST_SEMESTER,
    FINAL_SEMESTER,
    INTAKE_SEPTEMBER,
    academic_year_validator,
    intake_for_semester,
)

logger = logging.getLogger(__name__)


# =============================================================================
# ACADEMIC YEAR UTILITIES
# =============================================================================

def get_current_academic_year(today=None):
    """
    Academic year label for a date.

    The academic year starts in September: 2024-10-01 falls in 2024-2025,
    2025-02-01 still falls in 2024-2025.
    """
    today = today or timezone.localdate()

    if today.month >= 9:
        return f"{today.year}-{today.year + 1}"
    return f"{today.year - 1}-{today.year}"


def parse_academic_year(academic_year):
    """
    Split an academic year label into its two years.

    Returns:
        tuple: (first_year, second_year)

    Raises:
        ValueError: malformed label or years that are not consecutive
    """
    try:
        academic_year_validator(academic_year or '')
    except Exception:
        raise ValueError(f"Invalid academic year: {academic_year!r}") from None

    first, second = (int(part) for part in academic_year.split('-'))
    if second != first + 1:
        raise ValueError(f"Invalid academic year: {academic_year!r} (years must be consecutive)")

    return first, second


def validate_semester_number(semester):
    """Raise ValueError unless ``semester`` is inside the pipeline."""
    if not isinstance(semester, int) or not FIRST_SEMESTER <= semester <= FINAL_SEMESTER:
        raise ValueError(
            f"Semester must be between {FIRST_SEMESTER} and {FINAL_SEMESTER}, got {semester!r}"
        )
    return semester


def get_next_semester(semester):
    """Next semester number, or None when ``semester`` is the last one."""
    validate_semester_number(semester)
    if semester == FINAL_SEMESTER:
        return None
    return semester + 1


# =============================================================================
# COHORT METADATA
# =============================================================================

def ordinal(number):
    """1 -> '1st', 2 -> '2nd', 11 -> '11th'"""
    if number % 10 == 1 and number % 100 != 11:
        suffix = 'st'
    elif number % 10 == 2 and number % 100 != 12:
        suffix = 'nd'
    elif number % 10 == 3 and number % 100 != 13:
        suffix = 'rd'
    else:
        suffix = 'th'
    return f"{number}{suffix}"


def get_cohort_dates(intake, academic_year):
    """
    Start and end date of a cohort.

    September cohorts run from 1 September of the first year to 31 January
    of the second; March cohorts run from 1 March to 30 June of the second.
    """
    first, second = parse_academic_year(academic_year)

    if intake == INTAKE_SEPTEMBER:
        return date(first, 9, 1), date(second, 1, 31)
    return date(second, 3, 1), date(second, 6, 30)


def get_default_courses_required(semester):
    """3 courses for S1-S3, 4 for S4-S6, 5 for S7-S10"""
    if semester <= 3:
        return 3
    if semester <= 6:
        return 4
    return 5


def build_cohort_metadata(semester, academic_year):
    """
    Canonical display metadata and criteria defaults for a cohort.

    Used both to create missing cohorts and to detect stale ones.
    """
    validate_semester_number(semester)
    intake = intake_for_semester(semester)
    start_date, end_date = get_cohort_dates(intake, academic_year)

    return {
        'name': f"Semester {semester} - {intake.capitalize()} {academic_year}",
        'intake': intake,
        'description': f"{intake.capitalize()} intake students in their {ordinal(semester)} semester.",
        'start_date': start_date,
        'end_date': end_date,
        'max_students': get_setting('DEFAULT_CAPACITY'),
        'level': get_setting('DEFAULT_LEVEL'),
        'department': get_setting('DEFAULT_DEPARTMENT'),
        'min_grade': get_setting('DEFAULT_MIN_GRADE'),
        'min_attendance': get_setting('DEFAULT_MIN_ATTENDANCE'),
        'courses_required': get_default_courses_required(semester),
        'auto_validation': False,
        'is_permanent': True,
    }


def is_cohort_stale(cohort, metadata):
    """A cohort is stale when its display metadata drifted from the canonical one."""
    return (
        cohort.name != metadata['name']
        or not cohort.is_permanent
        or not cohort.description
    )
