# semesters/stats.py
"""
Statistics for semester cohorts
Roster sizes, validation breakdowns and utilization per academic year
"""

from django.utils import timezone
from datetime import timedelta
import logging

from common.conf import get_setting

logger = logging.getLogger(__name__)


# =============================================================================
# COHORT STATISTICS
# =============================================================================

def get_cohort_statistics(cohort, since=None):
    """
    Statistics for one cohort.

    Args:
        cohort (SemesterCohort): cohort to summarize
        since (datetime): start of the recent-progression window

    Returns:
        dict: roster size, validation breakdown, utilization, recent progressions
    """
    from progress.models import ProgressRecord
    from progress.stats import get_validation_status_breakdown

    if since is None:
        since = timezone.now() - timedelta(days=get_setting('RECENT_PROGRESSION_DAYS'))

    records = ProgressRecord.objects.filter(cohort=cohort)
    roster_size = cohort.get_roster_size()

    return {
        'cohort_id': str(cohort.pk),
        'name': cohort.name,
        'semester': cohort.semester,
        'intake': cohort.intake,
        'academic_year': cohort.academic_year,
        'status': cohort.status,
        'student_count': roster_size,
        'max_students': cohort.max_students,
        'validation_stats': get_validation_status_breakdown(records),
        'recent_progressions': records.filter(semester_validated_at__gte=since).count(),
        'utilization_rate': cohort.get_utilization(),
    }


def get_semester_statistics(cohorts):
    """
    Statistics for a set of cohorts plus totals.

    Args:
        cohorts (iterable): SemesterCohort instances

    Returns:
        dict: semesters, total_students, average_utilization
    """
    since = timezone.now() - timedelta(days=get_setting('RECENT_PROGRESSION_DAYS'))
    semesters = [get_cohort_statistics(cohort, since=since) for cohort in cohorts]

    if semesters:
        average_utilization = round(
            sum(s['utilization_rate'] for s in semesters) / len(semesters), 2
        )
    else:
        average_utilization = 0.0

    return {
        'semesters': semesters,
        'total_students': sum(s['student_count'] for s in semesters),
        'average_utilization': average_utilization,
    }
