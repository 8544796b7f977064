# progress/stats.py
"""
Statistics for progress records
Cohort-level aggregates used by reports and the registry
"""

from django.db.models import Count, Q, Avg
import logging

from common.conf import get_setting
from common.utils import round_half_up

logger = logging.getLogger(__name__)


# =============================================================================
# COHORT PROGRESS STATISTICS
# =============================================================================

def get_cohort_progress_statistics(cohort):
    """
    Aggregate progress figures for a cohort.

    Args:
        cohort (SemesterCohort): cohort to summarize

    Returns:
        dict: average_progress, average_attendance, completion_rate,
            at_risk_students, total_students
    """
    from .models import ProgressRecord

    at_risk_threshold = get_setting('AT_RISK_PROGRESS_THRESHOLD')

    stats = ProgressRecord.objects.filter(cohort=cohort).aggregate(
        total=Count('id'),
        average_progress=Avg('overall_progress'),
        average_attendance=Avg('attendance_rate'),
        completed=Count('id', filter=Q(overall_progress__gte=100)),
        at_risk=Count('id', filter=Q(overall_progress__lt=at_risk_threshold)),
    )

    total = stats['total'] or 0

    if not total:
        return {
            'total_students': 0,
            'average_progress': 0,
            'average_attendance': 100,
            'completion_rate': 0,
            'at_risk_students': 0,
        }

    return {
        'total_students': total,
        'average_progress': round_half_up(stats['average_progress'] or 0),
        'average_attendance': round_half_up(
            100 if stats['average_attendance'] is None else stats['average_attendance']
        ),
        'completion_rate': round_half_up(stats['completed'] / total * 100),
        'at_risk_students': stats['at_risk'] or 0,
    }


def get_validation_status_breakdown(records):
    """
    Count records per validation status.

    Returns:
        dict: every status with its count (zero included)
    """
    from .models import ProgressRecord

    counts = {status: 0 for status, _ in ProgressRecord.VALIDATION_STATUS_CHOICES}

    for row in records.order_by().values('validation_status').annotate(count=Count('id')):
        counts[row['validation_status']] = row['count']

    return counts
