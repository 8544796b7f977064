# progress/utils.py
"""
Utility functions for the progress app
Pure calculations behind the cached progress figures
"""

import logging

from common.utils import round_half_up, clamp_percentage

logger = logging.getLogger(__name__)

COURSE_WEIGHT = 0.7
ATTENDANCE_WEIGHT = 0.3

CHAPTER_WEIGHT = 0.4
EXERCISE_WEIGHT = 0.6

STATUS_EXCELLING = 'excelling'
STATUS_AT_RISK = 'at-risk'
STATUS_ON_TRACK = 'on-track'


# =============================================================================
# COMPLETION
# =============================================================================

def course_completion_percentage(chapters_completed, total_chapters,
                                 exercises_completed, total_exercises):
    """
    Completion of one course: 40% chapters, 60% exercises.

    A course without chapters (or exercises) counts that part as complete.
    """
    chapter_progress = (chapters_completed / total_chapters * 100) if total_chapters else 100.0
    exercise_progress = (exercises_completed / total_exercises * 100) if total_exercises else 100.0

    return min(100, round_half_up(
        clamp_percentage(chapter_progress) * CHAPTER_WEIGHT
        + clamp_percentage(exercise_progress) * EXERCISE_WEIGHT
    ))


def overall_progress(course_percentages, attendance_rate):
    """
    Weighted composite: 70% average course progress, 30% attendance.

    No course items means 0 for the course part.
    """
    course_percentages = list(course_percentages)
    course_average = (
        sum(course_percentages) / len(course_percentages) if course_percentages else 0
    )
    return round_half_up(course_average * COURSE_WEIGHT + attendance_rate * ATTENDANCE_WEIGHT)


def average_score(scores):
    """Rounded mean of the scores that are set, or None when none are"""
    graded = [s for s in scores if s is not None]
    if not graded:
        return None
    return round_half_up(sum(graded) / len(graded))


# =============================================================================
# CLASSIFICATION
# =============================================================================

def classify_progress(progress, attendance_rate, at_risk_progress=30, at_risk_attendance=70):
    """excelling / at-risk / on-track"""
    if progress >= 80 and attendance_rate >= 90:
        return STATUS_EXCELLING
    if progress < at_risk_progress or attendance_rate < at_risk_attendance:
        return STATUS_AT_RISK
    return STATUS_ON_TRACK
