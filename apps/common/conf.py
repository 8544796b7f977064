# common/conf.py
"""
Engine configuration.

Values come from ``settings.SEMESTER_SYSTEM`` and fall back to ``DEFAULTS``.
Settings are read on every call so tests can override them.
"""

from django.conf import settings

DEFAULTS = {
    # Criteria used when neither the cohort nor the record defines one
    'DEFAULT_MIN_GRADE': 60,
    'DEFAULT_MIN_ATTENDANCE': 70,
    'DEFAULT_COURSES_REQUIRED': 1,

    # Cohort defaults applied by the initialization sweep
    'DEFAULT_CAPACITY': 50,
    'DEFAULT_LEVEL': 'Bachelor',
    'DEFAULT_DEPARTMENT': 'Computer Science',

    # Review queue
    'VALIDATION_PERIOD_DAYS': 30,
    'SYSTEM_VALIDATOR_ID': 'system',

    # Batch processing
    'BATCH_SIZE': 5,
    'BATCH_PAUSE_SECONDS': 0.1,
    'RECALCULATION_BATCH_SIZE': 10,

    # Reporting windows
    'RECENT_PROGRESSION_DAYS': 30,
    'INSIGHT_TREND_MONTHS': 6,

    # At-risk thresholds
    'AT_RISK_PROGRESS_THRESHOLD': 30,
    'AT_RISK_ATTENDANCE_THRESHOLD': 70,

    # Attendance alerts
    'LOW_ATTENDANCE_THRESHOLD': 75,
    'CONSECUTIVE_ABSENCE_LIMIT': 3,
    'TREND_ANALYSIS_DAYS': 14,
}


def get_setting(name):
    """Return a SEMESTER_SYSTEM value, falling back to the default."""
    overrides = getattr(settings, 'SEMESTER_SYSTEM', None) or {}
    if name in overrides:
        return overrides[name]
    try:
        return DEFAULTS[name]
    except KeyError:
        raise KeyError(f"Unknown SEMESTER_SYSTEM setting: {name}") from None
