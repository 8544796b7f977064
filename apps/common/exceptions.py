# common/exceptions.py
"""
Error kinds raised by the semester progression engine.

Single-entity operations raise these directly. Batch operations catch them
per student and report ``{'student_id', 'error', 'error_type'}`` entries
instead.
"""


class SemesterEngineError(Exception):
    """Base class for all engine errors"""

    def __init__(self, message=''):
        super().__init__(message)
        self.message = message

    def __str__(self):
        return self.message


class NotFound(SemesterEngineError):
    """Cohort, student, event or progress record does not exist"""


class ConflictingEnrollment(SemesterEngineError):
    """One or more students are already on another non-archived roster"""

    def __init__(self, offenders, message=''):
        self.offenders = [str(o) for o in offenders]
        super().__init__(
            message or f"Students already enrolled in another cohort: {', '.join(self.offenders)}"
        )


class InvalidCohort(SemesterEngineError):
    """The event or cohort does not belong to the student"""


class InvalidCriteria(SemesterEngineError, ValueError):
    """Malformed validation criteria override"""


class MigrationInconsistency(SemesterEngineError):
    """A roster move was only partially applied"""


class ValidationApplyFailure(SemesterEngineError):
    """A validation decision could not be applied to a progress record"""


def describe_error(student_id, error):
    """Build the per-member failure entry used by every batch operation."""
    return {
        'student_id': str(student_id),
        'error': str(error),
        'error_type': error.__class__.__name__,
    }
