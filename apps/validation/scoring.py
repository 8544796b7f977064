# validation/scoring.py
"""
Pure evaluation of a student's metrics against validation criteria.

Nothing here touches the database: the engine loads the progress record,
turns it into metrics and calls ``evaluate_metrics``.
"""

from dataclasses import dataclass, field
import logging

from common.utils import round_half_up

logger = logging.getLogger(__name__)

GRADE_WEIGHT = 40
ATTENDANCE_WEIGHT = 30
COMPLETION_WEIGHT = 30

EXCELLENT_SCORE = 85
GOOD_SCORE = 70
CLOSE_SCORE = 60

RECOMMEND_APPROVE = 'approve'
RECOMMEND_CONDITIONAL = 'conditional'
RECOMMEND_RETAKE = 'retake'
RECOMMEND_REJECT = 'reject'


# =============================================================================
# RESULT TYPES
# =============================================================================

@dataclass(frozen=True)
class CheckResult:
    """Outcome of one criterion"""

    passed: bool
    required: float
    actual: float
    difference: float

    def to_dict(self):
        return {
            'passed': self.passed,
            'required': self.required,
            'actual': self.actual,
            'difference': self.difference,
        }


@dataclass(frozen=True)
class ValidationResult:
    student_id: str
    current_semester: int
    can_progress: bool
    grade_check: CheckResult
    attendance_check: CheckResult
    completion_check: CheckResult
    overall_score: int
    recommendation: str
    reason: str
    suggested_actions: tuple = ()
    custom_rule_results: tuple = field(default_factory=tuple)

    @classmethod
    def degraded(cls, student_id, error):
        """Placeholder result for a student whose evaluation failed"""
        empty = CheckResult(passed=False, required=0, actual=0, difference=0)
        return cls(
            student_id=str(student_id),
            current_semester=0,
            can_progress=False,
            grade_check=empty,
            attendance_check=empty,
            completion_check=empty,
            overall_score=0,
            recommendation=RECOMMEND_REJECT,
            reason=f"Evaluation error: {error}",
        )

    @property
    def is_degraded(self):
        return self.current_semester == 0

    def to_dict(self):
        return {
            'student_id': self.student_id,
            'current_semester': self.current_semester,
            'can_progress': self.can_progress,
            'criteria': {
                'grade_check': self.grade_check.to_dict(),
                'attendance_check': self.attendance_check.to_dict(),
                'completion_check': self.completion_check.to_dict(),
            },
            'custom_rules': [dict(r) for r in self.custom_rule_results],
            'overall_score': self.overall_score,
            'recommendation': self.recommendation,
            'reason': self.reason,
            'suggested_actions': list(self.suggested_actions),
        }


# =============================================================================
# CHECKS
# =============================================================================

def check_threshold(actual, required):
    """Pass when ``actual`` reaches ``required``; missing values count as 0."""
    actual = 0 if actual is None else actual
    return CheckResult(
        passed=actual >= required,
        required=required,
        actual=actual,
        difference=round(actual - required, 2),
    )


def weighted_component(actual, required, weight):
    """
    Share of ``weight`` earned by ``actual`` against ``required``, capped at
    ``weight``. A zero threshold earns the full weight.
    """
    if required <= 0:
        return float(weight)
    actual = 0 if actual is None else actual
    return min(actual / required * weight, float(weight))


def calculate_score(grade, attendance, completion_passed, criteria):
    """
    Weighted composite in [0, 100].

    grade 40 + attendance 30 + completion 30, where completion is all or
    nothing.
    """
    total = (
        weighted_component(grade, criteria.min_grade, GRADE_WEIGHT)
        + weighted_component(attendance, criteria.min_attendance, ATTENDANCE_WEIGHT)
        + (COMPLETION_WEIGHT if completion_passed else 0)
    )
    return round_half_up(total)


# =============================================================================
# RECOMMENDATION
# =============================================================================

def build_recommendation(can_progress, score, failed_criteria):
    """
    Map the checks and score onto a recommendation.

    Returns:
        tuple: (recommendation, reason, suggested_actions)
    """
    if can_progress and score >= EXCELLENT_SCORE:
        return (
            RECOMMEND_APPROVE,
            'Student meets all criteria with excellent performance',
            ('Progress to next semester',),
        )

    if can_progress and score >= GOOD_SCORE:
        return (
            RECOMMEND_APPROVE,
            'Student meets all criteria with good performance',
            ('Progress to next semester', 'Continue monitoring performance'),
        )

    if can_progress:
        return (
            RECOMMEND_CONDITIONAL,
            'Student meets minimum criteria but performance could improve',
            ('Progress to next semester with monitoring', 'Additional support recommended'),
        )

    failed = ', '.join(failed_criteria)

    if score >= CLOSE_SCORE:
        return (
            RECOMMEND_CONDITIONAL,
            f"Close to meeting criteria. Failed: {failed}",
            ('Additional assessment required', 'Consider remedial support', 'Review in 30 days'),
        )

    return (
        RECOMMEND_RETAKE,
        f"Does not meet criteria. Failed: {failed}",
        ('Retake current semester', 'Provide additional support', 'Create improvement plan'),
    )


def evaluate_metrics(student_id, current_semester, metrics, criteria):
    """
    Evaluate one student's metrics.

    Args:
        student_id: id reported back in the result
        current_semester (int): semester of the progress record
        metrics (dict): average_grade, attendance_rate, overall_progress,
            completed_courses
        criteria (ValidationCriteria): effective criteria

    Returns:
        ValidationResult
    """
    grade = metrics.get('average_grade')
    attendance = metrics.get('attendance_rate')
    completed = metrics.get('completed_courses') or 0

    grade_check = check_threshold(grade, criteria.min_grade)
    attendance_check = check_threshold(attendance, criteria.min_attendance)
    completion_check = check_threshold(completed, criteria.courses_required)

    failed_criteria = []
    if not grade_check.passed:
        failed_criteria.append('grade requirements')
    if not attendance_check.passed:
        failed_criteria.append('attendance requirements')
    if not completion_check.passed:
        failed_criteria.append('course completion requirements')

    rule_results = []
    for rule in criteria.custom_rules:
        passed = rule.evaluate(metrics)
        rule_results.append({
            'rule_id': rule.rule_id,
            'description': rule.description,
            'required': rule.required,
            'passed': passed,
        })
        if rule.required and not passed:
            failed_criteria.append(rule.description or f"custom rule {rule.rule_id}")

    can_progress = not failed_criteria
    score = calculate_score(grade, attendance, completion_check.passed, criteria)
    recommendation, reason, actions = build_recommendation(can_progress, score, failed_criteria)

    return ValidationResult(
        student_id=str(student_id),
        current_semester=current_semester,
        can_progress=can_progress,
        grade_check=grade_check,
        attendance_check=attendance_check,
        completion_check=completion_check,
        overall_score=score,
        recommendation=recommendation,
        reason=reason,
        suggested_actions=actions,
        custom_rule_results=tuple(rule_results),
    )
