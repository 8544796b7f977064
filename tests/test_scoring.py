# tests/test_scoring.py

import pytest

from validation.criteria import ValidationCriteria
from validation.scoring import (
    evaluate_metrics,
    calculate_score,
    build_recommendation,
    weighted_component,
    ValidationResult,
    RECOMMEND_APPROVE,
    RECOMMEND_CONDITIONAL,
    RECOMMEND_RETAKE,
    RECOMMEND_REJECT,
)

CRITERIA = ValidationCriteria(min_grade=60, min_attendance=70, courses_required=1)


def metrics(grade=65, attendance=75, completed=1):
    return {
        'average_grade': grade,
        'attendance_rate': attendance,
        'overall_progress': 50,
        'completed_courses': completed,
    }


def test_student_meeting_all_criteria_is_approved():
    result = evaluate_metrics('s1', 1, metrics(), CRITERIA)

    assert result.grade_check.passed
    assert result.attendance_check.passed
    assert result.completion_check.passed
    assert result.can_progress
    assert result.overall_score == 100
    assert result.recommendation == RECOMMEND_APPROVE
    assert 'excellent' in result.reason


def test_missing_course_completion_is_conditional():
    result = evaluate_metrics('s1', 1, metrics(completed=0), CRITERIA)

    assert not result.completion_check.passed
    assert not result.can_progress
    assert result.overall_score == 70
    assert result.recommendation == RECOMMEND_CONDITIONAL
    assert result.reason.startswith('Close to meeting criteria')
    assert 'course completion requirements' in result.reason


def test_far_below_criteria_means_retake():
    result = evaluate_metrics('s1', 1, metrics(grade=30, attendance=35, completed=0), CRITERIA)

    assert result.overall_score == 35
    assert result.recommendation == RECOMMEND_RETAKE
    assert 'grade requirements' in result.reason
    assert 'attendance requirements' in result.reason


def test_zero_thresholds_always_pass():
    criteria = ValidationCriteria(min_grade=0, min_attendance=0, courses_required=0)
    result = evaluate_metrics('s1', 1, metrics(grade=0, attendance=0, completed=0), criteria)

    assert result.can_progress
    assert result.overall_score == 100
    assert result.recommendation == RECOMMEND_APPROVE


def test_grade_below_a_high_threshold():
    criteria = ValidationCriteria(min_grade=100, min_attendance=70, courses_required=1)
    result = evaluate_metrics('s1', 1, metrics(grade=100, attendance=70, completed=1), criteria)
    assert result.overall_score == 100

    result = evaluate_metrics('s1', 1, metrics(grade=50, attendance=70, completed=1), criteria)
    assert not result.can_progress
    assert result.overall_score == 80
    assert result.recommendation == RECOMMEND_CONDITIONAL


def test_missing_grade_counts_as_zero():
    result = evaluate_metrics('s1', 1, metrics(grade=None), CRITERIA)

    assert result.grade_check.actual == 0
    assert not result.grade_check.passed
    assert result.overall_score == 60


def test_zero_threshold_earns_full_weight():
    assert weighted_component(0, 0, 40) == 40.0
    assert weighted_component(None, 60, 40) == 0


@pytest.mark.parametrize('field', ['grade', 'attendance', 'completed'])
def test_score_is_monotonic(field):
    previous = -1
    for value in range(0, 101, 5):
        kwargs = {'grade': 50, 'attendance': 50, 'completed': 0}
        kwargs[field] = value if field != 'completed' else value // 20
        result = evaluate_metrics('s1', 1, metrics(**kwargs), CRITERIA)
        assert result.overall_score >= previous
        previous = result.overall_score


@pytest.mark.parametrize('grade,attendance,completed', [
    (100, 100, 3),
    (61, 71, 1),
    (59, 100, 3),
    (100, 69, 3),
    (100, 100, 0),
    (10, 10, 0),
])
def test_recommendation_implications(grade, attendance, completed):
    result = evaluate_metrics('s1', 1, metrics(grade, attendance, completed), CRITERIA)

    assert 0 <= result.overall_score <= 100
    if result.recommendation == RECOMMEND_APPROVE:
        assert result.can_progress and result.overall_score >= 70
    if result.recommendation == RECOMMEND_RETAKE:
        assert not result.can_progress and result.overall_score < 60
    assert result.can_progress == (
        result.grade_check.passed
        and result.attendance_check.passed
        and result.completion_check.passed
    )


def test_required_custom_rule_blocks_progression():
    criteria = CRITERIA.merged({'custom_rules': [
        {'field': 'overall_progress', 'operator': 'gte', 'value': 80, 'description': 'progress above 80'},
        {'field': 'attendance_rate', 'operator': '>=', 'value': 99, 'required': False},
    ]})

    result = evaluate_metrics('s1', 1, metrics(), criteria)

    assert not result.can_progress
    assert 'progress above 80' in result.reason
    assert [r['passed'] for r in result.custom_rule_results] == [False, False]


def test_calculate_score_rounds_half_up():
    # 45/60*40 = 30, 63/70*30 = 27, completion 0 -> 57
    assert calculate_score(45, 63, False, CRITERIA) == 57
    # 30/60*40 = 20, 17.5/70*30 = 7.5 -> 27.5 -> 28
    assert calculate_score(30, 17.5, False, CRITERIA) == 28


def test_degraded_result():
    result = ValidationResult.degraded('abc', ValueError('boom'))

    assert result.is_degraded
    assert result.overall_score == 0
    assert result.recommendation == RECOMMEND_REJECT
    assert result.reason == 'Evaluation error: boom'
    assert result.to_dict()['criteria']['grade_check']['passed'] is False


@pytest.mark.parametrize('can_progress,score,expected', [
    (True, 85, RECOMMEND_APPROVE),
    (True, 70, RECOMMEND_APPROVE),
    (True, 69, RECOMMEND_CONDITIONAL),
    (False, 60, RECOMMEND_CONDITIONAL),
    (False, 59, RECOMMEND_RETAKE),
])
def test_recommendation_bands(can_progress, score, expected):
    recommendation, reason, actions = build_recommendation(can_progress, score, ['grade requirements'])

    assert recommendation == expected
    assert actions
