# tests/test_utils.py

from datetime import date

import pytest

from common.exceptions import NotFound, describe_error
from common.utils import chunked, round_half_up, clamp_percentage
from progress.utils import (
    course_completion_percentage,
    overall_progress,
    average_score,
    classify_progress,
)
from semesters.models import intake_for_semester
from semesters.utils import (
    get_current_academic_year,
    parse_academic_year,
    get_next_semester,
    get_cohort_dates,
    build_cohort_metadata,
    ordinal,
)


# =============================================================================
# COMMON
# =============================================================================

def test_chunked_uses_fixed_size():
    assert [len(c) for c in chunked(range(12), 5)] == [5, 5, 2]


def test_round_half_up():
    assert round_half_up(2.5) == 3
    assert round_half_up(3.5) == 4
    assert round_half_up(2.49) == 2


def test_clamp_percentage():
    assert clamp_percentage(120) == 100.0
    assert clamp_percentage(-3) == 0.0


def test_describe_error():
    entry = describe_error(42, NotFound("Student 42 not found"))
    assert entry == {'student_id': '42', 'error': 'Student 42 not found', 'error_type': 'NotFound'}


# =============================================================================
# ACADEMIC YEARS
# =============================================================================

@pytest.mark.parametrize('today,expected', [
    (date(2024, 9, 1), '2024-2025'),
    (date(2024, 12, 31), '2024-2025'),
    (date(2025, 2, 1), '2024-2025'),
    (date(2025, 8, 31), '2024-2025'),
])
def test_current_academic_year(today, expected):
    assert get_current_academic_year(today) == expected


@pytest.mark.parametrize('value', ['2024', '2024-2026', '24-25', '', None])
def test_parse_academic_year_rejects_bad_labels(value):
    with pytest.raises(ValueError):
        parse_academic_year(value)


def test_next_semester_stops_at_ten():
    assert get_next_semester(1) == 2
    assert get_next_semester(10) is None
    with pytest.raises(ValueError):
        get_next_semester(11)


def test_intakes_alternate():
    assert [intake_for_semester(n) for n in (1, 2, 9, 10)] == ['september', 'march', 'september', 'march']


def test_cohort_dates():
    assert get_cohort_dates('september', '2024-2025') == (date(2024, 9, 1), date(2025, 1, 31))
    assert get_cohort_dates('march', '2024-2025') == (date(2025, 3, 1), date(2025, 6, 30))


def test_cohort_metadata():
    metadata = build_cohort_metadata(2, '2024-2025')

    assert metadata['name'] == 'Semester 2 - March 2024-2025'
    assert metadata['description'] == 'March intake students in their 2nd semester.'
    assert metadata['courses_required'] == 3
    assert build_cohort_metadata(7, '2024-2025')['courses_required'] == 5


def test_ordinal():
    assert [ordinal(n) for n in (1, 2, 3, 4, 11, 12, 13, 21)] == [
        '1st', '2nd', '3rd', '4th', '11th', '12th', '13th', '21st'
    ]


# =============================================================================
# PROGRESS FIGURES
# =============================================================================

def test_course_completion_weights_exercises_higher():
    # 50% chapters * 0.4 + 15% exercises * 0.6 = 20 + 9
    assert course_completion_percentage(5, 10, 3, 20) == 29
    assert course_completion_percentage(10, 10, 20, 20) == 100
    assert course_completion_percentage(0, 0, 0, 0) == 100


def test_overall_progress():
    # course average 60 * 0.7 + attendance 50 * 0.3
    assert overall_progress([80, 40], 50) == 57
    assert overall_progress([], 100) == 30


def test_average_score_ignores_missing():
    assert average_score([80, None, 91]) == 86
    assert average_score([None]) is None


def test_classify_progress():
    assert classify_progress(85, 95) == 'excelling'
    assert classify_progress(20, 95) == 'at-risk'
    assert classify_progress(50, 60) == 'at-risk'
    assert classify_progress(50, 80) == 'on-track'
