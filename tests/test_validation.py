# tests/test_validation.py

import pytest

from common.exceptions import NotFound, InvalidCriteria
from progress.models import ProgressRecord, ValidationHistoryEntry
from progress.services import ProgressTrackingService
from semesters.models import SemesterCohort
from semesters.services import SemesterRegistryService, SemesterManagementService
from validation.services import ValidationCriteriaEngine

pytestmark = pytest.mark.django_db


@pytest.fixture
def passing_student(cohorts, enrolled, course):
    """S1 student meeting the default criteria of a one-course cohort"""
    SemesterRegistryService.update_cohort(cohorts[1].pk, courses_required=1)
    student, = enrolled(semester=1)
    ProgressTrackingService.mark_course_completed(student, cohorts[1], course)
    ProgressTrackingService.record_grade(student, cohorts[1], 90)
    return student


# =============================================================================
# EVALUATION
# =============================================================================

def test_evaluate_uses_cohort_criteria(passing_student):
    result = ValidationCriteriaEngine.evaluate(passing_student.pk)

    assert result.student_id == str(passing_student.pk)
    assert result.current_semester == 1
    assert result.can_progress
    assert result.grade_check.required == 60
    assert result.completion_check.actual == 1
    assert result.recommendation == 'approve'


def test_record_override_applies_field_by_field(cohorts, enrolled):
    student, = enrolled(semester=1)
    record = ProgressRecord.objects.get(student=student, is_active=True)
    record.override_min_grade = 50
    record.save()

    criteria = record.get_effective_criteria()

    assert criteria.min_grade == 50
    assert criteria.min_attendance == 70
    assert criteria.courses_required == 3


def test_caller_override_wins(passing_student):
    result = ValidationCriteriaEngine.evaluate(passing_student.pk, {'minGrade': 95})

    assert not result.grade_check.passed
    assert not result.can_progress


def test_evaluate_without_active_record(make_student):
    with pytest.raises(NotFound):
        ValidationCriteriaEngine.evaluate(make_student().pk)


def test_evaluate_rejects_malformed_override(passing_student):
    with pytest.raises(InvalidCriteria):
        ValidationCriteriaEngine.evaluate(passing_student.pk, {'min_grade': 'high'})


def test_batch_evaluation_degrades_failures(settings, passing_student, make_student):
    settings.SEMESTER_SYSTEM = {'BATCH_SIZE': 1, 'BATCH_PAUSE_SECONDS': 0}
    stranger = make_student()

    results = ValidationCriteriaEngine.evaluate_batch([passing_student.pk, stranger.pk])

    assert [r.student_id for r in results] == [str(passing_student.pk), str(stranger.pk)]
    assert not results[0].is_degraded
    assert results[1].is_degraded
    assert results[1].recommendation == 'reject'
    assert results[1].reason.startswith('Evaluation error: No active progress record')


# =============================================================================
# BULK DECISIONS
# =============================================================================

def test_bulk_validation_with_a_missing_record(cohorts, enrolled, make_student):
    first, second = enrolled(semester=1, count=2)
    missing = make_student()
    SemesterManagementService.flag_students_for_validation()

    results = ValidationCriteriaEngine.perform_bulk_validation(
        [first.pk, missing.pk, second.pk], 'admin-1', 'approve', reason='Reviewed'
    )

    assert results['summary'] == {
        'total': 3,
        'approved': 2,
        'rejected': 0,
        'conditional': 0,
        'errors': 1,
    }
    assert len(results['successful']) == 2
    assert results['failed'] == [{
        'student_id': str(missing.pk),
        'error': f"No active progress record for student {missing.pk}",
        'error_type': 'NotFound',
    }]

    record = ProgressRecord.objects.get(student=first, is_active=True)
    assert record.validation_status == ProgressRecord.STATUS_VALIDATED
    assert record.target_semester == 2
    assert record.semester_validated_at is not None

    entry = record.validation_history.get()
    assert entry.validator_id == 'admin-1'
    assert entry.decision == 'approve'
    assert entry.reason == 'Reviewed'


def test_reject_and_conditional_decisions(cohorts, enrolled):
    rejected, conditional = enrolled(semester=1, count=2)
    SemesterManagementService.flag_students_for_validation()

    ValidationCriteriaEngine.perform_bulk_validation([rejected.pk], 'admin-1', 'reject')
    ValidationCriteriaEngine.perform_bulk_validation([conditional.pk], 'admin-1', 'conditional')

    rejected_record = ProgressRecord.objects.get(student=rejected, is_active=True)
    assert rejected_record.validation_status == ProgressRecord.STATUS_FAILED
    assert rejected_record.target_semester is None

    conditional_record = ProgressRecord.objects.get(student=conditional, is_active=True)
    assert conditional_record.validation_status == ProgressRecord.STATUS_CONDITIONAL
    assert conditional_record.target_semester == 2

    # Only validated students move
    assert SemesterManagementService.progress_validated_students()['students_progressed'] == 0


def test_unflagged_record_cannot_be_decided(cohorts, enrolled):
    student, = enrolled(semester=1)

    results = ValidationCriteriaEngine.perform_bulk_validation([student.pk], 'admin-1', 'approve')

    assert results['summary']['errors'] == 1
    assert results['failed'][0]['error_type'] == 'ValidationApplyFailure'
    assert not ValidationHistoryEntry.objects.exists()


def test_repeated_decisions_keep_every_history_entry(cohorts, enrolled):
    student, = enrolled(semester=1)
    SemesterManagementService.flag_students_for_validation()

    ValidationCriteriaEngine.perform_bulk_validation([student.pk], 'admin-1', 'conditional')
    ValidationCriteriaEngine.perform_bulk_validation([student.pk], 'admin-2', 'approve')

    record = ProgressRecord.objects.get(student=student, is_active=True)
    assert record.validation_status == ProgressRecord.STATUS_VALIDATED
    assert list(record.validation_history.values_list('validator_id', flat=True)) == ['admin-1', 'admin-2']


def test_history_entries_are_insert_only(cohorts, enrolled):
    student, = enrolled(semester=1)
    SemesterManagementService.flag_students_for_validation()
    ValidationCriteriaEngine.perform_bulk_validation([student.pk], 'admin-1', 'reject')

    entry = ValidationHistoryEntry.objects.get()
    entry.reason = 'changed'

    with pytest.raises(ValueError):
        entry.save()


def test_bulk_validation_rejects_bad_input(cohorts, enrolled):
    student, = enrolled(semester=1)

    with pytest.raises(ValueError):
        ValidationCriteriaEngine.perform_bulk_validation([student.pk], 'admin-1', 'maybe')

    with pytest.raises(InvalidCriteria):
        ValidationCriteriaEngine.perform_bulk_validation(
            [student.pk], 'admin-1', 'approve', criteria_override={'bogus': 1}
        )


# =============================================================================
# AUTO-VALIDATION
# =============================================================================

def test_auto_validation_approves_only_eligible_students(cohorts, enrolled, passing_student):
    SemesterRegistryService.update_cohort(cohorts[1].pk, auto_validation=True)
    ungraded, = enrolled(semester=1)
    elsewhere, = enrolled(semester=3)
    SemesterManagementService.flag_students_for_validation()

    found = ValidationCriteriaEngine.get_auto_validation_candidates()
    assert [c.student_id for c in found['candidates']] == [str(passing_student.pk)]
    assert found['failed'] == []

    results = ValidationCriteriaEngine.process_auto_validations()

    assert results['summary']['approved'] == 1
    entry = ValidationHistoryEntry.objects.get()
    assert entry.validator_id == 'system'
    assert entry.reason == 'Auto-validated based on criteria'

    statuses = dict(
        ProgressRecord.objects.filter(is_active=True).values_list('student_id', 'validation_status')
    )
    assert statuses[passing_student.pk] == ProgressRecord.STATUS_VALIDATED
    assert statuses[ungraded.pk] == ProgressRecord.STATUS_PENDING
    assert statuses[elsewhere.pk] == ProgressRecord.STATUS_PENDING


def test_record_level_auto_validation_override(cohorts, passing_student):
    ProgressRecord.objects.filter(student=passing_student).update(override_auto_validation=False)
    SemesterRegistryService.update_cohort(cohorts[1].pk, auto_validation=True)
    SemesterManagementService.flag_students_for_validation()

    assert ValidationCriteriaEngine.get_auto_validation_candidates() == {'candidates': [], 'failed': []}
    assert ValidationCriteriaEngine.process_auto_validations()['summary']['total'] == 0


def test_auto_validation_reports_students_that_cannot_be_evaluated(cohorts, passing_student):
    SemesterRegistryService.update_cohort(cohorts[1].pk, auto_validation=True)
    SemesterManagementService.flag_students_for_validation()
    SemesterCohort.objects.filter(pk=cohorts[1].pk).update(custom_rules=[{'field': 'bogus'}])

    results = ValidationCriteriaEngine.process_auto_validations()

    assert results['successful'] == []
    assert results['summary']['total'] == 1
    assert results['summary']['errors'] == 1
    failure, = results['failed']
    assert failure['student_id'] == str(passing_student.pk)
    assert failure['error_type'] == 'InvalidCriteria'

    record = ProgressRecord.objects.get(student=passing_student, is_active=True)
    assert record.validation_status == ProgressRecord.STATUS_PENDING


# =============================================================================
# INSIGHTS
# =============================================================================

def test_validation_insights(cohorts, enrolled, passing_student):
    other, = enrolled(semester=1)
    enrolled(semester=2)
    SemesterManagementService.flag_students_for_validation()
    ValidationCriteriaEngine.perform_bulk_validation([passing_student.pk], 'admin-1', 'approve')
    ValidationCriteriaEngine.perform_bulk_validation([other.pk], 'admin-1', 'reject')

    insights = ValidationCriteriaEngine.get_validation_insights()

    assert insights['overview']['total_students'] == 3
    breakdown = insights['overview']['status_breakdown']
    assert breakdown['validated']['count'] == 1
    assert breakdown['validated']['avg_grade'] == 90
    assert breakdown['failed']['count'] == 1
    assert breakdown['pending_validation']['count'] == 1

    first = insights['semester_breakdown'][0]
    assert first['semester'] == 1
    assert first['total_students'] == 2
    assert first['validation_rate'] == 50

    assert {(t['status'], t['count']) for t in insights['trends']} == {('validated', 1), ('failed', 1)}

    scoped = ValidationCriteriaEngine.get_validation_insights(cohorts[2].pk)
    assert scoped['overview']['total_students'] == 1
    assert scoped['trends'] == []


def test_validated_record_takes_no_further_decision(cohorts, enrolled):
    student, = enrolled(semester=1)
    SemesterManagementService.flag_students_for_validation()
    ValidationCriteriaEngine.perform_bulk_validation([student.pk], 'admin-1', 'approve')

    results = ValidationCriteriaEngine.perform_bulk_validation([student.pk], 'admin-2', 'reject')

    assert results['failed'][0]['error_type'] == 'ValidationApplyFailure'
    record = ProgressRecord.objects.get(student=student, is_active=True)
    assert record.validation_status == ProgressRecord.STATUS_VALIDATED
    assert record.validation_history.count() == 1
