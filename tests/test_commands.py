# tests/test_commands.py

from io import StringIO

import pytest
from django.core.management import call_command
from django.core.management.base import CommandError

from progress.models import ProgressRecord
from semesters.models import SemesterCohort

pytestmark = pytest.mark.django_db


def run(name, *args, **options):
    out = StringIO()
    call_command(name, *args, stdout=out, stderr=StringIO(), **options)
    return out.getvalue()


def test_init_semesters_command():
    output = run('init_semesters', academic_year='2024-2025')

    assert 'Created:  10' in output
    assert SemesterCohort.objects.filter(academic_year='2024-2025').count() == 10
    assert set(SemesterCohort.objects.values_list('created_by_id', flat=True)) == {'system'}

    assert 'Existing: 10' in run('init_semesters', '--academic-year', '2024-2025')


def test_init_semesters_rejects_bad_year():
    with pytest.raises(CommandError):
        run('init_semesters', academic_year='2024')


def test_flag_and_progress_commands(cohorts, enrolled):
    student, = enrolled(semester=1)

    assert 'Flagged 1 students' in run('flag_for_validation', '--cohort', str(cohorts[1].pk))

    ProgressRecord.objects.filter(student=student).update(
        validation_status=ProgressRecord.STATUS_VALIDATED,
        target_semester=2,
    )

    output = run('progress_semesters')

    assert 'Progressed 1 students' in output
    assert 'S1 -> S2' in output


def test_auto_validation_command(cohorts):
    assert 'Auto-validated 0 of 0 candidates' in run('process_auto_validations')


def test_auto_validation_command_counts_evaluation_errors(cohorts, enrolled):
    student, = enrolled(semester=1)
    ProgressRecord.objects.filter(student=student).update(
        validation_status=ProgressRecord.STATUS_PENDING
    )
    SemesterCohort.objects.filter(pk=cohorts[1].pk).update(
        auto_validation=True,
        custom_rules=[{'field': 'bogus'}],
    )

    assert 'Auto-validated 0 of 1 candidates (1 errors)' in run('process_auto_validations')


def test_semester_health_command(cohorts):
    output = run('semester_health')

    assert 'Semesters:' in output
    assert 'Pending validation:    0' in output
