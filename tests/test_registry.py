# tests/test_registry.py

import uuid

import pytest

from common.context import CallerContext
from common.exceptions import NotFound, ConflictingEnrollment
from progress.models import ProgressRecord
from semesters.models import SemesterCohort
from semesters.services import SemesterRegistryService
from students.models import Student, CohortMembership
from students.services import CohortMembershipService

pytestmark = pytest.mark.django_db

YEAR = '2024-2025'


# =============================================================================
# INITIALIZATION
# =============================================================================

def test_initialize_creates_ten_cohorts():
    results = SemesterRegistryService.initialize_semesters(YEAR)

    assert results['created'] == 10
    assert results['errors'] == []
    assert SemesterCohort.objects.filter(academic_year=YEAR).count() == 10

    s2 = SemesterCohort.objects.get(academic_year=YEAR, semester=2)
    assert s2.intake == 'march'
    assert s2.name == 'Semester 2 - March 2024-2025'
    assert s2.is_permanent


def test_initialize_is_idempotent(cohorts, enrolled):
    student, = enrolled(semester=1)

    results = SemesterRegistryService.initialize_semesters(YEAR)

    assert results['created'] == 0
    assert results['existing'] == 10
    assert SemesterCohort.objects.filter(academic_year=YEAR).count() == 10
    assert list(cohorts[1].students.all()) == [student]


def test_initialize_refreshes_stale_metadata(cohorts):
    cohort = cohorts[3]
    cohort.name = 'Old name'
    cohort.description = ''
    cohort.save()

    results = SemesterRegistryService.initialize_semesters(YEAR)

    assert results['updated'] == 1
    assert results['existing'] == 9
    cohort.refresh_from_db()
    assert cohort.name == 'Semester 3 - September 2024-2025'
    assert cohort.description


def test_initialize_rejects_malformed_year(db):
    with pytest.raises(ValueError):
        SemesterRegistryService.initialize_semesters('2024/25')


def test_get_all_semesters_reports_missing(cohorts):
    SemesterRegistryService.delete_cohort(cohorts[4].pk)

    catalog = SemesterRegistryService.get_all_semesters(YEAR)

    assert catalog['total'] == 9
    assert catalog['missing_semesters'] == [4]
    assert [c.semester for c in catalog['semesters']] == [1, 2, 3, 5, 6, 7, 8, 9, 10]


def test_statistics(cohorts, enrolled):
    enrolled(semester=1, count=5)

    stats = SemesterRegistryService.get_statistics(YEAR)

    assert stats['total_students'] == 5
    s1 = stats['semesters'][0]
    assert s1['student_count'] == 5
    assert s1['utilization_rate'] == 10.0
    assert s1['validation_stats']['not_started'] == 5


# =============================================================================
# CRUD
# =============================================================================

def test_create_cohort_on_empty_database():
    with CallerContext(caller_id='admin-1', role='admin'):
        cohort = SemesterRegistryService.create_cohort(3, YEAR)

    cohort.refresh_from_db()
    assert cohort.created_at is not None
    assert cohort.updated_at >= cohort.created_at
    assert cohort.created_by_id == 'admin-1'
    assert cohort.intake == 'september'
    cohort.full_clean()


def test_create_cohort_refuses_second_active_cohort(cohorts):
    with pytest.raises(ValueError):
        SemesterRegistryService.create_cohort(1, YEAR)

    draft = SemesterRegistryService.create_cohort(1, YEAR, status='draft', name='S1 overflow')
    assert draft.intake == 'september'


def test_update_cohort(cohorts, enrolled):
    enrolled(semester=1, count=2)

    cohort = SemesterRegistryService.update_cohort(cohorts[1].pk, min_grade=50, auto_validation=True)
    assert cohort.min_grade == 50
    assert cohort.auto_validation

    with pytest.raises(ValueError):
        SemesterRegistryService.update_cohort(cohorts[1].pk, max_students=1)

    with pytest.raises(ValueError):
        SemesterRegistryService.update_cohort(cohorts[1].pk, semester=4)


def test_delete_cohort_requires_empty_roster(cohorts, enrolled):
    enrolled(semester=1)

    with pytest.raises(ValueError):
        SemesterRegistryService.delete_cohort(cohorts[1].pk)

    assert SemesterRegistryService.delete_cohort(cohorts[2].pk) is True

    with pytest.raises(NotFound):
        SemesterRegistryService.get_cohort(cohorts[2].pk)


# =============================================================================
# ROSTER
# =============================================================================

def test_add_students_opens_membership_and_progress_record(cohorts, make_student):
    student = make_student()

    results = SemesterRegistryService.add_students(cohorts[1], [student.pk, student.pk])

    assert results['added'] == [str(student.pk)]
    assert results['roster_size'] == 1

    student.refresh_from_db()
    assert student.current_cohort == cohorts[1]

    membership = CohortMembership.objects.get(student=student)
    assert membership.cohort == cohorts[1]
    assert membership.is_open

    record = ProgressRecord.objects.get(student=student, is_active=True)
    assert record.cohort == cohorts[1]
    assert record.current_semester == 1
    assert record.validation_status == ProgressRecord.STATUS_NOT_STARTED


def test_add_students_reports_already_enrolled(cohorts, enrolled):
    student, = enrolled(semester=1)

    results = SemesterRegistryService.add_students(cohorts[1], [student.pk])

    assert results['added'] == []
    assert results['already_enrolled'] == [str(student.pk)]


def test_add_students_rejects_enrollment_in_another_cohort(cohorts, enrolled, make_student):
    student, = enrolled(semester=1)
    newcomer = make_student()

    with pytest.raises(ConflictingEnrollment) as excinfo:
        SemesterRegistryService.add_students(cohorts[3], [newcomer.pk, student.pk])

    assert excinfo.value.offenders == [str(student.pk)]
    assert cohorts[3].get_roster_size() == 0


def test_add_students_unknown_ids(cohorts, make_student):
    teacher = make_student(role=Student.ROLE_TEACHER)
    missing = uuid.uuid4()

    with pytest.raises(NotFound) as excinfo:
        SemesterRegistryService.add_students(cohorts[1], [teacher.pk, missing, 'not-a-uuid'])

    assert str(missing) in str(excinfo.value)
    assert 'not-a-uuid' in str(excinfo.value)


def test_add_students_respects_capacity(cohorts, make_student):
    SemesterRegistryService.update_cohort(cohorts[1].pk, max_students=1)
    students = [make_student(), make_student()]

    with pytest.raises(ValueError):
        SemesterRegistryService.add_students(cohorts[1].pk, [s.pk for s in students])


def test_add_students_to_archived_cohort(cohorts, make_student):
    SemesterRegistryService.update_cohort(cohorts[1].pk, status=SemesterCohort.STATUS_ARCHIVED)

    with pytest.raises(ValueError):
        SemesterRegistryService.add_students(cohorts[1].pk, [make_student().pk])


def test_remove_student(cohorts, enrolled):
    student, = enrolled(semester=1)

    SemesterRegistryService.remove_student(cohorts[1], student.pk)

    student.refresh_from_db()
    assert student.current_cohort is None
    assert cohorts[1].get_roster_size() == 0
    assert not ProgressRecord.objects.filter(student=student, is_active=True).exists()

    history = list(CohortMembershipService.get_history(student))
    assert len(history) == 1
    assert history[0].left_at is not None

    with pytest.raises(NotFound):
        SemesterRegistryService.remove_student(cohorts[1], student.pk)


def test_removed_student_can_join_another_cohort(cohorts, enrolled):
    student, = enrolled(semester=1)
    SemesterRegistryService.remove_student(cohorts[1], student.pk)

    SemesterRegistryService.add_students(cohorts[3], [student.pk])

    record = ProgressRecord.objects.get(student=student, is_active=True)
    assert record.cohort == cohorts[3]



def test_rejoining_the_same_cohort_reactivates_the_record(cohorts, enrolled):
    student, = enrolled(semester=1)
    record = ProgressRecord.objects.get(student=student)
    SemesterRegistryService.remove_student(cohorts[1], student.pk)

    SemesterRegistryService.add_students(cohorts[1], [student.pk])

    record.refresh_from_db()
    assert record.is_active
    assert record.superseded_at is None
    assert CohortMembership.objects.filter(student=student, cohort=cohorts[1]).count() == 2


# =============================================================================
# EVENTS
# =============================================================================

def test_linking_events_adds_roster_as_participants(cohorts, enrolled, make_event):
    first, second = enrolled(semester=1, count=2)
    event = make_event()

    assert SemesterRegistryService.link_events(cohorts[1], [event.pk]) == 1
    assert set(event.participants.all()) == {first, second}

    late, = enrolled(semester=1)
    assert event.participants.filter(pk=late.pk).exists()


def test_unlink_event_keeps_students_of_other_linked_cohorts(cohorts, enrolled, make_event):
    s1_student, = enrolled(semester=1)
    s3_student, = enrolled(semester=3)
    event = make_event()

    SemesterRegistryService.link_events(cohorts[1], [event.pk])
    SemesterRegistryService.link_events(cohorts[3], [event.pk])

    SemesterRegistryService.unlink_event(cohorts[1], event.pk)

    assert list(event.participants.all()) == [s3_student]

    with pytest.raises(NotFound):
        SemesterRegistryService.unlink_event(cohorts[1], event.pk)


def test_removing_a_student_drops_event_participation(cohorts, enrolled, make_event):
    student, = enrolled(semester=1)
    event = make_event()
    SemesterRegistryService.link_events(cohorts[1], [event.pk])

    SemesterRegistryService.remove_student(cohorts[1], student.pk)

    assert not event.participants.exists()
