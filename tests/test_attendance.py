# tests/test_attendance.py

import pytest

from attendance.models import AttendanceRecord
from attendance.services import AttendanceLedgerService, calculate_rate
from common.exceptions import InvalidCohort, NotFound
from progress.models import ProgressRecord
from semesters.services import SemesterRegistryService

pytestmark = pytest.mark.django_db


def test_rate_is_full_when_nothing_marked(cohorts, enrolled):
    student, = enrolled(semester=1)

    assert AttendanceLedgerService.attendance_rate(student, cohorts[1]) == 100.0
    assert calculate_rate(0, 0) == 100.0
    assert calculate_rate(2, 3) == 66.67


def test_mark_attendance_updates_progress_record(cohorts, enrolled, make_event):
    student, = enrolled(semester=1)
    present, absent = make_event('Lecture 1', days_ago=2), make_event('Lecture 2', days_ago=1)
    SemesterRegistryService.link_events(cohorts[1], [present.pk, absent.pk])

    AttendanceLedgerService.mark_attendance(present, student.pk, True, 'teacher-1')
    record = AttendanceLedgerService.mark_attendance(absent.pk, student, False, 'teacher-1', notes='sick')

    assert record.cohort == cohorts[1]
    assert record.notes == 'sick'

    progress = ProgressRecord.objects.get(student=student, is_active=True)
    assert progress.total_events == 2
    assert progress.events_attended == 1
    assert progress.attendance_rate == 50.0
    assert progress.last_calculated is not None


def test_marking_twice_overwrites(cohorts, enrolled, make_event):
    student, = enrolled(semester=1)
    event = make_event()
    SemesterRegistryService.link_events(cohorts[1], [event.pk])

    AttendanceLedgerService.mark_attendance(event, student, False, 'teacher-1')
    AttendanceLedgerService.mark_attendance(event, student, True, 'teacher-2')

    record = AttendanceRecord.objects.get(event=event, student=student)
    assert record.attended
    assert record.marked_by == 'teacher-2'
    assert AttendanceLedgerService.attendance_rate(student, cohorts[1]) == 100.0


def test_event_outside_students_cohorts(cohorts, enrolled, make_event):
    student, = enrolled(semester=1)
    event = make_event()
    SemesterRegistryService.link_events(cohorts[3], [event.pk])

    with pytest.raises(InvalidCohort):
        AttendanceLedgerService.mark_attendance(event, student, True, 'teacher-1')

    assert not AttendanceRecord.objects.exists()


def test_mark_attendance_unknown_event(cohorts, enrolled):
    student, = enrolled(semester=1)

    with pytest.raises(NotFound):
        AttendanceLedgerService.mark_attendance('missing', student, True, 'teacher-1')


def test_bulk_mark_attendance_reports_failures(cohorts, enrolled, make_event):
    first, second = enrolled(semester=1, count=2)
    outsider, = enrolled(semester=3)
    event = make_event()
    SemesterRegistryService.link_events(cohorts[1], [event.pk])

    results = AttendanceLedgerService.bulk_mark_attendance(event, cohorts[1], [
        {'student_id': first.pk, 'attended': True},
        {'student_id': second.pk, 'attended': False},
        {'student_id': outsider.pk, 'attended': True},
    ], 'teacher-1')

    assert results['summary'] == {
        'total': 3,
        'marked': 2,
        'present': 1,
        'absent': 1,
        'errors': 1,
    }
    assert results['failed'][0]['student_id'] == str(outsider.pk)
    assert results['failed'][0]['error_type'] == 'InvalidCohort'
    assert AttendanceRecord.objects.count() == 2


def test_bulk_mark_requires_linked_event(cohorts, make_event):
    with pytest.raises(InvalidCohort):
        AttendanceLedgerService.bulk_mark_attendance(make_event(), cohorts[1], [], 'teacher-1')


def test_event_attendance_sheet(cohorts, enrolled, make_event):
    first, second = enrolled(semester=1, count=2)
    event = make_event()
    SemesterRegistryService.link_events(cohorts[1], [event.pk])
    AttendanceLedgerService.mark_attendance(event, first, True, 'teacher-1')

    sheet = AttendanceLedgerService.get_event_attendance(event)

    assert sheet['present'] == 1
    assert sheet['absent'] == 0
    assert sheet['unmarked'] == [second]

    summary = AttendanceLedgerService.get_student_attendance(first, cohorts[1])
    assert summary['total_events'] == 1
    assert summary['attendance_rate'] == 100.0


def test_attendance_alerts(cohorts, enrolled, make_event):
    regular, absentee = enrolled(semester=1, count=2)
    events = [make_event(f"Lecture {n}", days_ago=10 - n) for n in range(5)]
    SemesterRegistryService.link_events(cohorts[1], [e.pk for e in events])

    for event in events:
        AttendanceLedgerService.mark_attendance(event, regular, True, 'teacher-1')
        AttendanceLedgerService.mark_attendance(event, absentee, False, 'teacher-1')

    alerts = AttendanceLedgerService.get_attendance_alerts(cohorts[1])

    assert {a['student_id'] for a in alerts} == {str(absentee.pk)}
    by_type = {a['type']: a for a in alerts}
    assert by_type['low_attendance']['severity'] == 'high'
    assert by_type['low_attendance']['current_value'] == 0.0
    assert by_type['consecutive_absences']['current_value'] == 5
    assert by_type['consecutive_absences']['severity'] == 'high'


def test_absence_streak_ends_at_last_presence(cohorts, enrolled, make_event):
    student, = enrolled(semester=1)
    events = [make_event(f"Lecture {n}", days_ago=10 - n) for n in range(4)]
    SemesterRegistryService.link_events(cohorts[1], [e.pk for e in events])

    for event, attended in zip(events, [False, True, False, False]):
        AttendanceLedgerService.mark_attendance(event, student, attended, 'teacher-1')

    assert AttendanceLedgerService.consecutive_absences(student, cohorts[1]) == 2


def test_attendance_trend_without_records(cohorts):
    trend = AttendanceLedgerService.attendance_trend(cohorts[1])

    assert trend['first_half_rate'] == 100.0
    assert trend['second_half_rate'] == 100.0
    assert trend['is_decreasing'] is False
    assert trend['severity'] == 'low'
