# tests/conftest.py

import itertools
from datetime import timedelta

import pytest
from django.utils import timezone

from students.models import Student
from attendance.models import Event
from progress.models import Course
from semesters.services import SemesterRegistryService

ACADEMIC_YEAR = '2024-2025'

_counter = itertools.count(1)


@pytest.fixture(autouse=True)
def semester_settings(settings):
    settings.SEMESTER_SYSTEM = {
        'BATCH_SIZE': 5,
        'BATCH_PAUSE_SECONDS': 0,
        'VALIDATION_PERIOD_DAYS': 30,
        'SYSTEM_VALIDATOR_ID': 'system',
    }
    return settings.SEMESTER_SYSTEM


@pytest.fixture
def make_student(db):
    def factory(**kwargs):
        number = next(_counter)
        defaults = {
            'student_number': f"STU{number:05d}",
            'first_name': 'Student',
            'last_name': f"No{number}",
            'email': f"student{number}@example.com",
        }
        defaults.update(kwargs)
        return Student.objects.create(**defaults)
    return factory


@pytest.fixture
def cohorts(db):
    """Semester number -> cohort for the 2024-2025 academic year"""
    results = SemesterRegistryService.initialize_semesters(ACADEMIC_YEAR)
    return {cohort.semester: cohort for cohort in results['semesters']}


@pytest.fixture
def make_event(db):
    def factory(title='Lecture', days_ago=0):
        start = timezone.now() - timedelta(days=days_ago, hours=2)
        return Event.objects.create(title=title, start=start, end=start + timedelta(hours=1))
    return factory


@pytest.fixture
def course(db):
    return Course.objects.create(
        code='CS101',
        title='Introduction to Programming',
        total_chapters=10,
        total_exercises=20,
    )


@pytest.fixture
def enrolled(cohorts, make_student):
    """Factory enrolling new students in a semester cohort"""
    def factory(semester=1, count=1):
        students = [make_student() for _ in range(count)]
        SemesterRegistryService.add_students(cohorts[semester], [s.pk for s in students])
        return students
    return factory
