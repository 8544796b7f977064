# semesters/signals.py
"""
Signal handlers for the semesters app
Keeps event participants in step with cohort rosters and linked events
"""

from django.db.models.signals import m2m_changed, post_save
from django.dispatch import receiver
import logging

from .models import SemesterCohort

logger = logging.getLogger(__name__)


# =============================================================================
# COHORT SIGNALS
# =============================================================================

@receiver(post_save, sender=SemesterCohort)
def semester_cohort_post_save(sender, instance, created, **kwargs):
    if created:
        logger.info(f"Semester cohort created: {instance.name}")


# =============================================================================
# ROSTER SIGNALS
# =============================================================================

@receiver(m2m_changed, sender=SemesterCohort.students.through)
def cohort_roster_changed(sender, instance, action, reverse, pk_set, **kwargs):
    """
    Mirror roster changes onto event participants.

    Students joining a cohort gain every event already linked to it, so
    mid-cohort joiners immediately see scheduled sessions. Students leaving
    lose them.
    """
    if action not in ('post_add', 'post_remove') or not pk_set:
        return

    from students.models import Student

    if reverse:
        # student.semester_cohorts.add(...)
        pairs = [
            (cohort, [instance])
            for cohort in SemesterCohort.objects.filter(pk__in=pk_set)
        ]
    else:
        pairs = [(instance, list(Student.objects.filter(pk__in=pk_set)))]

    for cohort, students in pairs:
        for event in cohort.events.all():
            if action == 'post_add':
                event.participants.add(*students)
            else:
                event.participants.remove(*students)

        logger.debug(
            f"{'Linked' if action == 'post_add' else 'Unlinked'} {len(students)} "
            f"student(s) {'to' if action == 'post_add' else 'from'} events of {cohort}"
        )


@receiver(m2m_changed, sender=SemesterCohort.events.through)
def cohort_events_changed(sender, instance, action, reverse, pk_set, **kwargs):
    """Newly linked events get the whole cohort roster as participants."""
    if action != 'post_add' or not pk_set:
        return

    from attendance.models import Event

    if reverse:
        # event.cohorts.add(...)
        for cohort in SemesterCohort.objects.filter(pk__in=pk_set):
            instance.participants.add(*cohort.students.all())
        return

    roster = list(instance.students.all())
    if not roster:
        return

    for event in Event.objects.filter(pk__in=pk_set):
        event.participants.add(*roster)

    logger.debug(f"Added {len(roster)} participant(s) to {len(pk_set)} event(s) of {instance}")
