# attendance/models.py

from django.db import models
from django.core.exceptions import ValidationError
from common.models import BaseModel
import logging

logger = logging.getLogger(__name__)


# =============================================================================
# EVENT MODEL
# =============================================================================

class Event(BaseModel):
    """
    A scheduled session attendance can be taken for.

    Calendar management lives elsewhere; only the title, the time window and
    the participants are needed here. Cohorts link events through
    ``SemesterCohort.events`` (reverse accessor ``cohorts``).
    """

    title = models.CharField("Title", max_length=200)
    start = models.DateTimeField("Start")
    end = models.DateTimeField("End")

    participants = models.ManyToManyField(
        'students.Student',
        verbose_name="Participants",
        related_name='events',
        blank=True
    )

    def clean(self):
        super().clean()
        if self.start and self.end and self.end <= self.start:
            raise ValidationError({'end': "Event must end after it starts"})

    def __str__(self):
        return f"{self.title} ({self.start:%Y-%m-%d %H:%M})"

    class Meta:
        verbose_name = "Event"
        verbose_name_plural = "Events"
        ordering = ['start']


# =============================================================================
# ATTENDANCE RECORD MODEL
# =============================================================================

class AttendanceRecord(BaseModel):
    """Presence of one student at one event"""

    event = models.ForeignKey(
        Event,
        verbose_name="Event",
        on_delete=models.CASCADE,
        related_name='attendance_records'
    )

    student = models.ForeignKey(
        'students.Student',
        verbose_name="Student",
        on_delete=models.CASCADE,
        related_name='attendance_records'
    )

    cohort = models.ForeignKey(
        'semesters.SemesterCohort',
        verbose_name="Cohort",
        on_delete=models.CASCADE,
        related_name='attendance_records',
        help_text="Cohort the event belongs to for this student"
    )

    attended = models.BooleanField("Attended", default=False)

    marked_by = models.CharField(
        "Marked By",
        max_length=50,
        help_text="ID of the caller who marked attendance"
    )
    marked_at = models.DateTimeField("Marked At", db_index=True)

    notes = models.TextField("Notes", blank=True)

    def __str__(self):
        state = 'present' if self.attended else 'absent'
        return f"{self.student} @ {self.event.title}: {state}"

    class Meta:
        verbose_name = "Attendance Record"
        verbose_name_plural = "Attendance Records"
        ordering = ['-marked_at']
        unique_together = [['event', 'student']]
        indexes = [
            models.Index(fields=['student', 'cohort']),
            models.Index(fields=['cohort', 'marked_at']),
        ]
