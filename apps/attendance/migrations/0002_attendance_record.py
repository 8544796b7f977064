# apps/attendance/migrations/0002_attendance_record.py

from django.db import migrations, models
import django.db.models.deletion
import uuid


class Migration(migrations.Migration):

    dependencies = [
        ('attendance', '0001_initial'),
        ('semesters', '0001_initial'),
        ('students', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='AttendanceRecord',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('created_at', models.DateTimeField(blank=True, db_index=True, editable=False, help_text='When this record was created', verbose_name='Created At')),
                ('updated_at', models.DateTimeField(blank=True, db_index=True, editable=False, help_text='When this record was last updated', verbose_name='Updated At')),
                ('created_by_id', models.CharField(blank=True, db_index=True, help_text='ID of the caller who created this record', max_length=50, null=True, verbose_name='Created By ID')),
                ('updated_by_id', models.CharField(blank=True, db_index=True, help_text='ID of the caller who last updated this record', max_length=50, null=True, verbose_name='Updated By ID')),
                ('change_reason', models.CharField(blank=True, help_text='Explanation for why this change was made', max_length=255, null=True, verbose_name='Change Reason')),
                ('attended', models.BooleanField(default=False, verbose_name='Attended')),
                ('marked_by', models.CharField(help_text='ID of the caller who marked attendance', max_length=50, verbose_name='Marked By')),
                ('marked_at', models.DateTimeField(db_index=True, verbose_name='Marked At')),
                ('notes', models.TextField(blank=True, verbose_name='Notes')),
                ('cohort', models.ForeignKey(help_text='Cohort the event belongs to for this student', on_delete=django.db.models.deletion.CASCADE, related_name='attendance_records', to='semesters.semestercohort', verbose_name='Cohort')),
                ('event', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='attendance_records', to='attendance.event', verbose_name='Event')),
                ('student', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='attendance_records', to='students.student', verbose_name='Student')),
            ],
            options={
                'verbose_name': 'Attendance Record',
                'verbose_name_plural': 'Attendance Records',
                'ordering': ['-marked_at'],
                'indexes': [
                    models.Index(fields=['student', 'cohort'], name='attendance__student_23af73_idx'),
                    models.Index(fields=['cohort', 'marked_at'], name='attendance__cohort__8c98e0_idx'),
                ],
                'unique_together': {('event', 'student')},
            },
        ),
    ]
