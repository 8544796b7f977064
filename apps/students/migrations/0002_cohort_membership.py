# apps/students/migrations/0002_cohort_membership.py

from django.db import migrations, models
import django.db.models.deletion
import uuid


class Migration(migrations.Migration):

    dependencies = [
        ('students', '0001_initial'),
        ('semesters', '0001_initial'),
    ]

    operations = [
        migrations.AddField(
            model_name='student',
            name='current_cohort',
            field=models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='current_students', to='semesters.semestercohort', verbose_name='Current Cohort'),
        ),
        migrations.CreateModel(
            name='CohortMembership',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('created_at', models.DateTimeField(blank=True, db_index=True, editable=False, help_text='When this record was created', verbose_name='Created At')),
                ('updated_at', models.DateTimeField(blank=True, db_index=True, editable=False, help_text='When this record was last updated', verbose_name='Updated At')),
                ('created_by_id', models.CharField(blank=True, db_index=True, help_text='ID of the caller who created this record', max_length=50, null=True, verbose_name='Created By ID')),
                ('updated_by_id', models.CharField(blank=True, db_index=True, help_text='ID of the caller who last updated this record', max_length=50, null=True, verbose_name='Updated By ID')),
                ('change_reason', models.CharField(blank=True, help_text='Explanation for why this change was made', max_length=255, null=True, verbose_name='Change Reason')),
                ('joined_at', models.DateTimeField(verbose_name='Joined At')),
                ('left_at', models.DateTimeField(blank=True, null=True, verbose_name='Left At')),
                ('progressed_from', models.PositiveSmallIntegerField(blank=True, help_text='Semester number the student progressed from, if any', null=True, verbose_name='Progressed From Semester')),
                ('reason', models.CharField(blank=True, max_length=255, verbose_name='Reason')),
                ('cohort', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='membership_history', to='semesters.semestercohort', verbose_name='Cohort')),
                ('student', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='cohort_history', to='students.student', verbose_name='Student')),
            ],
            options={
                'verbose_name': 'Cohort Membership',
                'verbose_name_plural': 'Cohort Memberships',
                'ordering': ['-joined_at'],
                'indexes': [
                    models.Index(fields=['student', 'joined_at'], name='students_co_student_ff2927_idx'),
                    models.Index(fields=['cohort', 'left_at'], name='students_co_cohort__894106_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(condition=models.Q(('left_at__isnull', True)), fields=('student', 'cohort'), name='unique_open_membership_per_cohort'),
                ],
            },
        ),
    ]
