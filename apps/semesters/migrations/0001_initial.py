# apps/semesters/migrations/0001_initial.py

from django.db import migrations, models
import django.core.validators
import uuid


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('students', '0001_initial'),
        ('attendance', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='SemesterCohort',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('created_at', models.DateTimeField(blank=True, db_index=True, editable=False, help_text='When this record was created', verbose_name='Created At')),
                ('updated_at', models.DateTimeField(blank=True, db_index=True, editable=False, help_text='When this record was last updated', verbose_name='Updated At')),
                ('created_by_id', models.CharField(blank=True, db_index=True, help_text='ID of the caller who created this record', max_length=50, null=True, verbose_name='Created By ID')),
                ('updated_by_id', models.CharField(blank=True, db_index=True, help_text='ID of the caller who last updated this record', max_length=50, null=True, verbose_name='Updated By ID')),
                ('change_reason', models.CharField(blank=True, help_text='Explanation for why this change was made', max_length=255, null=True, verbose_name='Change Reason')),
                ('name', models.CharField(max_length=120, verbose_name='Name')),
                ('semester', models.PositiveSmallIntegerField(db_index=True, validators=[django.core.validators.MinValueValidator(1), django.core.validators.MaxValueValidator(10)], verbose_name='Semester')),
                ('intake', models.CharField(choices=[('september', 'September'), ('march', 'March')], db_index=True, max_length=20, verbose_name='Intake')),
                ('academic_year', models.CharField(db_index=True, help_text='Format: YYYY-YYYY', max_length=9, validators=[django.core.validators.RegexValidator(message='Academic year must look like 2024-2025', regex='^\\d{4}-\\d{4}$')], verbose_name='Academic Year')),
                ('description', models.TextField(blank=True, verbose_name='Description')),
                ('level', models.CharField(default='Bachelor', max_length=50, verbose_name='Level')),
                ('department', models.CharField(default='Computer Science', max_length=100, verbose_name='Department')),
                ('start_date', models.DateField(verbose_name='Start Date')),
                ('end_date', models.DateField(verbose_name='End Date')),
                ('status', models.CharField(choices=[('draft', 'Draft'), ('active', 'Active'), ('archived', 'Archived')], db_index=True, default='active', max_length=20, verbose_name='Status')),
                ('is_permanent', models.BooleanField(default=True, help_text='Permanent cohorts are created by initialization and reused', verbose_name='Is Permanent')),
                ('max_students', models.PositiveIntegerField(default=50, validators=[django.core.validators.MinValueValidator(1)], verbose_name='Maximum Students')),
                ('min_grade', models.FloatField(default=60, validators=[django.core.validators.MinValueValidator(0), django.core.validators.MaxValueValidator(100)], verbose_name='Minimum Grade')),
                ('min_attendance', models.FloatField(default=70, validators=[django.core.validators.MinValueValidator(0), django.core.validators.MaxValueValidator(100)], verbose_name='Minimum Attendance (%)')),
                ('courses_required', models.PositiveIntegerField(default=1, verbose_name='Courses Required')),
                ('auto_validation', models.BooleanField(default=False, help_text='Approve pending students automatically when they meet the criteria', verbose_name='Auto Validation')),
                ('custom_rules', models.JSONField(blank=True, default=list, help_text='List of {field, operator, value, required} rules', verbose_name='Custom Rules')),
                ('events', models.ManyToManyField(blank=True, related_name='cohorts', to='attendance.event', verbose_name='Events')),
                ('students', models.ManyToManyField(blank=True, related_name='semester_cohorts', to='students.student', verbose_name='Students')),
            ],
            options={
                'verbose_name': 'Semester Cohort',
                'verbose_name_plural': 'Semester Cohorts',
                'ordering': ['academic_year', 'semester'],
                'indexes': [
                    models.Index(fields=['semester', 'academic_year'], name='semesters_s_semeste_a17f9b_idx'),
                    models.Index(fields=['status', 'academic_year'], name='semesters_s_status_9954f7_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(condition=models.Q(('status', 'active')), fields=('semester', 'academic_year'), name='unique_active_cohort_per_semester_year'),
                ],
            },
        ),
    ]
