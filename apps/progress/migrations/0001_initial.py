# apps/progress/migrations/0001_initial.py

from django.db import migrations, models
import django.core.validators
import django.db.models.deletion
import uuid


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('semesters', '0001_initial'),
        ('students', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='Course',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('created_at', models.DateTimeField(blank=True, db_index=True, editable=False, help_text='When this record was created', verbose_name='Created At')),
                ('updated_at', models.DateTimeField(blank=True, db_index=True, editable=False, help_text='When this record was last updated', verbose_name='Updated At')),
                ('created_by_id', models.CharField(blank=True, db_index=True, help_text='ID of the caller who created this record', max_length=50, null=True, verbose_name='Created By ID')),
                ('updated_by_id', models.CharField(blank=True, db_index=True, help_text='ID of the caller who last updated this record', max_length=50, null=True, verbose_name='Updated By ID')),
                ('change_reason', models.CharField(blank=True, help_text='Explanation for why this change was made', max_length=255, null=True, verbose_name='Change Reason')),
                ('code', models.CharField(max_length=30, unique=True, verbose_name='Course Code')),
                ('title', models.CharField(max_length=200, verbose_name='Title')),
                ('total_chapters', models.PositiveIntegerField(default=0, verbose_name='Total Chapters')),
                ('total_exercises', models.PositiveIntegerField(default=0, verbose_name='Total Exercises')),
            ],
            options={
                'verbose_name': 'Course',
                'verbose_name_plural': 'Courses',
                'ordering': ['code'],
            },
        ),
        migrations.CreateModel(
            name='ProgressRecord',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('created_at', models.DateTimeField(blank=True, db_index=True, editable=False, help_text='When this record was created', verbose_name='Created At')),
                ('updated_at', models.DateTimeField(blank=True, db_index=True, editable=False, help_text='When this record was last updated', verbose_name='Updated At')),
                ('created_by_id', models.CharField(blank=True, db_index=True, help_text='ID of the caller who created this record', max_length=50, null=True, verbose_name='Created By ID')),
                ('updated_by_id', models.CharField(blank=True, db_index=True, help_text='ID of the caller who last updated this record', max_length=50, null=True, verbose_name='Updated By ID')),
                ('change_reason', models.CharField(blank=True, help_text='Explanation for why this change was made', max_length=255, null=True, verbose_name='Change Reason')),
                ('current_semester', models.PositiveSmallIntegerField(validators=[django.core.validators.MinValueValidator(1), django.core.validators.MaxValueValidator(10)], verbose_name='Current Semester')),
                ('target_semester', models.PositiveSmallIntegerField(blank=True, help_text='Set once a progression decision has been made', null=True, verbose_name='Target Semester')),
                ('average_grade', models.FloatField(blank=True, help_text='Empty until grades are ingested', null=True, validators=[django.core.validators.MinValueValidator(0), django.core.validators.MaxValueValidator(100)], verbose_name='Average Grade')),
                ('total_events', models.PositiveIntegerField(default=0, verbose_name='Events Marked')),
                ('events_attended', models.PositiveIntegerField(default=0, verbose_name='Events Attended')),
                ('attendance_rate', models.FloatField(default=100, validators=[django.core.validators.MinValueValidator(0), django.core.validators.MaxValueValidator(100)], verbose_name='Attendance Rate')),
                ('overall_progress', models.FloatField(default=0, validators=[django.core.validators.MinValueValidator(0), django.core.validators.MaxValueValidator(100)], verbose_name='Overall Progress')),
                ('validation_status', models.CharField(choices=[('not_started', 'Not Started'), ('pending_validation', 'Pending Validation'), ('validated', 'Validated'), ('conditional', 'Conditional'), ('failed', 'Failed')], db_index=True, default='not_started', max_length=30, verbose_name='Validation Status')),
                ('next_validation_date', models.DateTimeField(blank=True, null=True, verbose_name='Next Validation Date')),
                ('override_min_grade', models.FloatField(blank=True, null=True, validators=[django.core.validators.MinValueValidator(0), django.core.validators.MaxValueValidator(100)], verbose_name='Minimum Grade Override')),
                ('override_min_attendance', models.FloatField(blank=True, null=True, validators=[django.core.validators.MinValueValidator(0), django.core.validators.MaxValueValidator(100)], verbose_name='Minimum Attendance Override')),
                ('override_courses_required', models.PositiveIntegerField(blank=True, null=True, verbose_name='Courses Required Override')),
                ('override_auto_validation', models.BooleanField(blank=True, null=True, verbose_name='Auto Validation Override')),
                ('is_active', models.BooleanField(db_index=True, default=True, verbose_name='Is Active')),
                ('superseded_at', models.DateTimeField(blank=True, null=True, verbose_name='Superseded At')),
                ('first_course_started_at', models.DateTimeField(blank=True, null=True, verbose_name='First Course Started')),
                ('first_course_completed_at', models.DateTimeField(blank=True, null=True, verbose_name='First Course Completed')),
                ('halfway_completed_at', models.DateTimeField(blank=True, null=True, verbose_name='Halfway Completed')),
                ('all_courses_completed_at', models.DateTimeField(blank=True, null=True, verbose_name='All Courses Completed')),
                ('semester_validated_at', models.DateTimeField(blank=True, null=True, verbose_name='Semester Validated')),
                ('last_calculated', models.DateTimeField(blank=True, null=True, verbose_name='Last Calculated')),
                ('notes', models.TextField(blank=True, verbose_name='Notes')),
                ('cohort', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='progress_records', to='semesters.semestercohort', verbose_name='Cohort')),
                ('student', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='progress_records', to='students.student', verbose_name='Student')),
                ('superseded_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='supersedes', to='progress.progressrecord', verbose_name='Superseded By')),
            ],
            options={
                'verbose_name': 'Progress Record',
                'verbose_name_plural': 'Progress Records',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['validation_status', 'is_active'], name='progress_pr_validat_82bac9_idx'),
                    models.Index(fields=['cohort', 'validation_status'], name='progress_pr_cohort__ea46e4_idx'),
                    models.Index(fields=['student', 'is_active'], name='progress_pr_student_c91c05_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(condition=models.Q(('is_active', True)), fields=('student',), name='unique_active_progress_per_student'),
                ],
                'unique_together': {('student', 'cohort')},
            },
        ),
        migrations.CreateModel(
            name='CourseProgress',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('created_at', models.DateTimeField(blank=True, db_index=True, editable=False, help_text='When this record was created', verbose_name='Created At')),
                ('updated_at', models.DateTimeField(blank=True, db_index=True, editable=False, help_text='When this record was last updated', verbose_name='Updated At')),
                ('created_by_id', models.CharField(blank=True, db_index=True, help_text='ID of the caller who created this record', max_length=50, null=True, verbose_name='Created By ID')),
                ('updated_by_id', models.CharField(blank=True, db_index=True, help_text='ID of the caller who last updated this record', max_length=50, null=True, verbose_name='Updated By ID')),
                ('change_reason', models.CharField(blank=True, help_text='Explanation for why this change was made', max_length=255, null=True, verbose_name='Change Reason')),
                ('started_at', models.DateTimeField(verbose_name='Started At')),
                ('completed_at', models.DateTimeField(blank=True, null=True, verbose_name='Completed At')),
                ('progress_percentage', models.FloatField(default=0, validators=[django.core.validators.MinValueValidator(0), django.core.validators.MaxValueValidator(100)], verbose_name='Progress (%)')),
                ('chapters_completed', models.PositiveIntegerField(default=0, verbose_name='Chapters Completed')),
                ('total_chapters', models.PositiveIntegerField(default=0, verbose_name='Total Chapters')),
                ('exercises_completed', models.PositiveIntegerField(default=0, verbose_name='Exercises Completed')),
                ('total_exercises', models.PositiveIntegerField(default=0, verbose_name='Total Exercises')),
                ('average_score', models.FloatField(blank=True, null=True, validators=[django.core.validators.MinValueValidator(0), django.core.validators.MaxValueValidator(100)], verbose_name='Average Score')),
                ('last_activity_at', models.DateTimeField(blank=True, null=True, verbose_name='Last Activity')),
                ('course', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='progress_items', to='progress.course', verbose_name='Course')),
                ('progress_record', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='course_items', to='progress.progressrecord', verbose_name='Progress Record')),
            ],
            options={
                'verbose_name': 'Course Progress',
                'verbose_name_plural': 'Course Progress',
                'ordering': ['started_at'],
                'unique_together': {('progress_record', 'course')},
            },
        ),
        migrations.CreateModel(
            name='ValidationHistoryEntry',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('created_at', models.DateTimeField(blank=True, db_index=True, editable=False, help_text='When this record was created', verbose_name='Created At')),
                ('updated_at', models.DateTimeField(blank=True, db_index=True, editable=False, help_text='When this record was last updated', verbose_name='Updated At')),
                ('created_by_id', models.CharField(blank=True, db_index=True, help_text='ID of the caller who created this record', max_length=50, null=True, verbose_name='Created By ID')),
                ('updated_by_id', models.CharField(blank=True, db_index=True, help_text='ID of the caller who last updated this record', max_length=50, null=True, verbose_name='Updated By ID')),
                ('change_reason', models.CharField(blank=True, help_text='Explanation for why this change was made', max_length=255, null=True, verbose_name='Change Reason')),
                ('validator_id', models.CharField(db_index=True, max_length=50, verbose_name='Validator ID')),
                ('decision', models.CharField(choices=[('approve', 'Approve'), ('reject', 'Reject'), ('conditional', 'Conditional')], max_length=20, verbose_name='Decision')),
                ('resulting_status', models.CharField(choices=[('not_started', 'Not Started'), ('pending_validation', 'Pending Validation'), ('validated', 'Validated'), ('conditional', 'Conditional'), ('failed', 'Failed')], max_length=30, verbose_name='Resulting Status')),
                ('target_semester', models.PositiveSmallIntegerField(blank=True, null=True, verbose_name='Target Semester')),
                ('reason', models.TextField(blank=True, verbose_name='Reason')),
                ('notes', models.TextField(blank=True, verbose_name='Notes')),
                ('decided_at', models.DateTimeField(db_index=True, verbose_name='Decided At')),
                ('progress_record', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='validation_history', to='progress.progressrecord', verbose_name='Progress Record')),
            ],
            options={
                'verbose_name': 'Validation History Entry',
                'verbose_name_plural': 'Validation History',
                'ordering': ['decided_at'],
            },
        ),
    ]
