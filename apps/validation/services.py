# validation/services.py

"""
Validation Criteria Engine

- Single and batch evaluation of students against their criteria
- Bulk application of validation decisions
- Auto-validation of pending students whose cohort allows it
- Validation insights per status, semester and month
"""

from django.db import transaction
from django.db.models import Count, Q, Avg
from django.db.models.functions import TruncMonth
from django.utils import timezone
from datetime import timedelta
import logging

from common.conf import get_setting
from common.context import get_caller_id
from common.exceptions import ValidationApplyFailure, describe_error
from common.utils import chunked, pause_between_chunks, resolve_instance, round_half_up
from progress.models import ProgressRecord, ValidationHistoryEntry
from progress.services import ProgressTrackingService
from semesters.models import SemesterCohort, FINAL_SEMESTER
from .criteria import ValidationCriteria
from .scoring import ValidationResult, evaluate_metrics, RECOMMEND_APPROVE

logger = logging.getLogger(__name__)
audit_logger = logging.getLogger('academic_audit')

DECISION_STATUS = {
    ValidationHistoryEntry.DECISION_APPROVE: ProgressRecord.STATUS_VALIDATED,
    ValidationHistoryEntry.DECISION_REJECT: ProgressRecord.STATUS_FAILED,
    ValidationHistoryEntry.DECISION_CONDITIONAL: ProgressRecord.STATUS_CONDITIONAL,
}

SUMMARY_KEYS = {
    ValidationHistoryEntry.DECISION_APPROVE: 'approved',
    ValidationHistoryEntry.DECISION_REJECT: 'rejected',
    ValidationHistoryEntry.DECISION_CONDITIONAL: 'conditional',
}

# Statuses a decision may be applied to
DECIDABLE_STATUSES = (
    ProgressRecord.STATUS_PENDING,
    ProgressRecord.STATUS_CONDITIONAL,
)


def record_metrics(record):
    """Metrics of a progress record as seen by the evaluator"""
    return {
        'average_grade': record.average_grade,
        'attendance_rate': record.attendance_rate,
        'overall_progress': record.overall_progress,
        'completed_courses': record.completed_course_count,
    }


# =============================================================================
# VALIDATION CRITERIA ENGINE
# =============================================================================

class ValidationCriteriaEngine:
    """Evaluate students and apply validation decisions"""

    # -------------------------------------------------------------------------
    # EVALUATION
    # -------------------------------------------------------------------------

    @staticmethod
    def evaluate(student_id, criteria_override=None):
        """
        Evaluate one student against the effective criteria of the active
        progress record, with ``criteria_override`` applied on top.

        Returns:
            ValidationResult

        Raises:
            NotFound: no active progress record
            InvalidCriteria: malformed override
        """
        record = ProgressTrackingService.get_active_record(student_id)
        criteria = record.get_effective_criteria().merged(criteria_override)

        result = evaluate_metrics(
            student_id=record.student_id,
            current_semester=record.current_semester,
            metrics=record_metrics(record),
            criteria=criteria,
        )

        logger.debug(
            f"Evaluated {record.student_id}: score {result.overall_score}, "
            f"{result.recommendation}"
        )
        return result

    @staticmethod
    def evaluate_batch(student_ids, criteria_override=None):
        """
        Evaluate students in chunks of BATCH_SIZE with a pause in between.

        A student whose evaluation fails gets a degraded result (score 0,
        ``reject``) carrying the error message.

        Returns:
            list: ValidationResult per student, in input order
        """
        logger.info(f"Batch evaluating {len(student_ids)} students")

        results = []
        chunks = list(chunked(student_ids))

        for index, chunk in enumerate(chunks):
            for student_id in chunk:
                try:
                    results.append(ValidationCriteriaEngine.evaluate(student_id, criteria_override))
                except Exception as e:
                    logger.error(f"Failed to evaluate student {student_id}: {e}")
                    results.append(ValidationResult.degraded(student_id, e))

            if index < len(chunks) - 1:
                pause_between_chunks()

        return results

    # -------------------------------------------------------------------------
    # DECISIONS
    # -------------------------------------------------------------------------

    @staticmethod
    @transaction.atomic
    def apply_decision(record, decision, validator_id, reason='', notes=''):
        """
        Apply one validation decision to a progress record.

        A history entry is always inserted; the status is then written with
        a single UPDATE, so concurrent decisions keep all their history and
        the last status write wins.

        Returns:
            ValidationHistoryEntry

        Raises:
            ValidationApplyFailure: unknown decision or a status that cannot
                take a decision
        """
        if decision not in DECISION_STATUS:
            raise ValidationApplyFailure(f"Unknown validation decision: {decision!r}")

        if not record.is_active:
            raise ValidationApplyFailure(
                f"Progress record {record.pk} has been superseded and cannot be validated"
            )

        if record.validation_status not in DECIDABLE_STATUSES:
            raise ValidationApplyFailure(
                f"Cannot apply '{decision}' to a record in status "
                f"'{record.validation_status}'; only pending or conditional records can be decided"
            )

        status = DECISION_STATUS[decision]
        now = timezone.now()

        target = None
        if status in ProgressRecord.PROGRESSING_STATUSES and record.current_semester < FINAL_SEMESTER:
            target = record.current_semester + 1

        entry = ValidationHistoryEntry.objects.create(
            progress_record=record,
            validator_id=str(validator_id),
            decision=decision,
            resulting_status=status,
            target_semester=target,
            reason=reason or '',
            notes=notes or '',
            decided_at=now,
        )

        changes = {
            'validation_status': status,
            'target_semester': target,
            'updated_at': now,
            'updated_by_id': get_caller_id(default=str(validator_id)),
        }
        if status == ProgressRecord.STATUS_VALIDATED:
            changes['semester_validated_at'] = now

        ProgressRecord.objects.filter(pk=record.pk).update(**changes)

        audit_logger.info(
            f"VALIDATION | student={record.student_id} | semester={record.current_semester} | "
            f"decision={decision} | status={status} | target={target} | validator={validator_id}"
        )

        return entry

    @staticmethod
    def perform_bulk_validation(student_ids, validator_id, decision, reason=None,
                                notes=None, criteria_override=None):
        """
        Evaluate students, then apply one decision to each of them.

        Every student is attempted; failures are reported beside the
        successes.

        Args:
            student_ids (list): student ids
            validator_id (str): id of the deciding caller
            decision (str): 'approve', 'reject' or 'conditional'
            reason (str): decision reason, defaults to the evaluation reason
            notes (str): free text
            criteria_override (dict): criteria fields to override

        Returns:
            dict: successful, failed, summary

        Raises:
            ValueError: unknown decision
            InvalidCriteria: malformed override
        """
        if decision not in DECISION_STATUS:
            raise ValueError(
                f"Decision must be one of {', '.join(DECISION_STATUS)}, got {decision!r}"
            )

        # Reject a malformed override before touching any student
        ValidationCriteria.defaults().merged(criteria_override)

        logger.info(f"Processing bulk validation for {len(student_ids)} students ({decision})")

        results = {
            'successful': [],
            'failed': [],
            'summary': {
                'total': len(student_ids),
                'approved': 0,
                'rejected': 0,
                'conditional': 0,
                'errors': 0,
            }
        }

        evaluations = ValidationCriteriaEngine.evaluate_batch(student_ids, criteria_override)

        for student_id, evaluation in zip(student_ids, evaluations):
            try:
                with transaction.atomic():
                    record = ProgressTrackingService.get_active_record(student_id)
                    ValidationCriteriaEngine.apply_decision(
                        record,
                        decision,
                        validator_id,
                        reason=reason or evaluation.reason,
                        notes=notes,
                    )

                results['successful'].append(evaluation.to_dict())
                results['summary'][SUMMARY_KEYS[decision]] += 1

            except Exception as e:
                logger.error(f"Failed to apply '{decision}' to student {student_id}: {e}")
                results['failed'].append(describe_error(student_id, e))
                results['summary']['errors'] += 1

        logger.info(
            f"Bulk validation completed: {len(results['successful'])} successful, "
            f"{len(results['failed'])} failed"
        )

        return results

    # -------------------------------------------------------------------------
    # AUTO-VALIDATION
    # -------------------------------------------------------------------------

    @staticmethod
    def get_auto_validation_candidates():
        """
        Pending students whose effective criteria enable auto-validation and
        whose evaluation independently recommends approval.

        Returns:
            dict:
                - candidates: ValidationResult per candidate
                - failed: error entry per student that could not be evaluated
        """
        pending = ProgressRecord.objects.filter(
            is_active=True,
            validation_status=ProgressRecord.STATUS_PENDING
        ).filter(
            Q(override_auto_validation=True) |
            Q(override_auto_validation__isnull=True, cohort__auto_validation=True)
        ).select_related('cohort')

        candidates = []
        failed = []

        for record in pending:
            try:
                result = ValidationCriteriaEngine.evaluate(record.student_id)
            except Exception as e:
                logger.error(f"Could not evaluate {record.student_id} for auto-validation: {e}")
                failed.append(describe_error(record.student_id, e))
                continue

            if result.can_progress and result.recommendation == RECOMMEND_APPROVE:
                candidates.append(result)

        logger.info(
            f"Found {len(candidates)} students eligible for auto-validation "
            f"({len(failed)} could not be evaluated)"
        )
        return {'candidates': candidates, 'failed': failed}

    @staticmethod
    def process_auto_validations():
        """
        Approve exactly the auto-validation candidates as the system validator.
        Students whose evaluation failed are reported in ``failed`` and
        counted as errors.
        """
        found = ValidationCriteriaEngine.get_auto_validation_candidates()
        candidates = found['candidates']

        if candidates:
            results = ValidationCriteriaEngine.perform_bulk_validation(
                [c.student_id for c in candidates],
                get_setting('SYSTEM_VALIDATOR_ID'),
                ValidationHistoryEntry.DECISION_APPROVE,
                reason='Auto-validated based on criteria',
            )
        else:
            results = {
                'successful': [],
                'failed': [],
                'summary': {'total': 0, 'approved': 0, 'rejected': 0, 'conditional': 0, 'errors': 0},
            }

        results['failed'].extend(found['failed'])
        results['summary']['total'] += len(found['failed'])
        results['summary']['errors'] += len(found['failed'])
        return results

    # -------------------------------------------------------------------------
    # INSIGHTS
    # -------------------------------------------------------------------------

    @staticmethod
    def get_validation_insights(cohort_id=None):
        """
        Validation statistics, optionally for one cohort.

        Returns:
            dict: overview (status breakdown), semester_breakdown, trends,
                generated_at
        """
        records = ProgressRecord.objects.all()
        history = ValidationHistoryEntry.objects.all()

        if cohort_id:
            cohort = resolve_instance(SemesterCohort, cohort_id, label="Cohort")
            records = records.filter(cohort=cohort)
            history = history.filter(progress_record__cohort=cohort)

        # Status breakdown
        status_rows = records.order_by().values('validation_status').annotate(
            count=Count('id'),
            avg_grade=Avg('average_grade'),
            avg_attendance=Avg('attendance_rate'),
            avg_progress=Avg('overall_progress'),
        )

        status_breakdown = {}
        total = 0
        for row in status_rows:
            total += row['count']
            status_breakdown[row['validation_status']] = {
                'count': row['count'],
                'avg_grade': round_half_up(row['avg_grade'] or 0),
                'avg_attendance': round_half_up(row['avg_attendance'] or 0),
                'avg_progress': round_half_up(row['avg_progress'] or 0),
            }

        # Semester breakdown
        semester_rows = records.order_by().values('current_semester').annotate(
            total=Count('id'),
            pending=Count('id', filter=Q(validation_status=ProgressRecord.STATUS_PENDING)),
            validated=Count('id', filter=Q(validation_status=ProgressRecord.STATUS_VALIDATED)),
            failed=Count('id', filter=Q(validation_status=ProgressRecord.STATUS_FAILED)),
            avg_grade=Avg('average_grade'),
            avg_attendance=Avg('attendance_rate'),
        ).order_by('current_semester')

        semester_breakdown = [
            {
                'semester': row['current_semester'],
                'total_students': row['total'],
                'pending_validation': row['pending'],
                'validated': row['validated'],
                'failed': row['failed'],
                'avg_grade': round_half_up(row['avg_grade'] or 0),
                'avg_attendance': round_half_up(row['avg_attendance'] or 0),
                'validation_rate': round_half_up(row['validated'] / row['total'] * 100),
            }
            for row in semester_rows
        ]

        # Monthly decision trend
        since = timezone.now() - timedelta(days=get_setting('INSIGHT_TREND_MONTHS') * 30)

        trend_rows = history.filter(
            decided_at__gte=since
        ).annotate(
            month=TruncMonth('decided_at')
        ).order_by().values('month', 'resulting_status').annotate(
            count=Count('id')
        ).order_by('month', 'resulting_status')

        trends = [
            {
                'year': row['month'].year,
                'month': row['month'].month,
                'status': row['resulting_status'],
                'count': row['count'],
            }
            for row in trend_rows
        ]

        return {
            'overview': {
                'total_students': total,
                'status_breakdown': status_breakdown,
            },
            'semester_breakdown': semester_breakdown,
            'trends': trends,
            'generated_at': timezone.now(),
        }
