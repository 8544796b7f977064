# validation/criteria.py
"""
Validation criteria value types.

Criteria are immutable. A cohort supplies the defaults, a progress record
may override individual fields, and a caller may pass a one-off override.
In every case an override wins only for the fields it actually carries.
"""

from dataclasses import dataclass, field, replace
import math
import operator
import logging

from common.conf import get_setting
from common.exceptions import InvalidCriteria

logger = logging.getLogger(__name__)


# =============================================================================
# CUSTOM RULES
# =============================================================================

RULE_FIELDS = (
    'average_grade',
    'attendance_rate',
    'overall_progress',
    'completed_courses',
)

RULE_OPERATORS = {
    'gte': operator.ge,
    'gt': operator.gt,
    'lte': operator.le,
    'lt': operator.lt,
    'eq': operator.eq,
    '>=': operator.ge,
    '>': operator.gt,
    '<=': operator.le,
    '<': operator.lt,
    '==': operator.eq,
}


@dataclass(frozen=True)
class CustomRule:
    """
    Threshold rule on one progress metric.

    A failing ``required`` rule blocks progression; an optional one is only
    reported.
    """

    rule_id: str
    field: str
    operator: str
    value: float
    description: str = ''
    required: bool = True

    @classmethod
    def from_mapping(cls, data):
        if isinstance(data, CustomRule):
            return data
        if not isinstance(data, dict):
            raise InvalidCriteria(f"Custom rule must be a mapping, got {type(data).__name__}")

        rule_field = data.get('field')
        if rule_field not in RULE_FIELDS:
            raise InvalidCriteria(
                f"Unknown custom rule field {rule_field!r}; expected one of {', '.join(RULE_FIELDS)}"
            )

        op = data.get('operator', 'gte')
        if op not in RULE_OPERATORS:
            raise InvalidCriteria(f"Unknown custom rule operator {op!r}")

        value = _as_number(data.get('value'), f"custom rule {rule_field}")

        return cls(
            rule_id=str(data.get('rule_id') or data.get('ruleId') or f"{rule_field}_{op}_{value:g}"),
            field=rule_field,
            operator=op,
            value=value,
            description=str(data.get('description', '')),
            required=bool(data.get('required', True)),
        )

    def evaluate(self, metrics):
        """
        Args:
            metrics (dict): metric name -> number (None counts as 0)

        Returns:
            bool: whether the rule passes
        """
        actual = metrics.get(self.field)
        if actual is None:
            actual = 0
        return RULE_OPERATORS[self.operator](actual, self.value)

    def to_dict(self):
        return {
            'rule_id': self.rule_id,
            'field': self.field,
            'operator': self.operator,
            'value': self.value,
            'description': self.description,
            'required': self.required,
        }


# =============================================================================
# VALIDATION CRITERIA
# =============================================================================

# Accepted keys, including the camelCase spellings used by API clients
FIELD_ALIASES = {
    'min_grade': 'min_grade',
    'minGrade': 'min_grade',
    'min_attendance': 'min_attendance',
    'minAttendance': 'min_attendance',
    'courses_required': 'courses_required',
    'coursesRequired': 'courses_required',
    'auto_validation': 'auto_validation',
    'autoValidation': 'auto_validation',
    'custom_rules': 'custom_rules',
    'customRules': 'custom_rules',
}


@dataclass(frozen=True)
class ValidationCriteria:
    """Thresholds a student must meet to progress"""

    min_grade: float = 60.0
    min_attendance: float = 70.0
    courses_required: int = 1
    auto_validation: bool = False
    custom_rules: tuple = field(default_factory=tuple)

    @classmethod
    def defaults(cls):
        """Engine-wide defaults from settings"""
        return cls(
            min_grade=float(get_setting('DEFAULT_MIN_GRADE')),
            min_attendance=float(get_setting('DEFAULT_MIN_ATTENDANCE')),
            courses_required=int(get_setting('DEFAULT_COURSES_REQUIRED')),
        )

    @classmethod
    def from_mapping(cls, data, base=None):
        """
        Build criteria from a mapping, starting from ``base`` (or the defaults).

        Raises:
            InvalidCriteria: unknown keys, non-numeric or out-of-range values
        """
        base = base or cls.defaults()
        return base.merged(data)

    def merged(self, override):
        """
        New criteria where every field present (and not None) in ``override``
        replaces the current value.
        """
        if not override:
            return self

        if isinstance(override, ValidationCriteria):
            override = override.to_dict()

        if not isinstance(override, dict):
            raise InvalidCriteria(
                f"Criteria override must be a mapping, got {type(override).__name__}"
            )

        unknown = [key for key in override if key not in FIELD_ALIASES]
        if unknown:
            raise InvalidCriteria(f"Unknown criteria field(s): {', '.join(sorted(map(str, unknown)))}")

        changes = {}
        for key, value in override.items():
            if value is None:
                continue
            name = FIELD_ALIASES[key]
            changes[name] = _clean_field(name, value)

        if not changes:
            return self

        return replace(self, **changes)

    def to_dict(self):
        return {
            'min_grade': self.min_grade,
            'min_attendance': self.min_attendance,
            'courses_required': self.courses_required,
            'auto_validation': self.auto_validation,
            'custom_rules': [rule.to_dict() for rule in self.custom_rules],
        }


# =============================================================================
# FIELD CLEANING
# =============================================================================

def _as_number(value, label):
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidCriteria(f"{label} must be numeric, got {value!r}")
    if math.isnan(value) or math.isinf(value):
        raise InvalidCriteria(f"{label} must be a finite number, got {value!r}")
    return float(value)


def _clean_field(name, value):
    if name in ('min_grade', 'min_attendance'):
        number = _as_number(value, name)
        if not 0 <= number <= 100:
            raise InvalidCriteria(f"{name} must be between 0 and 100, got {value!r}")
        return number

    if name == 'courses_required':
        number = _as_number(value, name)
        if number < 0 or number != int(number):
            raise InvalidCriteria(f"courses_required must be a non-negative integer, got {value!r}")
        return int(number)

    if name == 'auto_validation':
        if not isinstance(value, bool):
            raise InvalidCriteria(f"auto_validation must be a boolean, got {value!r}")
        return value

    if name == 'custom_rules':
        if not isinstance(value, (list, tuple)):
            raise InvalidCriteria("custom_rules must be a list")
        return tuple(CustomRule.from_mapping(rule) for rule in value)

    raise InvalidCriteria(f"Unknown criteria field: {name}")
