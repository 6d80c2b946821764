"""
FMCSA Hours of Service (HOS) Compliance Evaluation.

Checks a day's aggregated duty hours against the HOS limits for
property-carrying drivers.

FMCSA HOS Rules Evaluated:
==========================
1. 11-Hour Driving Limit: Max 11 hours driving per day
2. 14-Hour On-Duty Window: Max 14 hours driving + on duty (not driving)
3. 70-Hour/8-Day Rule: Committed cycle hours plus today's on-duty hours
   must stay within 70

Limits are inclusive: exactly 11.0 hours of driving is compliant. Totals
come from floating-point sums, so they are compared with a small epsilon
to keep the verdict from flapping at the boundary.

References:
- https://www.fmcsa.dot.gov/regulations/hours-of-service
"""

import logging
from dataclasses import asdict, dataclass, field, fields
from typing import Dict, List, Mapping, Optional

from .duty_status import DutyStatus
from .errors import InvalidArgumentError

logger = logging.getLogger(__name__)

RULE_DRIVING_LIMIT = 'driving-limit'
RULE_ON_DUTY_LIMIT = 'on-duty-limit'
RULE_CYCLE_LIMIT = 'cycle-limit'

WARNING_DRIVING_APPROACHING = 'driving-limit-approaching'
WARNING_CYCLE_APPROACHING = 'cycle-limit-approaching'


@dataclass
class HOSConfig:
    """
    Configuration for HOS rules.
    All values can be adjusted for different regulations or testing.
    """
    # Cycle limits
    cycle_days: int = 8
    cycle_hours: float = 70.0

    # Daily limits
    max_driving_hours: float = 11.0
    max_on_duty_hours: float = 14.0

    # Advisory thresholds
    driving_warning_hours: float = 10.0
    cycle_warning_ratio: float = 0.8  # 80% of the cycle

    # Tolerance when comparing a float total to a limit
    comparison_epsilon: float = 1e-9

    @classmethod
    def from_mapping(cls, overrides: Optional[Mapping] = None) -> 'HOSConfig':
        """Build a config from defaults plus overrides (e.g. settings.HOS_RULES)."""
        overrides = dict(overrides or {})
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(overrides) - known)
        if unknown:
            raise InvalidArgumentError(f"Unknown HOS rule settings: {', '.join(unknown)}")

        config = cls(**overrides)
        for name in known:
            if getattr(config, name) < 0:
                raise InvalidArgumentError(f"HOS rule {name} must not be negative")
        return config

    def to_dict(self) -> Dict:
        return asdict(self)


@dataclass(frozen=True)
class Violation:
    """A breached HOS rule."""
    rule: str
    limit: float
    actual: float

    @property
    def excess(self) -> float:
        return self.actual - self.limit

    def to_dict(self) -> Dict:
        return {
            'rule': self.rule,
            'limit': self.limit,
            'actual': round(self.actual, 2),
            'message': (
                f"{self.rule}: {self.actual:.2f}h exceeds {self.limit:g}h limit"
            ),
        }


@dataclass(frozen=True)
class ComplianceWarning:
    """A limit that is close but not yet exceeded."""
    rule: str
    threshold: float
    limit: float
    actual: float

    def to_dict(self) -> Dict:
        return {
            'rule': self.rule,
            'threshold': round(self.threshold, 2),
            'limit': self.limit,
            'actual': round(self.actual, 2),
            'message': f"Approaching {self.limit:g}h limit ({self.actual:.2f}/{self.limit:g} hrs)",
        }


@dataclass
class ComplianceResult:
    compliant: bool
    violations: List[Violation] = field(default_factory=list)
    warnings: List[ComplianceWarning] = field(default_factory=list)

    def to_dict(self) -> Dict:
        return {
            'compliant': self.compliant,
            'violations': [v.to_dict() for v in self.violations],
            'warnings': [w.to_dict() for w in self.warnings],
        }


class ComplianceEvaluator:
    """
    Applies the HOS rule set to aggregated duty hours.

    Violations are returned as data; nothing here raises for a breached
    rule, and the input mapping is never modified.
    """

    def __init__(self, config: Optional[HOSConfig] = None):
        self.config = config or HOSConfig()

    def evaluate(
        self,
        aggregated: Mapping[DutyStatus, float],
        cycle_hours_used: Optional[float] = None
    ) -> ComplianceResult:
        """
        Evaluate one day's totals.

        Args:
            aggregated: Hours per duty status, as returned by DurationAggregator
            cycle_hours_used: Hours already committed in the current cycle; the
                cycle rule is skipped when omitted

        Returns:
            ComplianceResult with violations in rule order
        """
        driving = aggregated.get(DutyStatus.DRIVING, 0.0)
        on_duty = driving + aggregated.get(DutyStatus.ON_DUTY_NOT_DRIVING, 0.0)

        checks = [
            (RULE_DRIVING_LIMIT, self.config.max_driving_hours, driving),
            (RULE_ON_DUTY_LIMIT, self.config.max_on_duty_hours, on_duty),
        ]
        cycle_total = None
        if cycle_hours_used is not None:
            cycle_total = cycle_hours_used + on_duty
            checks.append((RULE_CYCLE_LIMIT, self.config.cycle_hours, cycle_total))

        violations = [
            Violation(rule=rule, limit=limit, actual=actual)
            for rule, limit, actual in checks
            if self._exceeds(actual, limit)
        ]

        warnings = []
        if not self._exceeds(driving, self.config.max_driving_hours) and \
                self._reaches(driving, self.config.driving_warning_hours):
            warnings.append(ComplianceWarning(
                rule=WARNING_DRIVING_APPROACHING,
                threshold=self.config.driving_warning_hours,
                limit=self.config.max_driving_hours,
                actual=driving
            ))

        if cycle_total is not None:
            cycle_threshold = self.config.cycle_hours * self.config.cycle_warning_ratio
            if not self._exceeds(cycle_total, self.config.cycle_hours) and \
                    self._reaches(cycle_total, cycle_threshold):
                warnings.append(ComplianceWarning(
                    rule=WARNING_CYCLE_APPROACHING,
                    threshold=cycle_threshold,
                    limit=self.config.cycle_hours,
                    actual=cycle_total
                ))

        if violations:
            logger.info(
                f"HOS violations: {', '.join(v.rule for v in violations)}"
            )

        return ComplianceResult(
            compliant=not violations,
            violations=violations,
            warnings=warnings
        )

    def _exceeds(self, actual: float, limit: float) -> bool:
        return actual > limit + self.config.comparison_epsilon

    def _reaches(self, actual: float, threshold: float) -> bool:
        return actual >= threshold - self.config.comparison_epsilon
