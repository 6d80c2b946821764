"""
Duration aggregation.

Sums hours per duty status across a daily log. An open activity can be
folded in against a reference instant, which is how the live "today"
totals are produced without ever creating a placeholder record.

Hours are fractional and never rounded here; rounding is left to whoever
presents them.
"""

import logging
from datetime import datetime
from typing import Dict, Optional

from .duty_status import DutyStatus
from .errors import InvalidArgumentError
from .ledger_service import DailyLog, OpenActivity

logger = logging.getLogger(__name__)


class DurationAggregator:
    """Stateless: aggregate() depends only on its arguments."""

    def aggregate(
        self,
        daily_log: DailyLog,
        open_activity: Optional[OpenActivity] = None,
        reference_time: Optional[datetime] = None
    ) -> Dict[DutyStatus, float]:
        """
        Total hours per duty status.

        Args:
            daily_log: Completed records for the day
            open_activity: Activity still in progress, if any
            reference_time: Instant the open activity is measured up to

        Returns:
            Mapping with an entry for every DutyStatus
        """
        totals = {status: 0.0 for status in DutyStatus}

        for record in daily_log.records:
            totals[record.status] += record.duration_hours

        if open_activity is not None:
            if reference_time is None:
                raise InvalidArgumentError(
                    "reference_time is required when an open activity is aggregated"
                )
            totals[open_activity.status] += open_activity.elapsed_hours(reference_time)

        return totals

    @staticmethod
    def on_duty_hours(totals: Dict[DutyStatus, float]) -> float:
        return totals[DutyStatus.DRIVING] + totals[DutyStatus.ON_DUTY_NOT_DRIVING]

    @staticmethod
    def off_duty_hours(totals: Dict[DutyStatus, float]) -> float:
        return totals[DutyStatus.OFF_DUTY] + totals[DutyStatus.SLEEPER_BERTH]

    @staticmethod
    def to_wire_totals(
        totals: Dict[DutyStatus, float],
        precision: int = 2
    ) -> Dict[str, float]:
        """Rounded totals keyed by status value, plus an overall total."""
        summary = {status.value: round(hours, precision) for status, hours in totals.items()}
        summary['total'] = round(sum(totals.values()), precision)
        return summary
