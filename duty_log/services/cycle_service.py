"""
Cycle hours tracking for the 70-hour/8-day rule.

Hours are committed as trips complete and are clamped to the cycle limit.
They only go down through reset(), which starts a new cycle.
"""

import logging
import math
from dataclasses import dataclass
from typing import Dict

from .errors import InvalidArgumentError

logger = logging.getLogger(__name__)

NEAR_LIMIT_RATIO = 0.8


@dataclass(frozen=True)
class CycleState:
    hours_used: float
    hours_limit: float = 70.0

    @property
    def hours_remaining(self) -> float:
        return max(0.0, self.hours_limit - self.hours_used)

    @property
    def percentage_used(self) -> float:
        if self.hours_limit == 0:
            return 100.0
        return (self.hours_used / self.hours_limit) * 100

    @property
    def near_limit(self) -> bool:
        return self.percentage_used >= NEAR_LIMIT_RATIO * 100

    def to_dict(self) -> Dict:
        return {
            'hours_used': round(self.hours_used, 2),
            'hours_limit': self.hours_limit,
            'hours_remaining': round(self.hours_remaining, 2),
            'percentage_used': round(self.percentage_used, 1),
            'near_limit': self.near_limit,
            'needs_restart': self.hours_used >= self.hours_limit,
        }


class CycleHoursTracker:
    """Running cycle total for one driver."""

    def __init__(self, hours_used: float = 0.0, hours_limit: float = 70.0):
        if not math.isfinite(hours_limit) or hours_limit < 0:
            raise InvalidArgumentError(f"Cycle limit must be a non-negative number: {hours_limit}")
        if not math.isfinite(hours_used) or hours_used < 0 or hours_used > hours_limit:
            raise InvalidArgumentError(
                f"Cycle hours used ({hours_used}) must be between 0 and {hours_limit}"
            )
        self._state = CycleState(hours_used=float(hours_used), hours_limit=float(hours_limit))

    @property
    def state(self) -> CycleState:
        return self._state

    @property
    def hours_used(self) -> float:
        return self._state.hours_used

    @property
    def hours_limit(self) -> float:
        return self._state.hours_limit

    def commit(self, hours_delta: float) -> CycleState:
        """
        Add hours to the cycle, clamped to the limit.

        Raises:
            InvalidArgumentError: hours_delta is negative or not a finite number
        """
        if not math.isfinite(hours_delta) or hours_delta < 0:
            raise InvalidArgumentError(
                f"Cycle hours delta must be a non-negative number: {hours_delta}"
            )

        hours_used = min(self._state.hours_used + hours_delta, self._state.hours_limit)
        if hours_used < self._state.hours_used + hours_delta:
            logger.warning(
                f"Cycle hours clamped at {self._state.hours_limit}h "
                f"(requested {self._state.hours_used + hours_delta:.2f}h)"
            )

        self._state = CycleState(hours_used=hours_used, hours_limit=self._state.hours_limit)
        logger.info(f"Committed {hours_delta:.2f}h, cycle now {hours_used:.2f}h")
        return self._state

    def reset(self) -> CycleState:
        """Start a new cycle."""
        self._state = CycleState(hours_used=0.0, hours_limit=self._state.hours_limit)
        logger.info("Cycle hours reset")
        return self._state
