"""
Driver duty status and its external representations.

Each status has:
- a wire code used by the backend activity records (ONDUTY, OFFDUTY, ...)
- a grid row (vertical rank) used to lay out the 24-hour log graph
- a human-readable label

Grid rows, bottom to top: 1=Off Duty, 2=Sleeper, 3=Driving, 4=On Duty.
"""

import logging
from enum import Enum

logger = logging.getLogger(__name__)


class DutyStatus(Enum):
    """Driver duty status as defined by FMCSA."""
    OFF_DUTY = "off_duty"
    SLEEPER_BERTH = "sleeper_berth"
    DRIVING = "driving"
    ON_DUTY_NOT_DRIVING = "on_duty_not_driving"

    @property
    def wire_code(self) -> str:
        return WIRE_CODES[self]

    @property
    def rank(self) -> int:
        return GRID_ROWS[self]

    @property
    def label(self) -> str:
        return DUTY_STATUS_DISPLAY[self]

    @property
    def is_on_duty(self) -> bool:
        return self in (DutyStatus.DRIVING, DutyStatus.ON_DUTY_NOT_DRIVING)


WIRE_CODES = {
    DutyStatus.ON_DUTY_NOT_DRIVING: 'ONDUTY',
    DutyStatus.OFF_DUTY: 'OFFDUTY',
    DutyStatus.DRIVING: 'DRIVING',
    DutyStatus.SLEEPER_BERTH: 'SLEEPER',
}

STATUS_BY_WIRE_CODE = {code: status for status, code in WIRE_CODES.items()}

GRID_ROWS = {
    DutyStatus.OFF_DUTY: 1,
    DutyStatus.SLEEPER_BERTH: 2,
    DutyStatus.DRIVING: 3,
    DutyStatus.ON_DUTY_NOT_DRIVING: 4,
}

DUTY_STATUS_DISPLAY = {
    DutyStatus.OFF_DUTY: 'Off Duty',
    DutyStatus.SLEEPER_BERTH: 'Sleeper Berth',
    DutyStatus.DRIVING: 'Driving',
    DutyStatus.ON_DUTY_NOT_DRIVING: 'On Duty (Not Driving)',
}

DUTY_STATUS_SHORT = {
    DutyStatus.OFF_DUTY: 'OFF',
    DutyStatus.SLEEPER_BERTH: 'SB',
    DutyStatus.DRIVING: 'D',
    DutyStatus.ON_DUTY_NOT_DRIVING: 'ON',
}


def to_wire(status: DutyStatus) -> str:
    """Encode a duty status as its backend wire code."""
    return WIRE_CODES[status]


def from_wire(code: str) -> DutyStatus:
    """
    Decode a backend wire code.

    Unknown codes fall back to OFF_DUTY. The fallback is lossy, so it is
    logged rather than applied silently.
    """
    status = STATUS_BY_WIRE_CODE.get((code or '').strip().upper())
    if status is None:
        logger.warning(f"Unknown duty status wire code {code!r}, defaulting to OFFDUTY")
        return DutyStatus.OFF_DUTY
    return status


def is_known_wire_code(code: str) -> bool:
    return (code or '').strip().upper() in STATUS_BY_WIRE_CODE
