"""
Duty Status Graph Builder.

Turns a day's records into the 24-hour step function drawn on a driver's
daily log: an ordered list of segments covering 00:00 to 24:00, each
holding one duty status.

Log Grid Format:
================
- X-axis: hours 0-24
- Y-axis: 4 rows (1=Off Duty, 2=Sleeper Berth, 3=Driving, 4=On Duty)
- Horizontal segments for each status period
- Vertical transitions where the status changes

Time that no record covers is reported as an "unspecified" segment instead
of being filled in: the log has to account for all 24 hours, and a renderer
needs to be able to flag the hole.

An open activity is drawn up to the reference instant. If it has run past
midnight it is cut at 24:00 and the timeline is marked spans_midnight; the
next day's timeline picks it up at 00:00.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

from .duty_status import DUTY_STATUS_DISPLAY, DUTY_STATUS_SHORT, GRID_ROWS, DutyStatus
from .errors import InvalidArgumentError, UnsortedOrOverlappingInputError
from .ledger_service import DailyLog, OpenActivity

logger = logging.getLogger(__name__)

HOURS_PER_DAY = 24.0
UNSPECIFIED = 'unspecified'


@dataclass
class TimelineSegment:
    """
    One horizontal run on the log graph.

    status is None for time no record accounts for.
    """
    start_hour: float    # Decimal hour (e.g., 8.5 = 8:30 AM)
    end_hour: float
    status: Optional[DutyStatus]
    location: str = ""
    remarks: str = ""
    record_id: Optional[str] = None
    is_open: bool = False

    @property
    def is_gap(self) -> bool:
        return self.status is None

    @property
    def rank(self) -> Optional[int]:
        if self.status is None:
            return None
        return GRID_ROWS[self.status]

    @property
    def duration_hours(self) -> float:
        return self.end_hour - self.start_hour

    def to_dict(self) -> Dict:
        return {
            'row': self.rank,
            'start_x': round(self.start_hour, 2),
            'end_x': round(self.end_hour, 2),
            'status': self.status.value if self.status else UNSPECIFIED,
            'status_display': DUTY_STATUS_DISPLAY[self.status] if self.status else 'Unspecified',
            'duration': round(self.duration_hours, 2),
            'start_time': hour_to_time_str(self.start_hour),
            'end_time': hour_to_time_str(self.end_hour),
            'location': self.location,
            'remarks': self.remarks,
            'record_id': self.record_id,
            'is_open': self.is_open,
        }


@dataclass
class Timeline:
    """Complete 24-hour graph model for one day."""
    segments: List[TimelineSegment] = field(default_factory=list)
    spans_midnight: bool = False

    @property
    def rows(self) -> Dict[DutyStatus, int]:
        return dict(GRID_ROWS)

    @property
    def unaccounted_hours(self) -> float:
        return sum(s.duration_hours for s in self.segments if s.is_gap)

    @property
    def transitions(self) -> List[Dict]:
        """Vertical line positions where consecutive segments change row."""
        transitions = []

        for current, next_segment in zip(self.segments, self.segments[1:]):
            if current.is_gap or next_segment.is_gap:
                continue
            if current.end_hour != next_segment.start_hour:
                continue
            if current.rank != next_segment.rank:
                transitions.append({
                    'x': round(current.end_hour, 2),
                    'from_row': current.rank,
                    'to_row': next_segment.rank,
                    'from_status': current.status.value,
                    'to_status': next_segment.status.value
                })

        return transitions

    def to_dict(self) -> Dict:
        return {
            'segments': [s.to_dict() for s in self.segments],
            'transitions': self.transitions,
            'hours': list(range(25)),  # 0 to 24 for grid lines
            'rows': [
                {
                    'id': GRID_ROWS[status],
                    'status': status.value,
                    'label': DUTY_STATUS_DISPLAY[status],
                    'short': DUTY_STATUS_SHORT[status],
                }
                for status in sorted(GRID_ROWS, key=GRID_ROWS.get)
            ],
            'spans_midnight': self.spans_midnight,
            'unaccounted_hours': round(self.unaccounted_hours, 2),
        }


def hour_to_time_str(hour: float) -> str:
    """Convert decimal hour to HH:MM string (24.0 becomes '24:00')."""
    total_minutes = int(round(hour * 60))
    h, m = divmod(total_minutes, 60)
    return f"{h:02d}:{m:02d}"


class DutyStatusGraphBuilder:
    """
    Builds the 24-hour timeline for a daily log.

    Records must already be sorted and must not overlap. They are checked,
    not re-sorted: a bad sequence upstream would otherwise be drawn as a
    plausible but wrong log.
    """

    def build_timeline(
        self,
        daily_log: DailyLog,
        open_activity: Optional[OpenActivity] = None,
        reference_time: Optional[datetime] = None
    ) -> Timeline:
        day_start = daily_log.day_start
        day_end = daily_log.day_end

        timeline = Timeline()
        cursor = 0.0
        previous_end: Optional[datetime] = None

        for record in daily_log.records:
            if previous_end is not None and record.start_time < previous_end:
                raise UnsortedOrOverlappingInputError(
                    f"Record {record.id} starts at {record.start_time.isoformat()}, "
                    f"before the previous record ends at {previous_end.isoformat()}"
                )
            previous_end = record.end_time

            span = self._clip(record.start_time, record.end_time, day_start, day_end)
            if span is None:
                continue

            cursor = self._append(
                timeline,
                cursor,
                TimelineSegment(
                    start_hour=span[0],
                    end_hour=span[1],
                    status=record.status,
                    location=record.location,
                    remarks=record.notes or "",
                    record_id=record.id,
                )
            )

        if open_activity is not None:
            if reference_time is None:
                raise InvalidArgumentError(
                    "reference_time is required to draw an open activity"
                )
            if previous_end is not None and open_activity.start_time < previous_end:
                raise UnsortedOrOverlappingInputError(
                    f"Open activity {open_activity.id} starts before the last "
                    f"record ends at {previous_end.isoformat()}"
                )

            open_end = max(reference_time, open_activity.start_time)
            if open_end > day_end and open_activity.start_time < day_end:
                timeline.spans_midnight = True
                logger.debug(
                    f"Open activity {open_activity.id} crosses midnight; "
                    f"cut at 24:00 on {daily_log.date.isoformat()}"
                )

            span = self._clip(open_activity.start_time, open_end, day_start, day_end)
            if span is not None:
                cursor = self._append(
                    timeline,
                    cursor,
                    TimelineSegment(
                        start_hour=span[0],
                        end_hour=span[1],
                        status=open_activity.status,
                        location=open_activity.location,
                        remarks=open_activity.notes or "",
                        record_id=open_activity.id,
                        is_open=True,
                    )
                )

        if cursor < HOURS_PER_DAY:
            timeline.segments.append(
                TimelineSegment(start_hour=cursor, end_hour=HOURS_PER_DAY, status=None)
            )

        return timeline

    def _append(
        self,
        timeline: Timeline,
        cursor: float,
        segment: TimelineSegment
    ) -> float:
        """Append a segment, reporting any uncovered time before it."""
        if segment.start_hour > cursor:
            timeline.segments.append(
                TimelineSegment(start_hour=cursor, end_hour=segment.start_hour, status=None)
            )
        timeline.segments.append(segment)
        return max(cursor, segment.end_hour)

    def _clip(
        self,
        start: datetime,
        end: datetime,
        day_start: datetime,
        day_end: datetime
    ) -> Optional[tuple]:
        """Hour offsets of [start, end] inside the day, or None if nothing remains."""
        clipped_start = max(start, day_start)
        clipped_end = min(end, day_end)
        if clipped_end <= clipped_start:
            return None

        return (
            (clipped_start - day_start).total_seconds() / 3600,
            (clipped_end - day_start).total_seconds() / 3600,
        )
