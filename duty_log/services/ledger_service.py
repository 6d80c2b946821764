"""
Activity Ledger Service.

Owns a driver's open activity and the ordered list of activities completed
today. The ledger is a two-state machine:

    Idle  --start()-->  Tracking
    Tracking  --stop()-->  Idle

There is never more than one open activity. Starting while tracking and
stopping while idle are errors; the ledger never stops and restarts
implicitly. Completed records never overlap: an activity cannot start
before the previous one ended.

Persistence is not the ledger's job. Listeners registered with
add_listener() are told about each transition after it has happened, and a
failing listener cannot undo it: the in-memory ledger is authoritative.
"""

import logging
import uuid
from dataclasses import dataclass, field, replace
from datetime import date, datetime, time, timedelta
from datetime import tzinfo as TZInfo
from typing import Callable, Iterable, List, Optional, Tuple

from .duty_status import DutyStatus
from .errors import (
    AlreadyTrackingError,
    InvalidArgumentError,
    InvalidTimeRangeError,
    NotTrackingError,
)

logger = logging.getLogger(__name__)

EVENT_STARTED = 'started'
EVENT_STOPPED = 'stopped'


def _hours_between(start: datetime, end: datetime) -> float:
    return (end - start).total_seconds() / 3600


@dataclass(frozen=True)
class ActivityRecord:
    """
    A completed duty status period.

    Odometer and engine hours are supplied by the vehicle; they are carried
    through untouched and never computed here.
    """
    id: str
    status: DutyStatus
    start_time: datetime
    end_time: datetime
    location: str = ""
    notes: Optional[str] = None
    odometer: Optional[float] = None
    engine_hours: Optional[float] = None

    def __post_init__(self):
        if self.end_time < self.start_time:
            raise InvalidTimeRangeError(
                f"Activity {self.id} ends ({self.end_time.isoformat()}) "
                f"before it starts ({self.start_time.isoformat()})"
            )

    @property
    def duration_hours(self) -> float:
        return _hours_between(self.start_time, self.end_time)


@dataclass(frozen=True)
class OpenActivity:
    """An activity that has started but not yet been stopped."""
    id: str
    status: DutyStatus
    start_time: datetime
    location: str = ""
    notes: Optional[str] = None

    def elapsed_hours(self, reference_time: datetime) -> float:
        """Hours since the activity started, never negative."""
        return max(0.0, _hours_between(self.start_time, reference_time))


@dataclass
class DailyLog:
    """
    Records of one driver for one calendar day, sorted by start time.

    tzinfo anchors the day's midnight; leave it None when working with
    naive datetimes.
    """
    date: date
    driver_id: str
    records: List[ActivityRecord] = field(default_factory=list)
    tzinfo: Optional[TZInfo] = None

    @property
    def day_start(self) -> datetime:
        return datetime.combine(self.date, time.min, tzinfo=self.tzinfo)

    @property
    def day_end(self) -> datetime:
        return self.day_start + timedelta(days=1)

    @property
    def total_miles(self) -> float:
        """Distance covered according to the first and last odometer readings."""
        readings = [r.odometer for r in self.records if r.odometer is not None]
        if len(readings) < 2:
            return 0.0
        return max(0.0, readings[-1] - readings[0])


Listener = Callable[[str, object], None]


class ActivityLedger:
    """
    Duty status ledger for a single driver session.

    One instance per driver; whoever owns it must serialize calls to
    start() and stop().
    """

    def __init__(
        self,
        driver_id: str,
        id_factory: Optional[Callable[[], str]] = None
    ):
        self.driver_id = driver_id
        self._id_factory = id_factory or (lambda: str(uuid.uuid4()))
        self._open: Optional[OpenActivity] = None
        self._completed: List[ActivityRecord] = []
        self._listeners: List[Listener] = []
        # Latest end of any completed record; prune() does not move it back
        self._last_end: Optional[datetime] = None

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def is_tracking(self) -> bool:
        return self._open is not None

    @property
    def open_activity(self) -> Optional[OpenActivity]:
        return self._open

    @property
    def completed(self) -> Tuple[ActivityRecord, ...]:
        """Completed activities in chronological order."""
        return tuple(self._completed)

    def recent_activities(self) -> List[ActivityRecord]:
        """Completed activities, newest first."""
        return list(reversed(self._completed))

    def elapsed_hours(self, reference_time: datetime) -> float:
        if self._open is None:
            return 0.0
        return self._open.elapsed_hours(reference_time)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def start(
        self,
        status: DutyStatus,
        at_time: datetime,
        location: str = "",
        notes: Optional[str] = None
    ) -> OpenActivity:
        """
        Open a new activity.

        Raises:
            AlreadyTrackingError: an activity is already open
            InvalidTimeRangeError: at_time is before the last completed activity ended
            InvalidArgumentError: status is not a DutyStatus
        """
        if not isinstance(status, DutyStatus):
            raise InvalidArgumentError(f"Invalid duty status: {status!r}")

        if self._open is not None:
            raise AlreadyTrackingError(
                f"Driver {self.driver_id} is already tracking "
                f"{self._open.status.value} since {self._open.start_time.isoformat()}"
            )

        if self._last_end is not None and at_time < self._last_end:
            raise InvalidTimeRangeError(
                f"Start time {at_time.isoformat()} is before the previous activity "
                f"ended at {self._last_end.isoformat()}"
            )

        activity = OpenActivity(
            id=self._id_factory(),
            status=status,
            start_time=at_time,
            location=location or "",
            notes=notes or None,
        )
        self._open = activity

        logger.info(
            f"Driver {self.driver_id}: started {status.value} at {at_time.isoformat()}"
        )
        self._notify(EVENT_STARTED, activity)
        return activity

    def stop(
        self,
        at_time: datetime,
        odometer: Optional[float] = None,
        engine_hours: Optional[float] = None
    ) -> ActivityRecord:
        """
        Close the open activity and append it to today's records.

        Raises:
            NotTrackingError: no activity is open
            InvalidTimeRangeError: at_time is before the activity started
        """
        if self._open is None:
            raise NotTrackingError(f"Driver {self.driver_id} has no open activity")

        activity = self._open
        if at_time < activity.start_time:
            raise InvalidTimeRangeError(
                f"Stop time {at_time.isoformat()} is before start time "
                f"{activity.start_time.isoformat()}"
            )

        record = ActivityRecord(
            id=activity.id,
            status=activity.status,
            start_time=activity.start_time,
            end_time=at_time,
            location=activity.location,
            notes=activity.notes,
            odometer=odometer,
            engine_hours=engine_hours,
        )
        self._completed.append(record)
        self._open = None
        self._last_end = at_time

        logger.info(
            f"Driver {self.driver_id}: stopped {record.status.value} "
            f"after {record.duration_hours:.2f}h"
        )
        self._notify(EVENT_STOPPED, record)
        return record

    def restore(
        self,
        open_activity: Optional[OpenActivity],
        completed: Iterable[ActivityRecord]
    ):
        """Load persisted state into a ledger that has not been used yet."""
        if self._open is not None or self._completed:
            raise InvalidArgumentError(
                f"Ledger for driver {self.driver_id} already holds state"
            )

        self._completed = sorted(completed, key=lambda r: r.start_time)
        self._open = open_activity
        if self._completed:
            self._last_end = max(r.end_time for r in self._completed)
        logger.debug(
            f"Driver {self.driver_id}: restored {len(self._completed)} records, "
            f"tracking={self._open is not None}"
        )

    def prune(self, before: datetime) -> int:
        """Drop completed records that ended before the given instant."""
        kept = [r for r in self._completed if r.end_time >= before]
        dropped = len(self._completed) - len(kept)
        self._completed = kept
        return dropped

    # ------------------------------------------------------------------
    # Projections
    # ------------------------------------------------------------------

    def daily_log(
        self,
        log_date: date,
        tzinfo: Optional[TZInfo] = None,
        history: Iterable[ActivityRecord] = ()
    ) -> DailyLog:
        """
        Assemble the daily log for a date.

        Persisted history and in-memory records are merged by id (the
        in-memory copy wins) and clipped to the day.
        """
        log = DailyLog(date=log_date, driver_id=self.driver_id, tzinfo=tzinfo)

        merged = {record.id: record for record in history}
        for record in self._completed:
            merged[record.id] = record

        records = []
        for record in merged.values():
            clipped = _clip_to_day(record, log.day_start, log.day_end)
            if clipped is not None:
                records.append(clipped)

        log.records = sorted(records, key=lambda r: r.start_time)
        return log

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------

    def add_listener(self, listener: Listener):
        self._listeners.append(listener)

    def _notify(self, event: str, payload):
        for listener in self._listeners:
            try:
                listener(event, payload)
            except Exception:
                logger.exception(
                    f"Ledger listener failed on {event} for driver {self.driver_id}"
                )


def _clip_to_day(
    record: ActivityRecord,
    day_start: datetime,
    day_end: datetime
) -> Optional[ActivityRecord]:
    """Return the part of a record that falls inside the day, if any."""
    if record.start_time >= day_end or record.end_time < day_start:
        return None
    if record.end_time == day_start and record.start_time < day_start:
        return None

    start = max(record.start_time, day_start)
    end = min(record.end_time, day_end)
    if start == record.start_time and end == record.end_time:
        return record
    return replace(record, start_time=start, end_time=end)
