"""
Activity Store Service.

Writes ledger events to the database and reads them back. This is the
ledger's persistence collaborator and it fails soft: a failed write is
logged and dropped, never raised into the ledger, whose in-memory state
stays authoritative.

Statuses cross this boundary as wire codes (ONDUTY, OFFDUTY, DRIVING,
SLEEPER). An unknown stored code decodes to OFF_DUTY.
"""

import logging
from datetime import date, datetime, time, timedelta
from typing import List, Optional, Tuple

from django.db import DatabaseError
from django.utils import timezone

from ..models import ActivityEntry, DriverCycle
from .cycle_service import CycleHoursTracker, CycleState
from .duty_status import from_wire, to_wire
from .ledger_service import (
    EVENT_STARTED,
    EVENT_STOPPED,
    ActivityRecord,
    OpenActivity,
)

logger = logging.getLogger(__name__)


def local_day_window(log_date: date) -> Tuple[datetime, datetime]:
    """Aware [midnight, next midnight) for a date in the current time zone."""
    tz = timezone.get_current_timezone()
    start = timezone.make_aware(datetime.combine(log_date, time.min), tz)
    end = timezone.make_aware(datetime.combine(log_date + timedelta(days=1), time.min), tz)
    return start, end


class ActivityStore:
    """Database access for activity entries and cycle state."""

    # ------------------------------------------------------------------
    # Ledger events
    # ------------------------------------------------------------------

    def listener_for(self, driver_id: str):
        """Ledger listener that persists events for one driver."""
        def listener(event: str, payload):
            self.handle_event(driver_id, event, payload)
        return listener

    def handle_event(self, driver_id: str, event: str, payload) -> bool:
        """Persist a ledger event. Returns False if the write failed."""
        try:
            if event == EVENT_STARTED:
                self.save_open(driver_id, payload)
            elif event == EVENT_STOPPED:
                self.save_completed(driver_id, payload)
            else:
                logger.warning(f"Ignoring unknown ledger event {event!r}")
                return False
        except DatabaseError as e:
            logger.exception(
                f"Could not persist {event} activity for driver {driver_id}: {e}"
            )
            return False
        return True

    def save_open(self, driver_id: str, activity: OpenActivity):
        ActivityEntry.objects.update_or_create(
            id=activity.id,
            defaults={
                'driver_id': driver_id,
                'status': to_wire(activity.status),
                'start_time': activity.start_time,
                'end_time': None,
                'location': activity.location,
                'notes': activity.notes or '',
            }
        )
        logger.debug(f"Saved open activity {activity.id} for driver {driver_id}")

    def save_completed(self, driver_id: str, record: ActivityRecord):
        ActivityEntry.objects.update_or_create(
            id=record.id,
            defaults={
                'driver_id': driver_id,
                'status': to_wire(record.status),
                'start_time': record.start_time,
                'end_time': record.end_time,
                'location': record.location,
                'notes': record.notes or '',
                'odometer': record.odometer,
                'engine_hours': record.engine_hours,
            }
        )
        logger.debug(f"Saved completed activity {record.id} for driver {driver_id}")

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def load_open(self, driver_id: str) -> Optional[OpenActivity]:
        entry = (
            ActivityEntry.objects
            .filter(driver_id=driver_id, end_time__isnull=True)
            .order_by('-start_time')
            .first()
        )
        if entry is None:
            return None
        return OpenActivity(
            id=entry.id,
            status=from_wire(entry.status),
            start_time=entry.start_time,
            location=entry.location,
            notes=entry.notes or None,
        )

    def load_records(
        self,
        driver_id: str,
        start: datetime,
        end: datetime
    ) -> List[ActivityRecord]:
        """Completed records overlapping [start, end), oldest first."""
        entries = (
            ActivityEntry.objects
            .filter(
                driver_id=driver_id,
                end_time__isnull=False,
                start_time__lt=end,
                end_time__gte=start,
            )
            .order_by('start_time')
        )
        return [self._to_record(entry) for entry in entries]

    def load_day(self, driver_id: str, log_date: date) -> List[ActivityRecord]:
        start, end = local_day_window(log_date)
        return self.load_records(driver_id, start, end)

    def logged_dates(self, driver_id: str, limit: Optional[int] = None) -> List[date]:
        """
        Local dates covered by the driver's stored activities, newest first.

        A record running past midnight counts for every day it touches; one
        ending exactly at midnight does not count for the next day. An open
        activity runs up to now.
        """
        now = timezone.now()
        days = set()
        spans = (
            ActivityEntry.objects
            .filter(driver_id=driver_id)
            .values_list('start_time', 'end_time')
        )
        for start, end in spans:
            first = timezone.localtime(start).date()
            last_moment = timezone.localtime(max(end or now, start))
            last = last_moment.date()
            if last > first and last_moment.time() == time.min:
                last -= timedelta(days=1)
            day = first
            while day <= last:
                days.add(day)
                day += timedelta(days=1)

        dates = sorted(days, reverse=True)
        return dates[:limit] if limit is not None else dates

    def load_ledger_state(
        self,
        driver_id: str
    ) -> Tuple[Optional[OpenActivity], List[ActivityRecord]]:
        """Open activity and today's completed records, for rebuilding a ledger."""
        try:
            return self.load_open(driver_id), self.load_day(driver_id, timezone.localdate())
        except DatabaseError as e:
            logger.exception(f"Could not load ledger state for driver {driver_id}: {e}")
            return None, []

    def _to_record(self, entry: ActivityEntry) -> ActivityRecord:
        return ActivityRecord(
            id=entry.id,
            status=from_wire(entry.status),
            start_time=entry.start_time,
            end_time=entry.end_time,
            location=entry.location,
            notes=entry.notes or None,
            odometer=entry.odometer,
            engine_hours=entry.engine_hours,
        )

    # ------------------------------------------------------------------
    # Cycle state
    # ------------------------------------------------------------------

    def load_cycle(self, driver_id: str, default_limit: float) -> CycleHoursTracker:
        cycle, created = DriverCycle.objects.get_or_create(
            driver_id=driver_id,
            defaults={'hours_limit': default_limit, 'cycle_started_at': timezone.now()}
        )
        if created:
            logger.info(f"Started cycle tracking for driver {driver_id}")
        return CycleHoursTracker(hours_used=cycle.hours_used, hours_limit=cycle.hours_limit)

    def save_cycle(self, driver_id: str, state: CycleState, restarted: bool = False):
        defaults = {
            'hours_used': state.hours_used,
            'hours_limit': state.hours_limit,
        }
        if restarted:
            defaults['cycle_started_at'] = timezone.now()
        DriverCycle.objects.update_or_create(driver_id=driver_id, defaults=defaults)
