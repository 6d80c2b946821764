"""
Duty Log API Views.

REST API over the duty status core:
- Health check
- Activity tracking (start / stop / live status)
- Daily logs with 24-hour graph data, and the list of logged dates
- HOS compliance
- Cycle tracking (70h/8d)
- HOS configuration

Every driver-scoped request runs inside the driver's ledger session, so
requests for one driver are handled one at a time.
"""

import logging
from dataclasses import replace
from datetime import date, datetime
from typing import Dict, Optional, Tuple

from django.apps import apps
from django.conf import settings
from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view
from rest_framework.response import Response
from rest_framework.views import APIView

from .serializers import (
    ActivityRecordSerializer,
    ActivityStartSerializer,
    ActivityStopSerializer,
    CycleCommitSerializer,
    HealthCheckSerializer,
    OpenActivitySerializer,
)
from .services import (
    ComplianceEvaluator,
    CycleHoursTracker,
    DurationAggregator,
    DutyStatusGraphBuilder,
    HOSConfig,
)
from .services.errors import (
    AlreadyTrackingError,
    DutyLogError,
    InvalidArgumentError,
    InvalidTimeRangeError,
    NotTrackingError,
    UnsortedOrOverlappingInputError,
)
from .services.duty_status import DutyStatus
from .services.ledger_service import ActivityLedger, DailyLog, OpenActivity
from .services.sync_service import local_day_window

logger = logging.getLogger(__name__)

API_VERSION = '1.0.0'

DEFAULT_LOG_LIST_LIMIT = 31

ERROR_STATUS = {
    AlreadyTrackingError: status.HTTP_409_CONFLICT,
    NotTrackingError: status.HTTP_409_CONFLICT,
    InvalidTimeRangeError: status.HTTP_400_BAD_REQUEST,
    InvalidArgumentError: status.HTTP_400_BAD_REQUEST,
    UnsortedOrOverlappingInputError: status.HTTP_422_UNPROCESSABLE_ENTITY,
}


def get_registry():
    return apps.get_app_config('duty_log').ledgers


def get_hos_config() -> HOSConfig:
    return HOSConfig.from_mapping(getattr(settings, 'HOS_RULES', None))


def error_response(error: DutyLogError, message: str) -> Response:
    """Map a core error to an HTTP response."""
    http_status = ERROR_STATUS.get(type(error), status.HTTP_400_BAD_REQUEST)
    logger.warning(f"{message}: {error}")
    return Response(
        {'error': message, 'details': str(error), 'code': type(error).__name__},
        status=http_status
    )


def parse_log_date(value: str) -> Optional[date]:
    try:
        return date.fromisoformat(value)
    except ValueError:
        return None


def summarize_day(
    ledger: ActivityLedger,
    log_date: date,
    now: datetime
) -> Tuple[DailyLog, Optional[OpenActivity], Dict[DutyStatus, float]]:
    """
    Daily log, the open activity if it overlaps the day, and the day's totals.

    For the totals the open activity is measured only over the part that
    falls inside the day.
    """
    store = get_registry().store
    history = store.load_day(ledger.driver_id, log_date) if store else []
    daily_log = ledger.daily_log(
        log_date, tzinfo=timezone.get_current_timezone(), history=history
    )

    open_activity = ledger.open_activity
    if open_activity is not None and not (
        open_activity.start_time < daily_log.day_end and now > daily_log.day_start
    ):
        open_activity = None

    aggregator = DurationAggregator()
    if open_activity is not None:
        day_open = _clip_open_activity(open_activity, daily_log.day_start)
        reference = min(now, daily_log.day_end)
        totals = aggregator.aggregate(daily_log, day_open, reference)
    else:
        totals = aggregator.aggregate(daily_log)

    return daily_log, open_activity, totals


def build_day_report(
    ledger: ActivityLedger,
    log_date: date,
    now: datetime,
    config: HOSConfig,
    cycle_hours_used: Optional[float] = None
) -> Dict:
    """Daily log, totals, graph and compliance for one day."""
    daily_log, open_activity, totals = summarize_day(ledger, log_date, now)

    timeline = DutyStatusGraphBuilder().build_timeline(
        daily_log, open_activity, now if open_activity else None
    )
    compliance = ComplianceEvaluator(config).evaluate(totals, cycle_hours_used)

    return {
        'date': log_date.isoformat(),
        'day_of_week': log_date.strftime('%A'),
        'driver_id': ledger.driver_id,
        'entries': ActivityRecordSerializer(daily_log.records, many=True).data,
        'open_activity': OpenActivitySerializer(open_activity).data if open_activity else None,
        'summary': DurationAggregator.to_wire_totals(totals),
        'on_duty_hours': round(DurationAggregator.on_duty_hours(totals), 2),
        'total_miles': round(daily_log.total_miles, 1),
        'grid_data': timeline.to_dict(),
        'compliance': compliance.to_dict(),
    }


def _clip_open_activity(activity: OpenActivity, day_start: datetime) -> OpenActivity:
    if activity.start_time >= day_start:
        return activity
    return replace(activity, start_time=day_start)


def _load_cycle_hours(driver_id: str, config: HOSConfig) -> Optional[float]:
    store = get_registry().store
    if store is None:
        return None
    return store.load_cycle(driver_id, config.cycle_hours).hours_used


class HealthCheckView(APIView):
    """
    Health check endpoint for monitoring and load balancers.

    GET /api/health/
    """

    def get(self, request):
        """Return health status of the API."""
        data = {
            'status': 'healthy',
            'message': 'Duty Log API is running',
            'version': API_VERSION,
            'timestamp': timezone.now()
        }
        serializer = HealthCheckSerializer(data)
        return Response(serializer.data, status=status.HTTP_200_OK)


# =============================================================================
# Activity Tracking - /api/drivers/{driverId}/activity/
# =============================================================================

class ActivityStatusView(APIView):
    """
    GET /api/drivers/{driverId}/activity/
    Current open activity, elapsed time and today's activities.
    """

    def get(self, request, driver_id):
        now = timezone.now()
        today = timezone.localdate(now)
        config = get_hos_config()

        with get_registry().session(driver_id) as ledger:
            ledger.prune(local_day_window(today)[0])
            open_activity = ledger.open_activity
            try:
                report = build_day_report(ledger, today, now, config)
            except DutyLogError as e:
                return error_response(e, 'Could not summarize activities')
            except Exception as e:
                logger.exception(f"Activity summary failed for driver {driver_id}: {e}")
                return Response(
                    {'error': 'Activity summary failed', 'details': str(e)},
                    status=status.HTTP_500_INTERNAL_SERVER_ERROR
                )

            return Response({
                'driver_id': driver_id,
                'is_tracking': ledger.is_tracking,
                'open_activity': OpenActivitySerializer(open_activity).data if open_activity else None,
                'elapsed_hours': round(ledger.elapsed_hours(now), 4),
                'today_activities': ActivityRecordSerializer(
                    ledger.recent_activities(), many=True
                ).data,
                'activity_count': len(ledger.completed) + (1 if open_activity else 0),
                'summary': report['summary'],
                'compliance': report['compliance'],
            }, status=status.HTTP_200_OK)


class ActivityStartView(APIView):
    """
    POST /api/drivers/{driverId}/activity/start/
    Start a duty status activity.
    """

    def post(self, request, driver_id):
        """
        Request:
        {
            "status": "DRIVING",
            "location": "Chicago, IL",
            "notes": "Pre-trip inspection done"
        }
        """
        serializer = ActivityStartSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(
                {'error': 'Invalid activity', 'details': serializer.errors},
                status=status.HTTP_400_BAD_REQUEST
            )

        data = serializer.validated_data
        with get_registry().session(driver_id) as ledger:
            try:
                activity = ledger.start(
                    data['status'],
                    data.get('start_time') or timezone.now(),
                    location=data['location'],
                    notes=data['notes'] or None
                )
            except DutyLogError as e:
                return error_response(e, 'Could not start activity')

        return Response(
            OpenActivitySerializer(activity).data,
            status=status.HTTP_201_CREATED
        )


class ActivityStopView(APIView):
    """
    POST /api/drivers/{driverId}/activity/stop/
    Stop the open activity and record it.
    """

    def post(self, request, driver_id):
        serializer = ActivityStopSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(
                {'error': 'Invalid stop request', 'details': serializer.errors},
                status=status.HTTP_400_BAD_REQUEST
            )

        data = serializer.validated_data
        with get_registry().session(driver_id) as ledger:
            try:
                record = ledger.stop(
                    data.get('end_time') or timezone.now(),
                    odometer=data.get('odometer'),
                    engine_hours=data.get('engine_hours')
                )
            except DutyLogError as e:
                return error_response(e, 'Could not stop activity')

        return Response(
            ActivityRecordSerializer(record).data,
            status=status.HTTP_200_OK
        )


# =============================================================================
# Daily Logs & Compliance
# =============================================================================

class LogListView(APIView):
    """
    GET /api/drivers/{driverId}/logs/?limit=31
    Dates that have logged activity, newest first, with each day's totals.
    """

    def get(self, request, driver_id):
        try:
            limit = int(request.query_params.get('limit', DEFAULT_LOG_LIST_LIMIT))
        except ValueError:
            limit = 0
        if limit < 1:
            return Response(
                {'error': 'Invalid limit', 'details': 'Expected a positive integer'},
                status=status.HTTP_400_BAD_REQUEST
            )

        now = timezone.now()
        store = get_registry().store
        with get_registry().session(driver_id) as ledger:
            try:
                logs = []
                for log_date in store.logged_dates(driver_id, limit=limit):
                    daily_log, open_activity, totals = summarize_day(ledger, log_date, now)
                    if not daily_log.records and open_activity is None:
                        continue
                    logs.append({
                        'date': log_date.isoformat(),
                        'day_of_week': log_date.strftime('%A'),
                        'entry_count': len(daily_log.records),
                        'is_open': open_activity is not None,
                        'summary': DurationAggregator.to_wire_totals(totals),
                        'on_duty_hours': round(DurationAggregator.on_duty_hours(totals), 2),
                        'total_miles': round(daily_log.total_miles, 1),
                    })
            except Exception as e:
                logger.exception(f"Log listing failed for driver {driver_id}: {e}")
                return Response(
                    {'error': 'Log listing failed', 'details': str(e)},
                    status=status.HTTP_500_INTERNAL_SERVER_ERROR
                )

        return Response({
            'driver_id': driver_id,
            'count': len(logs),
            'logs': logs,
        }, status=status.HTTP_200_OK)


class DailyLogView(APIView):
    """
    GET /api/drivers/{driverId}/logs/{date}/
    Daily log for a date with totals, grid data and compliance.
    """

    def get(self, request, driver_id, log_date):
        parsed = parse_log_date(log_date)
        if parsed is None:
            return Response(
                {'error': 'Invalid date', 'details': 'Expected YYYY-MM-DD'},
                status=status.HTTP_400_BAD_REQUEST
            )

        config = get_hos_config()
        with get_registry().session(driver_id) as ledger:
            try:
                report = build_day_report(ledger, parsed, timezone.now(), config)
            except DutyLogError as e:
                return error_response(e, 'Could not build daily log')
            except Exception as e:
                logger.exception(f"Daily log failed for driver {driver_id} on {parsed}: {e}")
                return Response(
                    {'error': 'Daily log generation failed', 'details': str(e)},
                    status=status.HTTP_500_INTERNAL_SERVER_ERROR
                )

        return Response(report, status=status.HTTP_200_OK)


class ComplianceView(APIView):
    """
    GET /api/drivers/{driverId}/compliance/
    Live HOS compliance for today, including the cycle rule.
    """

    def get(self, request, driver_id):
        now = timezone.now()
        config = get_hos_config()

        with get_registry().session(driver_id) as ledger:
            try:
                cycle_hours = _load_cycle_hours(driver_id, config)
            except Exception as e:
                logger.exception(f"Cycle lookup failed for driver {driver_id}: {e}")
                return Response(
                    {'error': 'Cycle lookup failed', 'details': str(e)},
                    status=status.HTTP_500_INTERNAL_SERVER_ERROR
                )

            try:
                report = build_day_report(
                    ledger, timezone.localdate(now), now, config, cycle_hours
                )
            except DutyLogError as e:
                return error_response(e, 'Could not evaluate compliance')
            except Exception as e:
                logger.exception(f"Compliance check failed for driver {driver_id}: {e}")
                return Response(
                    {'error': 'Compliance check failed', 'details': str(e)},
                    status=status.HTTP_500_INTERNAL_SERVER_ERROR
                )

        return Response({
            'driver_id': driver_id,
            'date': report['date'],
            'summary': report['summary'],
            'on_duty_hours': report['on_duty_hours'],
            'cycle_hours_used': cycle_hours,
            **report['compliance'],
        }, status=status.HTTP_200_OK)


# =============================================================================
# Cycle Tracking Service
# =============================================================================

class CycleStatusView(APIView):
    """
    GET /api/drivers/{driverId}/cycle/
    Current 70-hour/8-day cycle status.
    """

    def get(self, request, driver_id):
        config = get_hos_config()
        with get_registry().session(driver_id):
            try:
                tracker = get_registry().store.load_cycle(driver_id, config.cycle_hours)
            except Exception as e:
                logger.exception(f"Cycle lookup failed for driver {driver_id}: {e}")
                return Response(
                    {'error': 'Cycle lookup failed', 'details': str(e)},
                    status=status.HTTP_500_INTERNAL_SERVER_ERROR
                )

        return Response({
            'driver_id': driver_id,
            'cycle_type': f"{config.cycle_hours:g}-hour/{config.cycle_days}-day",
            **tracker.state.to_dict(),
        }, status=status.HTTP_200_OK)


class CycleCommitView(APIView):
    """
    POST /api/drivers/{driverId}/cycle/commit/
    Add a completed trip's hours to the cycle.
    """

    def post(self, request, driver_id):
        serializer = CycleCommitSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(
                {'error': 'Invalid cycle update', 'details': serializer.errors},
                status=status.HTTP_400_BAD_REQUEST
            )

        config = get_hos_config()
        store = get_registry().store
        with get_registry().session(driver_id):
            try:
                tracker = store.load_cycle(driver_id, config.cycle_hours)
                try:
                    state = tracker.commit(serializer.validated_data['hours'])
                except DutyLogError as e:
                    return error_response(e, 'Could not update cycle')
                store.save_cycle(driver_id, state)
            except Exception as e:
                logger.exception(f"Cycle update failed for driver {driver_id}: {e}")
                return Response(
                    {'error': 'Cycle update failed', 'details': str(e)},
                    status=status.HTTP_500_INTERNAL_SERVER_ERROR
                )

        return Response({
            'driver_id': driver_id,
            'hours_added': serializer.validated_data['hours'],
            **state.to_dict(),
        }, status=status.HTTP_200_OK)


class CycleResetView(APIView):
    """
    POST /api/drivers/{driverId}/cycle/reset/
    Start a new cycle (e.g. after a 34-hour restart).

    The stored cycle is not read, so a reset also repairs a bad row; the new
    cycle uses the configured limit.
    """

    def post(self, request, driver_id):
        config = get_hos_config()
        store = get_registry().store
        state = CycleHoursTracker(hours_limit=config.cycle_hours).reset()
        with get_registry().session(driver_id):
            try:
                store.save_cycle(driver_id, state, restarted=True)
            except Exception as e:
                logger.exception(f"Cycle reset failed for driver {driver_id}: {e}")
                return Response(
                    {'error': 'Cycle reset failed', 'details': str(e)},
                    status=status.HTTP_500_INTERNAL_SERVER_ERROR
                )

        logger.info(f"Cycle reset for driver {driver_id}")
        return Response({
            'driver_id': driver_id,
            **state.to_dict(),
        }, status=status.HTTP_200_OK)


# =============================================================================
# HOS Configuration Service
# =============================================================================

class HOSConfigView(APIView):
    """
    GET /api/config/hos/ - Current HOS rules
    """

    def get(self, request):
        config = get_hos_config()

        return Response({
            'cycle': {
                'days': config.cycle_days,
                'hours': config.cycle_hours,
                'description': f"{config.cycle_hours:g} hours in {config.cycle_days} consecutive days"
            },
            'daily_limits': {
                'max_driving_hours': config.max_driving_hours,
                'max_on_duty_hours': config.max_on_duty_hours,
                'description': (
                    f"{config.max_driving_hours:g} hours driving, "
                    f"{config.max_on_duty_hours:g} hours on duty"
                )
            },
            'warnings': {
                'driving_warning_hours': config.driving_warning_hours,
                'cycle_warning_ratio': config.cycle_warning_ratio,
            },
            'rules': config.to_dict(),
        }, status=status.HTTP_200_OK)


@api_view(['GET'])
def api_root(request):
    """
    GET /api/
    API documentation and endpoint listing.
    """
    return Response({
        'name': 'Duty Log API',
        'version': API_VERSION,
        'description': 'Driver duty status tracking and HOS compliance API',
        'endpoints': {
            'health': {
                'GET /api/health/': 'Health check'
            },
            'activity': {
                'GET /api/drivers/{driverId}/activity/': 'Open activity and today\'s activities',
                'POST /api/drivers/{driverId}/activity/start/': 'Start an activity',
                'POST /api/drivers/{driverId}/activity/stop/': 'Stop the open activity'
            },
            'logs': {
                'GET /api/drivers/{driverId}/logs/': 'Dates with logged activity and their totals',
                'GET /api/drivers/{driverId}/logs/{date}/': 'Daily log with graph data'
            },
            'compliance': {
                'GET /api/drivers/{driverId}/compliance/': 'Today\'s HOS compliance'
            },
            'cycle': {
                'GET /api/drivers/{driverId}/cycle/': 'Get 70h/8d cycle status',
                'POST /api/drivers/{driverId}/cycle/commit/': 'Add completed trip hours',
                'POST /api/drivers/{driverId}/cycle/reset/': 'Start a new cycle'
            },
            'config': {
                'GET /api/config/hos/': 'Get HOS rules'
            }
        }
    })
