"""
Tests for Duty Log API Views.
"""

from datetime import timedelta
from unittest import mock

from django.db import DatabaseError
from django.test import TestCase, override_settings
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APIClient

from duty_log.models import ActivityEntry, DriverCycle
from duty_log.services.sync_service import ActivityStore
from duty_log.views import get_registry


class DutyLogAPITestCase(TestCase):
    """Base case: every test starts with no ledgers in memory."""

    driver_url = '/api/drivers/driver-1'

    def setUp(self):
        self.client = APIClient()
        get_registry().clear()

    def tearDown(self):
        get_registry().clear()


class TestHealthCheckEndpoint(DutyLogAPITestCase):
    """Test health check endpoint."""

    def test_health_check_returns_200(self):
        response = self.client.get('/api/health/')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['status'] == 'healthy'
        assert 'version' in response.data
        assert 'timestamp' in response.data


class TestApiRootEndpoint(DutyLogAPITestCase):
    """Test API root endpoint."""

    def test_api_root_returns_endpoints(self):
        response = self.client.get('/api/')

        assert response.status_code == status.HTTP_200_OK
        assert 'endpoints' in response.data
        assert 'activity' in response.data['endpoints']
        assert 'cycle' in response.data['endpoints']


class TestActivityEndpoints(DutyLogAPITestCase):
    """Test starting, stopping and reading activities."""

    def start(self, payload):
        return self.client.post(f'{self.driver_url}/activity/start/', payload, format='json')

    def stop(self, payload=None):
        return self.client.post(f'{self.driver_url}/activity/stop/', payload or {}, format='json')

    def test_idle_driver(self):
        response = self.client.get(f'{self.driver_url}/activity/')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['is_tracking'] is False
        assert response.data['open_activity'] is None
        assert response.data['today_activities'] == []

    def test_start_and_stop(self):
        response = self.start({'status': 'DRIVING', 'location': 'Chicago, IL'})

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['status'] == 'DRIVING'
        assert response.data['location'] == 'Chicago, IL'
        activity_id = response.data['id']

        response = self.client.get(f'{self.driver_url}/activity/')
        assert response.data['is_tracking'] is True
        assert response.data['open_activity']['id'] == activity_id

        response = self.stop({'odometer': 1200})
        assert response.status_code == status.HTTP_200_OK
        assert response.data['id'] == activity_id
        assert response.data['odometer'] == 1200.0

        response = self.client.get(f'{self.driver_url}/activity/')
        assert response.data['is_tracking'] is False
        assert [a['id'] for a in response.data['today_activities']] == [activity_id]

    def test_status_value_is_accepted(self):
        response = self.start({'status': 'sleeper_berth'})

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['status'] == 'SLEEPER'

    def test_start_while_tracking_conflicts(self):
        self.start({'status': 'ONDUTY'})

        response = self.start({'status': 'DRIVING'})

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.data['code'] == 'AlreadyTrackingError'

    def test_stop_while_idle_conflicts(self):
        response = self.stop()

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.data['code'] == 'NotTrackingError'

    def test_stop_before_start_is_bad_request(self):
        self.start({'status': 'DRIVING', 'start_time': '2024-01-15T08:00:00Z'})

        response = self.stop({'end_time': '2024-01-15T07:00:00Z'})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['code'] == 'InvalidTimeRangeError'

    def test_unknown_status_is_rejected(self):
        response = self.start({'status': 'FLYING'})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'status' in response.data['details']

    def test_missing_status_is_rejected(self):
        response = self.start({})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'error' in response.data

    def test_activity_is_persisted_as_wire_code(self):
        response = self.start({'status': 'ONDUTY'})

        entry = ActivityEntry.objects.get(id=response.data['id'])
        assert entry.status == 'ONDUTY'
        assert entry.end_time is None

    def test_start_overlapping_previous_activity_is_rejected(self):
        now = timezone.now()
        self.start({'status': 'DRIVING', 'start_time': (now - timedelta(minutes=30)).isoformat()})
        self.stop({'end_time': now.isoformat()})

        response = self.start(
            {'status': 'ONDUTY', 'start_time': (now - timedelta(minutes=20)).isoformat()}
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['code'] == 'InvalidTimeRangeError'
        assert ActivityEntry.objects.count() == 1

        response = self.client.get(f'{self.driver_url}/activity/')
        assert response.status_code == status.HTTP_200_OK
        assert response.data['is_tracking'] is False

    def test_open_activity_survives_lost_ledger(self):
        response = self.start({'status': 'DRIVING'})
        get_registry().clear()

        response = self.client.get(f'{self.driver_url}/activity/')

        assert response.data['is_tracking'] is True
        assert response.data['open_activity']['status'] == 'DRIVING'


@override_settings(TIME_ZONE='UTC')
class TestDailyLogEndpoint(DutyLogAPITestCase):
    """Test the daily log report."""

    def record(self, status_code, start, end):
        self.client.post(
            f'{self.driver_url}/activity/start/',
            {'status': status_code, 'start_time': start},
            format='json'
        )
        self.client.post(
            f'{self.driver_url}/activity/stop/', {'end_time': end}, format='json'
        )

    def test_daily_log_totals_and_grid(self):
        self.record('DRIVING', '2024-01-15T06:00:00Z', '2024-01-15T09:30:00Z')
        self.record('ONDUTY', '2024-01-15T09:30:00Z', '2024-01-15T10:30:00Z')

        response = self.client.get(f'{self.driver_url}/logs/2024-01-15/')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['day_of_week'] == 'Monday'
        assert len(response.data['entries']) == 2
        assert response.data['summary']['driving'] == 3.5
        assert response.data['summary']['on_duty_not_driving'] == 1.0
        assert response.data['on_duty_hours'] == 4.5
        assert response.data['compliance']['compliant'] is True
        grid = response.data['grid_data']
        assert grid['unaccounted_hours'] == 19.5
        assert [s['row'] for s in grid['segments']] == [None, 3, 4, None]

    def test_other_day_is_empty(self):
        self.record('DRIVING', '2024-01-15T06:00:00Z', '2024-01-15T09:30:00Z')

        response = self.client.get(f'{self.driver_url}/logs/2024-01-16/')

        assert response.data['entries'] == []
        assert response.data['summary']['total'] == 0.0

    def test_invalid_date(self):
        response = self.client.get(f'{self.driver_url}/logs/2024-13-45/')

        assert response.status_code == status.HTTP_400_BAD_REQUEST


@override_settings(TIME_ZONE='UTC')
class TestLogListEndpoint(DutyLogAPITestCase):
    """Test listing the days that have logged activity."""

    logs_url = '/api/drivers/driver-1/logs/'

    def record(self, status_code, start, end):
        self.client.post(
            f'{self.driver_url}/activity/start/',
            {'status': status_code, 'start_time': start},
            format='json'
        )
        self.client.post(
            f'{self.driver_url}/activity/stop/', {'end_time': end}, format='json'
        )

    def test_days_are_listed_newest_first(self):
        self.record('DRIVING', '2024-01-14T08:00:00Z', '2024-01-14T10:00:00Z')
        self.record('DRIVING', '2024-01-15T06:00:00Z', '2024-01-15T09:30:00Z')
        self.record('ONDUTY', '2024-01-15T09:30:00Z', '2024-01-15T10:30:00Z')

        response = self.client.get(self.logs_url)

        assert response.status_code == status.HTTP_200_OK
        assert response.data['driver_id'] == 'driver-1'
        assert response.data['count'] == 2
        latest, earlier = response.data['logs']
        assert latest['date'] == '2024-01-15'
        assert latest['day_of_week'] == 'Monday'
        assert latest['entry_count'] == 2
        assert latest['is_open'] is False
        assert latest['summary']['driving'] == 3.5
        assert latest['on_duty_hours'] == 4.5
        assert earlier['date'] == '2024-01-14'
        assert earlier['summary']['driving'] == 2.0

    def test_limit(self):
        self.record('DRIVING', '2024-01-14T08:00:00Z', '2024-01-14T10:00:00Z')
        self.record('DRIVING', '2024-01-15T08:00:00Z', '2024-01-15T10:00:00Z')

        response = self.client.get(self.logs_url, {'limit': 1})

        assert response.status_code == status.HTTP_200_OK
        assert [log['date'] for log in response.data['logs']] == ['2024-01-15']

    def test_invalid_limit(self):
        for limit in ('abc', '0', '-3'):
            response = self.client.get(self.logs_url, {'limit': limit})

            assert response.status_code == status.HTTP_400_BAD_REQUEST
            assert 'error' in response.data

    def test_driver_without_logs(self):
        response = self.client.get('/api/drivers/nobody/logs/')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['count'] == 0
        assert response.data['logs'] == []

    def test_store_failure_is_server_error(self):
        with mock.patch.object(
            ActivityStore, 'logged_dates', side_effect=DatabaseError('down')
        ):
            response = self.client.get(self.logs_url)

        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert response.data['error'] == 'Log listing failed'


class TestComplianceEndpoint(DutyLogAPITestCase):
    """Test live compliance."""

    def test_idle_driver_is_compliant(self):
        response = self.client.get(f'{self.driver_url}/compliance/')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['compliant'] is True
        assert response.data['violations'] == []
        assert response.data['cycle_hours_used'] == 0.0


class TestCycleEndpoints(DutyLogAPITestCase):
    """Test 70-hour/8-day cycle tracking."""

    def test_cycle_commit_and_reset(self):
        response = self.client.get(f'{self.driver_url}/cycle/')
        assert response.status_code == status.HTTP_200_OK
        assert response.data['hours_used'] == 0.0
        assert response.data['cycle_type'] == '70-hour/8-day'

        response = self.client.post(
            f'{self.driver_url}/cycle/commit/', {'hours': 12.5}, format='json'
        )
        assert response.status_code == status.HTTP_200_OK
        assert response.data['hours_used'] == 12.5
        assert response.data['hours_remaining'] == 57.5

        response = self.client.post(f'{self.driver_url}/cycle/reset/', {}, format='json')
        assert response.status_code == status.HTTP_200_OK
        assert response.data['hours_used'] == 0.0

    def test_commit_is_clamped(self):
        response = self.client.post(
            f'{self.driver_url}/cycle/commit/', {'hours': 90}, format='json'
        )

        assert response.data['hours_used'] == 70.0
        assert response.data['needs_restart'] is True

    def test_negative_commit_is_rejected(self):
        response = self.client.post(
            f'{self.driver_url}/cycle/commit/', {'hours': -2}, format='json'
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST


class TestHOSConfigEndpoint(DutyLogAPITestCase):
    """Test HOS configuration endpoint."""

    def test_default_rules(self):
        response = self.client.get('/api/config/hos/')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['cycle']['hours'] == 70.0
        assert response.data['daily_limits']['max_driving_hours'] == 11.0

    @override_settings(HOS_RULES={'cycle_hours': 60.0, 'cycle_days': 7})
    def test_rules_follow_settings(self):
        response = self.client.get('/api/config/hos/')

        assert response.data['cycle']['hours'] == 60.0
        assert response.data['cycle']['days'] == 7


class TestCycleFailures(DutyLogAPITestCase):
    """Test cycle endpoints when the stored cycle cannot be used."""

    def test_store_failure_is_server_error(self):
        with mock.patch.object(
            ActivityStore, 'load_cycle', side_effect=DatabaseError('down')
        ):
            cycle = self.client.get(f'{self.driver_url}/cycle/')
            commit = self.client.post(
                f'{self.driver_url}/cycle/commit/', {'hours': 2}, format='json'
            )
            compliance = self.client.get(f'{self.driver_url}/compliance/')

        for response in (cycle, commit, compliance):
            assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
            assert 'error' in response.data
            assert 'details' in response.data

    def test_corrupt_row_is_repaired_by_reset(self):
        DriverCycle.objects.create(driver_id='driver-1', hours_used=80, hours_limit=70)

        response = self.client.get(f'{self.driver_url}/cycle/')
        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR

        response = self.client.post(f'{self.driver_url}/cycle/reset/', {}, format='json')
        assert response.status_code == status.HTTP_200_OK

        response = self.client.get(f'{self.driver_url}/cycle/')
        assert response.status_code == status.HTTP_200_OK
        assert response.data['hours_used'] == 0.0

    def test_failed_reset_is_server_error(self):
        with mock.patch.object(
            ActivityStore, 'save_cycle', side_effect=DatabaseError('read only')
        ):
            response = self.client.post(f'{self.driver_url}/cycle/reset/', {}, format='json')

        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert response.data['error'] == 'Cycle reset failed'
