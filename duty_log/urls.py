"""
URL configuration for the duty log app.

Driver-scoped endpoints, mounted under /api/drivers/.
"""

from django.urls import path
from .views import (
    # Activity Tracking
    ActivityStatusView,
    ActivityStartView,
    ActivityStopView,

    # Daily Logs & Compliance
    LogListView,
    DailyLogView,
    ComplianceView,

    # Cycle Tracking
    CycleStatusView,
    CycleCommitView,
    CycleResetView,
)

app_name = 'duty_log'

urlpatterns = [
    # ==========================================================================
    # Activity Tracking
    # ==========================================================================
    path('<str:driver_id>/activity/', ActivityStatusView.as_view(), name='activity_status'),
    path('<str:driver_id>/activity/start/', ActivityStartView.as_view(), name='activity_start'),
    path('<str:driver_id>/activity/stop/', ActivityStopView.as_view(), name='activity_stop'),

    # ==========================================================================
    # Daily Logs & Compliance
    # ==========================================================================
    path('<str:driver_id>/logs/', LogListView.as_view(), name='log_list'),
    path('<str:driver_id>/logs/<str:log_date>/', DailyLogView.as_view(), name='daily_log'),
    path('<str:driver_id>/compliance/', ComplianceView.as_view(), name='compliance'),

    # ==========================================================================
    # Cycle Tracking (70h/8d)
    # ==========================================================================
    path('<str:driver_id>/cycle/', CycleStatusView.as_view(), name='cycle_status'),
    path('<str:driver_id>/cycle/commit/', CycleCommitView.as_view(), name='cycle_commit'),
    path('<str:driver_id>/cycle/reset/', CycleResetView.as_view(), name='cycle_reset'),
]
