"""
URL configuration for the Duty Log project.

Complete API URL structure:
- /api/ - API root
- /api/health/ - Health check
- /api/drivers/{driverId}/activity/ - Duty status tracking
- /api/drivers/{driverId}/logs/ - Dates with logs
- /api/drivers/{driverId}/logs/{date}/ - Daily logs
- /api/drivers/{driverId}/compliance/ - HOS compliance
- /api/drivers/{driverId}/cycle/ - Cycle tracking (70h/8d)
- /api/config/hos/ - HOS configuration
"""

from django.contrib import admin
from django.urls import path, include
from duty_log.views import (
    HealthCheckView,
    api_root,
    # HOS Config
    HOSConfigView,
)

urlpatterns = [
    # Admin
    path('admin/', admin.site.urls),

    # API root - Documentation
    path('api/', api_root, name='api_root'),

    # Health check endpoint
    path('api/health/', HealthCheckView.as_view(), name='health_check'),

    # ==========================================================================
    # Driver duty status, logs, compliance and cycle - Uses duty_log app urls
    # ==========================================================================
    path('api/drivers/', include('duty_log.urls', namespace='duty_log')),

    # ==========================================================================
    # HOS Configuration Service
    # ==========================================================================
    path('api/config/hos/', HOSConfigView.as_view(), name='config_hos'),
]
