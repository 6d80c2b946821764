"""
Admin configuration for duty log models.
"""

from django.contrib import admin
from .models import ActivityEntry, DriverCycle


@admin.register(ActivityEntry)
class ActivityEntryAdmin(admin.ModelAdmin):
    list_display = ['id', 'driver_id', 'status', 'start_time', 'end_time', 'location']
    list_filter = ['status', 'start_time']
    search_fields = ['driver_id', 'location', 'notes']
    readonly_fields = ['id', 'created_at', 'updated_at']


@admin.register(DriverCycle)
class DriverCycleAdmin(admin.ModelAdmin):
    list_display = ['driver_id', 'hours_used', 'hours_limit', 'cycle_started_at']
    search_fields = ['driver_id']
