"""
Duty Log Models.

Persistent copy of drivers' activity records and cycle state. The in-memory
ActivityLedger is authoritative for the current session; these tables are
what it is rebuilt from and what past daily logs are read from.
"""

from django.db import models
from django.core.validators import MinValueValidator


class ActivityEntry(models.Model):
    """
    A duty status activity as stored by the backend.

    An entry with no end_time is the driver's open activity. Status is
    stored as its wire code.
    """
    STATUS_CHOICES = [
        ('OFFDUTY', 'Off Duty'),
        ('SLEEPER', 'Sleeper Berth'),
        ('DRIVING', 'Driving'),
        ('ONDUTY', 'On Duty (Not Driving)'),
    ]

    id = models.CharField(primary_key=True, max_length=64, editable=False)
    driver_id = models.CharField(max_length=64, db_index=True)

    status = models.CharField(max_length=10, choices=STATUS_CHOICES)
    start_time = models.DateTimeField(help_text="When the activity started")
    end_time = models.DateTimeField(null=True, blank=True, help_text="Empty while the activity is open")

    location = models.CharField(max_length=500, blank=True)
    notes = models.TextField(blank=True)

    # Vehicle telemetry, stored as received
    odometer = models.FloatField(null=True, blank=True, validators=[MinValueValidator(0)])
    engine_hours = models.FloatField(null=True, blank=True, validators=[MinValueValidator(0)])

    # Metadata
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['driver_id', 'start_time']
        indexes = [
            models.Index(fields=['driver_id', 'start_time'], name='activity_driver_start_idx'),
        ]
        verbose_name = 'Activity Entry'
        verbose_name_plural = 'Activity Entries'

    def __str__(self):
        end = self.end_time.isoformat() if self.end_time else 'open'
        return f"{self.driver_id} {self.get_status_display()} {self.start_time.isoformat()}-{end}"

    @property
    def is_open(self):
        return self.end_time is None


class DriverCycle(models.Model):
    """
    Cycle hours committed by a driver in the current 70-hour/8-day cycle.
    """
    driver_id = models.CharField(max_length=64, unique=True)

    hours_used = models.FloatField(default=0, validators=[MinValueValidator(0)])
    hours_limit = models.FloatField(default=70, validators=[MinValueValidator(0)])
    cycle_started_at = models.DateTimeField(null=True, blank=True)

    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['driver_id']
        verbose_name = 'Driver Cycle'
        verbose_name_plural = 'Driver Cycles'

    def __str__(self):
        return f"{self.driver_id}: {self.hours_used}/{self.hours_limit}h"
