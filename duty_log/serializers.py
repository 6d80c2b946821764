"""
Serializers for the Duty Log API.

Input serializers validate driver commands; output serializers render the
core's dataclasses. Statuses are exchanged as wire codes (ONDUTY, OFFDUTY,
DRIVING, SLEEPER).
"""

from rest_framework import serializers

from .services.duty_status import DutyStatus, STATUS_BY_WIRE_CODE, to_wire


class DutyStatusField(serializers.Field):
    """
    Duty status as a wire code.

    Accepts a wire code or a status value ('driving'); rejects anything
    else instead of guessing.
    """
    default_error_messages = {
        'invalid': 'Unknown duty status "{value}". Expected one of: {choices}.',
    }

    def to_internal_value(self, data):
        code = str(data).strip()
        status = STATUS_BY_WIRE_CODE.get(code.upper())
        if status is None:
            try:
                status = DutyStatus(code.lower())
            except ValueError:
                self.fail('invalid', value=data, choices=', '.join(STATUS_BY_WIRE_CODE))
        return status

    def to_representation(self, value):
        return to_wire(value)


class ActivityStartSerializer(serializers.Serializer):
    """
    Input serializer for starting an activity.
    """
    status = DutyStatusField(help_text="Wire code: ONDUTY, OFFDUTY, DRIVING or SLEEPER")
    location = serializers.CharField(
        max_length=500,
        required=False,
        allow_blank=True,
        default='',
        help_text="Resolved address of the driver (e.g., 'Chicago, IL')"
    )
    notes = serializers.CharField(required=False, allow_blank=True, default='')
    start_time = serializers.DateTimeField(
        required=False,
        help_text="When the activity started (defaults to now)"
    )


class ActivityStopSerializer(serializers.Serializer):
    """
    Input serializer for stopping the open activity.
    """
    end_time = serializers.DateTimeField(
        required=False,
        help_text="When the activity ended (defaults to now)"
    )
    odometer = serializers.FloatField(min_value=0, required=False, allow_null=True)
    engine_hours = serializers.FloatField(min_value=0, required=False, allow_null=True)


class CycleCommitSerializer(serializers.Serializer):
    """
    Input serializer for committing completed trip hours to the cycle.
    """
    hours = serializers.FloatField(
        min_value=0,
        help_text="On-duty hours of the completed trip"
    )


class OpenActivitySerializer(serializers.Serializer):
    """
    Serializer for the driver's open activity.
    """
    id = serializers.CharField()
    status = DutyStatusField()
    status_display = serializers.SerializerMethodField()
    start_time = serializers.DateTimeField()
    location = serializers.CharField()
    notes = serializers.CharField(allow_null=True)

    def get_status_display(self, obj):
        return obj.status.label


class ActivityRecordSerializer(OpenActivitySerializer):
    """
    Serializer for completed activity records.
    """
    end_time = serializers.DateTimeField()
    duration_hours = serializers.SerializerMethodField()
    odometer = serializers.FloatField(allow_null=True)
    engine_hours = serializers.FloatField(allow_null=True)

    def get_duration_hours(self, obj):
        return round(obj.duration_hours, 2)


class HealthCheckSerializer(serializers.Serializer):
    """
    Serializer for health check response.
    """
    status = serializers.CharField()
    message = serializers.CharField()
    version = serializers.CharField()
    timestamp = serializers.DateTimeField()
