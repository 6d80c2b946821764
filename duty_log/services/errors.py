"""
Errors raised by the duty status core.

All of them are local and recoverable: the caller decides how to surface
them (the API maps them to HTTP status codes). Compliance violations are
not errors and never appear here.
"""


class DutyLogError(Exception):
    """Base class for duty log errors."""
    pass


class AlreadyTrackingError(DutyLogError):
    """An activity is already open; stop it before starting another."""
    pass


class NotTrackingError(DutyLogError):
    """No activity is open."""
    pass


class InvalidTimeRangeError(DutyLogError):
    """An end time precedes its start time."""
    pass


class UnsortedOrOverlappingInputError(DutyLogError):
    """Records handed to the graph builder are out of order or overlap."""
    pass


class InvalidArgumentError(DutyLogError, ValueError):
    """An argument is outside its legal domain."""
    pass
