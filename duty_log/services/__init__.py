"""
Services package for the duty status log.

The duty status core (ledger, aggregation, graph, compliance, cycle) is
plain Python; only the activity store touches Django.
"""

from .duty_status import DutyStatus
from .ledger_service import ActivityLedger
from .aggregation_service import DurationAggregator
from .graph_service import DutyStatusGraphBuilder
from .compliance_service import ComplianceEvaluator, HOSConfig
from .cycle_service import CycleHoursTracker
from .ledger_registry import LedgerRegistry

__all__ = [
    'DutyStatus',
    'ActivityLedger',
    'DurationAggregator',
    'DutyStatusGraphBuilder',
    'ComplianceEvaluator',
    'HOSConfig',
    'CycleHoursTracker',
    'LedgerRegistry',
]
