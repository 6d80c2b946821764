"""
Duty log app configuration.
"""

from django.apps import AppConfig


class DutyLogConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'duty_log'
    verbose_name = 'Driver Duty Status Log'

    def ready(self):
        from .services.ledger_registry import LedgerRegistry
        from .services.sync_service import ActivityStore

        # One registry per process; it owns every driver's ledger.
        self.ledgers = LedgerRegistry(store=ActivityStore())
