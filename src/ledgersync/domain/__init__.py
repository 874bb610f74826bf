"""Domain layer for ledgersync application."""

__all__ = [
    "BillingService",
    "BudgetService",
    "OfflineJournalService",
    "ReconciliationService",
    "ReconciliationSettings",
]

_SERVICE_MODULES = {
    "BillingService": "ledgersync.domain.billing",
    "BudgetService": "ledgersync.domain.budget",
    "OfflineJournalService": "ledgersync.domain.offline_import",
    "ReconciliationService": "ledgersync.domain.reconciliation",
    "ReconciliationSettings": "ledgersync.domain.reconciliation",
}


# Services import the database layer, which imports domain.entities;
# resolve them lazily so importing entities never pulls services in.
def __getattr__(name):
    if name in _SERVICE_MODULES:
        import importlib

        return getattr(importlib.import_module(_SERVICE_MODULES[name]), name)
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
