"""Services package"""

from pve_iso_manager.services.catalog_service import CatalogService, DeleteResult
from pve_iso_manager.services.mount_lifecycle import (
    EjectResult, ItemStatus, MountLifecycle, MountResult, UnmountOutcome, UnmountResult
)
from pve_iso_manager.services.usage_guard import (
    RiskClass, UnmountDecision, UsageGuard, UsageReport
)

__all__ = [
    'CatalogService',
    'DeleteResult',
    'EjectResult',
    'ItemStatus',
    'MountLifecycle',
    'MountResult',
    'UnmountOutcome',
    'UnmountResult',
    'RiskClass',
    'UnmountDecision',
    'UsageGuard',
    'UsageReport',
]
