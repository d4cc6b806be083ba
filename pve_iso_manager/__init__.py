# pve_iso_manager/__init__.py
"""
PVE ISO Manager

Manages read-only NFS ISO libraries on a Proxmox VE host: a catalog of
named mount definitions, safety-gated mount/unmount, and the matching
``dir:`` entries in ``/etc/pve/storage.cfg``.

Example:
    >>> from pve_iso_manager import CatalogStore, MountLifecycle
    >>>
    >>> store = CatalogStore()
    >>> category_id = store.add_category('Linux OS')
    >>> item_id = store.add_item(category_id, name='ROCKY9-ISO', label='Rocky Linux 9',
    ...                          nfs_server='10.160.88.33', nfs_export='/OSimg/Rocky9')
    >>> MountLifecycle().mount(store.get_item(category_id, item_id))
"""

from .catalog import CatalogStore, Category, IsoItem, JsonCatalogFile
from .config import IsoManagerConfig
from .exceptions import (
    IsoManagerException,
    InvalidInputException,
    NotFoundException,
    MountException,
    UnmountException,
)
from .registry import RegistrationStatus, StorageRegistrar
from .services import (
    CatalogService,
    MountLifecycle,
    RiskClass,
    UnmountDecision,
    UnmountOutcome,
    UsageGuard,
)
from .version import __version__

__all__ = [
    # Catalog
    'CatalogStore',
    'Category',
    'IsoItem',
    'JsonCatalogFile',

    # Registry
    'RegistrationStatus',
    'StorageRegistrar',

    # Services
    'CatalogService',
    'MountLifecycle',
    'RiskClass',
    'UnmountDecision',
    'UnmountOutcome',
    'UsageGuard',

    # Configuration and errors
    'IsoManagerConfig',
    'IsoManagerException',
    'InvalidInputException',
    'NotFoundException',
    'MountException',
    'UnmountException',

    '__version__',
]
