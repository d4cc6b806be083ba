"""Catalog package"""

from pve_iso_manager.catalog.models import Category, IsoItem, derive_mount_target
from pve_iso_manager.catalog.persistence import JsonCatalogFile
from pve_iso_manager.catalog.store import CatalogStore

__all__ = ['Category', 'IsoItem', 'derive_mount_target', 'JsonCatalogFile', 'CatalogStore']
