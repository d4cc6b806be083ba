"""Host storage registry package"""

from pve_iso_manager.registry.storage_cfg import RegistrationStatus, StorageRegistrar

__all__ = ['RegistrationStatus', 'StorageRegistrar']
