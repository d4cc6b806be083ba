"""Utilities package"""

from pve_iso_manager.utils.logger import get_logger, setup_logging
from pve_iso_manager.utils.system import command_exists, ensure_directory, run_command
from pve_iso_manager.utils.validators import (
    normalize_nfs_export, validate_mount_path, validate_storage_name
)

__all__ = [
    'get_logger',
    'setup_logging',
    'command_exists',
    'ensure_directory',
    'run_command',
    'normalize_nfs_export',
    'validate_mount_path',
    'validate_storage_name',
]
