"""Validation and normalization utilities"""

import re

# \\10.1.1.1\share\path  or  //10.1.1.1/share/path
_UNC_PATTERN = re.compile(r'^\\\\\d+\.\d+\.\d+\.\d+(.*)$')
_SERVER_PATH_PATTERN = re.compile(r'^//\d+\.\d+\.\d+\.\d+(.*)$')
_STORAGE_NAME_PATTERN = re.compile(r'^[A-Za-z][A-Za-z0-9\-_.]*$')


def normalize_nfs_export(export: str) -> str:
    """
    Reduce an export path with an embedded server address to its path.

    ``\\\\10.1.1.1\\OSimg\\X`` and ``//10.1.1.1/OSimg/X`` both become
    ``/OSimg/X``. Anything else is returned unchanged (stripped).
    """
    export = export.strip()

    match = _UNC_PATTERN.match(export)
    if match:
        return match.group(1).replace('\\', '/')

    match = _SERVER_PATH_PATTERN.match(export)
    if match:
        return match.group(1)

    return export


def validate_storage_name(name: str) -> bool:
    """Validate a storage identifier usable as a registry key"""
    return bool(_STORAGE_NAME_PATTERN.match(name))


def validate_mount_path(path: str) -> bool:
    """Validate mount path"""
    return path.startswith('/') and '..' not in path.split('/')
