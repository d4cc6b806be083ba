"""NFS mount driver implementation"""

import os
from typing import Dict, Any, Optional

from pve_iso_manager.drivers.base import BaseMountDriver
from pve_iso_manager.utils.logger import get_logger
from pve_iso_manager.utils.system import ensure_directory, run_command

LOG = get_logger(__name__)


def _unescape_mount_field(value: str) -> str:
    # /proc/mounts octal-escapes whitespace and backslashes
    return (value.replace('\\040', ' ')
                 .replace('\\011', '\t')
                 .replace('\\012', '\n')
                 .replace('\\134', '\\'))


class NFSDriver(BaseMountDriver):
    """Driver for mounting NFS shares."""

    def __init__(self, proc_mounts: str = '/proc/mounts', timeout: int = 30):
        self.proc_mounts = proc_mounts
        self.timeout = timeout

    def mount(self, share: str, mount_path: str, options: str = 'ro') -> bool:
        """
        Mount NFS share.

        Args:
            share: NFS share (server:/export/path)
            mount_path: Local mount point
            options: Mount options

        Returns:
            True if successful, False otherwise
        """
        LOG.info(f"Mounting NFS share {share} at {mount_path}")

        if not os.path.exists(mount_path):
            LOG.info(f"Creating mount directory: {mount_path}")
            if not ensure_directory(mount_path):
                return False

        returncode, _, stderr = run_command(
            ['mount', '-t', 'nfs', '-o', options, share, mount_path],
            timeout=self.timeout
        )

        if returncode != 0:
            LOG.error(f"Mount failed: {stderr.strip()}")
            return False

        LOG.info(f"Successfully mounted {share} at {mount_path}")
        return True

    def unmount(self, mount_path: str) -> bool:
        """
        Unmount NFS share.

        Args:
            mount_path: Mount point to unmount

        Returns:
            True if successful, False otherwise
        """
        LOG.info(f"Unmounting NFS from {mount_path}")

        returncode, _, stderr = run_command(['umount', mount_path], timeout=self.timeout)
        if returncode == 0:
            LOG.info(f"Successfully unmounted {mount_path}")
            return True

        LOG.warning(f"Normal unmount of {mount_path} failed: {stderr.strip()}")
        return False

    def lazy_unmount(self, mount_path: str) -> bool:
        """
        Lazy unmount, used after a normal unmount failed.

        Args:
            mount_path: Mount point to unmount

        Returns:
            True if successful, False otherwise
        """
        LOG.info(f"Attempting umount -l {mount_path}")

        returncode, _, stderr = run_command(['umount', '-l', mount_path], timeout=self.timeout)
        if returncode == 0:
            LOG.info(f"Successfully lazy unmounted {mount_path}")
            return True

        LOG.error(f"Lazy unmount failed: {stderr.strip()}")
        return False

    def _find_entry(self, mount_path: str) -> Optional[list]:
        wanted = os.path.normpath(mount_path)
        try:
            with open(self.proc_mounts, 'r') as f:
                for line in f:
                    parts = line.split()
                    if len(parts) >= 2 and os.path.normpath(_unescape_mount_field(parts[1])) == wanted:
                        return parts
        except OSError as e:
            LOG.error(f"Error reading {self.proc_mounts}: {e}")
        return None

    def is_mounted(self, mount_path: str) -> bool:
        """
        Check if a path has an entry in the mount table.

        Args:
            mount_path: Path to check

        Returns:
            True if mounted, False otherwise
        """
        return self._find_entry(mount_path) is not None

    def get_mount_info(self, mount_path: str) -> Dict[str, Any]:
        """Get NFS mount information"""
        parts = self._find_entry(mount_path)
        if not parts or len(parts) < 4:
            return {}
        return {
            'device': _unescape_mount_field(parts[0]),
            'mount_point': _unescape_mount_field(parts[1]),
            'fs_type': parts[2],
            'options': parts[3]
        }
