"""Base mount driver interface"""

from abc import ABC, abstractmethod
from typing import Dict, Any


class BaseMountDriver(ABC):
    """Abstract base class for mount drivers"""

    @abstractmethod
    def mount(self, share: str, mount_path: str, options: str = 'ro') -> bool:
        """
        Mount the share.

        Args:
            share: Source to mount
            mount_path: Path where the share should be mounted
            options: Mount options

        Returns:
            True if mount successful, False otherwise
        """
        pass

    @abstractmethod
    def unmount(self, mount_path: str) -> bool:
        """
        Gracefully unmount a path.

        Returns:
            True if unmount successful, False otherwise
        """
        pass

    @abstractmethod
    def lazy_unmount(self, mount_path: str) -> bool:
        """
        Detach a busy mount (lazy unmount).

        Returns:
            True if unmount successful, False otherwise
        """
        pass

    @abstractmethod
    def is_mounted(self, mount_path: str) -> bool:
        """
        Check if path is currently mounted.

        Args:
            mount_path: Path to check

        Returns:
            True if mounted, False otherwise
        """
        pass

    @abstractmethod
    def get_mount_info(self, mount_path: str) -> Dict[str, Any]:
        """
        Get information about a mount.

        Args:
            mount_path: Path to query

        Returns:
            Dictionary with mount information
        """
        pass
