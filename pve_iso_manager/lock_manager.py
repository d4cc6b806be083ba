"""
Operation lock for catalog and mount changes.
Uses file-based locking so that only one process at a time mounts,
unmounts or edits the catalog on this host.
"""

import os
import fcntl
import time
import errno
from contextlib import contextmanager
from typing import Optional

from pve_iso_manager.exceptions import LockTimeoutException
from pve_iso_manager.utils.logger import get_logger

logger = get_logger(__name__)


class OperationLock:
    """
    Exclusive flock on ``<lock_dir>/<operation>.lock``.
    """

    DEFAULT_LOCK_DIR = "/var/lock/pve-iso-manager"
    LOCK_TIMEOUT = 30

    def __init__(self, lock_dir: Optional[str] = None, timeout: int = LOCK_TIMEOUT):
        """
        Args:
            lock_dir: Directory to store lock files
            timeout: Maximum time to wait for lock acquisition in seconds
        """
        self.lock_dir = lock_dir or self.DEFAULT_LOCK_DIR
        self.timeout = timeout

    @contextmanager
    def acquire(self, operation: str = "catalog"):
        """
        Hold the lock for the duration of the block.

        Raises:
            LockTimeoutException: If the lock cannot be acquired within timeout

        Example:
            with lock.acquire():
                lifecycle.unmount(item)
        """
        os.makedirs(self.lock_dir, mode=0o755, exist_ok=True)
        lock_file_path = os.path.join(self.lock_dir, f"{operation}.lock")

        with open(lock_file_path, 'w') as lock_file:
            start_time = time.time()
            while True:
                try:
                    fcntl.flock(lock_file.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
                    break
                except OSError as e:
                    if e.errno not in (errno.EAGAIN, errno.EACCES):
                        raise

                    elapsed = time.time() - start_time
                    if elapsed >= self.timeout:
                        raise LockTimeoutException(
                            f"Could not acquire lock for {operation} "
                            f"after {self.timeout} seconds; is another instance running?"
                        )
                    time.sleep(0.1)

            logger.debug(f"Acquired lock for {operation}")
            try:
                yield True
            finally:
                fcntl.flock(lock_file.fileno(), fcntl.LOCK_UN)
                logger.debug(f"Released lock for {operation}")
