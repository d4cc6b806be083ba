"""Open file handle probe for mount points"""

from typing import List

from pve_iso_manager.utils.logger import get_logger
from pve_iso_manager.utils.system import command_exists, run_command

LOG = get_logger(__name__)


class HandleProbe:
    """Lists processes holding a path open, using ``lsof`` or ``fuser``"""

    def __init__(self, timeout: int = 30):
        self.timeout = timeout

    def processes_using(self, mount_path: str) -> List[str]:
        """
        Describe the processes holding ``mount_path`` open.

        Returns an empty list when neither tool is installed.
        """
        if command_exists('lsof'):
            return self._lsof(mount_path)
        if command_exists('fuser'):
            return self._fuser(mount_path)
        LOG.debug("Neither lsof nor fuser available, skipping open handle probe")
        return []

    def _lsof(self, mount_path: str) -> List[str]:
        # lsof exits 1 when nothing holds the path
        _, stdout, _ = run_command(['lsof', mount_path], timeout=self.timeout)
        return [line for line in stdout.splitlines()
                if line.strip() and not line.startswith('COMMAND')]

    def _fuser(self, mount_path: str) -> List[str]:
        # no -m: it would report the parent filesystem of an unmounted target
        _, stdout, _ = run_command(['fuser', mount_path], timeout=self.timeout)
        # pids carry access suffixes such as "4242c"
        pids = [entry.rstrip('cefFrm') for entry in stdout.split()]
        return [f"PID {pid}" for pid in pids if pid.isdigit()]
