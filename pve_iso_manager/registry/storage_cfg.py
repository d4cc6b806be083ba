"""Proxmox storage.cfg registration of ISO directory storages"""

import os
from enum import Enum
from typing import List

from pve_iso_manager.utils.logger import get_logger

LOG = get_logger(__name__)


class RegistrationStatus(Enum):
    REGISTERED = 'registered'
    ALREADY_REGISTERED = 'already_registered'
    DEREGISTERED = 'deregistered'
    NOT_REGISTERED = 'not_registered'
    UNAVAILABLE = 'unavailable'


class StorageRegistrar:
    """
    Adds and removes ``dir:`` blocks in the host storage registry.

    A block is a header line ``dir: <name>`` followed by indented option
    lines and terminated by a blank line (or end of file). The storage name
    is the only key; other blocks are never touched.

    When the registry file does not exist (host is not a PVE node) every
    operation returns ``UNAVAILABLE``.
    """

    def __init__(self, storage_cfg: str = '/etc/pve/storage.cfg'):
        self.storage_cfg = storage_cfg

    def available(self) -> bool:
        return os.path.isfile(self.storage_cfg)

    @staticmethod
    def header(name: str) -> str:
        return f"dir: {name}"

    def _read_lines(self) -> List[str]:
        with open(self.storage_cfg, 'r') as f:
            return f.read().splitlines()

    def _write_lines(self, lines: List[str]):
        with open(self.storage_cfg, 'w') as f:
            f.write('\n'.join(lines) + '\n' if lines else '')

    def _find_header(self, lines: List[str], name: str) -> int:
        header = self.header(name)
        for index, line in enumerate(lines):
            if line.rstrip() == header:
                return index
        return -1

    def is_registered(self, name: str) -> bool:
        if not self.available():
            return False
        return self._find_header(self._read_lines(), name) >= 0

    def register(self, name: str, path: str) -> RegistrationStatus:
        """
        Append a storage block for ``name`` pointing at ``path``.

        Args:
            name: Storage identifier
            path: Directory advertised as storage root

        Returns:
            RegistrationStatus
        """
        if not self.available():
            LOG.warning(f"{self.storage_cfg} not found, skipping storage registration of {name}")
            return RegistrationStatus.UNAVAILABLE

        lines = self._read_lines()
        if self._find_header(lines, name) >= 0:
            LOG.warning(f"Storage '{name}' already exists in {self.storage_cfg}, skipping")
            return RegistrationStatus.ALREADY_REGISTERED

        while lines and not lines[-1].strip():
            lines.pop()
        if lines:
            lines.append('')
        lines.extend([
            self.header(name),
            f"    path {path}",
            "    content iso",
        ])
        self._write_lines(lines)
        LOG.info(f"Added {name} to {self.storage_cfg} (path: {path})")
        return RegistrationStatus.REGISTERED

    def deregister(self, name: str) -> RegistrationStatus:
        """
        Remove the block for ``name``: from its header up to, not including,
        the next blank line.

        Returns:
            RegistrationStatus
        """
        if not self.available():
            LOG.warning(f"{self.storage_cfg} not found, skipping storage removal of {name}")
            return RegistrationStatus.UNAVAILABLE

        lines = self._read_lines()
        start = self._find_header(lines, name)
        if start < 0:
            LOG.info(f"Storage '{name}' not present in {self.storage_cfg}")
            return RegistrationStatus.NOT_REGISTERED

        end = start + 1
        while end < len(lines) and lines[end].strip():
            end += 1

        del lines[start:end]

        # drop the separator left behind so blank lines do not pile up
        if start > 0 and not lines[start - 1].strip() and (start >= len(lines) or not lines[start].strip()):
            del lines[start - 1]
        elif start == 0 and lines and not lines[0].strip():
            del lines[0]

        self._write_lines(lines)
        LOG.info(f"Removed {name} from {self.storage_cfg}")
        return RegistrationStatus.DEREGISTERED
