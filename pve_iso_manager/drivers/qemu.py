"""Proxmox VM inventory via the ``qm`` tool"""

import re
from dataclasses import dataclass
from typing import Dict, List, Tuple

from pve_iso_manager.utils.logger import get_logger
from pve_iso_manager.utils.system import command_exists, run_command

LOG = get_logger(__name__)

_CDROM_PATTERN = re.compile(r'cdrom|media=cdrom', re.IGNORECASE)


@dataclass
class VMReference:
    """A VM whose configuration references a storage"""
    vmid: str
    name: str

    def __str__(self):
        return f"{self.name} (ID: {self.vmid})"


class QemuInventory:
    """
    Thin wrapper around ``qm list``, ``qm config`` and ``qm set``.

    Every query degrades to an empty answer when ``qm`` is not installed
    or a call fails.
    """

    def __init__(self, qm_bin: str = 'qm', timeout: int = 30):
        self.qm_bin = qm_bin
        self.timeout = timeout

    def available(self) -> bool:
        return command_exists(self.qm_bin)

    def list_vmids(self) -> List[str]:
        if not self.available():
            return []

        returncode, stdout, stderr = run_command([self.qm_bin, 'list'], timeout=self.timeout)
        if returncode != 0:
            LOG.warning(f"qm list failed: {stderr.strip()}")
            return []

        vmids = []
        for line in stdout.splitlines()[1:]:
            fields = line.split()
            if fields and fields[0].isdigit():
                vmids.append(fields[0])
        return vmids

    def get_config(self, vmid: str) -> Dict[str, str]:
        """Return the VM configuration as ``{key: value}``"""
        returncode, stdout, stderr = run_command([self.qm_bin, 'config', str(vmid)],
                                                 timeout=self.timeout)
        if returncode != 0:
            LOG.warning(f"qm config {vmid} failed: {stderr.strip()}")
            return {}

        config = {}
        for line in stdout.splitlines():
            if ':' not in line:
                continue
            key, value = line.split(':', 1)
            config[key.strip()] = value.strip()
        return config

    @staticmethod
    def _volume_pattern(storage_name: str):
        # whole volume id prefix: "OLD-ROCKY9-ISO:" does not reference ROCKY9-ISO
        return re.compile(rf'(?:^|[\s,=]){re.escape(storage_name)}:')

    @staticmethod
    def references_storage(config: Dict[str, str], storage_name: str) -> bool:
        pattern = QemuInventory._volume_pattern(storage_name)
        return any(pattern.search(value) for value in config.values())

    @staticmethod
    def media_devices(config: Dict[str, str], storage_name: str) -> List[Tuple[str, str]]:
        """(device, value) pairs for CD-ROM devices backed by ``storage_name``"""
        pattern = QemuInventory._volume_pattern(storage_name)
        return [
            (key, value) for key, value in config.items()
            if pattern.search(value) and (_CDROM_PATTERN.search(key) or _CDROM_PATTERN.search(value))
        ]

    def find_references(self, storage_name: str) -> List[VMReference]:
        """VMs whose configuration mentions ``<storage_name>:``"""
        references = []
        for vmid in self.list_vmids():
            config = self.get_config(vmid)
            if self.references_storage(config, storage_name):
                references.append(VMReference(vmid=vmid, name=config.get('name') or f"VM-{vmid}"))
        return references

    def eject(self, vmid: str, device: str) -> Tuple[bool, str]:
        """Detach the medium from one device. Returns (success, error output)."""
        returncode, stdout, stderr = run_command(
            [self.qm_bin, 'set', str(vmid), f'--{device}', 'none'],
            timeout=self.timeout
        )
        if returncode == 0:
            return True, ''
        return False, (stderr or stdout).strip()
