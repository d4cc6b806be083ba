"""Detection of active consumers of an ISO mount"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from pve_iso_manager.drivers.handles import HandleProbe
from pve_iso_manager.drivers.qemu import QemuInventory, VMReference
from pve_iso_manager.utils.logger import get_logger

LOG = get_logger(__name__)


class RiskClass(Enum):
    CLEAR = 'clear'
    IN_USE = 'in_use'


class UnmountDecision(Enum):
    """Operator answer when an unmount target is in use"""
    ABORT = 'abort'
    REMEDIATE_AND_PROCEED = 'remediate'
    FORCE_PROCEED = 'force'

    @classmethod
    def from_input(cls, answer: Optional[str]) -> 'UnmountDecision':
        """
        Map operator input to a decision.

        ``1``/``n``/``no``/empty cancel, ``2``/``y``/``yes`` eject and
        unmount, ``3`` unmounts without touching VMs. Anything else cancels.
        """
        answer = (answer or '').strip().lower()
        if answer in ('2', 'y', 'yes', 'remediate'):
            return cls.REMEDIATE_AND_PROCEED
        if answer in ('3', 'force'):
            return cls.FORCE_PROCEED
        return cls.ABORT


@dataclass
class UsageReport:
    """Outcome of a usage assessment; the lists are for display only"""
    mount_target: str
    storage_name: str
    vms: List[VMReference] = field(default_factory=list)
    processes: List[str] = field(default_factory=list)

    @property
    def risk(self) -> RiskClass:
        if self.vms or self.processes:
            return RiskClass.IN_USE
        return RiskClass.CLEAR

    @property
    def in_use(self) -> bool:
        return self.risk is RiskClass.IN_USE


class UsageGuard:
    """
    Decides whether unmounting a target is currently safe.

    Two independent signals are checked: VM configurations referencing the
    storage, and processes holding the mount point open. Failures of either
    signal count as "no evidence of use".
    """

    def __init__(self, inventory: Optional[QemuInventory] = None,
                 handle_probe: Optional[HandleProbe] = None):
        self.inventory = inventory or QemuInventory()
        self.handle_probe = handle_probe or HandleProbe()

    def assess(self, mount_target: str, storage_name: str) -> UsageReport:
        LOG.info(f"Checking if anything is using {storage_name} ({mount_target})")
        report = UsageReport(mount_target=mount_target, storage_name=storage_name)

        try:
            report.vms = self.inventory.find_references(storage_name)
        except Exception as e:
            LOG.warning(f"VM usage check failed for {storage_name}, assuming unused: {e}")

        try:
            report.processes = self.handle_probe.processes_using(mount_target)
        except Exception as e:
            LOG.warning(f"Open handle probe failed for {mount_target}, assuming unused: {e}")

        if report.in_use:
            LOG.warning(
                f"{storage_name} is in use: {len(report.vms)} VM(s), "
                f"{len(report.processes)} process(es)"
            )
        else:
            LOG.info(f"No active usage detected for {storage_name}")
        return report
