"""Mount / safety-gated unmount of catalog items"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from pve_iso_manager.catalog.models import IsoItem
from pve_iso_manager.drivers.base import BaseMountDriver
from pve_iso_manager.drivers.nfs import NFSDriver
from pve_iso_manager.drivers.qemu import QemuInventory, VMReference
from pve_iso_manager.exceptions import MountException, UnmountException
from pve_iso_manager.registry.storage_cfg import RegistrationStatus, StorageRegistrar
from pve_iso_manager.services.usage_guard import UnmountDecision, UsageGuard, UsageReport
from pve_iso_manager.utils.logger import get_logger

LOG = get_logger(__name__)

DecisionProvider = Callable[[UsageReport], UnmountDecision]


class UnmountOutcome(Enum):
    ABORTED = 'aborted'
    UNMOUNTED = 'unmounted'
    FORCE_UNMOUNTED = 'force_unmounted'
    NOT_MOUNTED = 'not_mounted'


@dataclass
class EjectResult:
    vmid: str
    device: str
    success: bool
    error: str = ''


@dataclass
class MountResult:
    item: IsoItem
    registration: RegistrationStatus


@dataclass
class UnmountResult:
    item: IsoItem
    outcome: UnmountOutcome
    usage: Optional[UsageReport] = None
    decision: Optional[UnmountDecision] = None
    ejects: List[EjectResult] = field(default_factory=list)
    still_attached: List[VMReference] = field(default_factory=list)
    registration: Optional[RegistrationStatus] = None

    @property
    def eject_failures(self) -> List[EjectResult]:
        return [result for result in self.ejects if not result.success]

    @property
    def unmounted(self) -> bool:
        return self.outcome is not UnmountOutcome.ABORTED


@dataclass
class ItemStatus:
    """Live state of an item; the two facts can diverge"""
    item: IsoItem
    mounted: bool
    registered: bool
    mount_info: Dict[str, Any] = field(default_factory=dict)


def abort_on_use(report: UsageReport) -> UnmountDecision:
    return UnmountDecision.ABORT


class MountLifecycle:
    """
    Mount and unmount controller.

    The registry is only written after the filesystem change it describes
    has been verified: register after a successful mount, deregister after a
    successful (graceful or lazy) unmount.
    """

    def __init__(self, driver: Optional[BaseMountDriver] = None,
                 registrar: Optional[StorageRegistrar] = None,
                 guard: Optional[UsageGuard] = None,
                 inventory: Optional[QemuInventory] = None,
                 mount_options: str = 'ro',
                 settle_seconds: float = 3,
                 sleep: Callable[[float], None] = time.sleep):
        self.driver = driver or NFSDriver()
        self.registrar = registrar or StorageRegistrar()
        self.inventory = inventory or QemuInventory()
        self.guard = guard or UsageGuard(inventory=self.inventory)
        self.mount_options = mount_options
        self.settle_seconds = settle_seconds
        self._sleep = sleep

    @classmethod
    def from_config(cls, config) -> 'MountLifecycle':
        inventory = QemuInventory(timeout=config.command_timeout)
        return cls(
            driver=NFSDriver(timeout=config.command_timeout),
            registrar=StorageRegistrar(config.storage_cfg),
            inventory=inventory,
            guard=UsageGuard(inventory=inventory),
            mount_options=config.mount_options,
            settle_seconds=config.eject_settle_seconds,
        )

    def status(self, item: IsoItem) -> ItemStatus:
        mounted = self.driver.is_mounted(item.mount_target)
        return ItemStatus(
            item=item,
            mounted=mounted,
            registered=self.registrar.is_registered(item.name),
            mount_info=self.driver.get_mount_info(item.mount_target) if mounted else {},
        )

    def mount(self, item: IsoItem) -> MountResult:
        """
        Mount an item read-only and register it.

        Raises:
            MountException: mount did not succeed; the registry is untouched
        """
        LOG.info(f"Mounting NFS ({item.name}) to {item.mount_target}")

        if not self.driver.mount(item.share, item.mount_target, self.mount_options):
            raise MountException(
                f"NFS mount of {item.share} at {item.mount_target} failed for {item.name}"
            )

        # registry advertises the base, not the mounted subdirectory
        registration = self.registrar.register(item.name, item.mount_base)
        LOG.info(f"{item.name} mounted, storage registration: {registration.value}")
        return MountResult(item=item, registration=registration)

    def unmount(self, item: IsoItem, decide: Optional[DecisionProvider] = None) -> UnmountResult:
        """
        Safety-gated unmount.

        Args:
            item: Item to unmount
            decide: Called with the usage report when the target is in use.
                Defaults to aborting.

        Returns:
            UnmountResult

        Raises:
            UnmountException: graceful and lazy unmount both failed while
                the target is still mounted; the registry is untouched
        """
        decide = decide or abort_on_use
        LOG.info(f"Preparing to unmount NFS ({item.name}) from {item.mount_target}")

        usage = self.guard.assess(item.mount_target, item.name)
        result = UnmountResult(item=item, outcome=UnmountOutcome.ABORTED, usage=usage)

        if usage.in_use:
            result.decision = decide(usage)
            LOG.info(f"Operator decision for {item.name}: {result.decision.value}")

            if result.decision is UnmountDecision.ABORT:
                LOG.info(f"Unmount of {item.name} cancelled")
                return result
            if result.decision is UnmountDecision.REMEDIATE_AND_PROCEED:
                result.ejects, result.still_attached = self.eject_media(item.name, usage.vms)

        result.outcome = self._unmount_filesystem(item)
        result.registration = self.registrar.deregister(item.name)
        return result

    def _unmount_filesystem(self, item: IsoItem) -> UnmountOutcome:
        if self.driver.unmount(item.mount_target):
            LOG.info(f"{item.name} unmounted successfully")
            return UnmountOutcome.UNMOUNTED

        LOG.warning(f"Unmount of {item.name} failed, trying lazy unmount")
        if self.driver.lazy_unmount(item.mount_target):
            LOG.warning(f"{item.name} force unmounted (lazy unmount)")
            return UnmountOutcome.FORCE_UNMOUNTED

        if not self.driver.is_mounted(item.mount_target):
            LOG.info(f"{item.mount_target} was not mounted")
            return UnmountOutcome.NOT_MOUNTED

        raise UnmountException(
            f"Unmount of {item.name} failed at {item.mount_target} "
            f"(normal and lazy unmount). Try: umount -f {item.mount_target}"
        )

    def eject_media(self, storage_name: str, vms: List[VMReference]):
        """
        Detach every CD-ROM medium of ``vms`` backed by ``storage_name``.

        Each device is attempted independently. After the settle delay the
        inventory is checked again; VMs still referencing the storage are
        returned for display and do not block the unmount.

        Returns:
            Tuple of (list of EjectResult, list of VMReference still attached)
        """
        LOG.info(f"Auto-ejecting ISOs from VMs using {storage_name}")
        results: List[EjectResult] = []
        processed = 0

        for vm in vms:
            try:
                devices = self.inventory.media_devices(self.inventory.get_config(vm.vmid), storage_name)
            except Exception as e:
                LOG.error(f"Cannot read configuration of VM {vm.vmid}: {e}")
                continue
            if not devices:
                continue

            processed += 1
            for device, value in devices:
                LOG.info(f"Ejecting {value} from VM {vm.vmid} {device}")
                try:
                    success, error = self.inventory.eject(vm.vmid, device)
                except Exception as e:
                    success, error = False, str(e)

                if success:
                    LOG.info(f"Ejected ISO from VM {vm.vmid} {device}")
                else:
                    LOG.error(f"Failed to eject ISO from VM {vm.vmid} {device}: {error}")
                results.append(EjectResult(vmid=vm.vmid, device=device, success=success, error=error))

        if processed == 0:
            LOG.info(f"No VMs found with ISOs from {storage_name}")
            return results, []

        LOG.info(f"Processed {processed} VMs, waiting {self.settle_seconds}s before unmount")
        self._sleep(self.settle_seconds)

        still_attached = []
        try:
            still_attached = self.inventory.find_references(storage_name)
        except Exception as e:
            LOG.warning(f"Could not verify ISO ejection for {storage_name}: {e}")
        for vm in still_attached:
            LOG.warning(f"VM {vm.vmid} still references {storage_name}")

        return results, still_attached
