"""Host drivers package"""

from pve_iso_manager.drivers.base import BaseMountDriver
from pve_iso_manager.drivers.handles import HandleProbe
from pve_iso_manager.drivers.nfs import NFSDriver
from pve_iso_manager.drivers.qemu import QemuInventory, VMReference

__all__ = ['BaseMountDriver', 'HandleProbe', 'NFSDriver', 'QemuInventory', 'VMReference']
