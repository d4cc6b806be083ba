"""
Tests for the host drivers: NFS mounts, qm inventory and open handle probe
"""

from unittest.mock import patch

import pytest

from pve_iso_manager.drivers.handles import HandleProbe
from pve_iso_manager.drivers.nfs import NFSDriver
from pve_iso_manager.drivers.qemu import QemuInventory, VMReference


PROC_MOUNTS = """sysfs /sys sysfs rw,nosuid,nodev,noexec,relatime 0 0
/dev/mapper/pve-root / ext4 rw,relatime,errors=remount-ro 0 0
10.160.88.33:/OSimg/Linux/Rocky_Linux/Rocky_Linux_9 /mnt/rocky9-iso/template/iso nfs ro,relatime,vers=3 0 0
10.160.88.33:/OSimg/Other /mnt/with\\040space/template/iso nfs4 ro 0 0
"""

QM_LIST = """      VMID NAME                 STATUS     MEM(MB)    BOOTDISK(GB) PID
       100 web01                running    2048              32.00 1234
       101 db01                 stopped    4096              64.00 0
"""

QM_CONFIG_100 = """boot: order=scsi0;ide2
ide2: ROCKY9-ISO:iso/Rocky-9.4-x86_64-dvd.iso,media=cdrom
memory: 2048
name: web01
scsi0: local-lvm:vm-100-disk-0,size=32G
"""

QM_CONFIG_101 = """ide2: none,media=cdrom
memory: 4096
name: db01
"""


class TestNFSDriver:

    @pytest.fixture
    def driver(self, tmp_path):
        proc_mounts = tmp_path / 'mounts'
        proc_mounts.write_text(PROC_MOUNTS)
        return NFSDriver(proc_mounts=str(proc_mounts), timeout=5)

    def test_is_mounted(self, driver):
        assert driver.is_mounted('/mnt/rocky9-iso/template/iso')
        assert driver.is_mounted('/mnt/rocky9-iso/template/iso/')
        assert not driver.is_mounted('/mnt/rocky9-iso')

    def test_escaped_mount_point(self, driver):
        assert driver.is_mounted('/mnt/with space/template/iso')

    def test_get_mount_info(self, driver):
        info = driver.get_mount_info('/mnt/rocky9-iso/template/iso')

        assert info['device'] == '10.160.88.33:/OSimg/Linux/Rocky_Linux/Rocky_Linux_9'
        assert info['fs_type'] == 'nfs'
        assert info['options'].startswith('ro')
        assert driver.get_mount_info('/mnt/nothing') == {}

    def test_unreadable_mount_table(self, tmp_path):
        driver = NFSDriver(proc_mounts=str(tmp_path / 'missing'))
        assert not driver.is_mounted('/mnt/rocky9-iso/template/iso')

    @patch('pve_iso_manager.drivers.nfs.run_command')
    def test_mount_command(self, mock_run, driver, tmp_path):
        mock_run.return_value = (0, '', '')
        target = tmp_path / 'rocky9-iso' / 'template' / 'iso'

        assert driver.mount('10.160.88.33:/OSimg/X', str(target), 'ro')

        assert target.is_dir()
        mock_run.assert_called_once_with(
            ['mount', '-t', 'nfs', '-o', 'ro', '10.160.88.33:/OSimg/X', str(target)],
            timeout=5
        )

    @patch('pve_iso_manager.drivers.nfs.run_command')
    def test_mount_failure(self, mock_run, driver, tmp_path):
        mock_run.return_value = (32, '', 'mount.nfs: access denied by server')
        assert not driver.mount('10.160.88.33:/OSimg/X', str(tmp_path), 'ro')

    @patch('pve_iso_manager.drivers.nfs.run_command')
    def test_unmount_and_lazy_unmount(self, mock_run, driver):
        mock_run.return_value = (0, '', '')

        assert driver.unmount('/mnt/x')
        assert driver.lazy_unmount('/mnt/x')

        assert mock_run.call_args_list[0][0][0] == ['umount', '/mnt/x']
        assert mock_run.call_args_list[1][0][0] == ['umount', '-l', '/mnt/x']

    @patch('pve_iso_manager.drivers.nfs.run_command')
    def test_unmount_busy(self, mock_run, driver):
        mock_run.return_value = (32, '', 'umount.nfs: /mnt/x: device is busy')
        assert not driver.unmount('/mnt/x')
        assert not driver.lazy_unmount('/mnt/x')


def fake_qm(args, timeout=30):
    if args[1] == 'list':
        return 0, QM_LIST, ''
    if args[1] == 'config':
        return 0, {'100': QM_CONFIG_100, '101': QM_CONFIG_101}[args[2]], ''
    return 0, '', ''


class TestQemuInventory:

    @pytest.fixture
    def inventory(self):
        inventory = QemuInventory(timeout=5)
        with patch('pve_iso_manager.drivers.qemu.command_exists', return_value=True), \
                patch('pve_iso_manager.drivers.qemu.run_command', side_effect=fake_qm):
            yield inventory

    def test_list_vmids_skips_header(self, inventory):
        assert inventory.list_vmids() == ['100', '101']

    def test_get_config(self, inventory):
        config = inventory.get_config('100')

        assert config['name'] == 'web01'
        assert config['ide2'] == 'ROCKY9-ISO:iso/Rocky-9.4-x86_64-dvd.iso,media=cdrom'

    def test_find_references(self, inventory):
        assert inventory.find_references('ROCKY9-ISO') == [VMReference(vmid='100', name='web01')]
        assert inventory.find_references('Win2008R2-ISO') == []

    def test_media_devices(self):
        config = {
            'ide2': 'ROCKY9-ISO:iso/a.iso,media=cdrom',
            'ide3': 'local:iso/b.iso,media=cdrom',
            'scsi1': 'ROCKY9-ISO:iso/c.iso',
            'name': 'web01',
        }
        assert QemuInventory.media_devices(config, 'ROCKY9-ISO') == [
            ('ide2', 'ROCKY9-ISO:iso/a.iso,media=cdrom')
        ]

    def test_similar_storage_names(self):
        config = {
            'ide2': 'OLD-ROCKY9-ISO:iso/a.iso,media=cdrom',
            'ide3': 'ROCKY9-ISO-NEW:iso/b.iso,media=cdrom',
            'name': 'web01',
        }

        assert QemuInventory.media_devices(config, 'ROCKY9-ISO') == []
        assert not QemuInventory.references_storage(config, 'ROCKY9-ISO')
        assert QemuInventory.references_storage(config, 'OLD-ROCKY9-ISO')

    def test_volume_in_option_value(self):
        config = {'ide2': 'file=ROCKY9-ISO:iso/a.iso,media=cdrom'}
        assert QemuInventory.media_devices(config, 'ROCKY9-ISO') == [
            ('ide2', 'file=ROCKY9-ISO:iso/a.iso,media=cdrom')
        ]

    def test_eject(self):
        inventory = QemuInventory(timeout=5)
        with patch('pve_iso_manager.drivers.qemu.run_command', return_value=(0, '', '')) as mock_run:
            assert inventory.eject('100', 'ide2') == (True, '')
        mock_run.assert_called_once_with(['qm', 'set', '100', '--ide2', 'none'], timeout=5)

    def test_eject_failure(self):
        inventory = QemuInventory()
        with patch('pve_iso_manager.drivers.qemu.run_command',
                   return_value=(2, '', 'VM 100 is locked (backup)\n')):
            assert inventory.eject('100', 'ide2') == (False, 'VM 100 is locked (backup)')

    def test_without_qm(self):
        inventory = QemuInventory()
        with patch('pve_iso_manager.drivers.qemu.command_exists', return_value=False), \
                patch('pve_iso_manager.drivers.qemu.run_command') as mock_run:
            assert inventory.find_references('ROCKY9-ISO') == []
        mock_run.assert_not_called()

    def test_qm_list_failure(self):
        inventory = QemuInventory()
        with patch('pve_iso_manager.drivers.qemu.command_exists', return_value=True), \
                patch('pve_iso_manager.drivers.qemu.run_command', return_value=(1, '', 'ipcc_send_rec failed')):
            assert inventory.list_vmids() == []


class TestHandleProbe:

    LSOF = ("COMMAND   PID USER   FD   TYPE DEVICE SIZE/OFF NODE NAME\n"
            "bash    4242 root  cwd    DIR   0,52     4096    2 /mnt/rocky9-iso/template/iso\n")

    def test_lsof(self):
        with patch('pve_iso_manager.drivers.handles.command_exists', return_value=True), \
                patch('pve_iso_manager.drivers.handles.run_command', return_value=(0, self.LSOF, '')):
            processes = HandleProbe().processes_using('/mnt/rocky9-iso/template/iso')

        assert len(processes) == 1
        assert processes[0].startswith('bash    4242')

    def test_lsof_nothing_open(self):
        with patch('pve_iso_manager.drivers.handles.command_exists', return_value=True), \
                patch('pve_iso_manager.drivers.handles.run_command', return_value=(1, '', '')):
            assert HandleProbe().processes_using('/mnt/x') == []

    def test_fuser_fallback(self):
        def exists(name):
            return name == 'fuser'

        with patch('pve_iso_manager.drivers.handles.command_exists', side_effect=exists), \
                patch('pve_iso_manager.drivers.handles.run_command',
                      return_value=(0, ' 4242c 4243', '/mnt/x:')) as mock_run:
            assert HandleProbe().processes_using('/mnt/x') == ['PID 4242', 'PID 4243']
        assert mock_run.call_args[0][0] == ['fuser', '/mnt/x']

    def test_fuser_unmounted_target(self, tmp_path):
        def exists(name):
            return name == 'fuser'

        # fuser exits 1 with no output when nothing holds the directory
        with patch('pve_iso_manager.drivers.handles.command_exists', side_effect=exists), \
                patch('pve_iso_manager.drivers.handles.run_command', return_value=(1, '', '')) as mock_run:
            assert HandleProbe().processes_using(str(tmp_path)) == []
        assert '-m' not in mock_run.call_args[0][0]

    def test_no_tools(self):
        with patch('pve_iso_manager.drivers.handles.command_exists', return_value=False):
            assert HandleProbe().processes_using('/mnt/x') == []
