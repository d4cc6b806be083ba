"""
Tests for configuration loading and the operation lock
"""

import os
import threading
from unittest.mock import patch

import pytest

from pve_iso_manager.config import IsoManagerConfig
from pve_iso_manager.exceptions import LockTimeoutException
from pve_iso_manager.lock_manager import OperationLock


INI = """[manager]
catalog_file = /srv/iso/catalog.json
default_nfs_server = 192.0.2.10
eject_settle_seconds = 0.5
json_logs = yes
"""


@pytest.fixture
def ini_file(tmp_path):
    path = tmp_path / 'manager.conf'
    path.write_text(INI)
    return str(path)


@pytest.fixture(autouse=True)
def clean_env():
    keys = [key for key in os.environ if key.startswith('ISO_MANAGER_')]
    with patch.dict(os.environ, {}, clear=False):
        for key in keys:
            del os.environ[key]
        yield


class TestConfig:

    def test_defaults(self, tmp_path):
        config = IsoManagerConfig(config_file=str(tmp_path / 'absent.conf'))

        assert config.storage_cfg == '/etc/pve/storage.cfg'
        assert config.mount_root == '/mnt'
        assert config.mount_options == 'ro'
        assert config.eject_settle_seconds == 3
        assert config.json_logs is False

    def test_file_values(self, ini_file):
        config = IsoManagerConfig.from_file(ini_file)

        assert config.catalog_file == '/srv/iso/catalog.json'
        assert config.default_nfs_server == '192.0.2.10'
        assert config.eject_settle_seconds == 0.5
        assert config.json_logs is True

    def test_env_overrides_file(self, ini_file):
        with patch.dict(os.environ, {'ISO_MANAGER_DEFAULT_NFS_SERVER': '198.51.100.7'}):
            config = IsoManagerConfig(ini_file)
        assert config.default_nfs_server == '198.51.100.7'

    def test_explicit_override_wins(self, ini_file):
        with patch.dict(os.environ, {'ISO_MANAGER_CATALOG_FILE': '/env/catalog.json'}):
            config = IsoManagerConfig(ini_file, catalog_file='/cli/catalog.json', storage_cfg=None)
        assert config.catalog_file == '/cli/catalog.json'
        assert config.storage_cfg == '/etc/pve/storage.cfg'

    def test_missing_explicit_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            IsoManagerConfig.from_file(str(tmp_path / 'absent.conf'))

    def test_bad_number(self, tmp_path):
        with pytest.raises(ValueError):
            IsoManagerConfig(str(tmp_path / 'absent.conf'), command_timeout='soon')

    def test_is_pve(self, tmp_path):
        storage_cfg = tmp_path / 'storage.cfg'
        config = IsoManagerConfig(str(tmp_path / 'absent.conf'), storage_cfg=str(storage_cfg))
        assert not config.is_pve()
        storage_cfg.write_text('')
        assert config.is_pve()


class TestOperationLock:

    def test_acquire_and_release(self, tmp_path):
        lock = OperationLock(str(tmp_path / 'locks'), timeout=1)

        with lock.acquire():
            assert (tmp_path / 'locks' / 'catalog.lock').exists()
        with lock.acquire():
            pass

    def test_timeout_while_held(self, tmp_path):
        holder = OperationLock(str(tmp_path), timeout=1)
        waiter = OperationLock(str(tmp_path), timeout=0)
        acquired = threading.Event()
        release = threading.Event()

        def hold():
            with holder.acquire():
                acquired.set()
                release.wait(5)

        thread = threading.Thread(target=hold)
        thread.start()
        try:
            assert acquired.wait(5)
            with pytest.raises(LockTimeoutException):
                with waiter.acquire():
                    pass
        finally:
            release.set()
            thread.join()
