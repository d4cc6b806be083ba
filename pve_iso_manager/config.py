"""
PVE ISO Manager Configuration Module
Supports loading from:
1. INI config file (/etc/pve-iso-manager/manager.conf)
2. Environment variables (override config file)
3. Default values (fallback)
"""

import os
import logging
from configparser import ConfigParser, Error as ConfigParserError
from typing import Dict, Any, Optional

logger = logging.getLogger(__name__)


def _default_catalog_file() -> str:
    if os.path.isdir('/etc/pve'):
        return '/etc/pve/iso-mount-config.json'
    return os.path.join(os.getcwd(), 'iso-mount-config.json')


def _as_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ('1', 'true', 'yes', 'on')


class IsoManagerConfig:
    """ISO manager configuration"""

    CONFIG_FILE = '/etc/pve-iso-manager/manager.conf'
    ENV_PREFIX = 'ISO_MANAGER_'

    # Default values
    DEFAULT_STORAGE_CFG = '/etc/pve/storage.cfg'
    DEFAULT_MOUNT_ROOT = '/mnt'
    DEFAULT_NFS_SERVER = '10.160.88.33'
    DEFAULT_MOUNT_OPTIONS = 'ro'
    DEFAULT_EJECT_SETTLE_SECONDS = 3
    DEFAULT_COMMAND_TIMEOUT = 30
    DEFAULT_LOCK_DIR = '/var/lock/pve-iso-manager'
    DEFAULT_LOCK_TIMEOUT = 30
    DEFAULT_LOG_LEVEL = 'WARNING'
    DEFAULT_LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

    def __init__(self, config_file: Optional[str] = None, **overrides):
        """
        Load configuration with priority: override > env var > config file > default.

        Args:
            config_file: Path to INI file (optional)
            **overrides: Explicit values, e.g. from CLI options. None is ignored.
        """
        self.config_file = config_file or self.CONFIG_FILE
        config_data = self._load_ini_file(self.config_file)

        def pick(key: str, default):
            if overrides.get(key) is not None:
                return overrides[key]
            return os.environ.get(self.ENV_PREFIX + key.upper(),
                                  config_data.get(key, default))

        self.catalog_file = pick('catalog_file', _default_catalog_file())
        self.storage_cfg = pick('storage_cfg', self.DEFAULT_STORAGE_CFG)
        self.mount_root = pick('mount_root', self.DEFAULT_MOUNT_ROOT)
        self.default_nfs_server = pick('default_nfs_server', self.DEFAULT_NFS_SERVER)
        self.mount_options = pick('mount_options', self.DEFAULT_MOUNT_OPTIONS)
        self.lock_dir = pick('lock_dir', self.DEFAULT_LOCK_DIR)
        self.log_level = pick('log_level', self.DEFAULT_LOG_LEVEL)
        self.log_format = pick('log_format', self.DEFAULT_LOG_FORMAT)
        self.json_logs = _as_bool(pick('json_logs', False))

        try:
            self.eject_settle_seconds = float(
                pick('eject_settle_seconds', self.DEFAULT_EJECT_SETTLE_SECONDS))
            self.command_timeout = int(pick('command_timeout', self.DEFAULT_COMMAND_TIMEOUT))
            self.lock_timeout = int(pick('lock_timeout', self.DEFAULT_LOCK_TIMEOUT))
        except (TypeError, ValueError) as e:
            raise ValueError(f"Invalid numeric configuration value: {e}")

        logger.debug(f"Configuration loaded (file: {self.config_file})")

    @classmethod
    def from_file(cls, config_file: str, **overrides) -> 'IsoManagerConfig':
        """Load configuration from an explicit INI file, which must exist"""
        if not os.path.exists(config_file):
            raise FileNotFoundError(f"Config file not found: {config_file}")
        return cls(config_file=config_file, **overrides)

    @classmethod
    def _load_ini_file(cls, config_file: str) -> Dict[str, Any]:
        """
        Load configuration from INI file.

        Expected format:
        [manager]
        catalog_file = /etc/pve/iso-mount-config.json
        storage_cfg = /etc/pve/storage.cfg
        default_nfs_server = 10.160.88.33
        log_level = INFO
        """
        config_data = {}

        if not os.path.exists(config_file):
            logger.debug(f"Config file not found: {config_file}, using defaults")
            return config_data

        try:
            parser = ConfigParser()
            parser.read(config_file)

            for section in ['manager', 'DEFAULT']:
                if parser.has_section(section) or section == 'DEFAULT':
                    for key, value in parser.items(section):
                        if key not in config_data:
                            config_data[key] = value

            logger.info(f"Loaded {len(config_data)} config parameters from {config_file}")

        except ConfigParserError as e:
            logger.error(f"Failed to load config file {config_file}: {e}")

        return config_data

    def is_pve(self) -> bool:
        """True when the host storage registry is present"""
        return os.path.isfile(self.storage_cfg)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'config_file': self.config_file,
            'catalog_file': self.catalog_file,
            'storage_cfg': self.storage_cfg,
            'mount_root': self.mount_root,
            'default_nfs_server': self.default_nfs_server,
            'mount_options': self.mount_options,
            'eject_settle_seconds': self.eject_settle_seconds,
            'command_timeout': self.command_timeout,
            'lock_dir': self.lock_dir,
            'lock_timeout': self.lock_timeout,
            'log_level': self.log_level,
            'json_logs': self.json_logs,
        }
