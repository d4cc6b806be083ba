"""JSON document persistence for the catalog"""

import json
import os
from typing import Dict, Any

from pve_iso_manager.exceptions import ConfigurationException
from pve_iso_manager.utils.logger import get_logger

LOG = get_logger(__name__)

DEFAULT_CATALOG = {
    'iso_configs': {
        '1': {
            'label': 'Linux OS',
            'items': {
                '1': {
                    'name': 'ROCKY9-ISO',
                    'label': 'Rocky Linux 9',
                    'nfs_server': '10.160.88.33',
                    'nfs_export': '/OSimg/Linux/Rocky_Linux/Rocky_Linux_9',
                    'mount_base': '/mnt/rocky9-iso',
                    'mount_target': '/mnt/rocky9-iso/template/iso'
                }
            }
        },
        '2': {
            'label': 'Windows OS',
            'items': {
                '1': {
                    'name': 'Win2008R2-ISO',
                    'label': 'Windows 2008 R2',
                    'nfs_server': '10.160.88.33',
                    'nfs_export': '/OSimg/Windows/Win2008/WS2008R2',
                    'mount_base': '/mnt/win2008r2-iso',
                    'mount_target': '/mnt/win2008r2-iso/template/iso'
                }
            }
        }
    }
}


class JsonCatalogFile:
    """Read-whole / write-whole JSON catalog document"""

    def __init__(self, path: str, seed: bool = True):
        self.path = path
        self.seed = seed

    def exists(self) -> bool:
        return os.path.isfile(self.path)

    def load(self) -> Dict[str, Any]:
        """Load the document, seeding the default catalog when missing"""
        if not self.exists():
            document = json.loads(json.dumps(DEFAULT_CATALOG)) if self.seed else {'iso_configs': {}}
            LOG.info(f"Initializing catalog file {self.path}")
            self.save(document)
            return document

        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                document = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigurationException(f"Cannot read catalog file {self.path}: {e}")

        if not isinstance(document, dict):
            raise ConfigurationException(f"Catalog file {self.path} is not a JSON object")
        document.setdefault('iso_configs', {})
        return document

    def save(self, document: Dict[str, Any]):
        directory = os.path.dirname(self.path)
        try:
            if directory:
                os.makedirs(directory, exist_ok=True)
            with open(self.path, 'w', encoding='utf-8') as f:
                json.dump(document, f, indent=2)
                f.write('\n')
        except OSError as e:
            raise ConfigurationException(f"Cannot write catalog file {self.path}: {e}")
        LOG.debug(f"Catalog saved to {self.path}")
