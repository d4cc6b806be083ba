"""Catalog data model"""

from dataclasses import dataclass, field, asdict
from typing import Dict, Any, Optional

ISO_SUBDIR = 'template/iso'
ITEM_FIELDS = ('name', 'label', 'nfs_server', 'nfs_export', 'mount_base')


def derive_mount_target(mount_base: str) -> str:
    """Directory actually mounted for a given storage base"""
    return f"{mount_base.rstrip('/')}/{ISO_SUBDIR}"


def default_mount_base(mount_root: str, name: str) -> str:
    return f"{mount_root.rstrip('/')}/{name}"


@dataclass
class IsoItem:
    """
    Mount definition for one ISO library.

    ``mount_target`` is never set independently; it is recomputed from
    ``mount_base`` on construction and on every update.
    """
    name: str
    label: str
    nfs_server: str
    nfs_export: str
    mount_base: str
    mount_target: str = field(init=False)

    def __post_init__(self):
        self.mount_target = derive_mount_target(self.mount_base)

    @property
    def share(self) -> str:
        return f"{self.nfs_server}:{self.nfs_export}"

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'IsoItem':
        # stored mount_target is ignored, it is always re-derived
        return cls(**{key: data.get(key, '') for key in ITEM_FIELDS})


@dataclass
class Category:
    """Top level grouping of ISO items"""
    id: int
    label: str
    items: Dict[int, IsoItem] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'label': self.label,
            'items': {str(item_id): self.items[item_id].to_dict()
                      for item_id in sorted(self.items)},
        }

    @classmethod
    def from_dict(cls, category_id: int, data: Dict[str, Any]) -> 'Category':
        items = {
            int(item_id): IsoItem.from_dict(item_data)
            for item_id, item_data in (data.get('items') or {}).items()
        }
        return cls(id=category_id, label=data.get('label', ''), items=items)


def next_free_id(used, start: int = 1) -> int:
    """Smallest positive integer not in ``used``"""
    candidate = start
    while candidate in used:
        candidate += 1
    return candidate


def parse_path(path) -> tuple:
    """
    Split a catalog path into (category_id, item_id).

    ``"2"`` -> (2, None), ``"2/1"`` -> (2, 1). Raises ValueError on
    anything else.
    """
    if isinstance(path, int):
        return path, None
    parts = [part for part in str(path).strip().strip('/').split('/') if part]
    if not parts or len(parts) > 2:
        raise ValueError(f"Invalid catalog path: {path!r}")
    ids = [int(part) for part in parts]
    if any(i < 1 for i in ids):
        raise ValueError(f"Invalid catalog path: {path!r}")
    category_id = ids[0]
    item_id: Optional[int] = ids[1] if len(ids) == 2 else None
    return category_id, item_id
