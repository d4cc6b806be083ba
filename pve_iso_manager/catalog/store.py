"""Hierarchical catalog of categories and ISO mount definitions"""

from typing import Dict, Any, List, Optional, Tuple, Union

from pve_iso_manager.catalog.models import (
    Category, IsoItem, ITEM_FIELDS, default_mount_base, next_free_id, parse_path
)
from pve_iso_manager.catalog.persistence import JsonCatalogFile
from pve_iso_manager.exceptions import InvalidInputException, NotFoundException
from pve_iso_manager.utils.logger import get_logger
from pve_iso_manager.utils.validators import (
    normalize_nfs_export, validate_mount_path, validate_storage_name
)

LOG = get_logger(__name__)

CatalogPath = Union[str, int]


class CatalogStore:
    """
    Category -> item store.

    Ids at each level are the smallest unused positive integers. Every
    mutation is validated in full before anything is changed, then the
    whole document is written back through the backend (if any).
    """

    def __init__(self, backend: Optional[JsonCatalogFile] = None, mount_root: str = '/mnt'):
        self.backend = backend
        self.mount_root = mount_root
        self._categories: Dict[int, Category] = {}
        self.reload()

    def reload(self):
        """Re-read the backing document"""
        self._categories = {}
        if self.backend is None:
            return
        document = self.backend.load()
        for category_id, data in document.get('iso_configs', {}).items():
            try:
                cid = int(category_id)
            except ValueError:
                LOG.warning(f"Skipping category with non-numeric id {category_id!r}")
                continue
            self._categories[cid] = Category.from_dict(cid, data)

    def to_document(self) -> Dict[str, Any]:
        return {
            'iso_configs': {
                str(cid): self._categories[cid].to_dict()
                for cid in sorted(self._categories)
            }
        }

    def _save(self):
        if self.backend is not None:
            self.backend.save(self.to_document())

    # Categories

    def list_categories(self) -> List[Category]:
        return [self._categories[cid] for cid in sorted(self._categories)]

    def get_category(self, category_id: int) -> Category:
        try:
            return self._categories[category_id]
        except KeyError:
            raise NotFoundException(f"Category {category_id} not found")

    def add_category(self, label: str) -> int:
        label = (label or '').strip()
        if not label:
            raise InvalidInputException("Category name cannot be empty")

        category_id = next_free_id(self._categories)
        self._categories[category_id] = Category(id=category_id, label=label)
        self._save()
        LOG.info(f"Added category {category_id} ({label})")
        return category_id

    def update_category(self, category_id: int, label: Optional[str] = None) -> Category:
        category = self.get_category(category_id)
        if label is None:
            return category
        label = label.strip()
        if not label:
            raise InvalidInputException("Category name cannot be empty")
        category.label = label
        self._save()
        return category

    def delete_category(self, category_id: int) -> Category:
        """Remove the category record. Callers unmount its items first."""
        category = self.get_category(category_id)
        del self._categories[category_id]
        self._save()
        LOG.info(f"Deleted category {category_id} ({category.label})")
        return category

    # Items

    def list_items(self, category_id: int) -> List[Tuple[int, IsoItem]]:
        category = self.get_category(category_id)
        return [(item_id, category.items[item_id]) for item_id in sorted(category.items)]

    def iter_items(self):
        """Yield (category, item_id, item) across the whole catalog"""
        for category in self.list_categories():
            for item_id in sorted(category.items):
                yield category, item_id, category.items[item_id]

    def get_item(self, category_id: int, item_id: int) -> IsoItem:
        category = self.get_category(category_id)
        try:
            return category.items[item_id]
        except KeyError:
            raise NotFoundException(f"Item {category_id}/{item_id} not found")

    def find_item_by_name(self, name: str) -> Optional[Tuple[int, int, IsoItem]]:
        for category, item_id, item in self.iter_items():
            if item.name == name:
                return category.id, item_id, item
        return None

    def add_item(self, category_id: int, name: str = None, label: str = None,
                 nfs_server: str = None, nfs_export: str = None,
                 mount_base: str = None) -> int:
        category = self.get_category(category_id)

        name = (name or '').strip()
        if not (mount_base or '').strip() and name:
            mount_base = default_mount_base(self.mount_root, name)

        item = self._build_item({
            'name': name,
            'label': label,
            'nfs_server': nfs_server,
            'nfs_export': nfs_export,
            'mount_base': mount_base,
        })
        self._check_unique_name(item.name)

        item_id = next_free_id(category.items)
        category.items[item_id] = item
        self._save()
        LOG.info(f"Added item {category_id}/{item_id} ({item.name})")
        return item_id

    def update_item(self, category_id: int, item_id: int, **changes) -> IsoItem:
        """
        Partial update. Fields passed as None keep their current value.

        Renaming without an explicit ``mount_base`` moves the mount base to
        ``<mount_root>/<new name>``.
        """
        current = self.get_item(category_id, item_id)
        unknown = set(changes) - set(ITEM_FIELDS)
        if unknown:
            raise InvalidInputException(f"Unknown item fields: {', '.join(sorted(unknown))}")

        values = current.to_dict()
        for key, value in changes.items():
            if value is not None:
                values[key] = value

        new_name = (values['name'] or '').strip()
        if new_name != current.name and changes.get('mount_base') is None:
            values['mount_base'] = default_mount_base(self.mount_root, new_name)
            LOG.info(f"Mount base follows rename: {values['mount_base']}")

        item = self._build_item(values)
        if item.name != current.name:
            self._check_unique_name(item.name)

        self.get_category(category_id).items[item_id] = item
        self._save()
        return item

    def delete_item(self, category_id: int, item_id: int) -> IsoItem:
        """Remove the item record. Callers unmount it first."""
        item = self.get_item(category_id, item_id)
        del self.get_category(category_id).items[item_id]
        self._save()
        LOG.info(f"Deleted item {category_id}/{item_id} ({item.name})")
        return item

    # Path based access

    def create(self, parent_path: Optional[CatalogPath], attrs: Dict[str, Any]) -> int:
        if parent_path in (None, '', '/'):
            return self.add_category(attrs.get('label'))
        category_id, item_id = self._parse(parent_path)
        if item_id is not None:
            raise InvalidInputException("Items cannot have children")
        return self.add_item(category_id, **attrs)

    def read(self, path: CatalogPath) -> Union[Category, IsoItem]:
        category_id, item_id = self._parse(path)
        if item_id is None:
            return self.get_category(category_id)
        return self.get_item(category_id, item_id)

    def update(self, path: CatalogPath, attrs: Dict[str, Any]):
        category_id, item_id = self._parse(path)
        if item_id is None:
            return self.update_category(category_id, attrs.get('label'))
        return self.update_item(category_id, item_id, **attrs)

    def delete(self, path: CatalogPath):
        category_id, item_id = self._parse(path)
        if item_id is None:
            return self.delete_category(category_id)
        return self.delete_item(category_id, item_id)

    def list(self, parent_path: Optional[CatalogPath] = None) -> list:
        if parent_path in (None, '', '/'):
            return self.list_categories()
        category_id, item_id = self._parse(parent_path)
        if item_id is not None:
            raise InvalidInputException("Items have no children")
        return self.list_items(category_id)

    # Helpers

    @staticmethod
    def _parse(path: CatalogPath) -> Tuple[int, Optional[int]]:
        try:
            return parse_path(path)
        except ValueError as e:
            raise InvalidInputException(str(e))

    def _check_unique_name(self, name: str):
        if self.find_item_by_name(name) is not None:
            raise InvalidInputException(f"Storage name '{name}' is already used in the catalog")

    @staticmethod
    def _build_item(values: Dict[str, Any]) -> IsoItem:
        cleaned = {key: (values.get(key) or '').strip() for key in ITEM_FIELDS}
        cleaned['nfs_export'] = normalize_nfs_export(cleaned['nfs_export'])

        missing = [key for key in ITEM_FIELDS if not cleaned[key]]
        if missing:
            raise InvalidInputException(f"All fields are required, missing: {', '.join(missing)}")
        if not validate_storage_name(cleaned['name']):
            raise InvalidInputException(f"Invalid storage name: {cleaned['name']}")
        if not cleaned['nfs_export'].startswith('/'):
            raise InvalidInputException(f"NFS export must be an absolute path: {cleaned['nfs_export']}")
        if not validate_mount_path(cleaned['mount_base']):
            raise InvalidInputException(f"Invalid mount base path: {cleaned['mount_base']}")

        return IsoItem(**cleaned)
