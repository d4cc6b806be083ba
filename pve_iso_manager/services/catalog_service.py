"""Catalog operations that involve the mount lifecycle"""

from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import List, Optional

from pve_iso_manager.catalog.store import CatalogStore
from pve_iso_manager.lock_manager import OperationLock
from pve_iso_manager.services.mount_lifecycle import (
    DecisionProvider, ItemStatus, MountLifecycle, MountResult, UnmountResult
)
from pve_iso_manager.utils.logger import get_logger

LOG = get_logger(__name__)


@dataclass
class DeleteResult:
    """Result of deleting an item or a category"""
    deleted: bool
    unmounts: List[UnmountResult] = field(default_factory=list)


@dataclass
class CategoryStatus:
    category_id: int
    label: str
    items: List[tuple] = field(default_factory=list)  # (item_id, ItemStatus)


class CatalogService:
    """
    Entry point used by the CLI.

    Deleting an item runs the full unmount sequence first; deleting a
    category does so for each of its items, and nothing is removed from the
    catalog unless every unmount went through.
    """

    def __init__(self, store: CatalogStore, lifecycle: MountLifecycle,
                 lock: Optional[OperationLock] = None):
        self.store = store
        self.lifecycle = lifecycle
        self.lock = lock

    @contextmanager
    def locked(self):
        if self.lock is None:
            yield
            return
        with self.lock.acquire():
            yield

    def mount(self, category_id: int, item_id: int) -> MountResult:
        with self.locked():
            item = self.store.get_item(category_id, item_id)
            return self.lifecycle.mount(item)

    def unmount(self, category_id: int, item_id: int,
                decide: Optional[DecisionProvider] = None) -> UnmountResult:
        with self.locked():
            item = self.store.get_item(category_id, item_id)
            return self.lifecycle.unmount(item, decide)

    def delete_item(self, category_id: int, item_id: int,
                    decide: Optional[DecisionProvider] = None) -> DeleteResult:
        with self.locked():
            item = self.store.get_item(category_id, item_id)
            unmount = self.lifecycle.unmount(item, decide)
            result = DeleteResult(deleted=False, unmounts=[unmount])
            if not unmount.unmounted:
                LOG.info(f"Keeping item {category_id}/{item_id}, unmount was cancelled")
                return result

            self.store.delete_item(category_id, item_id)
            result.deleted = True
            return result

    def delete_category(self, category_id: int,
                        decide: Optional[DecisionProvider] = None) -> DeleteResult:
        """
        Unmount every item of the category, then remove it.

        Stops at the first cancelled unmount; an UnmountException propagates.
        In both cases the category stays in the catalog.
        """
        with self.locked():
            result = DeleteResult(deleted=False)
            for _, item in self.store.list_items(category_id):
                unmount = self.lifecycle.unmount(item, decide)
                result.unmounts.append(unmount)
                if not unmount.unmounted:
                    LOG.info(f"Keeping category {category_id}, unmount of {item.name} was cancelled")
                    return result

            self.store.delete_category(category_id)
            result.deleted = True
            return result

    def item_status(self, category_id: int, item_id: int) -> ItemStatus:
        return self.lifecycle.status(self.store.get_item(category_id, item_id))

    def all_status(self) -> List[CategoryStatus]:
        statuses = []
        for category in self.store.list_categories():
            entry = CategoryStatus(category_id=category.id, label=category.label)
            for item_id, item in self.store.list_items(category.id):
                entry.items.append((item_id, self.lifecycle.status(item)))
            statuses.append(entry)
        return statuses
