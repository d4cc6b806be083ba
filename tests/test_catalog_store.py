"""
Unit tests for the catalog store.
"""

import json

import pytest

from pve_iso_manager.catalog.models import Category, IsoItem
from pve_iso_manager.catalog.persistence import DEFAULT_CATALOG, JsonCatalogFile
from pve_iso_manager.catalog.store import CatalogStore
from pve_iso_manager.exceptions import InvalidInputException, NotFoundException


ITEM = {
    'name': 'ROCKY9-ISO',
    'label': 'Rocky Linux 9',
    'nfs_server': '10.160.88.33',
    'nfs_export': '/OSimg/Linux/Rocky_Linux/Rocky_Linux_9',
    'mount_base': '/mnt/rocky9-iso',
}


@pytest.fixture
def store():
    """In-memory store with one empty category."""
    store = CatalogStore(mount_root='/mnt')
    store.add_category('Linux OS')
    return store


def add(store, name, **overrides):
    attrs = dict(ITEM, name=name, mount_base=f'/mnt/{name}')
    attrs.update(overrides)
    return store.add_item(1, **attrs)


class TestKeyAllocation:

    def test_first_ids_start_at_one(self, store):
        assert add(store, 'A-ISO') == 1
        assert add(store, 'B-ISO') == 2

    def test_deleted_id_is_reused(self, store):
        for name in ('A-ISO', 'B-ISO', 'C-ISO'):
            add(store, name)

        store.delete_item(1, 2)

        assert add(store, 'D-ISO') == 2
        assert add(store, 'E-ISO') == 4

    def test_category_ids_are_reused(self, store):
        store.add_category('Windows OS')
        store.add_category('Tools')
        store.delete_category(2)

        assert store.add_category('BSD') == 2

    def test_list_is_ordered_by_id(self, store):
        for name in ('A-ISO', 'B-ISO', 'C-ISO'):
            add(store, name)
        store.delete_item(1, 1)
        add(store, 'D-ISO')

        assert [item_id for item_id, _ in store.list_items(1)] == [1, 2, 3]
        assert store.list_items(1)[0][1].name == 'D-ISO'


class TestMountTargetDerivation:

    def test_create_derives_mount_target(self, store):
        item_id = add(store, 'ROCKY9-ISO')
        item = store.get_item(1, item_id)

        assert item.mount_target == '/mnt/ROCKY9-ISO/template/iso'

    def test_default_mount_base_from_name(self, store):
        attrs = dict(ITEM)
        del attrs['mount_base']
        item_id = store.add_item(1, **attrs)

        item = store.get_item(1, item_id)
        assert item.mount_base == '/mnt/ROCKY9-ISO'
        assert item.mount_target == '/mnt/ROCKY9-ISO/template/iso'

    def test_update_mount_base_rederives_target(self, store):
        item_id = add(store, 'ROCKY9-ISO')

        item = store.update_item(1, item_id, mount_base='/srv/iso/rocky')

        assert item.mount_target == '/srv/iso/rocky/template/iso'
        assert store.get_item(1, item_id).mount_target == '/srv/iso/rocky/template/iso'

    def test_rename_without_base_moves_base(self, store):
        item_id = add(store, 'ROCKY9-ISO', mount_base='/data/custom')

        item = store.update_item(1, item_id, name='ROCKY10-ISO')

        assert item.mount_base == '/mnt/ROCKY10-ISO'
        assert item.mount_target == '/mnt/ROCKY10-ISO/template/iso'

    def test_rename_with_explicit_base_keeps_it(self, store):
        item_id = add(store, 'ROCKY9-ISO')

        item = store.update_item(1, item_id, name='ROCKY10-ISO', mount_base='/data/r10')

        assert item.mount_base == '/data/r10'
        assert item.mount_target == '/data/r10/template/iso'

    def test_stored_target_is_ignored_on_load(self):
        item = IsoItem.from_dict(dict(ITEM, mount_target='/somewhere/else'))
        assert item.mount_target == '/mnt/rocky9-iso/template/iso'


class TestUpdateAndValidation:

    def test_partial_update_keeps_other_fields(self, store):
        item_id = add(store, 'ROCKY9-ISO')

        item = store.update_item(1, item_id, label='Rocky Linux 9.4')

        assert item.label == 'Rocky Linux 9.4'
        assert item.name == 'ROCKY9-ISO'
        assert item.mount_base == '/mnt/ROCKY9-ISO'
        assert item.nfs_export == ITEM['nfs_export']

    def test_update_normalizes_export(self, store):
        item_id = add(store, 'ROCKY9-ISO')

        item = store.update_item(1, item_id, nfs_export='//10.1.1.1/OSimg/X')

        assert item.nfs_export == '/OSimg/X'

    @pytest.mark.parametrize('field', ['name', 'label', 'nfs_server', 'nfs_export'])
    def test_empty_field_rejects_whole_record(self, store, field):
        with pytest.raises(InvalidInputException):
            store.add_item(1, **dict(ITEM, **{field: '  '}))

        assert store.list_items(1) == []

    def test_empty_update_leaves_item_untouched(self, store):
        item_id = add(store, 'ROCKY9-ISO')

        with pytest.raises(InvalidInputException):
            store.update_item(1, item_id, label='New label', nfs_server='')

        assert store.get_item(1, item_id).label == ITEM['label']

    @pytest.mark.parametrize('export', ['OSimg/X', 'nas:/OSimg/X'])
    def test_relative_export_rejected(self, store, export):
        with pytest.raises(InvalidInputException):
            store.add_item(1, **dict(ITEM, nfs_export=export))

        assert store.list_items(1) == []

    def test_duplicate_name_rejected(self, store):
        add(store, 'ROCKY9-ISO')
        store.add_category('Other')

        with pytest.raises(InvalidInputException):
            store.add_item(2, **dict(ITEM, name='ROCKY9-ISO'))

    def test_empty_category_label_rejected(self, store):
        with pytest.raises(InvalidInputException):
            store.add_category('   ')
        assert len(store.list_categories()) == 1

    def test_missing_paths(self, store):
        with pytest.raises(NotFoundException):
            store.get_category(9)
        with pytest.raises(NotFoundException):
            store.get_item(1, 9)
        with pytest.raises(NotFoundException):
            store.update_item(1, 9, label='x')
        with pytest.raises(NotFoundException):
            store.delete_item(9, 1)


class TestPathAccess:

    def test_create_read_update_delete(self, store):
        item_id = store.create('1', dict(ITEM))
        assert isinstance(store.read(f'1/{item_id}'), IsoItem)
        assert isinstance(store.read('1'), Category)

        store.update(f'1/{item_id}', {'label': 'Renamed'})
        assert store.read(f'1/{item_id}').label == 'Renamed'

        store.delete(f'1/{item_id}')
        assert store.list('1') == []

    def test_create_category_at_root(self, store):
        assert store.create(None, {'label': 'Windows OS'}) == 2
        assert [c.label for c in store.list()] == ['Linux OS', 'Windows OS']

    @pytest.mark.parametrize('path', ['', 'x', '1/2/3', '0', '1/-1'])
    def test_invalid_paths(self, store, path):
        with pytest.raises(InvalidInputException):
            store.read(path)


class TestPersistence:

    def test_missing_file_is_seeded(self, tmp_path):
        path = tmp_path / 'iso-mount-config.json'

        store = CatalogStore(JsonCatalogFile(str(path)))

        assert path.exists()
        assert [c.label for c in store.list_categories()] == ['Linux OS', 'Windows OS']
        assert store.get_item(1, 1).name == 'ROCKY9-ISO'

    def test_changes_are_written_back(self, tmp_path):
        path = tmp_path / 'catalog.json'
        path.write_text(json.dumps({'iso_configs': {}}))

        store = CatalogStore(JsonCatalogFile(str(path)))
        store.add_category('Linux OS')
        store.add_item(1, **ITEM)

        document = json.loads(path.read_text())
        stored = document['iso_configs']['1']['items']['1']
        assert stored['mount_target'] == '/mnt/rocky9-iso/template/iso'
        assert CatalogStore(JsonCatalogFile(str(path))).get_item(1, 1).name == 'ROCKY9-ISO'

    def test_default_catalog_round_trips(self, tmp_path):
        path = tmp_path / 'catalog.json'
        path.write_text(json.dumps(DEFAULT_CATALOG))

        store = CatalogStore(JsonCatalogFile(str(path)))

        assert store.to_document() == DEFAULT_CATALOG
