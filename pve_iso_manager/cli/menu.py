"""Interactive three-level menu: categories -> items -> item operations"""

import click

from pve_iso_manager.catalog.models import default_mount_base
from pve_iso_manager.cli import commands
from pve_iso_manager.config import IsoManagerConfig
from pve_iso_manager.exceptions import InvalidInputException, IsoManagerException
from pve_iso_manager.services.catalog_service import CatalogService
from pve_iso_manager.utils.logger import get_logger
from pve_iso_manager.utils.validators import normalize_nfs_export

LOG = get_logger(__name__)


class InteractiveMenu:
    """Interactive catalog and mount management"""

    def __init__(self, service: CatalogService, config: IsoManagerConfig):
        self.service = service
        self.config = config
        self.store = service.store
        self.category_id = None
        self.item_id = None

    def run(self):
        """Run until the operator quits"""
        if self.config.is_pve():
            click.echo("🏠 Proxmox VE Environment Detected")
        else:
            click.echo("🖥️ Standalone Environment (Non-PVE)")
            click.echo("ℹ️ Storage.cfg operations will be skipped")
        click.echo(f"📁 Config file: {self.config.catalog_file}")

        while True:
            self._show_menu()
            choice = click.prompt("Please enter option", default='', show_default=False).strip().lower()
            if choice == 'q':
                click.echo("👋 Goodbye!")
                return

            try:
                if self.item_id is not None:
                    self._item_level(choice)
                elif self.category_id is not None:
                    self._category_level(choice)
                else:
                    self._top_level(choice)
            except IsoManagerException as e:
                click.secho(f"❌ {e}", fg='red')

            if choice != 'b':
                click.prompt("Press Enter to continue", default='', show_default=False)

    # Menus

    def _show_menu(self):
        click.echo("")
        if self.item_id is not None:
            status = self.service.item_status(self.category_id, self.item_id)
            click.echo(f"===== {status.item.label} Operation Menu =====")
            if status.mounted:
                click.echo("1. Unmount NFS")
                click.echo("📊 Status: ✅ Mounted")
            else:
                click.echo("1. Mount NFS")
                click.echo("📊 Status: ❌ Not Mounted")
            click.echo("2. Edit This ISO")
            click.echo("3. Delete This ISO")
            click.echo("4. Show Details")
            click.echo("B. Back to Previous")
        elif self.category_id is not None:
            category = self.store.get_category(self.category_id)
            click.echo(f"===== {category.label} Submenu =====")
            for item_id, item in self.store.list_items(self.category_id):
                click.echo(f"{item_id}. {item.label}")
            click.echo("")
            click.echo("A. Add ISO Item")
            click.echo("E. Edit This Category")
            click.echo("D. Delete This Category")
            click.echo("B. Back to Previous")
        else:
            click.echo("======= Proxmox ISO Management Menu =======")
            categories = self.store.list_categories()
            if not categories:
                click.echo("No categories configured yet")
            for category in categories:
                click.echo(f"{category.id}. {category.label}")
            click.echo("")
            click.echo("A. Add Main Category")
            click.echo("S. Show All Status")
        click.echo("Q. Quit")
        click.echo("=" * 43)

    def _top_level(self, choice: str):
        if choice.isdigit():
            self.store.get_category(int(choice))
            self.category_id = int(choice)
        elif choice == 'a':
            self._add_category()
        elif choice == 's':
            commands.show_all_status(self.service)
        else:
            click.echo("❌ Please enter correct option!")

    def _category_level(self, choice: str):
        if choice.isdigit():
            self.store.get_item(self.category_id, int(choice))
            self.item_id = int(choice)
        elif choice == 'a':
            self._add_item()
        elif choice == 'e':
            self._edit_category()
        elif choice == 'd':
            if self._confirm("This will also delete all ISO items under this category!"):
                if commands.delete_category(self.service, self.category_id):
                    self.category_id = None
        elif choice == 'b':
            self.category_id = None
        else:
            click.echo("❌ Please enter correct option!")

    def _item_level(self, choice: str):
        if choice == '1':
            if self.service.item_status(self.category_id, self.item_id).mounted:
                commands.unmount_item(self.service, self.category_id, self.item_id)
            else:
                commands.mount_item(self.service, self.category_id, self.item_id)
        elif choice == '2':
            self._edit_item()
        elif choice == '3':
            if self._confirm("Confirm deletion of this ISO item?"):
                if commands.delete_item(self.service, self.category_id, self.item_id):
                    self.item_id = None
        elif choice == '4':
            commands.show_item(self.service, self.category_id, self.item_id)
        elif choice == 'b':
            self.item_id = None
        else:
            click.echo("❌ Please enter correct option!")

    # Actions

    @staticmethod
    def _confirm(message: str) -> bool:
        click.echo(f"⚠️ {message}")
        if click.prompt("Type 'YES' to confirm deletion", default='', show_default=False) == 'YES':
            return True
        click.echo("📝 Deletion cancelled")
        return False

    def _add_category(self):
        label = click.prompt("Enter category name", default='', show_default=False)
        with self.service.locked():
            category_id = self.store.add_category(label)
        click.secho(f"✅ Main category '{label.strip()}' added successfully (ID: {category_id})",
                    fg='green')

    def _edit_category(self):
        category = self.store.get_category(self.category_id)
        click.echo(f"Current name: {category.label}")
        label = click.prompt("Enter new name (press Enter to keep unchanged)",
                             default='', show_default=False)
        if not label.strip():
            click.echo("📝 Keep original name")
            return
        with self.service.locked():
            self.store.update_category(self.category_id, label)
        click.secho(f"✅ Main category updated to '{label.strip()}'", fg='green')

    def _prompt_export(self, text: str, default: str = '') -> str:
        raw = click.prompt(text, default=default, show_default=bool(default))
        normalized = normalize_nfs_export(raw)
        if normalized != raw.strip():
            click.echo(f"🔧 Detected server prefix, extracted path: '{normalized}'")
        return normalized

    def _add_item(self):
        name = click.prompt("Enter ISO name (Storage Name)", default='', show_default=False).strip()
        if not name:
            raise InvalidInputException("ISO name cannot be empty")
        label = click.prompt("Enter ISO label", default='', show_default=False)
        server = click.prompt("NFS server", default=self.config.default_nfs_server)
        export = self._prompt_export("NFS export path (both \\ and / formats supported)")
        mount_base = click.prompt("Mount base path",
                                  default=default_mount_base(self.config.mount_root, name))

        with self.service.locked():
            item_id = self.store.add_item(self.category_id, name=name, label=label,
                                          nfs_server=server, nfs_export=export,
                                          mount_base=mount_base)
        click.secho(f"✅ ISO item '{label.strip()}' added successfully (ID: {item_id})", fg='green')

    def _edit_item(self):
        current = self.store.get_item(self.category_id, self.item_id)
        for key, value in current.to_dict().items():
            click.echo(f"  {key}: {value}")

        def ask(text, value):
            answer = click.prompt(f"{text} [{value}]", default='', show_default=False).strip()
            return answer or None

        name = ask("Storage Name", current.name)
        label = ask("ISO Label", current.label)
        server = ask("NFS Server", current.nfs_server)
        export = ask("NFS Export Path", current.nfs_export)
        if export:
            export = normalize_nfs_export(export)
        mount_base = ask("Mount Base Path", current.mount_base)

        with self.service.locked():
            updated = self.store.update_item(self.category_id, self.item_id, name=name,
                                             label=label, nfs_server=server,
                                             nfs_export=export, mount_base=mount_base)
        if updated.mount_base != current.mount_base and mount_base is None:
            click.echo(f"📁 Auto-updated mount base to: {updated.mount_base}")
        click.secho("✅ ISO item updated", fg='green')
