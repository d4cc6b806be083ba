"""Main CLI entry point"""

import functools
import sys

import click

from pve_iso_manager.catalog.models import default_mount_base
from pve_iso_manager.cli import commands
from pve_iso_manager.config import IsoManagerConfig
from pve_iso_manager.exceptions import IsoManagerException
from pve_iso_manager.utils.logger import get_logger, setup_logging
from pve_iso_manager.utils.validators import normalize_nfs_export
from pve_iso_manager.version import __version__

LOG = get_logger(__name__)

DECISION_CHOICE = click.Choice(['abort', 'remediate', 'force'], case_sensitive=False)


def handle_errors(func):
    """Turn package errors into a red message and exit status 1"""
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except IsoManagerException as e:
            LOG.debug("Command failed", exc_info=True)
            commands.fail(str(e))
    return wrapper


def get_service(ctx, require_tools: bool = False):
    obj = ctx.find_root().obj
    if obj.get('service') is None:
        if require_tools:
            commands.check_required_tools()
        obj['service'] = commands.build_service(obj['config'])
    return obj['service']


@click.group()
@click.version_option(__version__, prog_name="pve-iso-manager")
@click.option('--config', help='Configuration file path')
@click.option('--catalog', help='Catalog JSON file')
@click.option('--storage-cfg', help='Proxmox storage.cfg path')
@click.option('--log-level',
              type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                                case_sensitive=False),
              help='Log level')
@click.option('--json-logs', is_flag=True, default=None, help='Emit JSON log records')
@click.pass_context
def cli(ctx, config, catalog, storage_cfg, log_level, json_logs):
    """Proxmox ISO NFS mount manager"""
    ctx.ensure_object(dict)

    overrides = {
        'catalog_file': catalog,
        'storage_cfg': storage_cfg,
        'log_level': log_level,
        'json_logs': json_logs,
    }
    try:
        if config:
            iso_config = IsoManagerConfig.from_file(config, **overrides)
        else:
            iso_config = IsoManagerConfig(**overrides)
    except (OSError, ValueError) as e:
        click.echo(f"Error loading config file: {e}", err=True)
        sys.exit(1)

    setup_logging(iso_config.log_level, iso_config.log_format, iso_config.json_logs)
    ctx.obj['config'] = iso_config


# Categories

@cli.group()
def category():
    """Manage main categories"""


@category.command('list')
@click.option('--format', '-f', 'fmt', type=click.Choice(['table', 'json']), default='table')
@click.pass_context
@handle_errors
def category_list(ctx, fmt):
    """List categories"""
    commands.list_categories(get_service(ctx), fmt)


@category.command('add')
@click.argument('label')
@click.pass_context
@handle_errors
def category_add(ctx, label):
    """
    Add a main category

    Example:
      pve-iso-manager category add "Linux OS"
    """
    service = get_service(ctx)
    with service.locked():
        category_id = service.store.add_category(label)
    click.secho(f"✅ Main category '{label.strip()}' added successfully (ID: {category_id})", fg='green')


@category.command('edit')
@click.argument('category_id', type=int)
@click.option('--label', required=True, help='New category name')
@click.pass_context
@handle_errors
def category_edit(ctx, category_id, label):
    """Rename a category"""
    service = get_service(ctx)
    with service.locked():
        updated = service.store.update_category(category_id, label)
    click.secho(f"✅ Main category updated to '{updated.label}'", fg='green')


@category.command('delete')
@click.argument('category_id', type=int)
@click.option('--decision', type=DECISION_CHOICE,
              help='What to do when an ISO is in use (prompts if omitted)')
@click.confirmation_option(prompt='This unmounts and deletes every ISO item of the category. Continue?')
@click.pass_context
@handle_errors
def category_delete(ctx, category_id, decision):
    """Unmount all items of a category and delete it"""
    service = get_service(ctx, require_tools=True)
    if not commands.delete_category(service, category_id, commands.fixed_decision(decision)):
        sys.exit(1)


# Items

@cli.group()
def item():
    """Manage ISO items"""


@item.command('list')
@click.argument('category_id', type=int)
@click.option('--format', '-f', 'fmt', type=click.Choice(['table', 'json']), default='table')
@click.pass_context
@handle_errors
def item_list(ctx, category_id, fmt):
    """List the ISO items of a category"""
    commands.list_items(get_service(ctx), category_id, fmt)


@item.command('add')
@click.argument('category_id', type=int)
@click.option('--name', help='Storage name (storage.cfg key)')
@click.option('--label', help='Display label')
@click.option('--nfs-server', help='NFS server address')
@click.option('--nfs-export', help='NFS export path (\\\\server\\path and //server/path accepted)')
@click.option('--mount-base', help='Mount base path [default: /mnt/<name>]')
@click.pass_context
@handle_errors
def item_add(ctx, category_id, name, label, nfs_server, nfs_export, mount_base):
    """
    Add an ISO item; missing values are prompted for

    Example:
      pve-iso-manager item add 1 --name ROCKY9-ISO --label "Rocky Linux 9" \\
          --nfs-export /OSimg/Linux/Rocky_Linux/Rocky_Linux_9
    """
    service = get_service(ctx)
    config = ctx.find_root().obj['config']
    service.store.get_category(category_id)

    if name is None:
        name = click.prompt("Enter ISO name (Storage Name)", default='', show_default=False)
    if label is None:
        label = click.prompt("Enter ISO label", default='', show_default=False)
    if nfs_server is None:
        nfs_server = click.prompt("NFS server", default=config.default_nfs_server)
    if nfs_export is None:
        nfs_export = click.prompt("NFS export path", default='', show_default=False)
        normalized = normalize_nfs_export(nfs_export)
        if normalized != nfs_export.strip():
            click.echo(f"🔧 Detected server prefix, extracted path: '{normalized}'")
    if mount_base is None and name.strip():
        mount_base = click.prompt("Mount base path",
                                  default=default_mount_base(config.mount_root, name.strip()))

    with service.locked():
        item_id = service.store.add_item(category_id, name=name, label=label,
                                         nfs_server=nfs_server, nfs_export=nfs_export,
                                         mount_base=mount_base)
    click.secho(f"✅ ISO item '{label.strip()}' added successfully (ID: {category_id}/{item_id})",
                fg='green')


@item.command('edit')
@click.argument('path')
@click.option('--name', help='Storage name; moves the mount base unless --mount-base is given')
@click.option('--label', help='Display label')
@click.option('--nfs-server', help='NFS server address')
@click.option('--nfs-export', help='NFS export path')
@click.option('--mount-base', help='Mount base path')
@click.pass_context
@handle_errors
def item_edit(ctx, path, name, label, nfs_server, nfs_export, mount_base):
    """
    Edit an ISO item; omitted fields keep their value

    Example:
      pve-iso-manager item edit 1/1 --label "Rocky Linux 9.4"
    """
    service = get_service(ctx)
    category_id, item_id = commands.item_path(path)
    with service.locked():
        updated = service.store.update_item(category_id, item_id, name=name, label=label,
                                            nfs_server=nfs_server, nfs_export=nfs_export,
                                            mount_base=mount_base)
    click.secho("✅ ISO item updated", fg='green')
    click.echo(f"📁 Mount base: {updated.mount_base}")


@item.command('delete')
@click.argument('path')
@click.option('--decision', type=DECISION_CHOICE,
              help='What to do when the ISO is in use (prompts if omitted)')
@click.confirmation_option(prompt='Unmount and delete this ISO item?')
@click.pass_context
@handle_errors
def item_delete(ctx, path, decision):
    """Unmount an ISO item and delete it"""
    category_id, item_id = commands.item_path(path)
    service = get_service(ctx, require_tools=True)
    if not commands.delete_item(service, category_id, item_id, commands.fixed_decision(decision)):
        sys.exit(1)


@item.command('show')
@click.argument('path')
@click.option('--format', '-f', 'fmt', type=click.Choice(['text', 'json']), default='text')
@click.pass_context
@handle_errors
def item_show(ctx, path, fmt):
    """Show item details with live mount and storage.cfg status"""
    category_id, item_id = commands.item_path(path)
    commands.show_item(get_service(ctx), category_id, item_id, fmt)


# Lifecycle

@cli.command()
@click.argument('path')
@click.pass_context
@handle_errors
def mount(ctx, path):
    """
    Mount an ISO item read-only and add it to storage.cfg

    Example:
      pve-iso-manager mount 1/1
    """
    category_id, item_id = commands.item_path(path)
    service = get_service(ctx, require_tools=True)
    commands.mount_item(service, category_id, item_id)


@cli.command()
@click.argument('path')
@click.option('--decision', type=DECISION_CHOICE,
              help='What to do when the ISO is in use (prompts if omitted)')
@click.pass_context
@handle_errors
def unmount(ctx, path, decision):
    """
    Unmount an ISO item and remove it from storage.cfg

    Example:
      pve-iso-manager unmount 1/1
      pve-iso-manager unmount 1/1 --decision remediate
    """
    category_id, item_id = commands.item_path(path)
    service = get_service(ctx, require_tools=True)
    commands.unmount_item(service, category_id, item_id, commands.fixed_decision(decision))


@cli.command()
@click.option('--format', '-f', 'fmt', type=click.Choice(['table', 'json']), default='table')
@click.pass_context
@handle_errors
def status(ctx, fmt):
    """Show mount and storage.cfg status of all ISO items"""
    commands.show_all_status(get_service(ctx), fmt)


@cli.command()
@click.pass_context
@handle_errors
def menu(ctx):
    """Interactive menu"""
    from pve_iso_manager.cli.menu import InteractiveMenu
    service = get_service(ctx, require_tools=True)
    InteractiveMenu(service, ctx.find_root().obj['config']).run()


@cli.command('check-config')
@click.pass_context
def check_config_cmd(ctx):
    """Display current configuration"""
    commands.show_config(ctx.find_root().obj['config'])


def main():
    """Main entry point"""
    cli(obj={})


if __name__ == '__main__':
    main()
