"""CLI command implementations"""

import json
import sys
from typing import Optional

import click
from tabulate import tabulate

from pve_iso_manager.catalog.models import parse_path
from pve_iso_manager.catalog.persistence import JsonCatalogFile
from pve_iso_manager.catalog.store import CatalogStore
from pve_iso_manager.config import IsoManagerConfig
from pve_iso_manager.exceptions import InvalidInputException, ToolNotFoundException
from pve_iso_manager.lock_manager import OperationLock
from pve_iso_manager.registry.storage_cfg import RegistrationStatus
from pve_iso_manager.services.catalog_service import CatalogService
from pve_iso_manager.services.mount_lifecycle import (
    MountLifecycle, MountResult, UnmountOutcome, UnmountResult
)
from pve_iso_manager.services.usage_guard import UnmountDecision, UsageReport
from pve_iso_manager.utils.logger import get_logger
from pve_iso_manager.utils.system import command_exists

LOG = get_logger(__name__)

REQUIRED_TOOLS = ('mount', 'umount')


def check_required_tools():
    missing = [tool for tool in REQUIRED_TOOLS if not command_exists(tool)]
    if missing:
        raise ToolNotFoundException(
            f"This tool requires {', '.join(missing)}, please install it first"
        )


def build_service(config: IsoManagerConfig) -> CatalogService:
    store = CatalogStore(JsonCatalogFile(config.catalog_file), mount_root=config.mount_root)
    return CatalogService(
        store=store,
        lifecycle=MountLifecycle.from_config(config),
        lock=OperationLock(config.lock_dir, timeout=config.lock_timeout),
    )


def item_path(path: str) -> tuple:
    """Parse ``<category>/<item>``"""
    try:
        category_id, item_id = parse_path(path)
    except ValueError as e:
        raise InvalidInputException(str(e))
    if item_id is None:
        raise InvalidInputException(f"Expected <category>/<item>, got {path!r}")
    return category_id, item_id


# Unmount decision

def prompt_decision(report: UsageReport) -> UnmountDecision:
    """Show who is using the storage and ask the operator what to do"""
    click.echo("")
    click.secho("⚠️ WARNING: ISO storage is currently in use!", fg='yellow')

    if report.vms:
        click.echo(f"📋 VMs using ISOs from {report.storage_name}:")
        for vm in report.vms:
            click.echo(f"  - {vm}")

    if report.processes:
        click.echo("🔒 Processes accessing mount point:")
        for process in report.processes:
            click.echo(f"  {process}")

    click.echo("")
    click.echo("⚠️ Unmounting while in use may cause VM errors or crashes.")
    click.echo("")
    click.echo("🔧 Available options:")
    click.echo("   1. Cancel unmount (recommended)")
    click.echo("   2. Force unmount and auto-eject ISOs from VMs")
    click.echo("   3. Force unmount without changes (risky)")
    click.echo("")

    answer = click.prompt("Choose option (1/2/3)", default='1', show_default=False)
    decision = UnmountDecision.from_input(answer)
    if decision is UnmountDecision.ABORT and answer.strip() not in ('1', '', 'n', 'N', 'no', 'NO'):
        click.echo("📝 Invalid option, cancelling for safety")
    return decision


def fixed_decision(name: Optional[str]):
    """Decision provider for a non-interactive ``--decision`` value"""
    if name is None:
        return prompt_decision
    decision = UnmountDecision(name)
    return lambda report: decision


# Result reporting

_REGISTRATION_MESSAGES = {
    RegistrationStatus.REGISTERED: ("✅ Added to storage.cfg", 'green'),
    RegistrationStatus.ALREADY_REGISTERED: ("⚠️ Storage already exists in storage.cfg, skipped", 'yellow'),
    RegistrationStatus.DEREGISTERED: ("🗑️ Removed from storage.cfg", None),
    RegistrationStatus.NOT_REGISTERED: ("ℹ️ Storage was not in storage.cfg", None),
    RegistrationStatus.UNAVAILABLE: ("⚠️ Not in Proxmox environment, storage.cfg skipped", 'yellow'),
}


def echo_registration(status: Optional[RegistrationStatus]):
    if status is None:
        return
    message, colour = _REGISTRATION_MESSAGES[status]
    click.secho(message, fg=colour)


def echo_mount_result(result: MountResult):
    item = result.item
    click.secho(f"✅ {item.name} mounted successfully", fg='green')
    click.echo(f"📁 NFS mounted at: {item.mount_target}")
    click.echo(f"📝 Proxmox storage path: {item.mount_base}")
    echo_registration(result.registration)


def echo_unmount_result(result: UnmountResult):
    item = result.item

    for eject in result.ejects:
        if eject.success:
            click.echo(f"    ✅ Ejected ISO from VM {eject.vmid} {eject.device}")
        else:
            click.secho(f"    ❌ Failed to eject ISO from VM {eject.vmid} {eject.device}: {eject.error}",
                        fg='red')
    for vm in result.still_attached:
        click.secho(f"  ⚠️ VMID {vm.vmid} still has ISO from {item.name}", fg='yellow')

    if result.outcome is UnmountOutcome.ABORTED:
        click.echo("📝 Unmount cancelled for safety")
        return
    if result.outcome is UnmountOutcome.UNMOUNTED:
        click.secho(f"✅ {item.name} unmounted successfully", fg='green')
    elif result.outcome is UnmountOutcome.FORCE_UNMOUNTED:
        click.secho(f"⚠️ {item.name} force unmounted (lazy unmount)", fg='yellow')
    else:
        click.echo(f"ℹ️ {item.mount_target} was not mounted")
    echo_registration(result.registration)


# Commands

def list_categories(service: CatalogService, fmt: str = 'table'):
    categories = service.store.list_categories()
    if fmt == 'json':
        click.echo(json.dumps(service.store.to_document(), indent=2))
        return
    if not categories:
        click.echo("No categories configured yet")
        return
    rows = [[c.id, c.label, len(c.items)] for c in categories]
    click.echo(tabulate(rows, headers=['ID', 'Category', 'Items'], tablefmt='grid'))


def list_items(service: CatalogService, category_id: int, fmt: str = 'table'):
    items = service.store.list_items(category_id)
    if fmt == 'json':
        click.echo(json.dumps({str(i): item.to_dict() for i, item in items}, indent=2))
        return
    if not items:
        click.echo("No ISO items in this category")
        return
    rows = [[f"{category_id}/{i}", item.name, item.label, item.share, item.mount_base]
            for i, item in items]
    click.echo(tabulate(rows, headers=['Path', 'Storage', 'Label', 'NFS Share', 'Mount Base'],
                        tablefmt='grid'))


def show_item(service: CatalogService, category_id: int, item_id: int, fmt: str = 'text'):
    status = service.item_status(category_id, item_id)
    data = status.item.to_dict()

    if fmt == 'json':
        data.update({'mounted': status.mounted, 'registered': status.registered,
                     'mount_info': status.mount_info})
        click.echo(json.dumps(data, indent=2))
        return

    rows = [[key, value] for key, value in data.items()]
    rows.append(['Mount Status', '✅ Mounted' if status.mounted else '❌ Not Mounted'])
    if status.mount_info:
        rows.append(['Mounted From', status.mount_info.get('device', '')])
        rows.append(['Mount Options', status.mount_info.get('options', '')])
    rows.append(['Storage CFG', '✅ Configured' if status.registered else '❌ Not Configured'])
    click.echo(tabulate(rows, tablefmt='grid'))


def show_all_status(service: CatalogService, fmt: str = 'table'):
    statuses = service.all_status()

    if fmt == 'json':
        data = [{
            'id': entry.category_id,
            'label': entry.label,
            'items': [{
                'id': item_id,
                'name': status.item.name,
                'label': status.item.label,
                'mount_target': status.item.mount_target,
                'mounted': status.mounted,
                'registered': status.registered,
            } for item_id, status in entry.items],
        } for entry in statuses]
        click.echo(json.dumps(data, indent=2))
        return

    rows = []
    for entry in statuses:
        for item_id, status in entry.items:
            rows.append([
                f"{entry.category_id}/{item_id}",
                entry.label,
                status.item.label,
                status.item.name,
                '✅ Mounted' if status.mounted else '❌ Not Mounted',
                '✅ In cfg' if status.registered else '❌ Not in cfg',
            ])
    if not rows:
        click.echo("No ISO items configured yet")
        return
    click.echo(tabulate(rows, headers=['Path', 'Category', 'ISO', 'Storage', 'Mount', 'Storage CFG'],
                        tablefmt='grid'))


def mount_item(service: CatalogService, category_id: int, item_id: int):
    item = service.store.get_item(category_id, item_id)
    click.echo(f"🔗 Mounting NFS ({item.name}) to {item.mount_target}...")
    echo_mount_result(service.mount(category_id, item_id))


def unmount_item(service: CatalogService, category_id: int, item_id: int, decide=None) -> UnmountResult:
    item = service.store.get_item(category_id, item_id)
    click.echo(f"🔓 Unmounting NFS ({item.name}) from {item.mount_target}...")
    result = service.unmount(category_id, item_id, decide or prompt_decision)
    echo_unmount_result(result)
    return result


def delete_item(service: CatalogService, category_id: int, item_id: int, decide=None) -> bool:
    item = service.store.get_item(category_id, item_id)
    result = service.delete_item(category_id, item_id, decide or prompt_decision)
    for unmount in result.unmounts:
        echo_unmount_result(unmount)
    if result.deleted:
        click.secho(f"✅ ISO item '{item.label}' deleted", fg='green')
    else:
        click.echo(f"📝 ISO item '{item.label}' kept")
    return result.deleted


def delete_category(service: CatalogService, category_id: int, decide=None) -> bool:
    category = service.store.get_category(category_id)
    result = service.delete_category(category_id, decide or prompt_decision)
    for unmount in result.unmounts:
        echo_unmount_result(unmount)
    if result.deleted:
        click.secho(f"✅ Main category '{category.label}' deleted", fg='green')
    else:
        click.echo(f"📝 Main category '{category.label}' kept")
    return result.deleted


def show_config(config: IsoManagerConfig):
    rows = [[key, value] for key, value in config.to_dict().items()]
    rows.append(['pve_environment', config.is_pve()])
    click.echo(tabulate(rows, headers=['Setting', 'Value'], tablefmt='grid'))


def fail(message: str, code: int = 1):
    click.secho(f"✗ {message}", fg='red', err=True)
    sys.exit(code)
