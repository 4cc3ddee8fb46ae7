"""
AvailableCapacity and LogicalVolumeGroup management commands.
"""

from typing import List

import typer

from baremetal_csi.api.models import AvailableCapacity, LogicalVolumeGroup, StorageClass
from baremetal_csi.cli.lib.state import RecordStore
from baremetal_csi.cli.lib.validators import parse_size, validate_name

app = typer.Typer(help="AvailableCapacity management commands")
lvg_app = typer.Typer(help="LogicalVolumeGroup management commands")


@app.command("list")
def list_acs():
    """
    List available capacity records.
    """
    try:
        acs = RecordStore().list(AvailableCapacity)
        if not acs:
            typer.echo("No available capacity found")
            return
        for ac in acs:
            typer.echo(
                f"{ac.name} node={ac.node_id} location={ac.location} "
                f"class={ac.storage_class.value} size={ac.size_bytes}"
            )
    except Exception as e:
        typer.echo(f"Error listing available capacity: {e}", err=True)
        raise typer.Exit(1)


@app.command("add")
def add_ac(
    name: str = typer.Argument(..., help="AvailableCapacity name"),
    location: str = typer.Option(..., "--location", help="Drive id or LVG name"),
    node: str = typer.Option(..., "--node", help="Node id"),
    storage_class: StorageClass = typer.Option(..., "--storage-class", help="Storage class"),
    size: str = typer.Option(..., "--size", help="Size, e.g. 42Gi"),
):
    """
    Register available capacity.
    """
    try:
        validate_name(name)
        ac = AvailableCapacity(
            name=name,
            location=location,
            node_id=node,
            storage_class=storage_class,
            size_bytes=parse_size(size),
        )
        RecordStore().create(name, ac)
        typer.echo(f"AvailableCapacity {name} created ({ac.size_bytes} bytes)")
    except Exception as e:
        typer.echo(f"Error adding available capacity: {e}", err=True)
        raise typer.Exit(1)


@lvg_app.command("list")
def list_lvgs():
    """
    List logical volume groups.
    """
    try:
        lvgs = RecordStore().list(LogicalVolumeGroup)
        if not lvgs:
            typer.echo("No logical volume groups found")
            return
        for lvg in lvgs:
            typer.echo(
                f"{lvg.name} node={lvg.node_id} drives={','.join(lvg.locations)} size={lvg.size_bytes}"
            )
    except Exception as e:
        typer.echo(f"Error listing logical volume groups: {e}", err=True)
        raise typer.Exit(1)


@lvg_app.command("add")
def add_lvg(
    name: str = typer.Argument(..., help="LogicalVolumeGroup name"),
    node: str = typer.Option(..., "--node", help="Node id"),
    locations: List[str] = typer.Option(..., "--location", help="Member drive id (repeatable)"),
    size: str = typer.Option(..., "--size", help="Size, e.g. 100Gi"),
):
    """
    Register a logical volume group.
    """
    try:
        validate_name(name)
        lvg = LogicalVolumeGroup(name=name, node_id=node, locations=locations, size_bytes=parse_size(size))
        RecordStore().create(name, lvg)
        typer.echo(f"LogicalVolumeGroup {name} created with {len(locations)} drive(s)")
    except Exception as e:
        typer.echo(f"Error adding logical volume group: {e}", err=True)
        raise typer.Exit(1)
