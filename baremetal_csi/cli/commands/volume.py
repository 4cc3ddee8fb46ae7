"""
Volume management commands.
"""

from typing import List, Optional

import typer

from baremetal_csi.api.models import OperationalStatus
from baremetal_csi.cli.lib.config import load_config
from baremetal_csi.cli.lib.state import RecordStore
from baremetal_csi.common.context import REQUEST_ID, RequestContext
from baremetal_csi.common.volume_operations import VolumeOperations

app = typer.Typer(help="Volume management commands")


def _operations() -> VolumeOperations:
    cfg = load_config()
    return VolumeOperations(RecordStore(), poll_interval=cfg.poll_interval)


def _context(name: str) -> RequestContext:
    return RequestContext.background().with_value(REQUEST_ID, name)


@app.command()
def list(
    node: Optional[str] = typer.Option(None, "--node", help="Filter by node id (default: node_id from config)"),
    all_nodes: bool = typer.Option(False, "--all-nodes", help="List volumes of every node"),
):
    """
    List volumes.
    """
    try:
        if not node and not all_nodes:
            node = load_config().node_id or None
        volumes = _operations().list_volumes(node_id=node)
        if not volumes:
            typer.echo("No volumes found")
            return
        for vol in volumes:
            typer.echo(
                f"{vol.id} node={vol.node_id} location={vol.location} class={vol.storage_class.value} "
                f"size={vol.size_bytes} status={vol.status.value}"
            )
    except Exception as e:
        typer.echo(f"Error listing volumes: {e}", err=True)
        raise typer.Exit(1)


@app.command()
def get(
    name: str = typer.Argument(..., help="Volume id"),
):
    """
    Show a volume record as JSON.
    """
    try:
        volume = _operations().get_volume(name)
        typer.echo(volume.model_dump_json(indent=2))
    except Exception as e:
        typer.echo(f"Error reading volume: {e}", err=True)
        raise typer.Exit(1)


@app.command()
def delete(
    name: str = typer.Argument(..., help="Volume id"),
):
    """
    Request removal of a volume.

    The node agent removes the volume and reports removed or fail_to_remove.
    """
    try:
        typer.echo(f"Deleting volume: {name}")
        _operations().delete_volume(_context(name), name)
        typer.echo(f"Volume {name} removal requested")
    except Exception as e:
        typer.echo(f"Error deleting volume: {e}", err=True)
        raise typer.Exit(1)


@app.command("set-status")
def set_status(
    name: str = typer.Argument(..., help="Volume id"),
    status: OperationalStatus = typer.Argument(..., help="New status"),
):
    """
    Change the status of a volume.
    """
    try:
        _operations().read_volume_and_change_status(name, status)
        typer.echo(f"Volume {name} status set to {status.value}")
    except Exception as e:
        typer.echo(f"Error changing volume status: {e}", err=True)
        raise typer.Exit(1)


@app.command()
def wait(
    name: str = typer.Argument(..., help="Volume id"),
    statuses: List[OperationalStatus] = typer.Option(..., "--status", help="Target status (repeatable)"),
    timeout: float = typer.Option(60.0, "--timeout", help="Seconds to wait (default: 60)"),
):
    """
    Wait until a volume reaches one of the given statuses.
    """
    ctx = _context(name).with_timeout(timeout)
    try:
        reached, status = _operations().wait_status(ctx, name, *statuses)
    except Exception as e:
        typer.echo(f"Error waiting for volume: {e}", err=True)
        raise typer.Exit(1)

    if not reached:
        typer.echo(f"Volume {name} did not reach {', '.join(s.value for s in statuses)}", err=True)
        raise typer.Exit(1)
    typer.echo(f"Volume {name} reached {status.value}")


@app.command()
def reclaim(
    name: str = typer.Argument(..., help="Volume id"),
):
    """
    Reclaim capacity of a removed volume and delete its record.
    """
    try:
        typer.echo(f"Reclaiming volume: {name}")
        _operations().update_crs_after_volume_deletion(_context(name), name)
        typer.echo(f"Volume {name} reclaimed")
    except Exception as e:
        typer.echo(f"Error reclaiming volume: {e}", err=True)
        raise typer.Exit(1)
