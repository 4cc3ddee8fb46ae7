#!/usr/bin/env python3
"""
Main CLI entry point using Typer.
"""

import sys
from typing import Optional

import typer

from baremetal_csi.cli.commands import capacity, volume
from baremetal_csi.cli.lib.config import load_config
from baremetal_csi.cli.lib.log import setup_logging

app = typer.Typer(
    name="baremetal-csi",
    help="Node-local volume lifecycle control tool",
    add_completion=False,
)

# Add command groups
app.add_typer(volume.app, name="volume", help="Volume management commands")
app.add_typer(capacity.app, name="ac", help="AvailableCapacity management commands")
app.add_typer(capacity.lvg_app, name="lvg", help="LogicalVolumeGroup management commands")


@app.callback()
def configure(
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Log level (default: from config or info)"),
):
    """
    Configure logging before running a command.
    """
    setup_logging(log_level or load_config().log_level)


def main() -> int:
    """Main entry point."""
    try:
        app()
        return 0
    except KeyboardInterrupt:
        typer.echo("\nOperation cancelled by user", err=True)
        return 130
    except Exception as e:
        typer.echo(f"Error: {e}", err=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
