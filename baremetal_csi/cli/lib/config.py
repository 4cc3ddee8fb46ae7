"""
Configuration loader for baremetal-csi.

Keeps environment-specific defaults (state directory, node id, log level)
out of the code.
"""

from __future__ import annotations

import configparser
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional


DEFAULT_CONFIG_PATH = Path("/etc/baremetal-csi/baremetal-csi.conf")


@dataclass(frozen=True)
class BaremetalConfig:
    state_dir: Optional[Path] = None
    node_id: str = ""
    log_level: str = "info"
    poll_interval: float = 1.0


def _config_path() -> Path:
    env = os.environ.get("BMCSI_CONFIG_PATH")
    if env:
        return Path(env)
    return DEFAULT_CONFIG_PATH


def _read_ini(path: Path) -> configparser.ConfigParser:
    parser = configparser.ConfigParser()
    if path.exists():
        parser.read(path, encoding="utf-8")
    return parser


def load_config() -> BaremetalConfig:
    """
    Load config from `BMCSI_CONFIG_PATH` or `/etc/baremetal-csi/baremetal-csi.conf`.

    Missing files are not an error; defaults are returned.
    """
    parser = _read_ini(_config_path())
    section = parser["storage"] if parser.has_section("storage") else {}

    def _get(key: str, default: str) -> str:
        if isinstance(section, dict):
            return str(section.get(key, default)).strip()
        return str(section.get(key, fallback=default)).strip()

    def _get_float(key: str, default: float) -> float:
        raw = _get(key, str(default))
        try:
            value = float(raw)
        except ValueError:
            return default
        return value if value > 0 else default

    log_level = _get("log_level", "info").lower()
    if log_level not in ("debug", "info", "warning", "error", "critical"):
        log_level = "info"

    state_dir_raw = _get("state_dir", "")
    state_dir = Path(state_dir_raw) if state_dir_raw else None

    return BaremetalConfig(
        state_dir=state_dir,
        node_id=_get("node_id", ""),
        log_level=log_level,
        poll_interval=_get_float("poll_interval", 1.0),
    )
