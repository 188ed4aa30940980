"""Configuration manager for archgraph using TOML files."""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional

import toml

from . import config

logger = logging.getLogger(__name__)


@dataclass
class LayoutSettings:
    """Every tunable used by clustering and the layout strategies."""

    node_width: float = config.DEFAULT_NODE_WIDTH
    node_height: float = config.DEFAULT_NODE_HEIGHT

    # hierarchical buckets
    hierarchical_spacing: float = 220.0
    level_height: float = 80.0

    # layered directed layout
    node_separation: float = 50.0
    rank_separation: float = 80.0
    margin: float = 20.0

    # advanced engine
    advanced_node_spacing: float = 60.0
    advanced_layer_spacing: float = 80.0
    advanced_force_iterations: int = 300

    # custom force simulation
    force_iterations: int = 300
    force_seed: Optional[int] = None

    # by-file / by-module stacking
    group_column_spacing: float = 260.0
    group_row_spacing: float = 60.0

    # clustering
    min_cluster_size: int = 5
    max_cluster_depth: int = 3
    cluster_state_namespace: str = config.CLUSTER_STATE_NAMESPACE

    def __post_init__(self) -> None:
        for name in ("hierarchical_spacing", "level_height", "node_width", "node_height"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive")
        for name in ("force_iterations", "advanced_force_iterations", "min_cluster_size", "max_cluster_depth"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must not be negative")

    @classmethod
    def from_sections(cls, layout: Dict[str, Any], clustering: Dict[str, Any]) -> "LayoutSettings":
        """Merge ``[layout]`` and ``[clustering]`` tables, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        values: Dict[str, Any] = {}
        for section_name, section in (("layout", layout), ("clustering", clustering)):
            for key, value in section.items():
                if key in known:
                    values[key] = value
                else:
                    logger.warning("Ignoring unknown key '%s' in [%s]", key, section_name)
        return cls(**values)


CLUSTERING_KEYS = {"min_cluster_size", "max_cluster_depth", "cluster_state_namespace"}


def _config_file() -> Path:
    return config.CONFIG_FILE


def load_full_config() -> Dict[str, Any]:
    """Load the entire TOML config (all sections)."""
    path = _config_file()
    if not path.exists():
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            return toml.load(f)
    except (OSError, toml.TomlDecodeError) as exc:
        logger.warning("Could not read %s, using defaults: %s", path, exc)
        return {}


def load_layout_settings() -> LayoutSettings:
    """Build :class:`LayoutSettings` from the config file.

    Falls back to defaults if the file is missing, unreadable, or holds
    values the settings reject.
    """
    full = load_full_config()
    try:
        return LayoutSettings.from_sections(full.get("layout", {}), full.get("clustering", {}))
    except (TypeError, ValueError) as exc:
        logger.warning("Invalid layout configuration, using defaults: %s", exc)
        return LayoutSettings()


def _save_full_config(data: Dict[str, Any]) -> bool:
    """Write entire config dict to TOML file, preserving all sections."""
    path = _config_file()
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            toml.dump(data, f)
        return True
    except OSError as exc:
        logger.error("Could not write %s: %s", path, exc)
        return False


def save_layout_settings(settings: LayoutSettings) -> bool:
    """Persist settings, splitting them into ``[layout]`` and ``[clustering]``.

    Other sections in the file are preserved.
    """
    data = load_full_config()
    values = {k: v for k, v in asdict(settings).items() if v is not None}
    data["layout"] = {k: v for k, v in values.items() if k not in CLUSTERING_KEYS}
    data["clustering"] = {k: v for k, v in values.items() if k in CLUSTERING_KEYS}
    return _save_full_config(data)
