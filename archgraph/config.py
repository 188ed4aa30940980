"""Configuration paths and effective settings for archgraph."""

from __future__ import annotations

import os
from pathlib import Path

BASE_DIR = Path(os.environ.get("ARCHGRAPH_HOME", str(Path.home() / ".archgraph"))).expanduser()
STATE_FILE = BASE_DIR / "state.json"
CONFIG_FILE = BASE_DIR / "config.toml"

DEFAULT_NODE_WIDTH = 180
DEFAULT_NODE_HEIGHT = 40
CLUSTER_STATE_NAMESPACE = "archmind"
