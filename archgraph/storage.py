"""Key-value stores backing persisted UI state such as cluster expansion.

The clustering engine never touches persistence directly; callers inject
one of these stores into :class:`~archgraph.clustering.ClusterStateStore`.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Dict, Optional, Protocol

from .config import STATE_FILE

logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    """Minimal string store interface (``get`` / ``set``)."""

    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str) -> None:
        ...


class InMemoryKeyValueStore:
    """Process-local store, mainly for tests and embedding."""

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value


class JsonFileKeyValueStore:
    """Store all keys in a single JSON object on disk.

    Defaults to ``~/.archgraph/state.json``. The file is re-read on every
    ``get`` so that several CLI invocations see each other's writes.
    """

    def __init__(self, path: Optional[Path] = None) -> None:
        self.path = path or STATE_FILE

    def _load(self) -> Optional[Dict[str, str]]:
        """Parsed file contents; ``None`` when the file exists but is unreadable."""
        if not self.path.exists():
            return {}
        try:
            payload = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            logger.error("Could not read state file %s: %s", self.path, exc)
            return None
        if not isinstance(payload, dict):
            logger.error("State file %s does not hold a JSON object", self.path)
            return None
        return payload

    def get(self, key: str) -> Optional[str]:
        value = (self._load() or {}).get(key)
        return value if isinstance(value, str) else None

    def set(self, key: str, value: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        data = self._load()
        if data is None:
            logger.warning("Overwriting unreadable state file %s; previously stored keys are lost", self.path)
            data = {}
        data[key] = value
        self.path.write_text(json.dumps(data, indent=2, sort_keys=True), encoding="utf-8")
