from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Protocol

"""
Key-value stores for small per-client state (view counts).

Two implementations share one protocol:
- `InMemoryKeyValueStore`: process-local dict (tests, ephemeral runs).
- `JsonFileKeyValueStore`: one JSON object on disk, rewritten on every change.
"""

logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    def get(self, key: str, default: Any = None) -> Any: ...

    def set(self, key: str, value: Any) -> None: ...

    def increment(self, key: str, by: int = 1) -> int: ...


class InMemoryKeyValueStore:
    def __init__(self, initial: dict[str, Any] | None = None):
        self._data: dict[str, Any] = dict(initial or {})

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value

    def increment(self, key: str, by: int = 1) -> int:
        value = int(self._data.get(key) or 0) + by
        self._data[key] = value
        return value


class JsonFileKeyValueStore:
    """A JSON-object-on-disk store. Not safe for concurrent writers."""

    def __init__(self, path: Path):
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            logger.warning("Ignoring unreadable key-value file %s", self._path)
            return {}
        return data if isinstance(data, dict) else {}

    def _save(self, data: dict[str, Any]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")

    def get(self, key: str, default: Any = None) -> Any:
        return self._load().get(key, default)

    def set(self, key: str, value: Any) -> None:
        data = self._load()
        data[key] = value
        self._save(data)

    def increment(self, key: str, by: int = 1) -> int:
        data = self._load()
        value = int(data.get(key) or 0) + by
        data[key] = value
        self._save(data)
        return value
