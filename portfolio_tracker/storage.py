"""Local key-value stores used to persist the serialized portfolio."""

import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path

logger = logging.getLogger(__name__)


class KeyValueStore(ABC):
    """Abstract base class for a synchronous string key-value store."""

    @abstractmethod
    def persist(self, key: str, blob: str) -> None:
        """Store blob under key, replacing any previous value."""
        pass

    @abstractmethod
    def retrieve(self, key: str) -> str | None:
        """Return the blob stored under key, or None if there is none."""
        pass


class InMemoryStore(KeyValueStore):
    """Dict-backed store; nothing survives the process."""

    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    def persist(self, key: str, blob: str) -> None:
        self._data[key] = blob

    def retrieve(self, key: str) -> str | None:
        return self._data.get(key)


class JsonFileStore(KeyValueStore):
    """Store backed by a single JSON object file mapping keys to blobs."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def _read(self) -> dict[str, str]:
        if not self.path.exists():
            return {}

        text = self.path.read_text(encoding="utf-8")
        if not text.strip():
            return {}

        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise ValueError(f"Corrupt store file {self.path}: {e}") from e

        if not isinstance(data, dict):
            raise ValueError(
                f"Corrupt store file {self.path}: expected a JSON object"
            )
        return data

    def persist(self, key: str, blob: str) -> None:
        data = self._read()
        data[key] = blob
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data, indent=2), encoding="utf-8")
        logger.debug("Persisted %s to %s", key, self.path)

    def retrieve(self, key: str) -> str | None:
        return self._read().get(key)

    def __repr__(self) -> str:
        return f"JsonFileStore(path={str(self.path)!r})"
