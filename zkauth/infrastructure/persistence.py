"""
Key-value stores for sessions and registered users.
"""

from __future__ import annotations

import json
import logging
import threading
from pathlib import Path  # noqa: TC003
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ValidationError

from zkauth.common.models import RegisteredUser, Session

ModelT = TypeVar("ModelT", bound=BaseModel)

logger = logging.getLogger(__name__)


class MemoryStore(Generic[ModelT]):
    """In-process store; values are kept as-is."""

    def __init__(self) -> None:
        self._items: dict[str, ModelT] = {}

    def get(self, key: str) -> ModelT | None:
        return self._items.get(key)

    def set(self, key: str, value: ModelT) -> None:
        self._items[key] = value

    def delete(self, key: str) -> None:
        self._items.pop(key, None)

    def __len__(self) -> int:
        return len(self._items)


class JsonFileStore(Generic[ModelT]):
    """Store backed by a single JSON object on disk, keyed by store key."""

    def __init__(self, file_path: Path, model: type[ModelT]):
        self.file_path = file_path
        self.model = model
        self._lock = threading.Lock()

    def get(self, key: str) -> ModelT | None:
        with self._lock:
            raw = self._load().get(key)
        if raw is None:
            return None
        try:
            return self.model.model_validate(raw)
        except ValidationError:
            logger.warning("Discarding unreadable %s entry %s", self.model.__name__, key)
            return None

    def set(self, key: str, value: ModelT) -> None:
        with self._lock:
            data = self._load()
            data[key] = value.model_dump(mode="json")
            self._save(data)

    def delete(self, key: str) -> None:
        with self._lock:
            data = self._load()
            if data.pop(key, None) is not None:
                self._save(data)

    def _load(self) -> dict[str, Any]:
        try:
            with self.file_path.open() as f:
                data = json.load(f)
        except (FileNotFoundError, json.JSONDecodeError):
            return {}
        return data if isinstance(data, dict) else {}

    def _save(self, data: dict[str, Any]) -> None:
        self.file_path.parent.mkdir(parents=True, exist_ok=True)
        with self.file_path.open("w") as f:
            json.dump(data, f, indent=2)


class MemorySessionStore(MemoryStore[Session]):
    pass


class MemoryUserStore(MemoryStore[RegisteredUser]):
    pass


class JsonFileSessionStore(JsonFileStore[Session]):
    def __init__(self, file_path: Path):
        super().__init__(file_path, Session)


class JsonFileUserStore(JsonFileStore[RegisteredUser]):
    """Registered users as plain JSON.

    Each record holds the user's identity seed. For credential users that
    seed is ``sha256(email:password)``, from which the private material can
    be re-derived, so the file is kept owner-only.
    """

    def __init__(self, file_path: Path):
        super().__init__(file_path, RegisteredUser)

    def _save(self, data: dict[str, Any]) -> None:
        super()._save(data)
        self.file_path.chmod(0o600)
