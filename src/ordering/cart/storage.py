"""Cart snapshot storage port (abstract interface) and adapters.

The cart survives reloads through a client-local durable key-value store.
``CartStore`` only ever talks to the port, so the cart logic runs unchanged
against the in-memory adapter in tests and the file adapter on a device.
"""

import json
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path

import structlog

logger = structlog.get_logger(__name__)

DEFAULT_CART_KEY = "cart_v2"


class CartStorage(ABC):
    """Abstract cart snapshot store."""

    @abstractmethod
    def load(self) -> dict | None:
        """Return the last saved snapshot, or None when nothing was saved."""
        ...

    @abstractmethod
    def save(self, snapshot: dict) -> None:
        """Replace the stored snapshot."""
        ...

    @abstractmethod
    def clear(self) -> None:
        """Forget the stored snapshot."""
        ...


class InMemoryCartStorage(CartStorage):
    """Keeps a serialized copy so callers cannot mutate the stored snapshot."""

    def __init__(self, snapshot: dict | None = None) -> None:
        self._payload: str | None = json.dumps(snapshot) if snapshot is not None else None
        self.saves = 0

    def load(self) -> dict | None:
        return json.loads(self._payload) if self._payload is not None else None

    def save(self, snapshot: dict) -> None:
        self._payload = json.dumps(snapshot)
        self.saves += 1

    def clear(self) -> None:
        self._payload = None


class LocalFileCartStorage(CartStorage):
    """One JSON document per key inside a profile directory.

    Two processes writing the same key race on the last write; there is no
    cross-process locking.
    """

    def __init__(self, directory, key: str = DEFAULT_CART_KEY) -> None:
        self.directory = Path(directory)
        self.key = key

    @property
    def path(self) -> Path:
        return self.directory / f"{self.key}.json"

    def load(self) -> dict | None:
        if not self.path.exists():
            return None
        try:
            return json.loads(self.path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            logger.warning("Discarding unreadable cart snapshot", path=str(self.path), error=str(exc))
            return None

    def save(self, snapshot: dict) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self.directory, prefix=f".{self.key}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(snapshot, fh)
            os.replace(tmp_path, self.path)
        except BaseException:
            Path(tmp_path).unlink(missing_ok=True)
            raise

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)
