"""Key sources that never touch the network."""

from __future__ import annotations

import threading
from pathlib import Path

from ..protocols import KeySource
from .certificates import PublicKey, parse_public_keys


class FileKeySource(KeySource):
    """Reads a ``{"<kid>": "<PEM certificate>"}`` JSON file on first use.

    The parsed keys are kept for the lifetime of the instance; the file is
    not re-read. A failed load is not cached, so the next call tries again.

    Raises (from ``keys()``):
        OSError: The file cannot be read.
        ValueError: The file is not a valid certificate document.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._lock = threading.Lock()
        self._keys: tuple[PublicKey, ...] | None = None

    def keys(self, *, timeout: float | None = None) -> tuple[PublicKey, ...]:
        with self._lock:
            if self._keys is None:
                self._keys = parse_public_keys(self._path.read_bytes())
            return self._keys


class InMemoryKeySource(KeySource):
    """A fixed key set supplied at construction."""

    def __init__(self, keys: tuple[PublicKey, ...] | list[PublicKey]) -> None:
        self._keys = tuple(keys)

    def keys(self, *, timeout: float | None = None) -> tuple[PublicKey, ...]:
        return self._keys
