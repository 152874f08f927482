"""Storage port — abstract interface for the key-value backing store.

The entity store, drafts and backup codec depend on this protocol,
never on a specific backend.
"""

from __future__ import annotations

from typing import Protocol


class StorageError(Exception):
    """Raised when any storage backend operation fails."""


class StorageReadError(StorageError):
    """The backend could not be read."""


class StorageWriteError(StorageError):
    """The backend rejected a write (quota exceeded, disk error, ...)."""


class KeyValueStore(Protocol):
    """String-keyed store of serialized string values."""

    def get_item(self, key: str) -> str | None: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...

    def keys(self) -> list[str]: ...
