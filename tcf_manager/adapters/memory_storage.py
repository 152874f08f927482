"""In-memory key-value store — for tests and throwaway sessions."""

from __future__ import annotations

from tcf_manager.ports.storage_port import StorageWriteError


class InMemoryKeyValueStore:
    """Dict-backed KeyValueStore with the same quota semantics as SQLite."""

    def __init__(self, initial: dict[str, str] | None = None, quota_bytes: int = 0) -> None:
        self._items: dict[str, str] = dict(initial or {})
        self._quota_bytes = quota_bytes
        self.writes: list[str] = []   # keys written, in order

    def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        if self._quota_bytes:
            used = sum(
                len(k.encode("utf-8")) + len(v.encode("utf-8"))
                for k, v in self._items.items()
                if k != key
            )
            needed = used + len(key.encode("utf-8")) + len(value.encode("utf-8"))
            if needed > self._quota_bytes:
                raise StorageWriteError(
                    f"Quota exceeded writing {key!r}: {needed} > {self._quota_bytes} bytes"
                )
        self._items[key] = value
        self.writes.append(key)

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    def keys(self) -> list[str]:
        return sorted(self._items)

    def snapshot(self) -> dict[str, str]:
        """Copy of the raw contents."""
        return dict(self._items)
