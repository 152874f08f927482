"""
TCF Manager — Entity Store.

Members, TCFs, schedules and reports persist as JSON arrays, one key per
collection, in a KeyValueStore. Every mutation is a full read-modify-write
of its key.

Failures are fail-soft at the public boundary: an unreadable collection
lists as empty and a rejected write is logged and dropped. Internally each
read and write reports its outcome through ReadResult / WriteResult.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Callable, Generic, TypeVar

from pydantic import ValidationError

from tcf_manager.core.migration import decode_schedule
from tcf_manager.core.seed import build_default_catalog
from tcf_manager.data.models import (
    DEFAULT_CREDENTIALS,
    TCF,
    Credentials,
    Entity,
    Member,
    Report,
    Schedule,
)
from tcf_manager.ports.storage_port import KeyValueStore, StorageError

logger = logging.getLogger(__name__)

MEMBERS_KEY = "tcf_app_members"
TCFS_KEY = "tcf_app_tcfs"
SCHEDULES_KEY = "tcf_app_schedules"
REPORTS_KEY = "tcf_app_reports"
AUTH_KEY = "tcf_app_auth"
LANGUAGE_KEY = "tcf_app_lang"

T = TypeVar("T", bound=Entity)


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------


@dataclass
class ReadResult:
    success: bool
    value: Any = None
    missing: bool = False      # key absent or empty, not an error
    corrupt: bool = False      # value present but not valid JSON
    error_message: str = ""


@dataclass
class WriteResult:
    success: bool
    error_message: str = ""


def dumps(value: Any) -> str:
    """Compact JSON, non-ASCII kept verbatim."""
    return json.dumps(value, ensure_ascii=False, separators=(",", ":"))


def read_json(kv: KeyValueStore, key: str) -> ReadResult:
    """Read and parse the JSON value stored under ``key``."""
    try:
        raw = kv.get_item(key)
    except StorageError as exc:
        return ReadResult(success=False, error_message=str(exc))
    if not raw:
        return ReadResult(success=True, missing=True)
    try:
        return ReadResult(success=True, value=json.loads(raw))
    except json.JSONDecodeError as exc:
        return ReadResult(success=False, corrupt=True, error_message=f"malformed JSON: {exc}")


def write_json(kv: KeyValueStore, key: str, value: Any) -> WriteResult:
    """Serialize ``value`` and store it under ``key``."""
    try:
        payload = dumps(value)
    except (TypeError, ValueError) as exc:
        return WriteResult(success=False, error_message=f"not serializable: {exc}")
    try:
        kv.set_item(key, payload)
    except StorageError as exc:
        return WriteResult(success=False, error_message=str(exc))
    return WriteResult(success=True)


# ---------------------------------------------------------------------------
# Collections
# ---------------------------------------------------------------------------


class Collection(Generic[T]):
    """One entity collection stored as a JSON array under a single key."""

    def __init__(
        self,
        kv: KeyValueStore,
        key: str,
        model: type[T],
        decode: Callable[[dict], T] | None = None,
    ) -> None:
        self._kv = kv
        self.key = key
        self._model = model
        self._decode = decode or model.model_validate

    def _read_raw(self) -> list:
        """Raw stored records; [] when absent, unreadable or not an array."""
        return self._records(read_json(self._kv, self.key))

    def _read_for_update(self) -> list | None:
        """Raw records to modify, or None when the backend could not be read.

        Corrupt JSON still yields [] so the next write replaces it; a failed
        backend read must never be written back as an empty collection.
        """
        result = read_json(self._kv, self.key)
        if not result.success and not result.corrupt:
            logger.error("Not modifying %s, read failed: %s", self.key, result.error_message)
            return None
        return self._records(result)

    def _records(self, result: ReadResult) -> list:
        if not result.success:
            logger.error("Error reading %s: %s", self.key, result.error_message)
            return []
        if result.missing:
            return []
        if not isinstance(result.value, list):
            logger.error("Error reading %s: expected a JSON array", self.key)
            return []
        return result.value

    def _write_raw(self, records: list) -> WriteResult:
        result = write_json(self._kv, self.key, records)
        if not result.success:
            logger.error("Error saving %s: %s", self.key, result.error_message)
        return result

    def _decode_all(self, records: list) -> list[T]:
        items: list[T] = []
        for raw in records:
            if not isinstance(raw, dict):
                logger.warning("Skipping non-object record in %s", self.key)
                continue
            try:
                items.append(self._decode(raw))
            except ValidationError as exc:
                logger.warning(
                    "Skipping malformed record %s in %s: %s",
                    raw.get("id"), self.key, exc.error_count(),
                )
        return items

    def list(self) -> list[T]:
        """All decodable records, in stored order."""
        return self._decode_all(self._read_raw())

    def get(self, item_id: str) -> T | None:
        return next((i for i in self.list() if i.id == item_id), None)

    def upsert(self, item: T) -> None:
        """Replace the record with the same id in place, else append."""
        records = self._read_for_update()
        if records is None:
            return
        record = item.to_record()
        for index, existing in enumerate(records):
            if isinstance(existing, dict) and existing.get("id") == item.id:
                records[index] = record
                break
        else:
            records.append(record)
        if self._write_raw(records).success:
            logger.info("Saved %s %s", self._model.__name__, item.id)

    def delete(self, item_id: str) -> None:
        """Remove the record with ``item_id``; no-op when absent."""
        records = self._read_for_update()
        if records is None:
            return
        kept = [r for r in records if not (isinstance(r, dict) and r.get("id") == item_id)]
        if len(kept) == len(records):
            return
        if self._write_raw(kept).success:
            logger.info("Deleted %s %s", self._model.__name__, item_id)


class TCFCollection(Collection[TCF]):
    """TCF collection, seeded with the default catalog on the very first access.

    Seeding keys off total absence of the stored value, so a collection the
    user has emptied is never re-seeded.
    """

    def __init__(self, kv: KeyValueStore) -> None:
        super().__init__(kv, TCFS_KEY, TCF)

    def _seed_if_absent(self) -> list[TCF] | None:
        result = read_json(self._kv, self.key)
        if not (result.success and result.missing):
            return None
        catalog = build_default_catalog()
        if self._write_raw([t.to_record() for t in catalog]).success:
            logger.info("Seeded %d default TCFs", len(catalog))
        return catalog

    def list(self) -> list[TCF]:
        seeded = self._seed_if_absent()
        if seeded is not None:
            return seeded
        return super().list()

    def upsert(self, item: TCF) -> None:
        self._seed_if_absent()
        super().upsert(item)

    def delete(self, item_id: str) -> None:
        self._seed_if_absent()
        super().delete(item_id)


# ---------------------------------------------------------------------------
# Singletons: auth record and language preference
# ---------------------------------------------------------------------------


class AuthRecord:
    """The username/password pair, defaulted on first access."""

    def __init__(self, kv: KeyValueStore) -> None:
        self._kv = kv

    def get(self) -> Credentials:
        result = read_json(self._kv, AUTH_KEY)
        if result.success and result.missing:
            write = write_json(self._kv, AUTH_KEY, DEFAULT_CREDENTIALS.model_dump())
            if not write.success:
                logger.error("Error saving auth: %s", write.error_message)
            return DEFAULT_CREDENTIALS.model_copy()
        if not result.success:
            logger.error("Error reading auth: %s", result.error_message)
            return DEFAULT_CREDENTIALS.model_copy()
        try:
            return Credentials.model_validate(result.value)
        except ValidationError:
            logger.error("Error reading auth: unrecognized record")
            return DEFAULT_CREDENTIALS.model_copy()

    def save(self, creds: Credentials) -> None:
        result = write_json(self._kv, AUTH_KEY, creds.model_dump())
        if not result.success:
            logger.error("Error saving auth: %s", result.error_message)
            return
        logger.info("Credentials updated for %r", creds.username)

    def verify(self, username: str, password: str) -> bool:
        creds = self.get()
        return username == creds.username and password == creds.password


# ---------------------------------------------------------------------------
# Facade
# ---------------------------------------------------------------------------


class EntityStore:
    """Single entry point to all persisted application state.

    The backing KeyValueStore is injected; it defaults to the SQLite store
    configured by DATABASE_PATH.
    """

    def __init__(self, kv: KeyValueStore | None = None) -> None:
        if kv is None:
            from tcf_manager.adapters.sqlite_storage import SQLiteKeyValueStore
            kv = SQLiteKeyValueStore()

        self.kv = kv
        self.members: Collection[Member] = Collection(kv, MEMBERS_KEY, Member)
        self.tcfs = TCFCollection(kv)
        self.schedules: Collection[Schedule] = Collection(
            kv, SCHEDULES_KEY, Schedule, decode=decode_schedule,
        )
        self.reports: Collection[Report] = Collection(kv, REPORTS_KEY, Report)
        self.auth = AuthRecord(kv)

    # The language tag is stored as a bare string, not JSON.
    def get_language(self) -> str:
        from tcf_manager.config import SUPPORTED_LANGUAGES, settings

        try:
            stored = self.kv.get_item(LANGUAGE_KEY)
        except StorageError as exc:
            logger.error("Error reading language: %s", exc)
            stored = None
        if stored in SUPPORTED_LANGUAGES:
            return stored
        return settings.DEFAULT_LANGUAGE

    def set_language(self, language: str) -> bool:
        from tcf_manager.config import SUPPORTED_LANGUAGES

        if language not in SUPPORTED_LANGUAGES:
            logger.warning("Unsupported language %r ignored", language)
            return False
        try:
            self.kv.set_item(LANGUAGE_KEY, language)
        except StorageError as exc:
            logger.error("Error saving language: %s", exc)
            return False
        return True
