"""
TCF Manager — Backup & Restore.

A backup bundles the raw stored strings of every collection, the auth
record and the language tag into one JSON document. Values are passed
through verbatim in both directions; they are not re-validated.
"""

from __future__ import annotations

import logging
from datetime import date

from pydantic import BaseModel, ConfigDict, ValidationError

from tcf_manager.data.store import (
    AUTH_KEY,
    LANGUAGE_KEY,
    MEMBERS_KEY,
    REPORTS_KEY,
    SCHEDULES_KEY,
    TCFS_KEY,
    dumps,
)
from tcf_manager.ports.storage_port import KeyValueStore, StorageError

logger = logging.getLogger(__name__)

BACKUP_VERSION = "1.0"

# document field -> store key
BACKUP_FIELDS: dict[str, str] = {
    "members": MEMBERS_KEY,
    "tcfs": TCFS_KEY,
    "schedules": SCHEDULES_KEY,
    "reports": REPORTS_KEY,
    "auth": AUTH_KEY,
    "lang": LANGUAGE_KEY,
}


class BackupDocument(BaseModel):
    """Shape of a backup file. Every bundled field is independently optional."""

    model_config = ConfigDict(extra="ignore")

    members: str | None = None
    tcfs: str | None = None
    schedules: str | None = None
    reports: str | None = None
    auth: str | None = None
    lang: str | None = None
    version: str | int | float | None = None


def export_data(kv: KeyValueStore) -> str:
    """Serialize the whole persistent state to a backup document.

    Raises StorageError if the backend cannot be read.
    """
    document: dict[str, str | None] = {
        field: kv.get_item(key) for field, key in BACKUP_FIELDS.items()
    }
    document["version"] = BACKUP_VERSION
    return dumps(document)


def import_data(kv: KeyValueStore, text: str) -> bool:
    """Restore a backup document produced by export_data().

    The whole document is validated before anything is written; an
    unparseable document returns False with no side effects. Only fields
    present in the document overwrite their keys. If the backend rejects a
    write part way, keys already written are restored to their old values.
    Callers must reload any in-memory state afterwards.
    """
    try:
        document = BackupDocument.model_validate_json(text)
    except ValidationError as exc:
        logger.error("Import failed: %d problem(s) in backup document", exc.error_count())
        return False

    updates = [
        (key, getattr(document, field))
        for field, key in BACKUP_FIELDS.items()
        if getattr(document, field)
    ]

    previous: dict[str, str | None] = {}
    try:
        for key, value in updates:
            previous[key] = kv.get_item(key)
            kv.set_item(key, value)
    except StorageError as exc:
        logger.error("Import failed while writing: %s", exc)
        _restore(kv, previous)
        return False

    logger.info("Imported backup (version %s, %d keys)", document.version, len(updates))
    return True


def _restore(kv: KeyValueStore, previous: dict[str, str | None]) -> None:
    for key, value in previous.items():
        try:
            if value is None:
                kv.remove_item(key)
            else:
                kv.set_item(key, value)
        except StorageError as exc:
            logger.error("Could not restore %s after failed import: %s", key, exc)


def backup_filename(day: date | None = None) -> str:
    day = day or date.today()
    return f"tcf_manager_backup_{day.isoformat()}.json"
