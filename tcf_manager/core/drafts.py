"""
TCF Manager — Draft autosave.

A draft is a scratch copy of an open creation form, one slot per form
name, always overwritten as a whole. Writes are debounced: each change
reschedules the save and only the last change inside the delay window
reaches storage.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Protocol

from tcf_manager.data.store import read_json, write_json
from tcf_manager.ports.storage_port import KeyValueStore, StorageError

logger = logging.getLogger(__name__)

DRAFT_KEY_PREFIX = "tcf_app_drafts_"


def draft_key(form_name: str) -> str:
    return DRAFT_KEY_PREFIX + form_name


class DraftStore:
    """Per-form scratch storage. Fail-soft like the entity store."""

    def __init__(self, kv: KeyValueStore) -> None:
        self._kv = kv

    def save(self, form_name: str, data: dict) -> None:
        result = write_json(self._kv, draft_key(form_name), data)
        if not result.success:
            logger.error("Error saving draft %s: %s", form_name, result.error_message)

    def load(self, form_name: str) -> dict | None:
        result = read_json(self._kv, draft_key(form_name))
        if not result.success:
            logger.warning("Discarding unreadable draft %s: %s", form_name, result.error_message)
            return None
        if result.missing or not isinstance(result.value, dict):
            return None
        return result.value

    def clear(self, form_name: str) -> None:
        try:
            self._kv.remove_item(draft_key(form_name))
        except StorageError as exc:
            logger.error("Error clearing draft %s: %s", form_name, exc)


# ---------------------------------------------------------------------------
# Debounced autosave
# ---------------------------------------------------------------------------


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """Anything that can run a callback later. An asyncio loop qualifies."""

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> TimerHandle: ...


class ThreadTimerScheduler:
    """Scheduler for synchronous callers: each callback runs on a daemon timer thread."""

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> threading.Timer:
        timer = threading.Timer(delay, callback, args)
        timer.daemon = True
        timer.start()
        return timer


def default_scheduler() -> Scheduler:
    """The running event loop if there is one, else a timer-thread scheduler."""
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return ThreadTimerScheduler()


@dataclass
class _PendingSave:
    token: object
    data: dict
    handle: TimerHandle | None = None


class DraftAutosaver:
    """Debounces draft writes per form name.

    ``schedule()`` cancels whatever save is pending for the same form and
    starts a fresh delay. Forms never interfere with each other.

    The scheduler is fixed at construction. Without an explicit one the
    saver uses the event loop it was created on, or timer threads when
    created outside any loop. Callbacks may therefore arrive on another
    thread; a callback whose save has since been replaced or cancelled
    does nothing.
    """

    def __init__(
        self,
        drafts: DraftStore,
        scheduler: Scheduler | None = None,
        delay: float | None = None,
    ) -> None:
        if delay is None:
            from tcf_manager.config import settings
            delay = settings.DRAFT_DEBOUNCE_SECONDS

        self._drafts = drafts
        self.scheduler = scheduler or default_scheduler()
        self.delay = delay
        self._pending: dict[str, _PendingSave] = {}
        self._lock = threading.Lock()

    def schedule(self, form_name: str, data: dict) -> None:
        """(Re)start the debounce timer for ``form_name`` with a snapshot of ``data``."""
        entry = _PendingSave(token=object(), data=dict(data))
        with self._lock:
            self._discard(form_name)
            self._pending[form_name] = entry
            entry.handle = self.scheduler.call_later(
                self.delay, self._fire, form_name, entry.token,
            )

    def _fire(self, form_name: str, token: object) -> None:
        with self._lock:
            entry = self._pending.get(form_name)
            if entry is None or entry.token is not token:
                return
            del self._pending[form_name]
        self._drafts.save(form_name, entry.data)
        logger.debug("Draft %s autosaved", form_name)

    def _discard(self, form_name: str) -> _PendingSave | None:
        entry = self._pending.pop(form_name, None)
        if entry is not None and entry.handle is not None:
            entry.handle.cancel()
        return entry

    def flush(self, form_name: str) -> bool:
        """Write the pending snapshot for ``form_name`` now. False if none was pending."""
        with self._lock:
            entry = self._discard(form_name)
        if entry is None:
            return False
        self._drafts.save(form_name, entry.data)
        logger.debug("Draft %s flushed", form_name)
        return True

    def cancel(self, form_name: str) -> None:
        with self._lock:
            self._discard(form_name)

    def pending(self, form_name: str) -> bool:
        return form_name in self._pending

    def close(self) -> None:
        """Cancel every pending save."""
        with self._lock:
            for form_name in list(self._pending):
                self._discard(form_name)
