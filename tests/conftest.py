"""Shared test fixtures and configuration.

Sets up environment variables before any tcf_manager import so settings
never pick up a developer's .env, and provides in-memory stores and a
manually driven scheduler for debounce tests.
"""

import os

# Patch env vars BEFORE any tcf_manager imports
os.environ["DATABASE_PATH"] = ":memory:"
os.environ["LLM_API_KEY"] = ""
os.environ["LLM_PROVIDER"] = "gemini"
os.environ["DRAFT_DEBOUNCE_SECONDS"] = "0.5"
os.environ["DEFAULT_LANGUAGE"] = "en"

import pytest


class FakeTimerHandle:
    def __init__(self, when, callback, args):
        self.when = when
        self.callback = callback
        self.args = args
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class FakeScheduler:
    """call_later() clock that only moves when advance() is called."""

    def __init__(self):
        self.now = 0.0
        self.handles = []

    def call_later(self, delay, callback, *args):
        handle = FakeTimerHandle(self.now + delay, callback, args)
        self.handles.append(handle)
        return handle

    def advance(self, seconds):
        self.now += seconds
        due = sorted(
            (h for h in self.handles if not h.cancelled and h.when <= self.now),
            key=lambda h: h.when,
        )
        for handle in due:
            self.handles.remove(handle)
            handle.callback(*handle.args)

    @property
    def active(self):
        return [h for h in self.handles if not h.cancelled]


@pytest.fixture
def kv():
    """Empty in-memory key-value store."""
    from tcf_manager.adapters.memory_storage import InMemoryKeyValueStore
    return InMemoryKeyValueStore()


@pytest.fixture
def store(kv):
    """EntityStore over the in-memory key-value store."""
    from tcf_manager.data.store import EntityStore
    return EntityStore(kv)


@pytest.fixture
def sqlite_kv(tmp_path):
    """SQLite key-value store backed by a temp file, no quota."""
    from tcf_manager.adapters.sqlite_storage import SQLiteKeyValueStore
    return SQLiteKeyValueStore(db_path=str(tmp_path / "test_tcf.db"), quota_bytes=0)


@pytest.fixture
def scheduler():
    return FakeScheduler()


@pytest.fixture
def drafts(kv):
    from tcf_manager.core.drafts import DraftStore
    return DraftStore(kv)


@pytest.fixture
def autosaver(drafts, scheduler):
    from tcf_manager.core.drafts import DraftAutosaver
    return DraftAutosaver(drafts, scheduler=scheduler, delay=0.5)


class FakeCapture:
    """AudioCapture that emits preset chunks on stop(), or fails on start()."""

    mime_type = "audio/ogg"

    def __init__(self, chunks=(b"abc", b"def"), fail=False):
        self.chunks = list(chunks)
        self.fail = fail
        self._on_chunk = None

    async def start(self, on_chunk):
        from tcf_manager.ports.audio_port import AudioCaptureError

        if self.fail:
            raise AudioCaptureError("permission denied")
        self._on_chunk = on_chunk

    async def stop(self):
        for chunk in self.chunks:
            self._on_chunk(chunk)


@pytest.fixture
def capture():
    return FakeCapture()


@pytest.fixture
def failing_capture():
    return FakeCapture(fail=True)
