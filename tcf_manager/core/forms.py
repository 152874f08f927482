"""
TCF Manager — UI-Agnostic Form Sessions.

Each editing surface (member, TCF, schedule, report, settings) drives one
of these sessions. A session owns the in-progress field values and applies
the draft discipline:

- a draft is loaded only when a *creation* form opens, once per opening;
- every change to an open creation form reschedules the debounced autosave;
- the draft is cleared right after a successful create, never after an edit;
- closing the form cancels any pending autosave.

Required-field validation happens here, before anything reaches the store.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import TYPE_CHECKING, Any, ClassVar

from tcf_manager.core.views import eligible_tcfs
from tcf_manager.data.models import (
    TCF,
    Credentials,
    Entity,
    Member,
    RepeatStatus,
    Report,
    RunType,
    Schedule,
    new_id,
    now_ms,
)

if TYPE_CHECKING:
    from tcf_manager.core.audio import AudioNoteRecorder
    from tcf_manager.core.drafts import DraftAutosaver, DraftStore
    from tcf_manager.data.store import Collection, EntityStore

logger = logging.getLogger(__name__)


class FormError(Exception):
    """Raised when a form cannot be submitted as filled in."""


@dataclass
class SubmitResult:
    success: bool
    entity: Any = None
    error_message: str = ""


def _text(data: dict, name: str) -> str:
    value = data.get(name)
    return value.strip() if isinstance(value, str) else ""


def _optional(data: dict, name: str) -> str | None:
    value = data.get(name)
    return value if value not in (None, "") else None


# ---------------------------------------------------------------------------
# Base session
# ---------------------------------------------------------------------------


class FormSession:
    """In-progress state of one editing form."""

    form_name: ClassVar[str] = ""
    collection_name: ClassVar[str] = ""
    # Fields never written to a draft
    draft_excluded: ClassVar[frozenset[str]] = frozenset()

    def __init__(
        self,
        store: EntityStore,
        drafts: DraftStore,
        autosaver: DraftAutosaver,
    ) -> None:
        self._store = store
        self._drafts = drafts
        self._autosaver = autosaver
        self.data: dict[str, Any] = {}
        self.is_open = False
        self.draft_loaded = False

    @property
    def is_creating(self) -> bool:
        return self.is_open and not self.data.get("id")

    def defaults(self) -> dict[str, Any]:
        return {}

    # -- lifecycle ----------------------------------------------------------

    def open_create(self, initial: dict[str, Any] | None = None) -> None:
        """Open a blank creation form, restoring the saved draft if any.

        Prefilled ``initial`` values win over the draft: the draft is then
        treated as already loaded and left alone.
        """
        self._autosaver.cancel(self.form_name)
        self.is_open = True
        self.data = self.defaults()
        self.draft_loaded = False
        if initial:
            self.data.update(initial)
            self.draft_loaded = True
        self._load_draft_once()

    def open_edit(self, entity: Entity) -> None:
        """Open the form on an existing record. Drafts are not involved."""
        self._autosaver.cancel(self.form_name)
        self.is_open = True
        self.data = entity.model_dump()
        self.draft_loaded = True

    def _load_draft_once(self) -> None:
        if not self.is_creating or self.draft_loaded:
            return
        draft = self._drafts.load(self.form_name)
        if draft:
            self.data = draft
            logger.info("Restored %s draft", self.form_name)
        self.draft_loaded = True

    def update(self, **fields: Any) -> None:
        """Apply field changes and reschedule the draft autosave."""
        if not self.is_open:
            raise FormError(f"The {self.form_name} form is not open")
        self.data.update(fields)
        self._schedule_autosave()

    def _schedule_autosave(self) -> None:
        if self.is_creating and self.draft_loaded:
            snapshot = {
                k: v for k, v in self.data.items() if k not in self.draft_excluded
            }
            self._autosaver.schedule(self.form_name, snapshot)

    def close(self) -> None:
        self._autosaver.cancel(self.form_name)
        self.is_open = False
        self.data = {}
        self.draft_loaded = False

    # -- submission ---------------------------------------------------------

    def build(self) -> Any:
        """Validate ``self.data`` and return the entity to persist."""
        raise NotImplementedError

    def _collection(self) -> Collection:
        return getattr(self._store, self.collection_name)

    def _persist(self, entity: Any) -> None:
        self._collection().upsert(entity)

    def submit(self) -> SubmitResult:
        if not self.is_open:
            return SubmitResult(success=False, error_message="Form is not open")
        try:
            entity = self.build()
        except FormError as exc:
            logger.info("%s form rejected: %s", self.form_name, exc)
            return SubmitResult(success=False, error_message=str(exc))

        creating = self.is_creating
        # A late autosave must not resurrect the draft cleared below
        self._autosaver.cancel(self.form_name)
        self._persist(entity)
        if creating:
            self._drafts.clear(self.form_name)
        self.close()
        return SubmitResult(success=True, entity=entity)


# ---------------------------------------------------------------------------
# Concrete forms
# ---------------------------------------------------------------------------


class MemberForm(FormSession):
    form_name = "member"
    collection_name = "members"

    def build(self) -> Member:
        name = _text(self.data, "name")
        if not name:
            raise FormError("Name is required")
        return Member(
            id=self.data.get("id") or new_id(),
            name=name,
            start_date=self.data.get("start_date") or date.today().isoformat(),
            phone_number=_optional(self.data, "phone_number"),
            age=_optional(self.data, "age"),
            description=_optional(self.data, "description"),
        )


class TCFForm(FormSession):
    form_name = "tcf"
    collection_name = "tcfs"

    def build(self) -> TCF:
        name = _text(self.data, "name")
        if not name:
            raise FormError("Name is required")
        return TCF(
            id=self.data.get("id") or new_id(),
            name=name,
            description=self.data.get("description") or "",
        )


class ScheduleForm(FormSession):
    form_name = "schedule"
    collection_name = "schedules"

    def defaults(self) -> dict[str, Any]:
        return {
            "repeat_status": RepeatStatus.NONE.value,
            "run_type": RunType.SINGLE_DIRECTION.value,
            "tcf_ids": [],
        }

    def build(self) -> Schedule:
        member_id = self.data.get("member_id")
        tcf_ids = list(dict.fromkeys(self.data.get("tcf_ids") or []))
        start = _text(self.data, "start_date_time")
        if not member_id:
            raise FormError("Select a member")
        if not tcf_ids:
            raise FormError("Select at least one TCF")
        if not start:
            raise FormError("Start date and hour are required")
        return Schedule(
            id=self.data.get("id") or new_id(),
            member_id=member_id,
            tcf_ids=tuple(tcf_ids),
            start_date_time=start,
            repeat_status=self.data.get("repeat_status") or RepeatStatus.NONE,
            run_type=self.data.get("run_type") or RunType.SINGLE_DIRECTION,
        )


class ReportForm(FormSession):
    """Log entry form. The TCF choice is limited to the member's eligible TCFs."""

    form_name = "report"
    collection_name = "reports"
    # Audio payloads are far too large for a draft slot
    draft_excluded = frozenset({"audio_note"})

    def __init__(
        self,
        store: EntityStore,
        drafts: DraftStore,
        autosaver: DraftAutosaver,
        recorder: AudioNoteRecorder | None = None,
    ) -> None:
        super().__init__(store, drafts, autosaver)
        self._recorder = recorder
        self._schedules: list[Schedule] = []
        self._tcfs: list[TCF] = []
        # TCF of the report being edited, accepted even if no longer scheduled
        self._original_tcf_id: str | None = None

    def refresh(self) -> None:
        """Reload the collections the eligibility view is computed from."""
        self._schedules = self._store.schedules.list()
        self._tcfs = self._store.tcfs.list()

    def open_create(self, initial: dict[str, Any] | None = None) -> None:
        self.refresh()
        self._original_tcf_id = None
        super().open_create(initial)

    def open_edit(self, entity: Entity) -> None:
        self.refresh()
        super().open_edit(entity)
        self._original_tcf_id = self.data.get("tcf_id")

    def open_for_member(self, member_id: str) -> None:
        """Open a new report prefilled with ``member_id`` (navigation shortcut)."""
        self.open_create({"member_id": member_id})

    def available_tcfs(self) -> list[TCF]:
        return eligible_tcfs(self.data.get("member_id"), self._schedules, self._tcfs)

    def select_member(self, member_id: str) -> None:
        """Switch member; the previously chosen TCF no longer applies."""
        self.update(member_id=member_id, tcf_id="")

    def attach_audio(self, payload: str) -> None:
        self.update(audio_note=payload)

    def remove_audio(self) -> None:
        self.update(audio_note=None)

    @property
    def is_recording(self) -> bool:
        return self._recorder is not None and self._recorder.is_recording

    async def start_recording(self) -> str | None:
        """Start capturing a voice note. Returns an alert message on failure."""
        if self._recorder is None:
            return "Audio recording is not available."
        return await self._recorder.start()

    async def stop_recording(self) -> None:
        if self._recorder is None:
            return
        payload = await self._recorder.stop()
        if payload:
            self.attach_audio(payload)

    def close(self) -> None:
        if self._recorder is not None:
            self._recorder.reset()
        self._original_tcf_id = None
        super().close()

    def build(self) -> Report:
        if self.is_recording:
            raise FormError("Stop the recording before submitting")
        member_id = self.data.get("member_id")
        tcf_id = self.data.get("tcf_id")
        if not member_id:
            raise FormError("Select a member")
        if not tcf_id:
            raise FormError("Select a TCF")
        allowed = {t.id for t in self.available_tcfs()}
        if self.data.get("id") and self._original_tcf_id:
            allowed.add(self._original_tcf_id)
        if tcf_id not in allowed:
            raise FormError("This TCF is not scheduled for the selected member")
        return Report(
            id=self.data.get("id") or new_id(),
            member_id=member_id,
            tcf_id=tcf_id,
            start_time=_optional(self.data, "start_time"),
            description=_optional(self.data, "description"),
            timestamp=self.data.get("timestamp") or now_ms(),
            audio_note=_optional(self.data, "audio_note"),
        )


class SettingsForm(FormSession):
    """Credentials form. Only the username is kept as a draft."""

    form_name = "settings_username"
    draft_excluded = frozenset({"password", "confirm_password"})

    def open_create(self, initial: dict[str, Any] | None = None) -> None:
        self._autosaver.cancel(self.form_name)
        current = self._store.auth.get()
        self.is_open = True
        self.data = {"username": current.username, "password": "", "confirm_password": ""}
        draft = self._drafts.load(self.form_name)
        if draft and draft.get("username") and draft["username"] != current.username:
            self.data["username"] = draft["username"]
        self.draft_loaded = True

    open = open_create

    def _schedule_autosave(self) -> None:
        # An emptied username field leaves the last saved draft in place
        if not _text(self.data, "username"):
            self._autosaver.cancel(self.form_name)
            return
        super()._schedule_autosave()

    def build(self) -> Credentials:
        username = _text(self.data, "username")
        password = self.data.get("password") or ""
        if password and password != self.data.get("confirm_password"):
            raise FormError("Passwords do not match")
        if not username or not password:
            raise FormError("Username and password are required")
        return Credentials(username=username, password=password)

    def _persist(self, entity: Credentials) -> None:
        self._store.auth.save(entity)
