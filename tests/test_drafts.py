"""Tests for tcf_manager.core.drafts — draft slots and debounced autosave."""

import asyncio
import json
import time

import pytest

from tcf_manager.core.drafts import DraftAutosaver, DraftStore, ThreadTimerScheduler, draft_key
from tcf_manager.core.forms import MemberForm


def _wait_for(predicate, timeout=2.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


class TestDraftStore:
    def test_key_per_form(self):
        assert draft_key("member") == "tcf_app_drafts_member"

    def test_save_load_clear(self, drafts, kv):
        drafts.save("member", {"name": "Jo"})
        assert drafts.load("member") == {"name": "Jo"}
        assert json.loads(kv.get_item("tcf_app_drafts_member")) == {"name": "Jo"}
        drafts.clear("member")
        assert drafts.load("member") is None
        assert kv.get_item("tcf_app_drafts_member") is None

    def test_save_overwrites_whole_slot(self, drafts):
        drafts.save("tcf", {"name": "A", "description": "x"})
        drafts.save("tcf", {"name": "B"})
        assert drafts.load("tcf") == {"name": "B"}

    def test_unreadable_draft_discarded(self, drafts, kv):
        kv.set_item("tcf_app_drafts_tcf", "not json")
        assert drafts.load("tcf") is None

    def test_non_object_draft_discarded(self, drafts, kv):
        kv.set_item("tcf_app_drafts_tcf", "[1,2]")
        assert drafts.load("tcf") is None

    def test_clear_missing_is_noop(self, drafts):
        drafts.clear("report")


class TestDraftAutosaver:
    def test_nothing_written_before_delay(self, autosaver, scheduler, drafts):
        autosaver.schedule("member", {"name": "J"})
        scheduler.advance(0.4)
        assert drafts.load("member") is None
        assert autosaver.pending("member")

    def test_burst_produces_single_write_with_last_state(self, autosaver, scheduler, kv):
        for name in ("J", "Jo", "Joh", "John"):
            autosaver.schedule("member", {"name": name})
            scheduler.advance(0.1)
        scheduler.advance(0.5)
        assert kv.writes == ["tcf_app_drafts_member"]
        assert json.loads(kv.get_item("tcf_app_drafts_member")) == {"name": "John"}
        assert not autosaver.pending("member")

    def test_each_change_restarts_the_delay(self, autosaver, scheduler, drafts):
        autosaver.schedule("member", {"name": "J"})
        scheduler.advance(0.4)
        autosaver.schedule("member", {"name": "Jo"})
        scheduler.advance(0.4)
        assert drafts.load("member") is None
        scheduler.advance(0.2)
        assert drafts.load("member") == {"name": "Jo"}

    def test_snapshot_taken_at_schedule_time(self, autosaver, scheduler, drafts):
        data = {"name": "A"}
        autosaver.schedule("tcf", data)
        data["name"] = "changed later"
        scheduler.advance(0.5)
        assert drafts.load("tcf") == {"name": "A"}

    def test_forms_debounce_independently(self, autosaver, scheduler, drafts):
        autosaver.schedule("member", {"name": "M"})
        scheduler.advance(0.3)
        autosaver.schedule("tcf", {"name": "T"})
        scheduler.advance(0.25)
        assert drafts.load("member") == {"name": "M"}
        assert drafts.load("tcf") is None
        scheduler.advance(0.3)
        assert drafts.load("tcf") == {"name": "T"}

    def test_cancel(self, autosaver, scheduler, drafts):
        autosaver.schedule("member", {"name": "J"})
        autosaver.cancel("member")
        scheduler.advance(1)
        assert drafts.load("member") is None
        assert scheduler.active == []

    def test_close_cancels_everything(self, autosaver, scheduler, kv):
        autosaver.schedule("member", {"name": "J"})
        autosaver.schedule("report", {"description": "d"})
        autosaver.close()
        scheduler.advance(1)
        assert kv.writes == []

    def test_delay_defaults_to_settings(self, drafts, scheduler):
        assert DraftAutosaver(drafts, scheduler=scheduler).delay == 0.5

    @pytest.mark.asyncio
    async def test_runs_on_event_loop_without_scheduler(self, kv):
        drafts = DraftStore(kv)
        autosaver = DraftAutosaver(drafts, delay=0.01)
        autosaver.schedule("member", {"name": "A"})
        autosaver.schedule("member", {"name": "B"})
        await asyncio.sleep(0.05)
        assert drafts.load("member") == {"name": "B"}
        assert kv.writes == ["tcf_app_drafts_member"]

    def test_flush_saves_pending_snapshot_now(self, autosaver, scheduler, drafts):
        autosaver.schedule("member", {"name": "Jo"})
        assert autosaver.flush("member")
        assert drafts.load("member") == {"name": "Jo"}
        assert not autosaver.pending("member")
        assert scheduler.active == []

    def test_flush_without_pending_save(self, autosaver, kv):
        assert not autosaver.flush("member")
        assert kv.writes == []

    def test_superseded_callback_does_nothing(self, autosaver, scheduler, kv):
        autosaver.schedule("member", {"name": "A"})
        (stale,) = scheduler.active
        autosaver.schedule("member", {"name": "B"})
        stale.callback(*stale.args)
        assert kv.writes == []
        assert autosaver.pending("member")


class TestAutosaveWithoutEventLoop:
    def test_falls_back_to_timer_threads(self, drafts):
        assert isinstance(DraftAutosaver(drafts).scheduler, ThreadTimerScheduler)

    def test_debounced_save_from_sync_code(self, kv):
        drafts = DraftStore(kv)
        autosaver = DraftAutosaver(drafts, delay=0.01)
        autosaver.schedule("member", {"name": "A"})
        autosaver.schedule("member", {"name": "B"})
        assert _wait_for(lambda: drafts.load("member") is not None)
        assert drafts.load("member") == {"name": "B"}
        assert not autosaver.pending("member")

    def test_form_updates_outside_event_loop(self, store, kv):
        drafts = DraftStore(kv)
        autosaver = DraftAutosaver(drafts, delay=0.01)
        form = MemberForm(store, drafts, autosaver)
        form.open_create()
        form.update(name="John")
        assert _wait_for(lambda: drafts.load("member") == {"name": "John"})

    def test_cancel_stops_timer_thread(self, kv):
        drafts = DraftStore(kv)
        autosaver = DraftAutosaver(drafts, delay=0.05)
        autosaver.schedule("member", {"name": "A"})
        autosaver.cancel("member")
        time.sleep(0.15)
        assert drafts.load("member") is None
