"""
TCF Manager — Command-line interface.

Backup, restore, listing and report analysis against the local store, plus
record entry through the same form sessions (and drafts) an editing UI uses.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from pathlib import Path
from typing import Any

from tcf_manager.core.analyst import analyze_reports
from tcf_manager.core.audio import audio_note_from_file
from tcf_manager.core.backup import backup_filename, export_data, import_data
from tcf_manager.core.drafts import DraftAutosaver, DraftStore
from tcf_manager.core.forms import (
    FormSession,
    MemberForm,
    ReportForm,
    ScheduleForm,
    SettingsForm,
    SubmitResult,
    TCFForm,
)
from tcf_manager.core.views import eligible_tcfs, member_name, reports_newest_first, tcf_name
from tcf_manager.data.models import RepeatStatus, RunType
from tcf_manager.data.store import EntityStore
from tcf_manager.ports.storage_port import StorageError

logger = logging.getLogger(__name__)


def _cmd_export(store: EntityStore, args: argparse.Namespace) -> int:
    output = args.output or Path(backup_filename())
    try:
        document = export_data(store.kv)
    except StorageError as exc:
        logger.error("Export failed: %s", exc)
        return 1
    output.write_text(document, encoding="utf-8")
    print(f"Backup written to {output}")
    return 0


def _cmd_import(store: EntityStore, args: argparse.Namespace) -> int:
    try:
        text = args.path.read_text(encoding="utf-8")
    except OSError as exc:
        logger.error("Cannot read %s: %s", args.path, exc)
        return 1
    if not import_data(store.kv, text):
        print("Restore failed: the file is not a valid backup.")
        return 1
    print("Data restored.")
    return 0


def _cmd_list(store: EntityStore, args: argparse.Namespace) -> int:
    if args.collection == "members":
        for m in store.members.list():
            print(f"{m.id}  {m.name}  (since {m.start_date or '-'})")
    elif args.collection == "tcfs":
        for t in store.tcfs.list():
            print(f"{t.id}  {t.name}")
    elif args.collection == "schedules":
        members, tcfs = store.members.list(), store.tcfs.list()
        for s in store.schedules.list():
            names = ", ".join(tcf_name(tcfs, tid) for tid in s.tcf_ids)
            print(
                f"{s.id}  {member_name(members, s.member_id)}  [{names}]  "
                f"{s.start_date_time}  {s.repeat_status.value}  {s.run_type.value}"
            )
    else:
        members, tcfs = store.members.list(), store.tcfs.list()
        for r in reports_newest_first(store.reports.list()):
            audio = "  [audio]" if r.audio_note else ""
            print(
                f"{r.id}  {member_name(members, r.member_id)}  "
                f"{tcf_name(tcfs, r.tcf_id)}  {r.start_time or '-'}{audio}"
            )
    return 0


def _cmd_eligible(store: EntityStore, args: argparse.Namespace) -> int:
    tcfs = eligible_tcfs(args.member_id, store.schedules.list(), store.tcfs.list())
    if not tcfs:
        print("No TCFs are scheduled for this member.")
    for t in tcfs:
        print(f"{t.id}  {t.name}")
    return 0


def _cmd_analyze(store: EntityStore, args: argparse.Namespace) -> int:
    language = args.lang or store.get_language()
    reports = store.reports.list()
    if not reports:
        print("No reports to analyze.")
        return 0
    summary = asyncio.run(
        analyze_reports(reports, store.members.list(), store.tcfs.list(), language)
    )
    print(summary)
    return 0


def _cmd_lang(store: EntityStore, args: argparse.Namespace) -> int:
    if args.language is None:
        print(store.get_language())
        return 0
    return 0 if store.set_language(args.language) else 1


# ---------------------------------------------------------------------------
# Record editing through the form sessions
# ---------------------------------------------------------------------------

# add <kind> -> (form class, form fields taken from the options)
_ADD_FORMS: dict[str, tuple[type[FormSession], tuple[str, ...]]] = {
    "member": (MemberForm, ("name", "phone_number", "age", "start_date", "description")),
    "tcf": (TCFForm, ("name", "description")),
    "schedule": (ScheduleForm, ("member_id", "tcf_ids", "start_date_time", "repeat_status", "run_type")),
    "report": (ReportForm, ("member_id", "tcf_id", "start_time", "description")),
}


def _given(args: argparse.Namespace, names: tuple[str, ...]) -> dict[str, Any]:
    return {n: getattr(args, n) for n in names if getattr(args, n, None) is not None}


def _submit_form(form: FormSession, autosaver: DraftAutosaver, fields: dict[str, Any]) -> SubmitResult:
    """Fill an open form and submit it. A rejected form leaves its draft saved."""
    try:
        if fields:
            form.update(**fields)
        result = form.submit()
        if not result.success:
            autosaver.flush(form.form_name)
        return result
    finally:
        autosaver.close()


def _cmd_add(store: EntityStore, args: argparse.Namespace) -> int:
    form_cls, names = _ADD_FORMS[args.kind]
    fields = _given(args, names)
    if getattr(args, "audio", None) is not None:
        try:
            fields["audio_note"] = audio_note_from_file(args.audio)
        except OSError as exc:
            logger.error("Cannot read %s: %s", args.audio, exc)
            return 1

    drafts = DraftStore(store.kv)
    autosaver = DraftAutosaver(drafts)
    form = form_cls(store, drafts, autosaver)
    form.open_create()
    result = _submit_form(form, autosaver, fields)
    if not result.success:
        print(f"Not saved: {result.error_message}")
        return 1
    print(f"Saved {args.kind} {result.entity.id}")
    return 0


def _cmd_delete(store: EntityStore, args: argparse.Namespace) -> int:
    collection = getattr(store, args.collection)
    if collection.get(args.id) is None:
        print(f"No record {args.id} in {args.collection}.")
        return 1
    collection.delete(args.id)
    print(f"Deleted {args.id}")
    return 0


def _cmd_set_credentials(store: EntityStore, args: argparse.Namespace) -> int:
    drafts = DraftStore(store.kv)
    autosaver = DraftAutosaver(drafts)
    form = SettingsForm(store, drafts, autosaver)
    form.open()
    fields = _given(args, ("username", "password", "confirm_password"))
    result = _submit_form(form, autosaver, fields)
    if not result.success:
        print(f"Not saved: {result.error_message}")
        return 1
    print("Credentials updated.")
    return 0


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="tcf-manager", description="Personnel TCF tracking")
    p.add_argument("--db", help="Path to the SQLite store (default: DATABASE_PATH)")
    sub = p.add_subparsers(dest="cmd", required=True)

    s_export = sub.add_parser("export", help="Write a JSON backup of all data")
    s_export.add_argument("--output", "-o", type=Path, help="Backup file (default: dated name)")
    s_export.set_defaults(func=_cmd_export)

    s_import = sub.add_parser("import", help="Restore a JSON backup, overwriting stored data")
    s_import.add_argument("path", type=Path)
    s_import.set_defaults(func=_cmd_import)

    s_list = sub.add_parser("list", help="List a collection")
    s_list.add_argument("collection", choices=["members", "tcfs", "schedules", "reports"])
    s_list.set_defaults(func=_cmd_list)

    s_eligible = sub.add_parser("eligible", help="TCFs a member may be reported against")
    s_eligible.add_argument("member_id")
    s_eligible.set_defaults(func=_cmd_eligible)

    s_analyze = sub.add_parser("analyze", help="Summarize reports with the configured LLM")
    s_analyze.add_argument("--lang", choices=["en", "fa"])
    s_analyze.set_defaults(func=_cmd_analyze)

    s_lang = sub.add_parser("lang", help="Show or set the language preference")
    s_lang.add_argument("language", nargs="?", choices=["en", "fa"])
    s_lang.set_defaults(func=_cmd_lang)

    s_add = sub.add_parser("add", help="Create a record; a rejected entry is kept as a draft")
    add_kinds = s_add.add_subparsers(dest="kind", required=True)

    a_member = add_kinds.add_parser("member")
    a_member.add_argument("--name")
    a_member.add_argument("--phone", dest="phone_number")
    a_member.add_argument("--age")
    a_member.add_argument("--start-date", dest="start_date", help="YYYY-MM-DD (default: today)")
    a_member.add_argument("--description")

    a_tcf = add_kinds.add_parser("tcf")
    a_tcf.add_argument("--name")
    a_tcf.add_argument("--description")

    a_schedule = add_kinds.add_parser("schedule")
    a_schedule.add_argument("--member", dest="member_id")
    a_schedule.add_argument("--tcf", dest="tcf_ids", action="append", help="Repeat for several TCFs")
    a_schedule.add_argument("--start", dest="start_date_time", help="YYYY-MM-DDTHH:MM")
    a_schedule.add_argument("--repeat", dest="repeat_status", choices=[s.value for s in RepeatStatus])
    a_schedule.add_argument("--run-type", dest="run_type", choices=[r.value for r in RunType])

    a_report = add_kinds.add_parser("report")
    a_report.add_argument("--member", dest="member_id")
    a_report.add_argument("--tcf", dest="tcf_id")
    a_report.add_argument("--time", dest="start_time", help="HH:MM")
    a_report.add_argument("--description")
    a_report.add_argument("--audio", type=Path, help="Attach an audio file as the voice note")
    s_add.set_defaults(func=_cmd_add)

    s_delete = sub.add_parser("delete", help="Delete one record by id (no cascade)")
    s_delete.add_argument("collection", choices=["members", "tcfs", "schedules", "reports"])
    s_delete.add_argument("id")
    s_delete.set_defaults(func=_cmd_delete)

    s_creds = sub.add_parser("set-credentials", help="Change the login username and password")
    s_creds.add_argument("--username")
    s_creds.add_argument("--password")
    s_creds.add_argument("--confirm", dest="confirm_password")
    s_creds.set_defaults(func=_cmd_set_credentials)

    return p.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    args = parse_args(argv)

    from tcf_manager.adapters.sqlite_storage import SQLiteKeyValueStore

    store = EntityStore(SQLiteKeyValueStore(db_path=args.db) if args.db else None)
    return args.func(store, args)


if __name__ == "__main__":
    raise SystemExit(main())
