"""Derived views — pure business logic over already-loaded collections.

No I/O: this module only transforms data.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Iterable, Sequence

from tcf_manager.data.models import TCF, Member, Report, Schedule

UNKNOWN = "Unknown"


@lru_cache(maxsize=32)
def _eligible(
    member_id: str, schedules: tuple[Schedule, ...], tcfs: tuple[TCF, ...],
) -> tuple[TCF, ...]:
    scheduled: set[str] = set()
    for schedule in schedules:
        if schedule.member_id == member_id:
            scheduled.update(schedule.tcf_ids)
    return tuple(t for t in tcfs if t.id in scheduled)


def eligible_tcfs(
    member_id: str | None,
    schedules: Sequence[Schedule],
    tcfs: Sequence[TCF],
) -> list[TCF]:
    """TCFs a report for ``member_id`` may be logged against.

    The union of tcf_ids over the member's schedules, resolved against
    ``tcfs`` in catalog order. Ids with no matching TCF are dropped.
    Memoized on (member_id, schedules, tcfs).
    """
    if not member_id:
        return []
    return list(_eligible(member_id, tuple(schedules), tuple(tcfs)))


def member_name(members: Iterable[Member], member_id: str) -> str:
    return next((m.name for m in members if m.id == member_id), UNKNOWN)


def tcf_name(tcfs: Iterable[TCF], tcf_id: str) -> str:
    return next((t.name for t in tcfs if t.id == tcf_id), UNKNOWN)


def reports_newest_first(reports: Iterable[Report]) -> list[Report]:
    return sorted(reports, key=lambda r: r.timestamp, reverse=True)
