"""
TCF Manager — Schedule shape migration.

Older schedules pointed at a single TCF through ``tcfId``. The current
shape carries a ``tcfIds`` sequence. Records are normalized at the
deserialization boundary, on every read; the stored record keeps its old
shape until the schedule is explicitly saved again.
"""

from __future__ import annotations

import logging
from enum import Enum

from tcf_manager.data.models import Schedule

logger = logging.getLogger(__name__)

LEGACY_FIELD = "tcfId"
MODERN_FIELD = "tcfIds"


class ScheduleShape(Enum):
    LEGACY = "legacy"          # singular tcfId, no tcfIds
    MODERN = "modern"          # tcfIds present
    INCOMPLETE = "incomplete"  # neither; left for form validation to catch


def detect_shape(raw: dict) -> ScheduleShape:
    """Classify a raw stored schedule record."""
    if raw.get(MODERN_FIELD) is not None:
        return ScheduleShape.MODERN
    if raw.get(LEGACY_FIELD):
        return ScheduleShape.LEGACY
    return ScheduleShape.INCOMPLETE


def upgrade_schedule(raw: dict) -> dict:
    """Return ``raw`` in the modern shape. Idempotent; never mutates ``raw``."""
    if detect_shape(raw) is ScheduleShape.LEGACY:
        logger.debug("Upgrading legacy schedule %s", raw.get("id"))
        return {**raw, MODERN_FIELD: [raw[LEGACY_FIELD]]}
    return raw


def decode_schedule(raw: dict) -> Schedule:
    """Parse a stored schedule of any known shape into a Schedule.

    Raises pydantic.ValidationError on records that cannot be parsed.
    """
    return Schedule.model_validate(upgrade_schedule(raw))
