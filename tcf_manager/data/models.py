"""
TCF Manager — Data Models.

Members, task-class definitions (TCFs), schedules and reports. Records are
serialized with camelCase keys so the stored JSON keeps the shape the
browser edition of the app wrote, and old backups stay readable.
"""

from __future__ import annotations

import time
import uuid
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


def new_id() -> str:
    """Opaque unique id for a freshly created record."""
    return str(uuid.uuid4())


def now_ms() -> int:
    """Epoch milliseconds, the ordering key of reports."""
    return int(time.time() * 1000)


class RunType(str, Enum):
    SINGLE_DIRECTION = "Single Direction"
    BIDIRECTIONAL = "Bidirectional"


class RepeatStatus(str, Enum):
    NONE = "None"
    DAILY = "Daily"
    WEEKLY = "Weekly"
    MONTHLY = "Monthly"


class Entity(BaseModel):
    """Base for every stored record: an immutable value with an opaque id."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )

    id: str = Field(default_factory=new_id)

    def to_record(self) -> dict:
        """Serialize to the on-disk JSON shape (camelCase, unset optionals omitted)."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class Member(Entity):
    """A person tasks are scheduled for and reported against."""

    name: str
    start_date: str | None = None       # YYYY-MM-DD, filled on creation
    phone_number: str | None = None
    age: str | None = None
    description: str | None = None

    @field_validator("age", mode="before")
    @classmethod
    def coerce_age(cls, v: object) -> object:
        if isinstance(v, bool):
            return str(v)
        if isinstance(v, (int, float)):
            return str(v)
        return v


class TCF(Entity):
    """A task-class definition: a named, reusable procedure."""

    name: str
    description: str | None = None


class Schedule(Entity):
    """Assignment of one or more TCFs to one member.

    ``tcf_ids`` is a set semantically; stored as an ordered sequence.
    """

    member_id: str
    tcf_ids: tuple[str, ...] = ()
    start_date_time: str = ""                       # local ISO datetime
    repeat_status: RepeatStatus = RepeatStatus.NONE
    run_type: RunType = RunType.SINGLE_DIRECTION


class Report(Entity):
    """A log entry: one TCF performed for one member."""

    member_id: str
    tcf_id: str
    start_time: str | None = None       # free string, e.g. "14:30"
    description: str | None = None
    timestamp: int | float = Field(default_factory=now_ms)
    audio_note: str | None = None       # data URI


class Credentials(BaseModel):
    """The singleton auth record. An app preference, not a secret store."""

    username: str
    password: str


DEFAULT_CREDENTIALS = Credentials(username="test", password="test")
