from dataclasses import dataclass
from enum import IntEnum
from typing import NewType, cast

from typing_extensions import override
from ulid import ULID

#
## New Types
#

# External identity subject, kept as a string everywhere in the core.
UserId = NewType("UserId", str)


@dataclass(frozen=True)
class ScheduleId:
    _schedule_id: ULID

    @override
    def __str__(self):
        return str(self._schedule_id).lower()

    @classmethod
    def new(cls) -> "ScheduleId":
        return cls(_schedule_id=ULID())

    @classmethod
    def from_str(cls, schedule_id: str) -> "ScheduleId":
        return cls(_schedule_id=cast(ULID, ULID.from_str(schedule_id.upper())))


CandidateId = NewType("CandidateId", int)


class Availability(IntEnum):
    ABSENT = 0
    UNDECIDED = 1
    PRESENT = 2


@dataclass(frozen=True)
class Identity:
    """The authenticated caller handed to the core by the identity adapter."""

    user_id: UserId
    username: str
