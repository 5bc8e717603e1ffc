"""
Builds the dense user x candidate availability grid of a schedule.

Availabilities are stored sparsely: a row exists only once a user has
toggled a cell. The grid fills every missing cell with ABSENT at read time
and never writes those defaults back.
"""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from schedule_arranger.persistence.database import (
    AvailabilityResult,
    CandidateResult,
    PersistentDatabase,
    get_availabilities,
    get_candidates,
    get_comments,
)
from schedule_arranger.persistence.types import (
    Availability,
    CandidateId,
    Identity,
    ScheduleId,
    UserId,
)

AvailabilityMap = dict[UserId, dict[CandidateId, Availability]]


@dataclass(frozen=True)
class UserRow:
    user_id: UserId
    username: str
    is_self: bool


@dataclass
class AvailabilityGrid:
    candidates: list[CandidateResult]
    users: list[UserRow]
    availabilities: AvailabilityMap = field(default_factory=dict)
    comments: dict[UserId, str] = field(default_factory=dict)

    def cell_of(self, user_id: UserId, candidate_id: CandidateId) -> Availability:
        return self.availabilities.get(user_id, {}).get(
            candidate_id, Availability.ABSENT
        )

    def comment_of(self, user_id: UserId) -> str | None:
        return self.comments.get(user_id)


def index_availabilities(records: Iterable[AvailabilityResult]) -> AvailabilityMap:
    """user_id -> (candidate_id -> stored value), only for stored records."""
    sparse: AvailabilityMap = {}
    for record in records:
        sparse.setdefault(record.user_id, {})[record.candidate_id] = Availability(
            record.availability
        )
    return sparse


def order_user_rows(
    viewer: Identity, records: Iterable[AvailabilityResult]
) -> list[UserRow]:
    """
    The viewer always comes first, followed by every other user in the order
    they first appear in the (username-sorted) records.
    """
    rows: dict[UserId, UserRow] = {
        viewer.user_id: UserRow(
            user_id=viewer.user_id, username=viewer.username, is_self=True
        )
    }
    for record in records:
        if record.user_id in rows:
            continue
        rows[record.user_id] = UserRow(
            user_id=record.user_id,
            username=record.username,
            is_self=record.user_id == viewer.user_id,
        )
    return list(rows.values())


def densify(
    sparse: AvailabilityMap,
    users: Sequence[UserRow],
    candidates: Sequence[CandidateResult],
) -> AvailabilityMap:
    """
    Returns a new map with a value for every user x candidate pair. The
    input map is left untouched.
    """
    return {
        user.user_id: {
            candidate.candidate_id: sparse.get(user.user_id, {}).get(
                candidate.candidate_id, Availability.ABSENT
            )
            for candidate in candidates
        }
        for user in users
    }


def build_grid(
    db: PersistentDatabase, schedule_id: ScheduleId, viewer: Identity
) -> AvailabilityGrid:
    """
    Reads candidates, availabilities and comments of a schedule in one
    transaction and projects them into a dense grid for the viewer.
    """
    with db.begin() as conn:
        candidates = get_candidates(conn, schedule_id)
        records = get_availabilities(conn, schedule_id)
        comments = get_comments(conn, schedule_id)

    users = order_user_rows(viewer, records)
    availabilities = densify(index_availabilities(records), users, candidates)

    return AvailabilityGrid(
        candidates=candidates,
        users=users,
        availabilities=availabilities,
        comments=comments,
    )
