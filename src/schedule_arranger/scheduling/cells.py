from typing import Any
import logging

from schedule_arranger.errors import InvalidInputError, NotFoundError
from schedule_arranger.persistence.database import (
    PersistentDatabase,
    get_candidate,
    get_schedule_by_id,
    upsert_availability,
    upsert_comment,
)
from schedule_arranger.persistence.types import (
    Availability,
    CandidateId,
    ScheduleId,
    UserId,
)

logger = logging.getLogger(__name__)

COMMENT_MAX_LENGTH = 255


def parse_availability(value: Any) -> Availability:
    """
    Accepts 0, 1 or 2 (as int or numeric string). Anything else is rejected.
    """
    if isinstance(value, bool) or not isinstance(value, (int, str)):
        raise InvalidInputError(f"Invalid availability value: {value!r}")
    try:
        return Availability(int(value))
    except (TypeError, ValueError) as e:
        raise InvalidInputError(f"Invalid availability value: {value!r}") from e


def set_availability(
    db: PersistentDatabase,
    schedule_id: ScheduleId,
    user_id: UserId,
    candidate_id: CandidateId,
    value: Any,
) -> Availability:
    """
    Stores the availability of one user for one candidate, replacing any
    previous value. Returns the stored value.

    The user does not have to be the caller.
    """
    availability = parse_availability(value)

    with db.begin() as conn:
        if get_candidate(conn, schedule_id, candidate_id) is None:
            raise NotFoundError(
                f"Candidate {candidate_id} does not exist in schedule {schedule_id}"
            )
        upsert_availability(conn, schedule_id, user_id, candidate_id, availability)

    logger.info(
        f"Availability of user {user_id} for candidate {candidate_id} set to {availability.name}"
    )
    return availability


def set_comment(
    db: PersistentDatabase, schedule_id: ScheduleId, user_id: UserId, comment: str
) -> str:
    """
    Stores the schedule-wide comment of one user, replacing any previous one.
    Returns the stored comment, truncated to 255 characters.
    """
    truncated = comment[:COMMENT_MAX_LENGTH]

    with db.begin() as conn:
        if get_schedule_by_id(conn, schedule_id) is None:
            raise NotFoundError(f"Schedule {schedule_id} does not exist")
        upsert_comment(conn, schedule_id, user_id, truncated)

    logger.info(f"Comment of user {user_id} on schedule {schedule_id} updated")
    return truncated
