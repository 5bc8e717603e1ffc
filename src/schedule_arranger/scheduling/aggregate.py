"""
Lifecycle of a schedule together with everything that hangs off it.

A schedule is created with its candidates, edited only by its creator (name,
memo and additional candidates), and deleted together with all of its
candidates, availabilities and comments.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
import logging

from schedule_arranger.errors import ForbiddenError, NotFoundError
from schedule_arranger.persistence.database import (
    CandidateResult,
    PersistentDatabase,
    ScheduleResult,
    delete_availabilities,
    delete_candidates,
    delete_comments,
    delete_schedule_row,
    get_candidates,
    get_schedule_by_id,
    get_schedules_created_by,
    insert_candidates,
    insert_schedule,
    update_schedule_row,
)
from schedule_arranger.persistence.types import Identity, ScheduleId, UserId
from schedule_arranger.scheduling.authorization import is_owner

logger = logging.getLogger(__name__)

SCHEDULE_NAME_MAX_LENGTH = 255
DEFAULT_SCHEDULE_NAME = "(undefined)"


def normalize_schedule_name(schedule_name: str) -> str:
    """Truncates to 255 characters, falling back to a placeholder when blank."""
    truncated = schedule_name[:SCHEDULE_NAME_MAX_LENGTH]
    if not truncated.strip():
        return DEFAULT_SCHEDULE_NAME
    return truncated


def parse_candidate_names(candidate_lines: str) -> list[str]:
    """One candidate per non-blank line, surrounding whitespace removed."""
    names = [line.strip() for line in candidate_lines.split("\n")]
    return [name for name in names if name]


def _now() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _get_owned_schedule(conn, schedule_id: ScheduleId, requester: Identity):
    schedule = get_schedule_by_id(conn, schedule_id)
    if schedule is None:
        raise NotFoundError(f"Schedule {schedule_id} does not exist")
    if not is_owner(schedule, requester):
        logger.warning(
            f"User {requester.user_id} tried to modify schedule {schedule_id} they do not own"
        )
        raise ForbiddenError(f"Schedule {schedule_id} is not owned by the requester")
    return schedule


def create_schedule(
    db: PersistentDatabase,
    owner: Identity,
    schedule_name: str,
    memo: str,
    candidate_lines: str,
) -> ScheduleId:
    """
    Creates a schedule and its candidates in one transaction, returns the new
    schedule ID
    """
    schedule_id = ScheduleId.new()
    candidate_names = parse_candidate_names(candidate_lines)

    with db.begin() as conn:
        insert_schedule(
            conn,
            schedule_id,
            normalize_schedule_name(schedule_name),
            memo,
            owner.user_id,
            _now(),
        )
        insert_candidates(conn, schedule_id, candidate_names)

    logger.info(
        f"User {owner.user_id} created schedule {schedule_id} with {len(candidate_names)} candidates"
    )
    return schedule_id


def update_schedule(
    db: PersistentDatabase,
    schedule_id: ScheduleId,
    requester: Identity,
    schedule_name: str,
    memo: str,
    candidate_lines: str,
):
    """
    Overwrites the name and memo of an owned schedule and appends any new
    candidates. Existing candidates are never removed.
    """
    candidate_names = parse_candidate_names(candidate_lines)

    with db.begin() as conn:
        _ = _get_owned_schedule(conn, schedule_id, requester)
        _ = update_schedule_row(
            conn, schedule_id, normalize_schedule_name(schedule_name), memo, _now()
        )
        insert_candidates(conn, schedule_id, candidate_names)

    logger.info(
        f"User {requester.user_id} updated schedule {schedule_id}, added {len(candidate_names)} candidates"
    )


def delete_schedule(
    db: PersistentDatabase, schedule_id: ScheduleId, requester: Identity
):
    """
    Deletes an owned schedule and all of its comments, availabilities and
    candidates, all or nothing.
    """
    with db.begin(serializable=True) as conn:
        _ = _get_owned_schedule(conn, schedule_id, requester)
        comments = delete_comments(conn, schedule_id)
        availabilities = delete_availabilities(conn, schedule_id)
        candidates = delete_candidates(conn, schedule_id)
        _ = delete_schedule_row(conn, schedule_id)

    logger.info(
        f"User {requester.user_id} deleted schedule {schedule_id} "
        f"({candidates} candidates, {availabilities} availabilities, {comments} comments)"
    )


def get_schedule(db: PersistentDatabase, schedule_id: ScheduleId) -> ScheduleResult:
    """
    Returns the schedule with its creator. Any authenticated user may view it.
    """
    with db.begin() as conn:
        schedule = get_schedule_by_id(conn, schedule_id)

    if schedule is None:
        raise NotFoundError(f"Schedule {schedule_id} does not exist")

    return schedule


@dataclass
class EditableSchedule:
    schedule: ScheduleResult
    candidates: list[CandidateResult]


def get_schedule_for_edit(
    db: PersistentDatabase, schedule_id: ScheduleId, requester: Identity
) -> EditableSchedule:
    with db.begin() as conn:
        schedule = _get_owned_schedule(conn, schedule_id, requester)
        candidates = get_candidates(conn, schedule_id)

    return EditableSchedule(schedule=schedule, candidates=candidates)


def list_schedules_created_by(
    db: PersistentDatabase, user_id: UserId
) -> list[ScheduleResult]:
    with db.begin() as conn:
        return get_schedules_created_by(conn, user_id)
