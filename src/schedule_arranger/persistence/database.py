from collections.abc import Callable, Iterator, Sequence
from datetime import datetime
from typing import Any
from alembic.config import Config
from alembic import command
from pathlib import Path
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.pool import StaticPool
from contextlib import contextmanager
from dataclasses import dataclass
import logging

import schedule_arranger.persistence.models as models
from schedule_arranger.persistence.types import CandidateId, ScheduleId, UserId

logger = logging.getLogger(__name__)


class PersistentDatabase:
    """A persistent database that is saved to local disk"""

    DATABASE_URL = "sqlite+pysqlite:///database.sqlite3"

    def __init__(self, engine: sa.Engine | None = None):
        if engine is None:
            engine = sa.create_engine(PersistentDatabase.DATABASE_URL)

        self.engine = engine

    @classmethod
    def from_url(cls, database_url: str):
        return cls(engine=sa.create_engine(database_url))

    @classmethod
    def new_in_memory(cls):
        """
        A constructor for creating a persistent database in memory for testing
        """
        # StaticPool keeps one connection so every thread sees the same database.
        new_persistent_db = cls(
            engine=sa.create_engine(
                "sqlite+pysqlite:///:memory:",
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        )

        new_persistent_db._run_migrations_for_testing()

        return new_persistent_db

    @contextmanager
    def begin(self, serializable: bool = False) -> Iterator[sa.Connection]:
        """
        Opens a transaction that commits on success and rolls back on error.
        """
        if not serializable:
            with self.engine.begin() as conn:
                yield conn
            return

        with self.engine.connect() as conn:
            conn = conn.execution_options(isolation_level="SERIALIZABLE")
            with conn.begin():
                yield conn

    def _run_migrations_for_testing(self):
        """
        We expect for production that the user runs the migration themselves, but for
        unit tests we must invoke it ourselves.
        """
        alembic_dir = Path(__file__).parent.parent.parent.parent / "alembic"

        alembic_cfg = Config()
        alembic_cfg.set_main_option("script_location", str(alembic_dir))

        # Hand the in-memory engine to alembic's env.py.
        alembic_cfg.attributes["connectable"] = self.engine

        command.upgrade(alembic_cfg, "head")


#
## Upserts
#

_DIALECT_INSERTS: dict[str, Callable[[sa.Table], Any]] = {
    "sqlite": sqlite.insert,
    "postgresql": postgresql.insert,
}


def _upsert(
    conn: sa.Connection,
    table: sa.Table,
    values: dict[str, Any],
    index_elements: Sequence[str],
    update: dict[str, Any],
):
    """
    INSERT ... ON CONFLICT DO UPDATE against the table's unique key, so that
    concurrent writers of the same row end with last-write-wins.
    """
    dialect_insert = _DIALECT_INSERTS.get(conn.dialect.name)
    if dialect_insert is None:
        raise NotImplementedError(
            f"Upsert is not supported on dialect {conn.dialect.name}"
        )

    stmt = dialect_insert(table).values(**values)
    stmt = stmt.on_conflict_do_update(index_elements=list(index_elements), set_=update)
    _ = conn.execute(stmt)


#
## Users
#


@dataclass
class UserResult:
    user_id: UserId
    username: str


def upsert_user(db: PersistentDatabase, user_id: UserId, username: str) -> UserResult:
    """
    Adds the user, or refreshes the username of an existing one.
    """
    with db.begin() as conn:
        _upsert(
            conn,
            models.User.__table__,
            {"user_id": str(user_id), "username": username},
            index_elements=["user_id"],
            update={"username": username, "updated_at": sa.func.now()},
        )

    logger.info(f"Upserted user {user_id}")
    return UserResult(user_id=user_id, username=username)


def get_user_by_id(db: PersistentDatabase, user_id: UserId) -> UserResult | None:
    """
    Returns the user given their user_id
    """
    with db.begin() as conn:
        result = (
            conn.execute(
                sa.select(models.User.user_id, models.User.username).where(
                    models.User.user_id == str(user_id)
                )
            )
            .tuples()
            .one_or_none()
        )

    if result is None:
        return None

    user_id_str, username = result
    return UserResult(user_id=UserId(user_id_str), username=username)


#
## Schedules
#


@dataclass
class ScheduleResult:
    schedule_id: ScheduleId
    schedule_name: str
    memo: str
    created_by: UserId
    creator_username: str
    updated_at: datetime


def _schedule_query():
    return sa.select(
        models.Schedule.schedule_id,
        models.Schedule.schedule_name,
        models.Schedule.memo,
        models.Schedule.created_by,
        models.User.username,
        models.Schedule.updated_at,
    ).join(models.User, models.Schedule.created_by == models.User.user_id)


def _to_schedule_result(row: sa.Row[Any]) -> ScheduleResult:
    schedule_id, schedule_name, memo, created_by, username, updated_at = row.tuple()
    return ScheduleResult(
        schedule_id=ScheduleId.from_str(schedule_id),
        schedule_name=schedule_name,
        memo=memo,
        created_by=UserId(created_by),
        creator_username=username,
        updated_at=updated_at,
    )


def insert_schedule(
    conn: sa.Connection,
    schedule_id: ScheduleId,
    schedule_name: str,
    memo: str,
    created_by: UserId,
    updated_at: datetime,
):
    assert conn.execute(
        sa.insert(models.Schedule),
        {
            "schedule_id": str(schedule_id),
            "schedule_name": schedule_name,
            "memo": memo,
            "created_by": str(created_by),
            "updated_at": updated_at,
        },
    )


def update_schedule_row(
    conn: sa.Connection,
    schedule_id: ScheduleId,
    schedule_name: str,
    memo: str,
    updated_at: datetime,
) -> int:
    result = conn.execute(
        sa.update(models.Schedule)
        .where(models.Schedule.schedule_id == str(schedule_id))
        .values(schedule_name=schedule_name, memo=memo, updated_at=updated_at)
    )
    return result.rowcount


def get_schedule_by_id(
    conn: sa.Connection, schedule_id: ScheduleId
) -> ScheduleResult | None:
    """
    Gets a single schedule by ID with creator information
    """
    row = conn.execute(
        _schedule_query().where(models.Schedule.schedule_id == str(schedule_id))
    ).one_or_none()

    if row is None:
        return None

    return _to_schedule_result(row)


def get_schedules_created_by(
    conn: sa.Connection, user_id: UserId
) -> list[ScheduleResult]:
    """
    Gets all schedules created by the user, most recently updated first
    """
    rows = conn.execute(
        _schedule_query()
        .where(models.Schedule.created_by == str(user_id))
        .order_by(models.Schedule.updated_at.desc())
    ).all()

    return [_to_schedule_result(row) for row in rows]


def delete_schedule_row(conn: sa.Connection, schedule_id: ScheduleId) -> int:
    result = conn.execute(
        sa.delete(models.Schedule).where(
            models.Schedule.schedule_id == str(schedule_id)
        )
    )
    return result.rowcount


#
## Candidates
#


@dataclass
class CandidateResult:
    candidate_id: CandidateId
    candidate_name: str


def insert_candidates(
    conn: sa.Connection, schedule_id: ScheduleId, candidate_names: Sequence[str]
):
    """
    Batch inserts candidates; ids are assigned in the given order.
    """
    if not candidate_names:
        return

    assert conn.execute(
        sa.insert(models.Candidate),
        [
            {"candidate_name": name, "schedule_id": str(schedule_id)}
            for name in candidate_names
        ],
    )


def get_candidates(
    conn: sa.Connection, schedule_id: ScheduleId
) -> list[CandidateResult]:
    """
    Gets all candidates of a schedule in column order (candidate_id ascending)
    """
    rows = (
        conn.execute(
            sa.select(models.Candidate.candidate_id, models.Candidate.candidate_name)
            .where(models.Candidate.schedule_id == str(schedule_id))
            .order_by(models.Candidate.candidate_id.asc())
        )
        .tuples()
        .all()
    )

    return [
        CandidateResult(candidate_id=CandidateId(candidate_id), candidate_name=name)
        for candidate_id, name in rows
    ]


def get_candidate(
    conn: sa.Connection, schedule_id: ScheduleId, candidate_id: CandidateId
) -> CandidateResult | None:
    result = (
        conn.execute(
            sa.select(
                models.Candidate.candidate_id, models.Candidate.candidate_name
            ).where(
                models.Candidate.schedule_id == str(schedule_id),
                models.Candidate.candidate_id == candidate_id,
            )
        )
        .tuples()
        .one_or_none()
    )

    if result is None:
        return None

    found_id, name = result
    return CandidateResult(candidate_id=CandidateId(found_id), candidate_name=name)


def delete_candidates(conn: sa.Connection, schedule_id: ScheduleId) -> int:
    result = conn.execute(
        sa.delete(models.Candidate).where(
            models.Candidate.schedule_id == str(schedule_id)
        )
    )
    return result.rowcount


#
## Availabilities
#


@dataclass
class AvailabilityResult:
    user_id: UserId
    username: str
    candidate_id: CandidateId
    availability: int


def get_availabilities(
    conn: sa.Connection, schedule_id: ScheduleId
) -> list[AvailabilityResult]:
    """
    Gets all availabilities of a schedule joined with their user, sorted by
    username then candidate_id (ascending)
    """
    rows = (
        conn.execute(
            sa.select(
                models.Availability.user_id,
                models.User.username,
                models.Availability.candidate_id,
                models.Availability.availability,
            )
            .join(models.User, models.Availability.user_id == models.User.user_id)
            .where(models.Availability.schedule_id == str(schedule_id))
            .order_by(
                models.User.username.asc(), models.Availability.candidate_id.asc()
            )
        )
        .tuples()
        .all()
    )

    return [
        AvailabilityResult(
            user_id=UserId(user_id),
            username=username,
            candidate_id=CandidateId(candidate_id),
            availability=availability,
        )
        for user_id, username, candidate_id, availability in rows
    ]


def upsert_availability(
    conn: sa.Connection,
    schedule_id: ScheduleId,
    user_id: UserId,
    candidate_id: CandidateId,
    availability: int,
):
    _upsert(
        conn,
        models.Availability.__table__,
        {
            "schedule_id": str(schedule_id),
            "user_id": str(user_id),
            "candidate_id": candidate_id,
            "availability": availability,
        },
        index_elements=["schedule_id", "user_id", "candidate_id"],
        update={"availability": availability},
    )


def delete_availabilities(conn: sa.Connection, schedule_id: ScheduleId) -> int:
    result = conn.execute(
        sa.delete(models.Availability).where(
            models.Availability.schedule_id == str(schedule_id)
        )
    )
    return result.rowcount


#
## Comments
#


def get_comments(conn: sa.Connection, schedule_id: ScheduleId) -> dict[UserId, str]:
    """
    Gets every comment of a schedule keyed by the commenting user
    """
    rows = (
        conn.execute(
            sa.select(models.Comment.user_id, models.Comment.comment).where(
                models.Comment.schedule_id == str(schedule_id)
            )
        )
        .tuples()
        .all()
    )

    return {UserId(user_id): comment for user_id, comment in rows}


def upsert_comment(
    conn: sa.Connection, schedule_id: ScheduleId, user_id: UserId, comment: str
):
    _upsert(
        conn,
        models.Comment.__table__,
        {"schedule_id": str(schedule_id), "user_id": str(user_id), "comment": comment},
        index_elements=["schedule_id", "user_id"],
        update={"comment": comment},
    )


def delete_comments(conn: sa.Connection, schedule_id: ScheduleId) -> int:
    result = conn.execute(
        sa.delete(models.Comment).where(models.Comment.schedule_id == str(schedule_id))
    )
    return result.rowcount
