from typing import TYPE_CHECKING
from fastapi import Request

from schedule_arranger.errors import NotFoundError
from schedule_arranger.persistence.database import PersistentDatabase
from schedule_arranger.persistence.types import ScheduleId

if TYPE_CHECKING:
    from schedule_arranger.security.http import OIDCProvider


def get_db(request: Request) -> PersistentDatabase:
    return request.app.state.db


def get_oidc_provider(request: Request) -> "OIDCProvider":
    return request.app.state.oidc_provider


def get_schedule_id(schedule_id: str) -> ScheduleId:
    """Path parameter that is not a valid schedule ID cannot name a schedule."""
    try:
        return ScheduleId.from_str(schedule_id)
    except ValueError as e:
        raise NotFoundError(f"Malformed schedule ID {schedule_id!r}") from e
