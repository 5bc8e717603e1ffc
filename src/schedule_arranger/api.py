import logging
import secrets
from typing import Annotated

from fastapi import APIRouter, Depends, Form
from starlette.responses import RedirectResponse

from schedule_arranger.dependencies import get_db, get_oidc_provider, get_schedule_id
from schedule_arranger.errors import BadRequestError
from schedule_arranger.persistence.database import PersistentDatabase
from schedule_arranger.persistence.types import (
    CandidateId,
    Identity,
    ScheduleId,
    UserId,
)
from schedule_arranger.scheduling.aggregate import (
    create_schedule,
    delete_schedule,
    get_schedule,
    get_schedule_for_edit,
    list_schedules_created_by,
    update_schedule,
)
from schedule_arranger.scheduling.cells import set_availability, set_comment
from schedule_arranger.scheduling.grid import build_grid
from schedule_arranger.schemas import (
    AvailabilityAck,
    CommentAck,
    EditScheduleView,
    ScheduleDetailView,
    ScheduleView,
)
from schedule_arranger.security.http import OIDCProvider, get_current_user

logger = logging.getLogger(__name__)

router = APIRouter()

CurrentUser = Annotated[Identity, Depends(get_current_user)]
Database = Annotated[PersistentDatabase, Depends(get_db)]
ScheduleIdParam = Annotated[ScheduleId, Depends(get_schedule_id)]

# Form fields keep the names the browser forms submit.
ScheduleNameForm = Annotated[str, Form(alias="scheduleName")]
MemoForm = Annotated[str, Form()]
CandidatesForm = Annotated[str, Form()]


def _redirect(location: str) -> RedirectResponse:
    return RedirectResponse(location, status_code=302)


@router.get("/")
def list_my_schedules(user: CurrentUser, db: Database) -> list[ScheduleView]:
    """
    Returns the schedules created by the caller, most recently updated first
    """
    return [
        ScheduleView.from_result(s) for s in list_schedules_created_by(db, user.user_id)
    ]


@router.get("/health")
async def health_check():
    return {"status": "healthy", "service": "schedule-arranger"}


@router.get("/login")
def login_redirect(
    provider: Annotated[OIDCProvider, Depends(get_oidc_provider)],
):
    """
    Starts the login flow at the OIDC provider.
    """
    return RedirectResponse(provider.authorization_url(secrets.token_urlsafe(16)))


@router.get("/logout")
async def logout():
    return _redirect("/")


@router.post("/schedules")
def create_new_schedule(
    user: CurrentUser,
    db: Database,
    schedule_name: ScheduleNameForm = "",
    memo: MemoForm = "",
    candidates: CandidatesForm = "",
):
    schedule_id = create_schedule(db, user, schedule_name, memo, candidates)
    return _redirect(f"/schedules/{schedule_id}")


@router.get("/schedules/{schedule_id}")
def show_schedule(
    user: CurrentUser, schedule_id: ScheduleIdParam, db: Database
) -> ScheduleDetailView:
    schedule = get_schedule(db, schedule_id)
    grid = build_grid(db, schedule_id, user)
    return ScheduleDetailView.from_grid(schedule, grid)


@router.get("/schedules/{schedule_id}/edit")
def show_schedule_for_edit(
    user: CurrentUser, schedule_id: ScheduleIdParam, db: Database
) -> EditScheduleView:
    return EditScheduleView.from_editable(get_schedule_for_edit(db, schedule_id, user))


@router.post("/schedules/{schedule_id}")
def edit_or_delete_schedule(
    user: CurrentUser,
    schedule_id: ScheduleIdParam,
    db: Database,
    edit: str | None = None,
    delete: str | None = None,
    schedule_name: ScheduleNameForm = "",
    memo: MemoForm = "",
    candidates: CandidatesForm = "",
):
    """
    `?edit=1` updates the schedule, `?delete=1` deletes it with everything
    attached to it. Exactly one of them must be given.
    """
    is_edit = edit == "1"
    is_delete = delete == "1"

    if is_edit == is_delete:
        logger.warning(
            f"Rejected POST to schedule {schedule_id}: edit={edit!r} delete={delete!r}"
        )
        raise BadRequestError("Exactly one of edit=1 or delete=1 is required")

    if is_edit:
        update_schedule(db, schedule_id, user, schedule_name, memo, candidates)
        return _redirect(f"/schedules/{schedule_id}")

    delete_schedule(db, schedule_id, user)
    return _redirect("/")


@router.post("/schedules/{schedule_id}/users/{user_id}/candidates/{candidate_id}")
def update_availability(
    _user: CurrentUser,
    schedule_id: ScheduleIdParam,
    user_id: str,
    candidate_id: int,
    db: Database,
    availability: Annotated[str, Form()],
) -> AvailabilityAck:
    stored = set_availability(
        db, schedule_id, UserId(user_id), CandidateId(candidate_id), availability
    )
    return AvailabilityAck(availability=int(stored))


@router.post("/schedules/{schedule_id}/users/{user_id}/comments")
def update_comment(
    _user: CurrentUser,
    schedule_id: ScheduleIdParam,
    user_id: str,
    db: Database,
    comment: Annotated[str, Form()] = "",
) -> CommentAck:
    stored = set_comment(db, schedule_id, UserId(user_id), comment)
    return CommentAck(comment=stored)
