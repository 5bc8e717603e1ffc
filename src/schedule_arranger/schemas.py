from datetime import datetime
from typing import Literal

from pydantic import BaseModel

from schedule_arranger.persistence.database import CandidateResult, ScheduleResult
from schedule_arranger.scheduling.aggregate import EditableSchedule
from schedule_arranger.scheduling.grid import AvailabilityGrid


class UserView(BaseModel):
    user_id: str
    username: str


class ScheduleView(BaseModel):
    schedule_id: str
    schedule_name: str
    memo: str
    created_by: UserView
    updated_at: datetime

    @classmethod
    def from_result(cls, schedule: ScheduleResult) -> "ScheduleView":
        return cls(
            schedule_id=str(schedule.schedule_id),
            schedule_name=schedule.schedule_name,
            memo=schedule.memo,
            created_by=UserView(
                user_id=schedule.created_by, username=schedule.creator_username
            ),
            updated_at=schedule.updated_at,
        )


class CandidateView(BaseModel):
    candidate_id: int
    candidate_name: str

    @classmethod
    def from_result(cls, candidate: CandidateResult) -> "CandidateView":
        return cls(
            candidate_id=candidate.candidate_id,
            candidate_name=candidate.candidate_name,
        )


class UserRowView(BaseModel):
    user_id: str
    username: str
    is_self: bool


class ScheduleDetailView(BaseModel):
    """Everything needed to render a schedule page."""

    schedule: ScheduleView
    candidates: list[CandidateView]
    users: list[UserRowView]
    # user_id -> candidate_id -> availability (0: absent, 1: undecided, 2: present)
    availabilities: dict[str, dict[int, int]]
    # Users without a comment are left out.
    comments: dict[str, str]

    @classmethod
    def from_grid(
        cls, schedule: ScheduleResult, grid: AvailabilityGrid
    ) -> "ScheduleDetailView":
        return cls(
            schedule=ScheduleView.from_result(schedule),
            candidates=[CandidateView.from_result(c) for c in grid.candidates],
            users=[
                UserRowView(
                    user_id=user.user_id, username=user.username, is_self=user.is_self
                )
                for user in grid.users
            ],
            availabilities={
                user.user_id: {
                    candidate.candidate_id: int(
                        grid.cell_of(user.user_id, candidate.candidate_id)
                    )
                    for candidate in grid.candidates
                }
                for user in grid.users
            },
            comments=dict(grid.comments),
        )


class EditScheduleView(BaseModel):
    schedule: ScheduleView
    candidates: list[CandidateView]

    @classmethod
    def from_editable(cls, editable: EditableSchedule) -> "EditScheduleView":
        return cls(
            schedule=ScheduleView.from_result(editable.schedule),
            candidates=[CandidateView.from_result(c) for c in editable.candidates],
        )


class AvailabilityAck(BaseModel):
    status: Literal["OK"] = "OK"
    availability: int


class CommentAck(BaseModel):
    status: Literal["OK"] = "OK"
    comment: str
