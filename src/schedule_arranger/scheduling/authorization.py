from schedule_arranger.persistence.database import ScheduleResult
from schedule_arranger.persistence.types import Identity


def is_owner(schedule: ScheduleResult, identity: Identity) -> bool:
    """Only the creator of a schedule may edit or delete it."""
    return schedule.created_by == identity.user_id
