from enum import StrEnum
from typing import Optional
from pydantic import AwareDatetime, Field
from lead_engine.models.base import FrozenModel, NonBlankStr, utc_now


class FollowUpStatus(StrEnum):
    NEW = "new"
    CONTACTED = "contacted"
    IN_PROGRESS = "in_progress"
    CONVERTED = "converted"
    LOST = "lost"
    NURTURING = "nurturing"


class LifecycleState(FrozenModel):
    """
    Follow-up position of a lead in the sales pipeline.

    Never edited in place: the lifecycle engine supersedes it with a new
    value on every accepted transition.
    """
    follow_up_status: FollowUpStatus = FollowUpStatus.NEW
    assigned_to: Optional[NonBlankStr] = None
    last_contacted_at: Optional[AwareDatetime] = None
    created_at: AwareDatetime = Field(default_factory=utc_now)
    updated_at: AwareDatetime = Field(default_factory=utc_now)

    @property
    def is_assigned(self) -> bool:
        return self.assigned_to is not None
