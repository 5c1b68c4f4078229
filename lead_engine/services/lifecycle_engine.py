"""
Lead Lifecycle Engine

Guards the follow-up status state machine. Every accepted transition
produces a new LifecycleState; illegal moves are rejected with a
BusinessRuleViolation instead of being clamped or ignored.
"""

import datetime as dt
from types import MappingProxyType
from typing import List, Optional
from lead_engine.config import get_settings
from lead_engine.models.base import utc_now
from lead_engine.models.lifecycle import FollowUpStatus, LifecycleState
from lead_engine.utils.observability import log_business_event, logger


class BusinessRuleViolation(Exception):
    """Raised when a follow-up status change is not allowed from the current status."""

    def __init__(self, from_status: FollowUpStatus, to_status: FollowUpStatus):
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"Invalid follow-up status transition: {from_status.value} -> {to_status.value}"
        )


TRANSITIONS = MappingProxyType({
    FollowUpStatus.NEW: (
        FollowUpStatus.CONTACTED,
        FollowUpStatus.IN_PROGRESS,
        FollowUpStatus.LOST,
    ),
    FollowUpStatus.CONTACTED: (
        FollowUpStatus.IN_PROGRESS,
        FollowUpStatus.CONVERTED,
        FollowUpStatus.LOST,
        FollowUpStatus.NURTURING,
    ),
    FollowUpStatus.IN_PROGRESS: (
        FollowUpStatus.CONVERTED,
        FollowUpStatus.LOST,
        FollowUpStatus.NURTURING,
    ),
    FollowUpStatus.LOST: (
        FollowUpStatus.NURTURING,
    ),
    FollowUpStatus.NURTURING: (
        FollowUpStatus.CONTACTED,
        FollowUpStatus.IN_PROGRESS,
        FollowUpStatus.LOST,
    ),
    FollowUpStatus.CONVERTED: (),
})

# Worklist sort order
STATUS_PRIORITY = MappingProxyType({
    FollowUpStatus.NEW: 1,
    FollowUpStatus.CONTACTED: 2,
    FollowUpStatus.IN_PROGRESS: 3,
    FollowUpStatus.NURTURING: 4,
    FollowUpStatus.LOST: 5,
    FollowUpStatus.CONVERTED: 6,
})


class LifecycleEngine:
    """
    Validates and applies follow-up status changes.

    Usage:
        engine = LifecycleEngine()

        if engine.validate_transition(state.follow_up_status, FollowUpStatus.CONTACTED):
            state = engine.apply_transition(state, FollowUpStatus.CONTACTED)

        if engine.needs_follow_up(state):
            # Put lead on the sales worklist
            ...
    """

    # Statuses that never need follow-up
    CLOSED_STATUSES = frozenset({
        FollowUpStatus.CONVERTED,
        FollowUpStatus.LOST,
    })

    def validate_transition(self, current: FollowUpStatus, target: FollowUpStatus) -> bool:
        return FollowUpStatus(target) in TRANSITIONS[FollowUpStatus(current)]

    def apply_transition(
        self,
        state: LifecycleState,
        target: FollowUpStatus,
        now: Optional[dt.datetime] = None,
        lead_id: Optional[str] = None,
    ) -> LifecycleState:
        """
        Move a lifecycle state to a new follow-up status.

        Args:
            state: Current lifecycle state
            target: Requested follow-up status
            now: Transition time (current UTC time if None)
            lead_id: Lead identifier, used only for logging

        Returns:
            New LifecycleState; moving to CONTACTED also stamps last_contacted_at

        Raises:
            BusinessRuleViolation: target is not reachable from the current status
            ValueError: target is not a known follow-up status
        """
        target = FollowUpStatus(target)
        current = state.follow_up_status
        if not self.validate_transition(current, target):
            logger.warning(
                f"Rejected follow-up transition {current.value} -> {target.value}",
                extra={"lead_id": lead_id},
            )
            raise BusinessRuleViolation(current, target)

        now = now or utc_now()
        changes = {"follow_up_status": target, "updated_at": now}
        if target == FollowUpStatus.CONTACTED:
            changes["last_contacted_at"] = now

        new_state = state.evolve(**changes)

        log_business_event(
            "status_transition",
            lead_id,
            from_status=current.value,
            to_status=target.value,
        )
        return new_state

    def assign_to(
        self,
        state: LifecycleState,
        owner_id: str,
        now: Optional[dt.datetime] = None,
    ) -> LifecycleState:
        """Set the owner. Follow-up status and contact time are left alone."""
        return state.evolve(assigned_to=owner_id, updated_at=now or utc_now())

    def unassign(self, state: LifecycleState, now: Optional[dt.datetime] = None) -> LifecycleState:
        return state.evolve(assigned_to=None, updated_at=now or utc_now())

    def get_next_valid_statuses(self, current: FollowUpStatus) -> List[FollowUpStatus]:
        return list(TRANSITIONS[current])

    def get_status_priority(self, status: FollowUpStatus) -> int:
        return STATUS_PRIORITY[status]

    def is_terminal(self, status: FollowUpStatus) -> bool:
        return not TRANSITIONS[status]

    def needs_follow_up(
        self,
        state: LifecycleState,
        threshold_days: Optional[int] = None,
        now: Optional[dt.datetime] = None,
    ) -> bool:
        """
        Check whether a lead belongs on the follow-up worklist.

        NEW leads always do, CONVERTED and LOST never do. Anything else is
        due once threshold_days have passed since the last contact, or
        since creation when the lead was never contacted.

        Args:
            state: Lifecycle state to evaluate
            threshold_days: Allowed days without contact (configured default if None)
            now: Reference time (current UTC time if None)
        """
        if state.follow_up_status == FollowUpStatus.NEW:
            return True
        if state.follow_up_status in self.CLOSED_STATUSES:
            return False

        if threshold_days is None:
            threshold_days = get_settings().follow_up_threshold_days

        return self._elapsed(state, now) >= dt.timedelta(days=threshold_days)

    def has_recent_activity(
        self,
        state: LifecycleState,
        days_threshold: Optional[int] = None,
        now: Optional[dt.datetime] = None,
    ) -> bool:
        """True when the lead was contacted (or created) within days_threshold."""
        if days_threshold is None:
            days_threshold = get_settings().recent_activity_days

        return self._elapsed(state, now) <= dt.timedelta(days=days_threshold)

    def _elapsed(self, state: LifecycleState, now: Optional[dt.datetime]) -> dt.timedelta:
        reference = state.last_contacted_at or state.created_at
        return (now or utc_now()) - reference


# Singleton instance
_engine: Optional[LifecycleEngine] = None


def get_lifecycle_engine() -> LifecycleEngine:
    """Get or create the lifecycle engine singleton."""
    global _engine
    if _engine is None:
        _engine = LifecycleEngine()
    return _engine
