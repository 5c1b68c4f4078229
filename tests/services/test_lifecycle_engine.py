"""
Tests for the Lead Lifecycle Engine

Validates the follow-up status state machine and follow-up detection.
"""

import pytest
import datetime as dt
from pydantic import ValidationError
from lead_engine.models.lifecycle import FollowUpStatus, LifecycleState
from lead_engine.services.lifecycle_engine import (
    BusinessRuleViolation,
    LifecycleEngine,
    get_lifecycle_engine,
)

S = FollowUpStatus

ALLOWED = {
    S.NEW: {S.CONTACTED, S.IN_PROGRESS, S.LOST},
    S.CONTACTED: {S.IN_PROGRESS, S.CONVERTED, S.LOST, S.NURTURING},
    S.IN_PROGRESS: {S.CONVERTED, S.LOST, S.NURTURING},
    S.LOST: {S.NURTURING},
    S.NURTURING: {S.CONTACTED, S.IN_PROGRESS, S.LOST},
    S.CONVERTED: set(),
}

ALL_PAIRS = [(source, target) for source in S for target in S]


class TestLifecycleEngine:
    """Tests for LifecycleEngine class."""

    @pytest.fixture
    def engine(self):
        return LifecycleEngine()

    @pytest.fixture
    def new_state(self, now):
        return LifecycleState(created_at=now, updated_at=now)

    def state_in(self, status: FollowUpStatus, created_at: dt.datetime, **fields) -> LifecycleState:
        return LifecycleState(
            follow_up_status=status,
            created_at=created_at,
            updated_at=created_at,
            **fields,
        )

    # ===========================================
    # Transition Table
    # ===========================================

    @pytest.mark.parametrize("source,target", ALL_PAIRS)
    def test_validate_transition_matches_table(self, engine, source, target):
        assert engine.validate_transition(source, target) == (target in ALLOWED[source])

    @pytest.mark.parametrize("source,target", [
        (source, target) for source, target in ALL_PAIRS if target not in ALLOWED[source]
    ])
    def test_illegal_transitions_are_rejected(self, engine, now, source, target):
        state = self.state_in(source, now)

        with pytest.raises(BusinessRuleViolation) as exc_info:
            engine.apply_transition(state, target)

        assert exc_info.value.from_status == source
        assert exc_info.value.to_status == target
        # Rejected transitions leave the state untouched
        assert state.follow_up_status == source

    def test_converted_is_terminal(self, engine, now):
        state = self.state_in(S.CONVERTED, now)

        with pytest.raises(BusinessRuleViolation, match="converted -> contacted"):
            engine.apply_transition(state, S.CONTACTED)

        assert engine.is_terminal(S.CONVERTED)
        assert engine.get_next_valid_statuses(S.CONVERTED) == []

    def test_no_self_transitions(self, engine):
        for status in S:
            assert not engine.validate_transition(status, status)

    def test_get_next_valid_statuses(self, engine):
        assert engine.get_next_valid_statuses(S.NEW) == [S.CONTACTED, S.IN_PROGRESS, S.LOST]
        assert engine.get_next_valid_statuses(S.LOST) == [S.NURTURING]

    def test_only_converted_is_terminal(self, engine):
        assert [s for s in S if engine.is_terminal(s)] == [S.CONVERTED]

    # ===========================================
    # Applying Transitions
    # ===========================================

    def test_contacted_stamps_last_contacted_at(self, engine, new_state, now):
        later = now + dt.timedelta(hours=2)
        contacted = engine.apply_transition(new_state, S.CONTACTED, now=later)

        assert contacted.follow_up_status == S.CONTACTED
        assert contacted.last_contacted_at == later
        assert contacted.updated_at == later

    def test_apply_returns_new_state(self, engine, new_state):
        contacted = engine.apply_transition(new_state, S.CONTACTED)

        assert contacted is not new_state
        assert new_state.follow_up_status == S.NEW
        assert new_state.last_contacted_at is None
        assert contacted.last_contacted_at is not None

    def test_other_transitions_keep_last_contacted_at(self, engine, now):
        contacted_at = now - dt.timedelta(days=1)
        state = self.state_in(S.CONTACTED, now - dt.timedelta(days=3), last_contacted_at=contacted_at)

        progressed = engine.apply_transition(state, S.IN_PROGRESS, now=now)

        assert progressed.last_contacted_at == contacted_at
        assert progressed.updated_at == now

    def test_transition_keeps_owner(self, engine, now):
        state = self.state_in(S.NEW, now, assigned_to="rep-7")
        assert engine.apply_transition(state, S.IN_PROGRESS).assigned_to == "rep-7"

    def test_full_happy_path(self, engine, new_state):
        state = new_state
        for target in (S.CONTACTED, S.NURTURING, S.IN_PROGRESS, S.CONVERTED):
            state = engine.apply_transition(state, target)
        assert state.follow_up_status == S.CONVERTED

    # ===========================================
    # Assignment
    # ===========================================

    def test_assign_and_unassign(self, engine, new_state, now):
        assigned = engine.assign_to(new_state, "rep-1", now=now)
        assert assigned.assigned_to == "rep-1"
        assert assigned.follow_up_status == S.NEW
        assert assigned.last_contacted_at is None

        unassigned = engine.unassign(assigned)
        assert unassigned.assigned_to is None
        assert assigned.assigned_to == "rep-1"

    def test_blank_owner_rejected(self, engine, new_state):
        with pytest.raises(ValidationError):
            engine.assign_to(new_state, "   ")

    # ===========================================
    # Priority
    # ===========================================

    def test_status_priority(self, engine):
        assert engine.get_status_priority(S.NEW) == 1
        assert engine.get_status_priority(S.CONVERTED) == 6
        priorities = [engine.get_status_priority(s) for s in S]
        assert sorted(priorities) == [1, 2, 3, 4, 5, 6]

    def test_priority_sorts_worklist(self, engine):
        worklist = [S.CONVERTED, S.LOST, S.NEW, S.IN_PROGRESS]
        assert sorted(worklist, key=engine.get_status_priority) == [
            S.NEW, S.IN_PROGRESS, S.LOST, S.CONVERTED
        ]

    # ===========================================
    # Status Values Given As Strings
    # ===========================================

    def test_string_target_is_accepted(self, engine, new_state, now):
        contacted = engine.apply_transition(new_state, "contacted", now=now)

        assert contacted.follow_up_status == S.CONTACTED
        assert contacted.last_contacted_at == now
        assert engine.validate_transition("new", "contacted") is True

    def test_illegal_string_target_raises_business_rule_violation(self, engine, now):
        state = LifecycleState(follow_up_status="converted", created_at=now, updated_at=now)

        with pytest.raises(BusinessRuleViolation) as exc_info:
            engine.apply_transition(state, "contacted")

        assert exc_info.value.to_status == S.CONTACTED
        assert "converted -> contacted" in str(exc_info.value)

    def test_unknown_status_string_rejected(self, engine, new_state):
        with pytest.raises(ValueError):
            engine.apply_transition(new_state, "archived")

    # ===========================================
    # Follow-up Detection
    # ===========================================

    def test_new_always_needs_follow_up(self, engine, new_state, now):
        assert engine.needs_follow_up(new_state, now=now) is True

    @pytest.mark.parametrize("status", [S.CONVERTED, S.LOST])
    def test_closed_never_need_follow_up(self, engine, now, status):
        state = self.state_in(status, now - dt.timedelta(days=90))
        assert engine.needs_follow_up(state, now=now) is False

    @pytest.mark.parametrize("days_ago,expected", [(6, False), (7, True), (8, True)])
    def test_follow_up_after_threshold(self, engine, now, days_ago, expected):
        state = self.state_in(
            S.CONTACTED,
            now - dt.timedelta(days=30),
            last_contacted_at=now - dt.timedelta(days=days_ago),
        )
        assert engine.needs_follow_up(state, now=now) is expected

    def test_never_contacted_uses_created_at(self, engine, now):
        state = self.state_in(S.IN_PROGRESS, now - dt.timedelta(days=10))
        assert engine.needs_follow_up(state, now=now) is True
        assert engine.needs_follow_up(state, threshold_days=14, now=now) is False

    def test_threshold_from_settings(self, engine, now, monkeypatch):
        monkeypatch.setenv("FOLLOW_UP_THRESHOLD_DAYS", "3")
        state = self.state_in(S.NURTURING, now - dt.timedelta(days=4))
        assert engine.needs_follow_up(state, now=now) is True

    def test_has_recent_activity(self, engine, now):
        state = self.state_in(
            S.CONTACTED,
            now - dt.timedelta(days=30),
            last_contacted_at=now - dt.timedelta(days=2),
        )
        assert engine.has_recent_activity(state, now=now) is True
        assert engine.has_recent_activity(state, days_threshold=1, now=now) is False

    def test_naive_timestamps_rejected_at_construction(self):
        with pytest.raises(ValidationError):
            LifecycleState(
                follow_up_status=S.CONTACTED,
                last_contacted_at=dt.datetime(2025, 1, 1, 12),
            )

        with pytest.raises(ValidationError):
            LifecycleState(created_at=dt.datetime(2025, 1, 1, 12))

    def test_offset_timestamps_compare_with_utc(self, engine, now):
        mexico_city = dt.timezone(dt.timedelta(hours=-6))
        state = self.state_in(
            S.CONTACTED,
            now - dt.timedelta(days=30),
            last_contacted_at=(now - dt.timedelta(days=8)).astimezone(mexico_city),
        )
        assert engine.needs_follow_up(state, now=now) is True

    def test_closed_statuses_are_read_only(self, engine):
        assert isinstance(engine.CLOSED_STATUSES, frozenset)


def test_singleton():
    assert get_lifecycle_engine() is get_lifecycle_engine()
