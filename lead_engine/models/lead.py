import datetime as dt
import uuid
from typing import List, Literal, Optional, Self, Tuple
from pydantic import AwareDatetime, Field, field_validator, model_validator
from lead_engine.models.base import FrozenModel, NonBlankStr, utc_now
from lead_engine.models.lifecycle import FollowUpStatus, LifecycleState
from lead_engine.models.qualification import QualificationSnapshot, ScoringWeights
from lead_engine.models.score import ScoreGrade, ScoreResult
from lead_engine.services.lifecycle_engine import get_lifecycle_engine
from lead_engine.services.scoring_engine import get_scoring_engine
from lead_engine.utils.observability import log_business_event


def _new_id() -> str:
    return str(uuid.uuid4())


class ContactInfo(FrozenModel):
    email: Optional[str] = None
    phone: Optional[str] = None
    name: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    company: Optional[str] = None
    job_title: Optional[str] = None
    website: Optional[str] = None
    linkedin: Optional[str] = None

    @model_validator(mode="after")
    def check_reachable_channel(self) -> Self:
        if not self.email and not self.phone:
            raise ValueError("At least email or phone is required")
        return self


class LeadSource(FrozenModel):
    channel: Literal["chatbot_widget"] = "chatbot_widget"
    page_url: str
    page_title: Optional[str] = None
    referrer: Optional[str] = None
    campaign: Optional[str] = None
    utm_source: Optional[str] = None
    utm_medium: Optional[str] = None
    utm_campaign: Optional[str] = None


class LeadNote(FrozenModel):
    id: str = Field(default_factory=_new_id)
    content: NonBlankStr
    author_id: NonBlankStr
    author_name: str
    created_at: AwareDatetime = Field(default_factory=utc_now)
    is_internal: bool = True


class LeadAggregate(FrozenModel):
    """
    The Central Domain Model.

    Owns the qualification facts, their score and the follow-up lifecycle.
    Every mutator returns a new aggregate with updated_at refreshed; a
    failed mutation raises and leaves the original value untouched.
    """
    id: str = Field(default_factory=_new_id)
    session_id: NonBlankStr
    organization_id: NonBlankStr
    chatbot_config_id: NonBlankStr

    contact_info: ContactInfo
    source: LeadSource
    qualification: QualificationSnapshot
    score: ScoreResult
    lifecycle: LifecycleState = Field(default_factory=LifecycleState)

    conversation_summary: str = ""
    tags: Tuple[NonBlankStr, ...] = ()
    notes: Tuple[LeadNote, ...] = ()

    captured_at: AwareDatetime = Field(default_factory=utc_now)
    created_at: AwareDatetime = Field(default_factory=utc_now)
    updated_at: AwareDatetime = Field(default_factory=utc_now)

    @field_validator("tags")
    @classmethod
    def check_unique_tags(cls, tags: Tuple[str, ...]) -> Tuple[str, ...]:
        if len(set(tags)) != len(tags):
            raise ValueError("Tags must be unique")
        return tags

    @classmethod
    def capture(
        cls,
        session_id: str,
        organization_id: str,
        chatbot_config_id: str,
        contact_info: ContactInfo,
        qualification: QualificationSnapshot,
        source: LeadSource,
        conversation_summary: str = "",
        weights: Optional[ScoringWeights] = None,
    ) -> "LeadAggregate":
        """Create a lead at capture time: scored, status NEW."""
        now = utc_now()
        lead = cls(
            session_id=session_id,
            organization_id=organization_id,
            chatbot_config_id=chatbot_config_id,
            contact_info=contact_info,
            source=source,
            qualification=qualification,
            score=get_scoring_engine().calculate_score(qualification, weights),
            lifecycle=LifecycleState(created_at=now, updated_at=now),
            conversation_summary=conversation_summary,
            captured_at=now,
            created_at=now,
            updated_at=now,
        )
        log_business_event(
            "lead_captured",
            lead.id,
            score=lead.score.score,
            tier=lead.score.tier.value,
        )
        return lead

    # --- Mutators (each returns a new aggregate) ---

    def with_updated_qualification(
        self,
        weights: Optional[ScoringWeights] = None,
        **facts,
    ) -> Self:
        """Merge new facts into the snapshot and rescore."""
        qualification = self.qualification.with_changes(**facts)
        score = get_scoring_engine().calculate_score(qualification, weights)
        lead = self._touch(qualification=qualification, score=score)

        if score.tier != self.score.tier:
            log_business_event(
                "tier_changed",
                self.id,
                from_tier=self.score.tier.value,
                to_tier=score.tier.value,
                score=score.score,
            )
        return lead

    def with_follow_up_status(self, target: FollowUpStatus) -> Self:
        now = utc_now()
        lifecycle = get_lifecycle_engine().apply_transition(
            self.lifecycle, target, now=now, lead_id=self.id
        )
        return self._touch(now=now, lifecycle=lifecycle)

    def mark_as_contacted(self) -> Self:
        return self.with_follow_up_status(FollowUpStatus.CONTACTED)

    def mark_as_converted(self) -> Self:
        return self.with_follow_up_status(FollowUpStatus.CONVERTED)

    def mark_as_lost(self) -> Self:
        return self.with_follow_up_status(FollowUpStatus.LOST)

    def mark_as_nurturing(self) -> Self:
        return self.with_follow_up_status(FollowUpStatus.NURTURING)

    def assign_to(self, owner_id: str) -> Self:
        now = utc_now()
        lifecycle = get_lifecycle_engine().assign_to(self.lifecycle, owner_id, now=now)
        log_business_event("lead_assigned", self.id, assigned_to=lifecycle.assigned_to)
        return self._touch(now=now, lifecycle=lifecycle)

    def unassign(self) -> Self:
        now = utc_now()
        lifecycle = get_lifecycle_engine().unassign(self.lifecycle, now=now)
        return self._touch(now=now, lifecycle=lifecycle)

    def with_contact_info(self, **fields) -> Self:
        return self._touch(contact_info=self.contact_info.evolve(**fields))

    def with_conversation_summary(self, summary: str) -> Self:
        return self._touch(conversation_summary=summary)

    def add_tag(self, tag: str) -> Self:
        tag = tag.strip()
        if tag in self.tags:
            return self
        return self._touch(tags=self.tags + (tag,))

    def remove_tag(self, tag: str) -> Self:
        tag = tag.strip()
        return self._touch(tags=tuple(t for t in self.tags if t != tag))

    def add_note(
        self,
        content: str,
        author_id: str,
        author_name: str,
        is_internal: bool = True,
    ) -> Self:
        note = LeadNote(
            content=content,
            author_id=author_id,
            author_name=author_name,
            is_internal=is_internal,
        )
        return self._touch(notes=self.notes + (note,))

    def _touch(self, now: Optional[dt.datetime] = None, **changes) -> Self:
        return self.evolve(updated_at=now or utc_now(), **changes)

    # --- Queries ---

    @property
    def follow_up_status(self) -> FollowUpStatus:
        return self.lifecycle.follow_up_status

    @property
    def is_qualified(self) -> bool:
        return self.score.is_qualified

    @property
    def is_highly_qualified(self) -> bool:
        return self.score.is_highly_qualified

    @property
    def is_disqualified(self) -> bool:
        return self.score.is_disqualified

    @property
    def is_new(self) -> bool:
        return self.follow_up_status == FollowUpStatus.NEW

    @property
    def is_converted(self) -> bool:
        return self.follow_up_status == FollowUpStatus.CONVERTED

    @property
    def is_assigned(self) -> bool:
        return self.lifecycle.is_assigned

    @property
    def has_email(self) -> bool:
        return bool(self.contact_info.email)

    @property
    def has_phone(self) -> bool:
        return bool(self.contact_info.phone)

    @property
    def has_company_info(self) -> bool:
        return bool(self.contact_info.company or self.contact_info.job_title)

    @property
    def score_grade(self) -> ScoreGrade:
        return self.score.grade

    @property
    def display_name(self) -> str:
        info = self.contact_info
        if info.name:
            return info.name
        if info.first_name and info.last_name:
            return f"{info.first_name} {info.last_name}"
        if info.first_name:
            return info.first_name
        return info.email or info.phone or "Unknown"

    def days_since_created(self, now: Optional[dt.datetime] = None) -> int:
        return ((now or utc_now()) - self.created_at).days

    def needs_follow_up(
        self,
        threshold_days: Optional[int] = None,
        now: Optional[dt.datetime] = None,
    ) -> bool:
        return get_lifecycle_engine().needs_follow_up(self.lifecycle, threshold_days, now)

    def has_recent_activity(
        self,
        days_threshold: Optional[int] = None,
        now: Optional[dt.datetime] = None,
    ) -> bool:
        return get_lifecycle_engine().has_recent_activity(self.lifecycle, days_threshold, now)

    def recommendations(self) -> List[str]:
        return get_scoring_engine().get_recommendations(self.score)
