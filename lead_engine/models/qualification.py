from enum import StrEnum
from typing import FrozenSet, Self
from pydantic import Field, model_validator
from lead_engine.config import get_settings
from lead_engine.models.base import FrozenModel, NonBlankStr

WEIGHT_SUM_TOLERANCE = 0.001


class EngagementLevel(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class DisqualifyingFactor(StrEnum):
    """Well-known disqualifying tags. Any other non-blank tag is also accepted."""
    NO_BUDGET = "no_budget"
    NO_TIMELINE = "no_timeline"
    NOT_DECISION_MAKER = "not_decision_maker"


class QualificationSnapshot(FrozenModel):
    """Immutable facts collected while the visitor talked to the chatbot."""
    answered_questions_count: int = Field(0, ge=0)
    total_questions_count: int = Field(0, ge=0)
    engagement_score: float = Field(0, ge=0, le=100)
    conversation_length: int = Field(0, ge=0, description="Number of messages")
    session_duration_seconds: float = Field(0, ge=0)

    has_contact_info: bool = False
    has_budget_info: bool = False
    has_timeline_info: bool = False
    has_industry_info: bool = False
    has_company_size_info: bool = False

    engagement_level: EngagementLevel = EngagementLevel.LOW
    is_decision_maker: bool = False

    # Any tag here forces the lead into the disqualified tier
    disqualifying_factors: FrozenSet[NonBlankStr] = Field(default_factory=frozenset)

    @model_validator(mode="after")
    def check_answered_within_total(self) -> Self:
        if self.answered_questions_count > self.total_questions_count:
            raise ValueError("answered_questions_count cannot exceed total_questions_count")
        return self

    @property
    def is_disqualified(self) -> bool:
        return bool(self.disqualifying_factors)

    @property
    def completion_rate(self) -> float:
        if self.total_questions_count == 0:
            return 0.0
        return self.answered_questions_count / self.total_questions_count

    def with_changes(self, **facts) -> Self:
        """Partial update: unspecified facts carry over from this snapshot."""
        return self.evolve(**facts)


class ScoringWeights(FrozenModel):
    """Relative importance of the five scored dimensions. Must sum to 1."""
    question_answer_weight: float = Field(0.3, ge=0, le=1)
    engagement_weight: float = Field(0.2, ge=0, le=1)
    contact_info_weight: float = Field(0.2, ge=0, le=1)
    budget_timeline_weight: float = Field(0.2, ge=0, le=1)
    industry_company_size_weight: float = Field(0.1, ge=0, le=1)

    @model_validator(mode="after")
    def check_weights_sum_to_one(self) -> Self:
        total = self.total
        if abs(total - 1.0) > WEIGHT_SUM_TOLERANCE:
            raise ValueError(f"Total weights must sum to 1, got {total}")
        return self

    @property
    def total(self) -> float:
        return (
            self.question_answer_weight
            + self.engagement_weight
            + self.contact_info_weight
            + self.budget_timeline_weight
            + self.industry_company_size_weight
        )

    @classmethod
    def from_settings(cls) -> "ScoringWeights":
        settings = get_settings()
        return cls(
            question_answer_weight=settings.question_answer_weight,
            engagement_weight=settings.engagement_weight,
            contact_info_weight=settings.contact_info_weight,
            budget_timeline_weight=settings.budget_timeline_weight,
            industry_company_size_weight=settings.industry_company_size_weight,
        )
