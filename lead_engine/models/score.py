from enum import StrEnum
from pydantic import Field
from lead_engine.models.base import FrozenModel

MIN_SCORE = 0
MAX_SCORE = 100
QUALIFIED_THRESHOLD = 60
HIGHLY_QUALIFIED_THRESHOLD = 80


class QualificationTier(StrEnum):
    NOT_QUALIFIED = "not_qualified"
    QUALIFIED = "qualified"
    HIGHLY_QUALIFIED = "highly_qualified"
    DISQUALIFIED = "disqualified"


class ScoreGrade(StrEnum):
    A = "A"
    B = "B"
    C = "C"
    D = "D"
    F = "F"


# Display-only; independent of the tier thresholds
_GRADE_FLOORS = (
    (90, ScoreGrade.A),
    (80, ScoreGrade.B),
    (70, ScoreGrade.C),
    (60, ScoreGrade.D),
)


def grade_for_score(score: int) -> ScoreGrade:
    for floor, grade in _GRADE_FLOORS:
        if score >= floor:
            return grade
    return ScoreGrade.F


class ScoreBreakdown(FrozenModel):
    """Itemised contribution of every scoring component."""
    base_score: float = Field(0.0, ge=0)
    engagement_bonus: int = 0
    budget_bonus: int = 0
    timeline_bonus: int = 0
    decision_maker_bonus: int = 0
    total_bonuses: int = 0
    # Rounded and clamped, before any disqualification override
    final_score: int = Field(0, ge=MIN_SCORE, le=MAX_SCORE)


class ScoreResult(FrozenModel):
    score: int = Field(..., ge=MIN_SCORE, le=MAX_SCORE)
    tier: QualificationTier
    breakdown: ScoreBreakdown

    @classmethod
    def initial(cls) -> "ScoreResult":
        """Score of a lead nothing is known about yet."""
        return cls(score=0, tier=QualificationTier.NOT_QUALIFIED, breakdown=ScoreBreakdown())

    @property
    def is_qualified(self) -> bool:
        return self.tier in (QualificationTier.QUALIFIED, QualificationTier.HIGHLY_QUALIFIED)

    @property
    def is_highly_qualified(self) -> bool:
        return self.tier == QualificationTier.HIGHLY_QUALIFIED

    @property
    def is_disqualified(self) -> bool:
        return self.tier == QualificationTier.DISQUALIFIED

    @property
    def grade(self) -> ScoreGrade:
        return grade_for_score(self.score)

    @property
    def description(self) -> str:
        descriptions = {
            QualificationTier.HIGHLY_QUALIFIED: "Highly qualified lead with score {score}/100. Strong engagement and provided detailed information.",
            QualificationTier.QUALIFIED: "Qualified lead with score {score}/100. Good engagement and provided basic information.",
            QualificationTier.NOT_QUALIFIED: "Not yet qualified with score {score}/100. Needs more engagement or information.",
            QualificationTier.DISQUALIFIED: "Disqualified with score {score}/100. A disqualifying factor was recorded.",
        }
        return descriptions[self.tier].format(score=self.score)

    def compare_to(self, other: "ScoreResult") -> int:
        """Negative, zero or positive, usable as a sort key difference."""
        return self.score - other.score

    def has_improved_from(self, previous: "ScoreResult") -> bool:
        return self.score > previous.score

    def improvement_percentage(self, previous: "ScoreResult") -> float:
        if previous.score == 0:
            return 100.0 if self.score > 0 else 0.0
        return (self.score - previous.score) / previous.score * 100
