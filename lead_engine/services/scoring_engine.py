"""
Lead Scoring Engine

Turns the qualification facts gathered during a chatbot conversation into
a 0-100 score, a qualification tier and an itemised breakdown.
Pure and deterministic: the same snapshot and weights always produce an
equal ScoreResult.
"""

import math
from types import MappingProxyType
from typing import List, Optional
from lead_engine.models.qualification import (
    EngagementLevel,
    DisqualifyingFactor,
    QualificationSnapshot,
    ScoringWeights,
)
from lead_engine.models.score import (
    MIN_SCORE,
    MAX_SCORE,
    QUALIFIED_THRESHOLD,
    HIGHLY_QUALIFIED_THRESHOLD,
    QualificationTier,
    ScoreBreakdown,
    ScoreGrade,
    ScoreResult,
    grade_for_score,
)
from lead_engine.utils.observability import log_score_calculation

ENGAGEMENT_BONUS = MappingProxyType({
    EngagementLevel.LOW: 0,
    EngagementLevel.MEDIUM: 10,
    EngagementLevel.HIGH: 20,
})
BUDGET_BONUS = 15
TIMELINE_BONUS = 10
DECISION_MAKER_BONUS = 20


class ScoringInvariantError(AssertionError):
    """Raised when a computed result breaks a scoring invariant. Always a defect."""
    pass


def round_half_up(value: float) -> int:
    """Round .5 away from zero for non-negative values, unlike round()'s banker's rounding."""
    return int(math.floor(value + 0.5))


class ScoringEngine:
    """
    Computes lead scores.

    Usage:
        engine = ScoringEngine()
        result = engine.calculate_score(snapshot)
        if result.is_qualified:
            ...
        for tip in engine.get_recommendations(result):
            ...
    """

    RECOMMENDATIONS = MappingProxyType({
        "base_score": "Encourage the visitor to answer more qualification questions",
        "engagement_bonus": "Improve engagement with more interactive conversation",
        "budget_bonus": "Ask about budget",
        "timeline_bonus": "Ask about the implementation timeline",
        "decision_maker_bonus": "Identify the decision maker",
    })

    DISQUALIFICATION_REASONS = MappingProxyType({
        DisqualifyingFactor.NO_BUDGET: "No budget available",
        DisqualifyingFactor.NO_TIMELINE: "No implementation timeline",
        DisqualifyingFactor.NOT_DECISION_MAKER: "Not a decision maker",
    })

    def calculate_score(
        self,
        snapshot: QualificationSnapshot,
        weights: Optional[ScoringWeights] = None,
    ) -> ScoreResult:
        """
        Score a qualification snapshot.

        Args:
            snapshot: Validated qualification facts
            weights: Dimension weights (configured defaults if None)

        Returns:
            A new ScoreResult. Disqualified snapshots always score 0 but
            still carry the full breakdown.
        """
        if weights is None:
            weights = ScoringWeights.from_settings()

        base_score = self._base_score(snapshot, weights)
        engagement_bonus = ENGAGEMENT_BONUS[snapshot.engagement_level]
        budget_bonus = BUDGET_BONUS if snapshot.has_budget_info else 0
        timeline_bonus = TIMELINE_BONUS if snapshot.has_timeline_info else 0
        decision_maker_bonus = DECISION_MAKER_BONUS if snapshot.is_decision_maker else 0
        total_bonuses = engagement_bonus + budget_bonus + timeline_bonus + decision_maker_bonus

        final_score = self._clamp(round_half_up(base_score + total_bonuses))

        breakdown = ScoreBreakdown(
            base_score=base_score,
            engagement_bonus=engagement_bonus,
            budget_bonus=budget_bonus,
            timeline_bonus=timeline_bonus,
            decision_maker_bonus=decision_maker_bonus,
            total_bonuses=total_bonuses,
            final_score=final_score,
        )

        # Disqualification is decided before thresholds so a high score cannot override it
        if snapshot.is_disqualified:
            score, tier = MIN_SCORE, QualificationTier.DISQUALIFIED
        else:
            score, tier = final_score, self.determine_tier(final_score)

        self._check_invariants(score, tier, snapshot)

        log_score_calculation(
            score=score,
            tier=tier.value,
            disqualified=snapshot.is_disqualified,
            **breakdown.model_dump(),
        )

        return ScoreResult(score=score, tier=tier, breakdown=breakdown)

    def determine_tier(self, score: int) -> QualificationTier:
        """Threshold lookup for a non-disqualified score. Lower bounds are inclusive."""
        if score >= HIGHLY_QUALIFIED_THRESHOLD:
            return QualificationTier.HIGHLY_QUALIFIED
        if score >= QUALIFIED_THRESHOLD:
            return QualificationTier.QUALIFIED
        return QualificationTier.NOT_QUALIFIED

    def get_recommendations(self, result: ScoreResult) -> List[str]:
        """
        Suggest the qualifying action for every component that contributed nothing.

        Args:
            result: A previously calculated score

        Returns:
            Ordered list of human-readable recommendations
        """
        recommendations = []

        if result.is_disqualified:
            recommendations.append("Review the disqualifying factors before investing more sales effort")

        breakdown = result.breakdown
        for component, recommendation in self.RECOMMENDATIONS.items():
            if getattr(breakdown, component) == 0:
                recommendations.append(recommendation)

        if not recommendations:
            recommendations.append("Lead is well qualified - consider escalating to sales team")

        return recommendations

    def get_qualification_reasons(
        self,
        snapshot: QualificationSnapshot,
        result: ScoreResult,
    ) -> dict:
        """
        Explain a result in terms of the facts behind it.

        Returns:
            {"qualification_reasons": [...], "disqualification_reasons": [...]}
        """
        qualification_reasons = []
        if result.breakdown.budget_bonus > 0:
            qualification_reasons.append("Budget information provided")
        if result.breakdown.timeline_bonus > 0:
            qualification_reasons.append("Timeline information provided")
        if result.breakdown.decision_maker_bonus > 0:
            qualification_reasons.append("Decision maker identified")
        if snapshot.engagement_level == EngagementLevel.HIGH:
            qualification_reasons.append("High engagement level")
        if snapshot.has_contact_info:
            qualification_reasons.append("Contact information provided")

        disqualification_reasons = [
            self.DISQUALIFICATION_REASONS.get(factor, f"Disqualified: {factor}")
            for factor in sorted(snapshot.disqualifying_factors)
        ]

        return {
            "qualification_reasons": qualification_reasons,
            "disqualification_reasons": disqualification_reasons,
        }

    def get_thresholds(self) -> dict:
        """Get qualification threshold scores."""
        return {
            "qualified": QUALIFIED_THRESHOLD,
            "highly_qualified": HIGHLY_QUALIFIED_THRESHOLD,
            "min": MIN_SCORE,
            "max": MAX_SCORE,
        }

    def grade_for_score(self, score: int) -> ScoreGrade:
        return grade_for_score(score)

    def _base_score(self, snapshot: QualificationSnapshot, weights: ScoringWeights) -> float:
        """Question completion contribution. Left unrounded."""
        if snapshot.total_questions_count == 0:
            return 0.0
        return snapshot.completion_rate * MAX_SCORE * weights.question_answer_weight

    def _clamp(self, score: int) -> int:
        return max(MIN_SCORE, min(MAX_SCORE, score))

    def _check_invariants(
        self,
        score: int,
        tier: QualificationTier,
        snapshot: QualificationSnapshot,
    ) -> None:
        if not MIN_SCORE <= score <= MAX_SCORE:
            raise ScoringInvariantError(f"Score {score} outside [{MIN_SCORE}, {MAX_SCORE}]")
        if (tier == QualificationTier.DISQUALIFIED) != snapshot.is_disqualified:
            raise ScoringInvariantError(
                f"Tier {tier.value} inconsistent with disqualifying factors "
                f"{sorted(snapshot.disqualifying_factors)}"
            )


# Singleton instance
_engine: Optional[ScoringEngine] = None


def get_scoring_engine() -> ScoringEngine:
    """Get or create the scoring engine singleton."""
    global _engine
    if _engine is None:
        _engine = ScoringEngine()
    return _engine
