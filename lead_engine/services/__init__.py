"""Services package."""
from lead_engine.services.scoring_engine import (
    ScoringEngine,
    ScoringInvariantError,
    get_scoring_engine,
)
from lead_engine.services.lifecycle_engine import (
    LifecycleEngine,
    BusinessRuleViolation,
    get_lifecycle_engine,
)

__all__ = [
    "ScoringEngine",
    "ScoringInvariantError",
    "get_scoring_engine",
    "LifecycleEngine",
    "BusinessRuleViolation",
    "get_lifecycle_engine",
]
