import pytest
import datetime as dt
from lead_engine.config import get_settings
from lead_engine.models.lead import ContactInfo, LeadAggregate, LeadSource
from lead_engine.models.qualification import EngagementLevel, QualificationSnapshot, ScoringWeights


@pytest.fixture(autouse=True)
def fresh_settings():
    """Every test sees settings built from its own environment."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def now():
    return dt.datetime(2025, 6, 1, 12, 0, tzinfo=dt.UTC)


@pytest.fixture
def default_weights():
    return ScoringWeights()


@pytest.fixture
def question_only_weights():
    """Base score equals the completion percentage."""
    return ScoringWeights(
        question_answer_weight=1.0,
        engagement_weight=0.0,
        contact_info_weight=0.0,
        budget_timeline_weight=0.0,
        industry_company_size_weight=0.0,
    )


@pytest.fixture
def reference_snapshot():
    """Cross-implementation parity fixture."""
    return QualificationSnapshot(
        answered_questions_count=8,
        total_questions_count=10,
        engagement_score=70,
        engagement_level=EngagementLevel.HIGH,
        has_budget_info=True,
        has_timeline_info=True,
        is_decision_maker=True,
        has_contact_info=True,
        disqualifying_factors=[],
    )


@pytest.fixture
def contact_info():
    return ContactInfo(email="ana@example.com", first_name="Ana", last_name="Lopez", company="Acme")


@pytest.fixture
def lead_source():
    return LeadSource(page_url="https://example.com/pricing", utm_source="newsletter")


@pytest.fixture
def captured_lead(contact_info, lead_source, reference_snapshot):
    """Returns a freshly captured lead scored from the reference snapshot."""
    return LeadAggregate.capture(
        session_id="session-1",
        organization_id="org-1",
        chatbot_config_id="config-1",
        contact_info=contact_info,
        qualification=reference_snapshot,
        source=lead_source,
        conversation_summary="Asked about enterprise pricing",
    )
