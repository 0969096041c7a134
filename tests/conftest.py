import pytest

from pipeline_score.config import Settings, reset_settings
from pipeline_score.ctr import missed_leads
from pipeline_score.models import BusinessProfile, QuestionnaireAnswers, SEOIntelligence, SEORanking

TEST_SECRET = "test-secret"


@pytest.fixture(autouse=True)
def _clean_settings():
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def settings():
    return Settings(
        dataforseo_login="login",
        dataforseo_password="password",
        results_token_secret=TEST_SECRET,
        seo_lookup_timeout=1.0,
    )


def make_answers(**overrides) -> QuestionnaireAnswers:
    """Answers for a mid-pack contractor; override any field."""
    fields = dict(
        full_name="Dana Smith",
        business_name="Smith Coatings",
        city="Milwaukee, WI",
        services=("Epoxy",),
        radius=45,
        response_time=15,
        sms_capability="both",
        premium_pages="all",
        review_count=10,
        business=None,
        seo=None,
    )
    fields.update(overrides)
    return QuestionnaireAnswers(**fields)


def make_ranking(keyword="epoxy flooring milwaukee", volume=1000, rank=None, pack=None, missed=None):
    return SEORanking(
        keyword=keyword,
        search_volume=volume,
        current_rank=rank,
        map_pack_position=pack,
        missed_leads_per_month=missed_leads(volume, rank, pack) if missed is None else missed,
        is_service_keyword=True,
    )


def make_seo(*rankings) -> SEOIntelligence:
    return SEOIntelligence.from_rankings(rankings)


def listed(**overrides) -> BusinessProfile:
    fields = dict(has_listing=True, name="Smith Coatings", place_id="ChIJ-smith", website="https://www.smithcoatings.com")
    fields.update(overrides)
    return BusinessProfile(**fields)
