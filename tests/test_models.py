"""Client-supplied SEO rows are rebuilt, not trusted."""

import pytest

from conftest import make_answers
from pipeline_score.models import SEOIntelligence, SEORanking
from pipeline_score.scoring import score


def test_missed_leads_recomputed_from_volume_and_position():
    row = SEORanking.from_dict({
        "keyword": "epoxy coating milwaukee",
        "searchVolume": 1000,
        "currentRank": 3,
        "missedLeadsPerMonth": 5,
        "isServiceKeyword": False,
    })
    assert row.missed_leads_per_month == 347
    assert row.is_service_keyword is True


def test_service_flag_derived_from_keyword():
    row = SEORanking.from_dict({"keyword": "garage flooring milwaukee", "isServiceKeyword": True})
    assert row.is_service_keyword is False


def test_inflated_missed_leads_do_not_reach_the_forecast():
    seo = SEOIntelligence.from_dict({
        "rankings": [{"keyword": "k", "searchVolume": 0, "missedLeadsPerMonth": 99999}],
        "totalMissedLeads": 99999,
    })
    assert seo.total_missed_leads == 0
    assert score(make_answers(seo=seo)).forecast == score(make_answers()).forecast


def test_positions_off_the_page_are_dropped():
    seo = SEOIntelligence.from_dict({"rankings": [
        {"keyword": "a", "searchVolume": 100, "mapPackPosition": 7},
        {"keyword": "b", "searchVolume": 100, "mapPackPosition": 9, "currentRank": 14},
    ]})
    assert seo.map_pack_count == 0
    assert seo.organic_count(10) == 0
    assert [r.missed_leads_per_month for r in seo.rankings] == [45, 45]


def test_numeric_strings_are_coerced():
    row = SEORanking.from_dict({"keyword": "a", "searchVolume": "1000", "currentRank": "3", "mapPackPosition": ""})
    assert (row.search_volume, row.current_rank, row.map_pack_position) == (1000, 3, None)


@pytest.mark.parametrize("field", ["currentRank", "mapPackPosition", "searchVolume"])
def test_non_numeric_positions_raise_value_error(field):
    with pytest.raises(ValueError):
        SEORanking.from_dict({"keyword": "a", field: "third"})
