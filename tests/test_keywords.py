"""Keyword batch construction."""

from pipeline_score.keywords import (
    _extract_domain,
    baseline_keywords,
    is_service_keyword,
    keyword_priority,
    keywords_for_services,
)


def test_baseline_is_ten_localized_phrases():
    keywords = baseline_keywords("Milwaukee, WI")
    assert len(keywords) == 10
    assert keywords[0] == "Milwaukee garage floor contractors"
    assert all("WI" not in kw for kw in keywords)


def test_baseline_present_without_services():
    assert keywords_for_services([], "Madison") == baseline_keywords("Madison")


def test_each_service_adds_its_top_three():
    keywords = keywords_for_services(["Epoxy", "Polyurea"], "Green Bay, WI")
    assert len(keywords) == 16
    assert keywords[10:13] == [
        "epoxy flooring Green Bay",
        "epoxy garage floor Green Bay",
        "epoxy coating Green Bay",
    ]
    assert "polyurea contractors Green Bay" not in keywords


def test_all_services_stay_bounded():
    keywords = keywords_for_services(["Polyurea", "Polyaspartic", "Decorative Concrete", "Epoxy"], "Milwaukee")
    assert len(keywords) == 22
    assert len(set(keywords)) == len(keywords)


def test_unknown_services_are_ignored():
    assert keywords_for_services(["Tile"], "Milwaukee") == baseline_keywords("Milwaukee")


def test_non_service_phrases():
    assert not is_service_keyword("garage flooring Milwaukee")
    assert not is_service_keyword("Concrete Sealing Madison")
    assert is_service_keyword("epoxy coating Madison")


def test_keyword_priority():
    assert keyword_priority("polyurea coating milwaukee", ["Polyurea"], 300) == "high"
    assert keyword_priority("decorative concrete milwaukee", ["Decorative Concrete"], 350) == "high"
    assert keyword_priority("garage floor options milwaukee", ["Polyurea"], 520) == "high"
    assert keyword_priority("garage floor options milwaukee", ["Polyurea"], 250) == "medium"
    assert keyword_priority("polyurea coating milwaukee", ["Polyurea"], 120) == "low"


def test_extract_domain():
    assert _extract_domain("https://www.Example.com/about?x=1") == "example.com"
    assert _extract_domain("example.com") == "example.com"
