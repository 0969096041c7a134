"""Keyword sets for SEO analysis: contractor, problem, commercial and service phrasings.

Strategy:
- A fixed baseline of 10 phrases is always checked, whatever services were picked
- Each selected service adds its top 3 service-specific phrases
- Everything is localized to the city part of the location ("Milwaukee, WI" -> "Milwaukee")
"""

import re


# Phrases that describe the trade in general rather than a selected service
NON_SERVICE_PHRASES = ("garage flooring", "concrete sealing")


def _extract_domain(url: str) -> str:
    """Strip protocol, www., and path from a URL to get bare domain.

    >>> _extract_domain("https://www.example.com/about")
    'example.com'
    """
    domain = re.sub(r"^https?://", "", url.strip(), flags=re.I)
    domain = re.sub(r"^www\.", "", domain, flags=re.I)
    domain = domain.split("/")[0].split("?")[0]
    return domain.lower()


def _extract_city(location: str) -> str:
    """Extract just the city name from 'City, ST' format."""
    return location.split(",")[0].strip()


def _high_intent(city: str) -> list[str]:
    return [
        f"{city} garage floor contractors",
        f"concrete coating contractors {city}",
        f"epoxy flooring installers {city}",
        f"garage floor coating companies {city}",
        "flooring contractors near me",
        f"best concrete coating company {city}",
    ]


def _problem_based(city: str) -> list[str]:
    return [
        f"cracked garage floor repair {city}",
        f"garage floor peeling {city}",
        f"concrete floor sealing {city}",
        f"oil stain garage floor {city}",
        f"garage floor makeover {city}",
        f"concrete resurfacing {city}",
    ]


def _commercial(city: str) -> list[str]:
    return [
        f"warehouse floor coating {city}",
        f"industrial epoxy flooring {city}",
        f"commercial concrete sealing {city}",
        f"retail floor coating {city}",
    ]


def _research(city: str) -> list[str]:
    return [
        f"garage floor coating cost {city}",
        f"epoxy vs polyurea flooring {city}",
        f"best garage floor coating {city}",
        f"garage floor options {city}",
        f"durable garage flooring {city}",
    ]


# Service name -> phrase templates, most valuable first
SERVICE_KEYWORDS = {
    "Polyurea": [
        "polyurea coating {city}",
        "polyurea flooring {city}",
        "polyurea garage floor {city}",
        "polyurea contractors {city}",
        "best polyurea coating {city}",
    ],
    "Polyaspartic": [
        "polyaspartic coating {city}",
        "polyaspartic flooring {city}",
        "polyaspartic garage floor {city}",
        "polyaspartic vs epoxy {city}",
        "one day garage floor {city}",
    ],
    "Decorative Concrete": [
        "decorative concrete {city}",
        "stamped concrete {city}",
        "decorative concrete flooring {city}",
        "concrete staining {city}",
        "decorative garage floors {city}",
    ],
    "Epoxy": [
        "epoxy flooring {city}",
        "epoxy garage floor {city}",
        "epoxy coating {city}",
        "garage epoxy installers {city}",
        "residential epoxy flooring {city}",
    ],
}

PER_SERVICE = 3


def baseline_keywords(city: str) -> list[str]:
    """The 10 phrases checked for every business, independent of services."""
    city = _extract_city(city)
    return (
        _high_intent(city)[:3]
        + _problem_based(city)[:3]
        + _commercial(city)[:2]
        + _research(city)[:2]
    )


def keywords_for_services(services: list[str], city: str) -> list[str]:
    """
    Build the keyword batch for a business: baseline + top phrases per service.

    Unknown services contribute nothing; duplicates are dropped, order kept.
    Yields 10 keywords with no known service and up to 22 with all four.
    """
    clean_city = _extract_city(city)
    keywords = baseline_keywords(clean_city)
    for service in services:
        templates = SERVICE_KEYWORDS.get(service, [])
        keywords.extend(t.format(city=clean_city) for t in templates[:PER_SERVICE])
    return list(dict.fromkeys(keywords))


def is_service_keyword(keyword: str) -> bool:
    kw_lower = keyword.lower()
    return not any(phrase in kw_lower for phrase in NON_SERVICE_PHRASES)


def keyword_priority(keyword: str, services: list[str], search_volume: int) -> str:
    """'high' / 'medium' / 'low' from service tie-in and volume."""
    kw_lower = keyword.lower()
    tied_to_service = any(
        s.lower().replace(" ", "") in kw_lower.replace(" ", "") for s in services
    )
    if tied_to_service and search_volume >= 300:
        return "high"
    if search_volume >= 500:
        return "high"
    if search_volume >= 200:
        return "medium"
    return "low"
