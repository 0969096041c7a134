"""Questionnaire, SEO and result dataclasses: the data shapes shared by every stage."""

from dataclasses import dataclass, field, replace
from typing import Any

from .ctr import MAP_PACK_CTR, ORGANIC_CTR, missed_leads
from .keywords import is_service_keyword

SMS_CAPABILITIES = ("both", "text-back", "autoresponder", "neither")
PAGE_COVERAGE = ("all", "some", "none")

UNKNOWN_REVIEW_COUNT = -1


def _position(value: Any, table: dict[int, float]) -> int | None:
    """Whole-number SERP position, or None when absent or off the table."""
    if value is None or value == "":
        return None
    position = int(value)
    return position if position in table else None


@dataclass
class BusinessProfile:
    has_listing: bool = False
    name: str | None = None
    address: str | None = None
    city: str | None = None
    state: str | None = None
    rating: float | None = None
    review_count: int | None = None
    phone: str | None = None
    website: str | None = None
    place_id: str | None = None
    latitude: float | None = None
    longitude: float | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "BusinessProfile":
        coords = data.get("coordinates") or {}
        return cls(
            has_listing=bool(data.get("hasGBP", data.get("has_listing", False))),
            name=data.get("name"),
            address=data.get("address"),
            city=data.get("city"),
            state=data.get("state"),
            rating=data.get("rating"),
            review_count=data.get("reviewCount", data.get("review_count")),
            phone=data.get("phone"),
            website=data.get("website"),
            place_id=data.get("placeId", data.get("place_id")),
            latitude=coords.get("lat"),
            longitude=coords.get("lng"),
        )


@dataclass(frozen=True)
class SEORanking:
    keyword: str
    search_volume: int
    current_rank: int | None  # None when not in the organic top 10
    map_pack_position: int | None  # 1-3 when shown in the local pack
    missed_leads_per_month: int
    is_service_keyword: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "keyword": self.keyword,
            "searchVolume": self.search_volume,
            "currentRank": self.current_rank,
            "mapPackPosition": self.map_pack_position,
            "missedLeadsPerMonth": self.missed_leads_per_month,
            "isServiceKeyword": self.is_service_keyword,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SEORanking":
        """Rebuild a row from client data, recomputing everything derived.

        Positions outside the organic top 10 or the 3-slot pack become None.

        Raises:
            ValueError: on a volume or position that is not a whole number
        """
        keyword = data["keyword"]
        volume = max(0, int(data.get("searchVolume") or 0))
        rank = _position(data.get("currentRank"), ORGANIC_CTR)
        pack = _position(data.get("mapPackPosition"), MAP_PACK_CTR)
        return cls(
            keyword=keyword,
            search_volume=volume,
            current_rank=rank,
            map_pack_position=pack,
            missed_leads_per_month=missed_leads(volume, rank, pack),
            is_service_keyword=is_service_keyword(keyword),
        )


@dataclass(frozen=True)
class SEOIntelligence:
    """Aggregate over a keyword batch. Build it with ``from_rankings``."""

    rankings: tuple[SEORanking, ...] = ()
    total_missed_leads: int = 0
    top_opportunity: str = ""

    @classmethod
    def from_rankings(cls, rankings) -> "SEOIntelligence":
        rankings = tuple(rankings)
        total = sum(r.missed_leads_per_month for r in rankings)
        top = ""
        best = None
        for r in rankings:
            if best is None or r.missed_leads_per_month > best:
                best = r.missed_leads_per_month
                top = r.keyword
        return cls(rankings=rankings, total_missed_leads=total, top_opportunity=top)

    @property
    def map_pack_count(self) -> int:
        return sum(1 for r in self.rankings if r.map_pack_position is not None)

    def organic_count(self, max_rank: int) -> int:
        return sum(
            1 for r in self.rankings
            if r.current_rank is not None and r.current_rank <= max_rank
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "rankings": [r.to_dict() for r in self.rankings],
            "totalMissedLeads": self.total_missed_leads,
            "topOpportunity": self.top_opportunity,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SEOIntelligence":
        # Totals are always re-derived from the rows, never trusted from input.
        return cls.from_rankings(SEORanking.from_dict(r) for r in data.get("rankings", []))


@dataclass(frozen=True)
class QuestionnaireAnswers:
    full_name: str
    business_name: str
    city: str
    services: tuple[str, ...]
    radius: int
    response_time: int  # minutes
    sms_capability: str  # one of SMS_CAPABILITIES
    premium_pages: str  # one of PAGE_COVERAGE
    review_count: int  # last 60 days, or UNKNOWN_REVIEW_COUNT
    business: BusinessProfile | None = None
    seo: SEOIntelligence | None = None

    def __post_init__(self):
        # dict.fromkeys keeps first-seen order
        object.__setattr__(self, "services", tuple(dict.fromkeys(self.services)))

    @property
    def has_listing(self) -> bool:
        return bool(self.business and self.business.has_listing)

    @property
    def known_review_count(self) -> int:
        return max(self.review_count, 0)

    def with_seo(self, seo: SEOIntelligence | None) -> "QuestionnaireAnswers":
        """Return a copy carrying SEO intelligence (attached before scoring)."""
        return replace(self, seo=seo)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "QuestionnaireAnswers":
        """Build answers from the camelCase payload the questionnaire posts.

        Raises:
            ValueError: on an SMS or page-coverage choice the questionnaire never offers
        """
        business = data.get("businessData")
        seo = data.get("seoIntelligence")
        review_count = data.get("reviewCount")
        sms = data.get("smsCapability", "neither")
        pages = data.get("premiumPages", "none")
        if sms not in SMS_CAPABILITIES:
            raise ValueError(f"smsCapability must be one of {', '.join(SMS_CAPABILITIES)}")
        if pages not in PAGE_COVERAGE:
            raise ValueError(f"premiumPages must be one of {', '.join(PAGE_COVERAGE)}")
        return cls(
            full_name=data.get("fullName", ""),
            business_name=data.get("businessName", ""),
            city=data.get("city", ""),
            services=tuple(data.get("services", [])),
            radius=int(data.get("radius", 20)),
            response_time=int(data.get("responseTime", 0)),
            sms_capability=sms,
            premium_pages=pages,
            review_count=UNKNOWN_REVIEW_COUNT if review_count is None else int(review_count),
            business=BusinessProfile.from_dict(business) if business else None,
            seo=SEOIntelligence.from_dict(seo) if seo else None,
        )


@dataclass(frozen=True)
class ScoreResult:
    score: int
    band: str
    forecast: str
    guarantee_status: str
    top_moves: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "score": self.score,
            "band": self.band,
            "forecast": self.forecast,
            "guaranteeStatus": self.guarantee_status,
            "topMoves": list(self.top_moves),
        }


@dataclass(frozen=True)
class ResultSummary:
    """PII-free projection of a submission; the payload of a result token."""

    quiz_id: str
    branch: str
    score: int
    band: str
    score_bucket: str
    forecast: str
    top_moves: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "quizId": self.quiz_id,
            "branch": self.branch,
            "score": self.score,
            "band": self.band,
            "scoreBucket": self.score_bucket,
            "forecast": self.forecast,
            "topMoves": list(self.top_moves),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ResultSummary":
        return cls(
            quiz_id=data.get("quizId", ""),
            branch=data.get("branch", ""),
            score=data["score"],
            band=data.get("band", ""),
            score_bucket=data.get("scoreBucket", ""),
            forecast=data.get("forecast", ""),
            top_moves=list(data["topMoves"]),
        )


UTM_KEYS = ("utm_source", "utm_medium", "utm_campaign", "utm_content", "utm_term")


@dataclass(frozen=True)
class Submission:
    """One completed questionnaire plus the contact and attribution around it."""

    quiz_id: str
    email: str
    answers: QuestionnaireAnswers
    utm: dict[str, str] = field(default_factory=dict)
    consent: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Submission":
        utm = data.get("utm") or {}
        return cls(
            quiz_id=data["quizId"],
            email=data["email"],
            answers=QuestionnaireAnswers.from_dict(data["answers"]),
            utm={k: str(utm[k]) for k in UTM_KEYS if utm.get(k)},
            consent=bool(data.get("consent", False)),
        )
