"""Score -> 60-day lead range and 90-day pipeline value, optionally lifted by SEO gaps."""

from dataclasses import dataclass

from .ctr import round_half_up
from .models import SEOIntelligence

# Missed clicks that turn into leads
MISSED_CLICK_TO_LEAD = 0.02
# Leads that become qualified opportunities
LEAD_TO_OPPORTUNITY = 0.6
# Deal-cycle overlap across 90 days
PIPELINE_MULTIPLIER = 1.5

# (min score, (low, high)); first match wins
BASE_LEAD_RANGES = (
    (85, (18, 25)),
    (70, (12, 18)),
    (55, (6, 12)),
    (0, (2, 6)),
)

# (missed leads above, multiplier, bonus share of potential, bonus cap)
SEO_TIERS = (
    (5000, 1.4, 0.3, 8),
    (2000, 1.25, 0.25, 5),
    (500, 1.15, 0.2, 3),
)

STRONG_ORGANIC_KEYWORDS = 3
MIN_MULTIPLIER = 1.05
LOW_SCORE_BOOST = 1.2
LOW_SCORE_CAP = 1.5
HIGH_SCORE_CAP = 1.2


@dataclass(frozen=True)
class ForecastRange:
    leads_low: int
    leads_high: int
    pipeline_low: float
    pipeline_high: float

    def render(self) -> str:
        low_k = round_half_up(self.pipeline_low / 1000)
        high_k = round_half_up(self.pipeline_high / 1000)
        return (
            f"60-day: {self.leads_low}-{self.leads_high} leads, "
            f"90-day: ${low_k}k-{high_k}k pipeline"
        )


def base_lead_range(score: int) -> tuple[int, int]:
    for threshold, lead_range in BASE_LEAD_RANGES:
        if score >= threshold:
            return lead_range
    return BASE_LEAD_RANGES[-1][1]


def seo_adjustment(score: int, seo: SEOIntelligence | None) -> tuple[float, float]:
    """
    Multiplier and additive lead bonus from the SEO gap.

    Returns (1.0, 0) when there is nothing to gain.
    """
    if seo is None or seo.total_missed_leads <= 0:
        return 1.0, 0

    total = seo.total_missed_leads
    potential = round_half_up(total * MISSED_CLICK_TO_LEAD)

    multiplier, bonus = MIN_MULTIPLIER, 1
    for threshold, tier_multiplier, share, cap in SEO_TIERS:
        if total > threshold:
            multiplier = tier_multiplier
            bonus = min(share * potential, cap)
            break

    # Already ranking well organically: less left to win
    if seo.organic_count(10) > STRONG_ORGANIC_KEYWORDS:
        multiplier = max(MIN_MULTIPLIER, multiplier - 0.1)

    if score < 55:
        multiplier = min(LOW_SCORE_CAP, multiplier * LOW_SCORE_BOOST)
    elif score > 85:
        multiplier = min(HIGH_SCORE_CAP, multiplier)

    return multiplier, bonus


def pipeline_value(leads: float, avg_ticket: float) -> float:
    return leads * LEAD_TO_OPPORTUNITY * avg_ticket * PIPELINE_MULTIPLIER


def forecast_range(
    score: int,
    avg_ticket: float,
    seo: SEOIntelligence | None = None,
) -> ForecastRange:
    low, high = base_lead_range(score)
    multiplier, bonus = seo_adjustment(score, seo)
    if multiplier != 1.0 or bonus:
        low = round_half_up(low * multiplier + bonus)
        high = round_half_up(high * multiplier + bonus)
    return ForecastRange(
        leads_low=low,
        leads_high=high,
        pipeline_low=pipeline_value(low, avg_ticket),
        pipeline_high=pipeline_value(high, avg_ticket),
    )


def forecast(score: int, avg_ticket: float, seo: SEOIntelligence | None = None) -> str:
    """
    Human forecast line.

    >>> forecast(50, 7500)
    '60-day: 2-6 leads, 90-day: $14k-41k pipeline'
    """
    return forecast_range(score, avg_ticket, seo).render()
