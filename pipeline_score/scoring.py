"""Readiness score, band and recommended moves from questionnaire answers."""

from .cities import avg_ticket_for_city
from .ctr import round_half_up
from .forecast import forecast
from .models import QuestionnaireAnswers, ScoreResult

MAX_SCORE = 100

# (min score, band); first match wins
BANDS = (
    (85, "green"),
    (70, "yellow"),
    (55, "orange"),
)

OFFER_THRESHOLD = 70

MOVE_SPEED = "Turn on missed-call text-back + SMS autoresponder"
MOVE_PAGES = "Ship Polyurea/Decorative/Epoxy pages"
MOVE_REVIEWS = "Run 40-review sprint with job-type tags"
MOVE_CITY_PAGES = "Publish 6 city pages"
MOVE_LISTING = "GBP cleanup (categories/services/posts/Q&A/photos)"
MOVE_FINANCING = "Add financing CTA + trust blocks"
MOVE_TRACKING = "Turn on tracking (call numbers, UTMs, source tracking)"

GUARANTEE_ELIGIBLE = "Eligible for 30-day lead guarantee"
GUARANTEE_BASELINE = "Baseline service package recommended"


def _speed_points(minutes: int) -> int:
    if minutes <= 15:
        return 30
    if minutes <= 60:
        return 20
    if minutes <= 1440:
        return 10
    return 0


def _review_points(count: int) -> int:
    if count >= 8:
        return 20
    if count >= 4:
        return 15
    if count >= 1:
        return 10
    return 0


_PAGE_POINTS = {"all": 20, "some": 12, "none": 0}


def _zone_points(service_count: int, radius: int) -> float:
    radius_multiplier = 1.2 if radius >= 30 else 1.0
    return min(20, service_count * 7 * radius_multiplier)


def _listing_points(answers: QuestionnaireAnswers) -> int:
    if not answers.has_listing:
        return 3  # credit for having a business name at all

    points = 6
    seo = answers.seo
    if seo is not None:
        if seo.map_pack_count >= 2:
            points += 9
        elif seo.map_pack_count >= 1:
            points += 6
        elif seo.organic_count(3) >= 2:
            points += 3
        if seo.total_missed_leads > 200:
            points -= 3
    return points


def raw_score(answers: QuestionnaireAnswers) -> float:
    """Unrounded, unclamped point total (theoretical max 110)."""
    total = 0.0
    total += _speed_points(answers.response_time)
    if answers.sms_capability == "both":
        total += 5
    total += _review_points(answers.known_review_count)
    total += _PAGE_POINTS.get(answers.premium_pages, 0)
    total += _zone_points(len(answers.services), answers.radius)
    total += _listing_points(answers)
    return total


def band(score: int) -> str:
    for threshold, name in BANDS:
        if score >= threshold:
            return name
    return "red"


def branch_for_score(score: int) -> str:
    return "100k_offer" if score >= OFFER_THRESHOLD else "sub100k"


def guarantee_status(answers: QuestionnaireAnswers) -> str:
    eligible = (
        answers.response_time <= 60
        and answers.known_review_count >= 4
        and answers.premium_pages != "none"
    )
    return GUARANTEE_ELIGIBLE if eligible else GUARANTEE_BASELINE


def top_moves(answers: QuestionnaireAnswers, limit: int = 3) -> list[str]:
    """Highest-priority recommended moves, most urgent first."""
    moves: list[tuple[int, str]] = []

    if answers.response_time > 15 or answers.sms_capability != "both":
        moves.append((1, MOVE_SPEED))
    if answers.premium_pages != "all":
        moves.append((2, MOVE_PAGES))
    if answers.known_review_count <= 7:
        moves.append((3, MOVE_REVIEWS))
    if answers.radius < 30 or len(answers.services) == 1:
        moves.append((4, MOVE_CITY_PAGES))

    moves.append((5, MOVE_LISTING))
    moves.append((6, MOVE_FINANCING))
    moves.append((7, MOVE_TRACKING))

    moves.sort(key=lambda m: m[0])
    return [text for _, text in moves[:limit]]


def score(answers: QuestionnaireAnswers) -> ScoreResult:
    """Score a submission. Total over well-formed answers; never raises."""
    final = max(0, min(MAX_SCORE, round_half_up(raw_score(answers))))
    return ScoreResult(
        score=final,
        band=band(final),
        forecast=forecast(final, avg_ticket_for_city(answers.city), answers.seo),
        guarantee_status=guarantee_status(answers),
        top_moves=top_moves(answers),
    )
