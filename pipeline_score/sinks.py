"""Close.com and Kit.com delivery: flattened lead records, sent fire-and-forget.

Delivery never raises: a failed sink is logged and counted, and the person
taking the quiz still gets their result.
"""

import asyncio
import base64
import logging
from dataclasses import dataclass
from typing import Any

import httpx

from .cities import metro_for_city
from .config import Settings
from .keywords import _extract_domain
from .models import UNKNOWN_REVIEW_COUNT, ResultSummary, ScoreResult, Submission

logger = logging.getLogger(__name__)

CLOSE_LEAD_URL = "https://api.close.com/api/v1/lead/"
KIT_FORM_URL = "https://api.kit.com/v4/forms/{form_id}/subscribers"

LEAD_TAG = "pipeline-100-lead"


@dataclass
class DeliveryReport:
    attempted: int = 0
    succeeded: int = 0

    @property
    def failed(self) -> int:
        return self.attempted - self.succeeded


def result_path(token: str) -> str:
    return f"/r/{token}"


def result_url(token: str, base_url: str = "") -> str:
    """Link to the result page; relative when no public base URL is configured."""
    return f"{base_url}{result_path(token)}"


def lead_tags(submission: Submission, result: ScoreResult) -> list[str]:
    answers = submission.answers
    return [
        LEAD_TAG,
        f"score-{result.band}",
        f"services-{'-'.join(answers.services).lower()}",
        f"zone-{answers.radius}mi",
    ]


def _move(moves: list[str], i: int) -> str:
    return moves[i] if i < len(moves) else ""


def _review_velocity(count: int) -> str:
    return "unknown" if count == UNKNOWN_REVIEW_COUNT else str(count)


def _drop_empty(fields: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in fields.items() if v is not None and v != ""}


def close_lead_record(
    submission: Submission,
    result: ScoreResult,
    summary: ResultSummary,
    token: str,
    base_url: str = "",
) -> dict[str, Any]:
    """Close.com lead body: contact, score, listing and SEO fields, UTMs, tags."""
    answers = submission.answers
    business = answers.business
    seo = answers.seo
    website = business.website if business else None
    metro = metro_for_city(answers.city)

    custom = {
        "pipeline_score": result.score,
        "score_band": result.band,
        "branch": summary.branch,
        "result_url": result_url(token, base_url),
        "quiz_id": summary.quiz_id,
        "business_name": answers.business_name,
        "domain": _extract_domain(website) if website else "",
        "city": answers.city,
        "metro": metro.primary if metro else "",
        "priority_services": list(answers.services),
        "service_radius": answers.radius,
        "response_speed": f"{answers.response_time} minutes",
        "sms_capability": answers.sms_capability,
        "premium_pages": answers.premium_pages,
        "review_velocity": _review_velocity(answers.review_count),
        "guarantee_status": result.guarantee_status,
        "top_move_1": _move(summary.top_moves, 0),
        "top_move_2": _move(summary.top_moves, 1),
        "top_move_3": _move(summary.top_moves, 2),
        "consent": submission.consent,
    }
    if business:
        custom.update({
            "gbp_rating": business.rating,
            "gbp_review_count": business.review_count,
            "gbp_phone": business.phone,
            "gbp_website": business.website,
            "gbp_place_id": business.place_id,
            "gbp_address": business.address,
        })
    if seo:
        custom.update({
            "seo_missed_leads": seo.total_missed_leads,
            "seo_top_opportunity": seo.top_opportunity,
            "seo_map_pack_rankings": seo.map_pack_count,
            "seo_keyword_count": len(seo.rankings),
        })
    custom.update(submission.utm)

    return {
        "name": f"Pipeline 100: {answers.business_name} ({answers.city})",
        "description": f"Score: {result.score} | Band: {result.band}",
        "contacts": [
            {
                "name": answers.full_name,
                "emails": [{"email": submission.email, "type": "office"}],
            }
        ],
        "custom": _drop_empty(custom),
        "tags": lead_tags(submission, result),
    }


def kit_subscriber_record(
    submission: Submission,
    result: ScoreResult,
    summary: ResultSummary,
    token: str,
    base_url: str = "",
) -> dict[str, Any]:
    """Kit.com form subscriber body."""
    answers = submission.answers
    business = answers.business
    seo = answers.seo
    first_name = answers.full_name.split(" ")[0] if answers.full_name else ""

    fields = {
        "pipeline_score": result.score,
        "score_bucket": summary.score_bucket,
        "business_name": answers.business_name,
        "city": answers.city,
        "guarantee_status": result.guarantee_status,
        "top_move_1": _move(summary.top_moves, 0),
        "top_move_2": _move(summary.top_moves, 1),
        "top_move_3": _move(summary.top_moves, 2),
        "result_url": result_url(token, base_url),
    }
    if business:
        fields.update({
            "gbp_rating": str(business.rating) if business.rating is not None else "",
            "gbp_review_count": str(business.review_count) if business.review_count is not None else "",
            "gbp_phone": business.phone or "",
            "gbp_website": business.website or "",
        })
    if seo:
        fields.update({
            "seo_missed_leads": str(seo.total_missed_leads),
            "seo_top_opportunity": seo.top_opportunity,
        })

    return {
        "email_address": submission.email,
        "first_name": first_name,
        "fields": fields,
    }


async def _post(client: httpx.AsyncClient, name: str, url: str, body: dict, headers: dict) -> bool:
    try:
        response = await client.post(url, json=body, headers=headers)
    except httpx.HTTPError as e:
        logger.warning("%s delivery failed: %s", name, e)
        return False
    if response.is_error:
        logger.warning("%s delivery rejected: %s %s", name, response.status_code, response.text[:500])
        return False
    return True


async def send_to_close(client: httpx.AsyncClient, api_key: str, record: dict) -> bool:
    auth = base64.b64encode(f"{api_key}:".encode()).decode()
    headers = {"Authorization": f"Basic {auth}", "Content-Type": "application/json"}
    return await _post(client, "Close", CLOSE_LEAD_URL, record, headers)


async def send_to_kit(client: httpx.AsyncClient, api_key: str, form_id: str, record: dict) -> bool:
    headers = {"X-Kit-Api-Key": api_key, "Content-Type": "application/json"}
    return await _post(client, "Kit", KIT_FORM_URL.format(form_id=form_id), record, headers)


async def deliver_all(
    settings: Settings,
    submission: Submission,
    result: ScoreResult,
    summary: ResultSummary,
    token: str,
    client: httpx.AsyncClient | None = None,
) -> DeliveryReport:
    """
    Send the lead to every configured sink concurrently.

    Unconfigured sinks are skipped. Returns how many of the attempted sinks
    accepted the record; never raises on delivery problems.
    """
    owns_client = client is None
    if owns_client:
        client = httpx.AsyncClient(timeout=15.0)

    try:
        sends = []
        if settings.close_api_key:
            sends.append(send_to_close(
                client, settings.close_api_key,
                close_lead_record(submission, result, summary, token, settings.public_base_url),
            ))
        if settings.kit_api_key:
            sends.append(send_to_kit(
                client, settings.kit_api_key, settings.kit_form_id,
                kit_subscriber_record(submission, result, summary, token, settings.public_base_url),
            ))
        outcomes = await asyncio.gather(*sends, return_exceptions=True)
    finally:
        if owns_client:
            await client.aclose()

    report = DeliveryReport(attempted=len(outcomes))
    for outcome in outcomes:
        if isinstance(outcome, BaseException):
            logger.warning("Sink raised unexpectedly: %r", outcome)
        elif outcome:
            report.succeeded += 1
    logger.info("Delivered quiz %s to %d/%d sinks", summary.quiz_id, report.succeeded, report.attempted)
    return report


async def send_report_email(
    settings: Settings,
    token: str,
    summary: ResultSummary,
    email: str,
    client: httpx.AsyncClient | None = None,
) -> bool:
    """Subscribe an address to the results email. False when Kit is unconfigured or rejects it."""
    if not settings.kit_api_key:
        return False
    record = {
        "email_address": email,
        "fields": {
            "pipeline_score": summary.score,
            "score_bucket": summary.score_bucket,
            "top_move_1": _move(summary.top_moves, 0),
            "top_move_2": _move(summary.top_moves, 1),
            "top_move_3": _move(summary.top_moves, 2),
            "result_url": result_url(token, settings.public_base_url),
        },
    }
    if client is not None:
        return await send_to_kit(client, settings.kit_api_key, settings.kit_form_id, record)
    async with httpx.AsyncClient(timeout=15.0) as own_client:
        return await send_to_kit(own_client, settings.kit_api_key, settings.kit_form_id, record)
