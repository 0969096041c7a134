"""Orchestration: answers -> (SEO check) -> score -> forecast -> token -> sinks."""

import asyncio
import logging
import secrets
from dataclasses import dataclass, replace

import httpx

from .config import Settings, get_settings, resolve_signing_secret
from .dataforseo import DataForSEOClient
from .keywords import keywords_for_services
from .models import QuestionnaireAnswers, ResultSummary, ScoreResult, SEOIntelligence, Submission
from .rankings import aggregate
from .result_token import score_to_bucket, sign
from .scoring import branch_for_score, score
from .sinks import DeliveryReport, deliver_all, result_path

logger = logging.getLogger(__name__)


@dataclass
class QuizOutcome:
    result: ScoreResult
    summary: ResultSummary
    token: str
    delivery: DeliveryReport | None = None

    @property
    def result_path(self) -> str:
        return result_path(self.token)


def new_quiz_id() -> str:
    return "qz_" + secrets.token_hex(4)


def summarize(quiz_id: str, result: ScoreResult) -> ResultSummary:
    """PII-free summary of a scored submission."""
    return ResultSummary(
        quiz_id=quiz_id,
        branch=branch_for_score(result.score),
        score=result.score,
        band=result.band,
        score_bucket=score_to_bucket(result.score),
        forecast=result.forecast,
        top_moves=list(result.top_moves[:3]),
    )


async def check_seo(
    answers: QuestionnaireAnswers,
    settings: Settings,
    client: httpx.AsyncClient | None = None,
) -> SEOIntelligence | None:
    """
    Run the SEO ranking check for a business, if it can be run at all.

    Returns None when DataForSEO is not configured or the business has no
    listing to look for.
    """
    business = answers.business
    if not settings.dataforseo_configured:
        logger.info("DataForSEO not configured; skipping SEO check")
        return None
    if not business or not (business.place_id or business.website):
        return None

    provider = DataForSEOClient.from_settings(settings, client=client)
    return await aggregate(
        keywords_for_services(list(answers.services), answers.city),
        place_id=business.place_id,
        city=answers.city,
        domain=business.website,
        provider=provider,
        timeout=settings.seo_lookup_timeout,
    )


async def run_quiz(
    submission: Submission,
    settings: Settings | None = None,
    with_seo: bool = False,
    deliver: bool = True,
    client: httpx.AsyncClient | None = None,
) -> QuizOutcome:
    """
    Score a submission and produce its result token.

    Steps:
        1. Optionally attach SEO intelligence (only if answers carry none)
        2. Score, band, forecast and top moves
        3. Build the PII-free summary and sign it
        4. Deliver to CRM/ESP sinks (failures are logged, never raised)

    Args:
        submission: The completed questionnaire with contact details
        settings: Runtime settings (default: loaded from the environment)
        with_seo: Run the DataForSEO ranking check before scoring
        deliver: Send the lead to the configured sinks
        client: Shared httpx client for provider and sink calls

    Returns:
        QuizOutcome with the score, summary, token and delivery counts
    """
    settings = settings or get_settings()
    answers = submission.answers

    if with_seo and answers.seo is None:
        answers = answers.with_seo(await check_seo(answers, settings, client))

    result = score(answers)
    summary = summarize(submission.quiz_id, result)
    token = sign(summary, resolve_signing_secret(settings))
    logger.info("Scored quiz %s: %d (%s)", submission.quiz_id, result.score, result.band)

    delivery = None
    if deliver:
        scored = replace(submission, answers=answers)
        delivery = await deliver_all(settings, scored, result, summary, token, client=client)

    return QuizOutcome(result=result, summary=summary, token=token, delivery=delivery)


def run_quiz_sync(
    submission: Submission,
    settings: Settings | None = None,
    with_seo: bool = False,
    deliver: bool = True,
) -> QuizOutcome:
    """Synchronous wrapper for run_quiz."""
    return asyncio.run(run_quiz(submission, settings, with_seo, deliver))
