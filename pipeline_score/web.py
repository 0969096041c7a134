"""FastAPI app: quiz start/submit, result re-display, email delivery, SEO checks."""

import logging
from contextlib import asynccontextmanager
from typing import Any, Optional

import httpx
from dotenv import load_dotenv
from fastapi import BackgroundTasks, Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from .cities import all_cities
from .config import Settings, get_settings, resolve_signing_secret
from .dataforseo import DataForSEOClient
from .keywords import keyword_priority
from .main import new_quiz_id, run_quiz
from .models import Submission
from .rankings import aggregate
from .result_token import verify
from .sinks import deliver_all, send_report_email

load_dotenv()

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Fail fast: production refuses to start without a signing secret
    resolve_signing_secret(get_settings())
    async with httpx.AsyncClient(timeout=60.0) as http:
        app.state.http = http
        app.state.providers = {}
        yield


app = FastAPI(title="Pipeline Score", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type"],
)


class SubmitRequest(BaseModel):
    quizId: Optional[str] = None
    email: Optional[str] = None
    answers: Optional[dict[str, Any]] = None
    utm: Optional[dict[str, Any]] = None
    consent: bool = False


class EmailReportRequest(BaseModel):
    token: Optional[str] = None
    email: Optional[str] = None


class RankingsRequest(BaseModel):
    keywords: Optional[list[str]] = None
    businessPlaceId: Optional[str] = None
    city: Optional[str] = None
    domain: Optional[str] = None
    services: Optional[list[str]] = None


class VolumesRequest(BaseModel):
    keywords: Optional[list[str]] = None
    city: Optional[str] = None


def get_http(request: Request) -> Optional[httpx.AsyncClient]:
    """The app-wide client opened in lifespan; None when running without it."""
    return getattr(request.app.state, "http", None)


def get_provider(
    request: Request,
    settings: Settings = Depends(get_settings),
    http: Optional[httpx.AsyncClient] = Depends(get_http),
) -> DataForSEOClient:
    if not settings.dataforseo_configured:
        raise HTTPException(status_code=500, detail="DataForSEO not configured")
    providers = getattr(request.app.state, "providers", None)
    if providers is None:
        return DataForSEOClient.from_settings(settings, client=http)
    # One client per credential pair so its location cache outlives the request
    key = (settings.dataforseo_login, settings.dataforseo_password)
    if key not in providers:
        providers[key] = DataForSEOClient.from_settings(settings, client=http)
    return providers[key]


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.get("/api/cities")
async def cities():
    return {"cities": all_cities()}


@app.post("/api/quiz/start")
async def start_quiz():
    return {"quizId": new_quiz_id()}


@app.post("/api/quiz/submit")
async def submit_quiz(
    body: SubmitRequest,
    background_tasks: BackgroundTasks,
    settings: Settings = Depends(get_settings),
    http: Optional[httpx.AsyncClient] = Depends(get_http),
):
    """Score a submission and return its signed result token.

    CRM/ESP delivery runs after the response is sent; its failures never
    reach the caller.
    """
    if not body.quizId or not body.email or not body.answers:
        raise HTTPException(status_code=400, detail="Missing required fields: quizId, email, answers")

    try:
        submission = Submission.from_dict(body.model_dump())
    except (KeyError, TypeError, ValueError) as e:
        raise HTTPException(status_code=400, detail=f"Invalid answers: {e}")

    outcome = await run_quiz(submission, settings, deliver=False)
    background_tasks.add_task(
        deliver_all, settings, submission, outcome.result, outcome.summary, outcome.token, http
    )
    return {
        "resultToken": outcome.token,
        "resultPath": outcome.result_path,
        "branch": outcome.summary.branch,
    }


@app.get("/api/results/{token}")
async def get_result(token: str, settings: Settings = Depends(get_settings)):
    summary = verify(token, resolve_signing_secret(settings))
    if summary is None:
        raise HTTPException(status_code=400, detail="Invalid token")
    return summary.to_dict()


@app.post("/api/email-report")
async def email_report(
    body: EmailReportRequest,
    settings: Settings = Depends(get_settings),
    http: Optional[httpx.AsyncClient] = Depends(get_http),
):
    if not body.token or not body.email:
        raise HTTPException(status_code=400, detail="Missing token or email")

    summary = verify(body.token, resolve_signing_secret(settings))
    if summary is None:
        raise HTTPException(status_code=400, detail="Invalid token")

    if not settings.kit_api_key:
        return {"success": True, "queued": False}

    await send_report_email(settings, body.token, summary, body.email, client=http)
    return {"success": True, "queued": True}


@app.post("/api/seo-rankings")
async def seo_rankings(
    body: RankingsRequest,
    settings: Settings = Depends(get_settings),
    provider=Depends(get_provider),
):
    if not body.keywords or not body.businessPlaceId or not body.city:
        raise HTTPException(
            status_code=400,
            detail="Missing required parameters: keywords, businessPlaceId, city",
        )

    services = body.services or []
    seo = await aggregate(
        body.keywords,
        place_id=body.businessPlaceId,
        city=body.city,
        domain=body.domain,
        provider=provider,
        timeout=settings.seo_lookup_timeout,
    )
    return {
        "success": True,
        "rankings": [
            {**r.to_dict(), "priority": keyword_priority(r.keyword, services, r.search_volume)}
            for r in seo.rankings
        ],
        "totalKeywords": len(body.keywords),
        "city": body.city,
        "totalMissedLeads": seo.total_missed_leads,
        "topOpportunity": seo.top_opportunity,
    }


@app.post("/api/seo-volumes")
async def seo_volumes(body: VolumesRequest, provider=Depends(get_provider)):
    if not body.keywords or not body.city:
        raise HTTPException(status_code=400, detail="Missing keywords or city")

    location_code = await provider.location_code(body.city)
    try:
        volumes = await provider.search_volumes(body.keywords, location_code)
    except Exception as e:
        logger.warning("Search volume lookup failed for %s: %s", body.city, e)
        volumes = {}
    return {"success": True, "city": body.city, "volumes": volumes}
