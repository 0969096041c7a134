"""SEO ranking check: volumes + live SERP standing per keyword -> SEOIntelligence.

Per-keyword SERP lookups run concurrently, each under its own timeout, and are
joined before anything is summed. A failed or slow lookup costs only that
keyword's data (rank unknown); a failed volume lookup zeroes the volumes.
The batch itself always completes.
"""

import asyncio
import logging

from .ctr import missed_leads
from .dataforseo import US_LOCATION_CODE, SerpResult
from .keywords import _extract_domain, is_service_keyword
from .models import SEOIntelligence, SEORanking

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 20.0


def organic_rank(serp: SerpResult, domain: str | None) -> int | None:
    """Best organic rank (1-10) whose result domain contains the business domain."""
    if not domain:
        return None
    bare = _extract_domain(domain)
    if not bare:
        return None
    ranks = [r.rank for r in serp.organic if bare in r.domain and 1 <= r.rank <= 10]
    return min(ranks) if ranks else None


def map_pack_position(serp: SerpResult, place_id: str | None) -> int | None:
    if not place_id:
        return None
    for entry in serp.local_pack:
        if entry.place_id == place_id and 1 <= entry.position <= 3:
            return entry.position
    return None


async def _bounded(coro, timeout: float):
    return await asyncio.wait_for(coro, timeout=timeout)


async def _volumes(provider, keywords: list[str], location_code: int, timeout: float) -> dict[str, int]:
    try:
        return await _bounded(provider.search_volumes(keywords, location_code), timeout)
    except Exception as e:
        logger.warning("Search volume lookup failed, using 0 for %d keywords: %s", len(keywords), e)
        return {}


async def _location(provider, city: str, timeout: float) -> int:
    try:
        return await _bounded(provider.location_code(city), timeout)
    except Exception as e:
        logger.warning("Location lookup failed for %r: %s", city, e)
        return US_LOCATION_CODE


async def _standing(
    provider,
    keyword: str,
    location_code: int,
    place_id: str | None,
    domain: str | None,
    timeout: float,
) -> tuple[int | None, int | None]:
    try:
        serp = await _bounded(provider.serp(keyword, location_code), timeout)
    except Exception as e:
        logger.warning("SERP lookup failed for %r: %s", keyword, e)
        return None, None
    return organic_rank(serp, domain), map_pack_position(serp, place_id)


def build_ranking(
    keyword: str,
    search_volume: int,
    current_rank: int | None,
    map_pack: int | None,
) -> SEORanking:
    volume = max(0, int(search_volume or 0))
    return SEORanking(
        keyword=keyword,
        search_volume=volume,
        current_rank=current_rank,
        map_pack_position=map_pack,
        missed_leads_per_month=missed_leads(volume, current_rank, map_pack),
        is_service_keyword=is_service_keyword(keyword),
    )


async def aggregate(
    keywords: list[str],
    place_id: str | None,
    city: str,
    domain: str | None = None,
    provider=None,
    timeout: float = DEFAULT_TIMEOUT,
) -> SEOIntelligence:
    """
    Check where a business stands for each keyword and total its missed leads.

    Args:
        keywords: Phrases to check (order is preserved in the result)
        place_id: The business's Google place id, matched against the map pack
        city: Free-text city, resolved to a provider location code
        domain: Business website, matched against organic results
        provider: Object with async ``location_code``, ``search_volumes`` and
            ``serp`` methods (normally a DataForSEOClient)
        timeout: Seconds allowed per provider call

    Returns:
        SEOIntelligence over every keyword, degraded where lookups failed
    """
    if provider is None:
        raise ValueError("A keyword data provider is required.")
    keywords = list(dict.fromkeys(k for k in keywords if k))
    if not keywords:
        return SEOIntelligence.from_rankings([])

    location_code = await _location(provider, city, timeout)

    volume_task = _volumes(provider, keywords, location_code, timeout)
    standing_tasks = [
        _standing(provider, kw, location_code, place_id, domain, timeout) for kw in keywords
    ]
    volumes, *standings = await asyncio.gather(volume_task, *standing_tasks)
    # The provider may echo keywords back lowercased
    volumes = {k.lower(): v for k, v in volumes.items()}

    rankings = [
        build_ranking(kw, volumes.get(kw.lower(), 0), rank, pack)
        for kw, (rank, pack) in zip(keywords, standings)
    ]
    seo = SEOIntelligence.from_rankings(rankings)
    logger.info(
        "Checked %d keywords for %s: %d missed leads/month, top opportunity %r",
        len(rankings), city, seo.total_missed_leads, seo.top_opportunity,
    )
    return seo
