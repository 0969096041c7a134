"""DataForSEO client: search volumes, live SERPs, and city -> location code.

Each call is a single authenticated request. Errors are raised to the caller;
the ranking aggregator decides how to degrade.
"""

import base64
import logging
from dataclasses import dataclass, field
from typing import Any

import httpx

from .config import Settings
from .keywords import _extract_city

logger = logging.getLogger(__name__)

BASE_URL = "https://api.dataforseo.com/v3"
US_LOCATION_CODE = 2840
TASK_OK = 20000


class DataForSEOError(RuntimeError):
    """A request reached DataForSEO but the task did not succeed."""


@dataclass
class OrganicResult:
    domain: str
    rank: int


@dataclass
class LocalPackResult:
    place_id: str
    position: int


@dataclass
class SerpResult:
    organic: list[OrganicResult] = field(default_factory=list)
    local_pack: list[LocalPackResult] = field(default_factory=list)


def _auth_header(login: str, password: str) -> str:
    credentials = f"{login}:{password}"
    return f"Basic {base64.b64encode(credentials.encode()).decode()}"


def _first_task(data: dict[str, Any]) -> dict[str, Any]:
    tasks = data.get("tasks") or []
    if not tasks:
        raise DataForSEOError("Response contained no tasks")
    task = tasks[0]
    status = task.get("status_code", TASK_OK)
    if status != TASK_OK:
        raise DataForSEOError(f"Task failed: {status} {task.get('status_message', '')}".strip())
    return task


def parse_search_volumes(data: dict[str, Any]) -> dict[str, int]:
    volumes: dict[str, int] = {}
    for item in _first_task(data).get("result") or []:
        keyword = item.get("keyword")
        if keyword:
            volumes[keyword] = int(item.get("search_volume") or 0)
    return volumes


def parse_serp(data: dict[str, Any]) -> SerpResult:
    """
    Pull organic ranks and local-pack positions out of a live SERP response.

    Local results come either as one "map" block with nested entries
    (position = 1-based index) or as flat "local_pack" items (position =
    rank_group).
    """
    serp = SerpResult()
    results = _first_task(data).get("result") or []
    if not results:
        return serp

    for item in results[0].get("items") or []:
        item_type = item.get("type")
        if item_type == "organic":
            domain = item.get("domain")
            rank = item.get("rank_absolute") or item.get("rank_group")
            if domain and rank:
                serp.organic.append(OrganicResult(domain=domain.lower(), rank=int(rank)))
        elif item_type == "map":
            for i, entry in enumerate(item.get("items") or []):
                if entry.get("place_id"):
                    serp.local_pack.append(LocalPackResult(place_id=entry["place_id"], position=i + 1))
        elif item_type == "local_pack":
            if item.get("place_id") and item.get("rank_group"):
                serp.local_pack.append(
                    LocalPackResult(place_id=item["place_id"], position=int(item["rank_group"]))
                )
    return serp


def parse_location_code(data: dict[str, Any], city: str) -> int | None:
    """Exact, case-insensitive match of the city against 'City,State,Country' names."""
    wanted = _extract_city(city).lower()
    if not wanted:
        return None
    for loc in _first_task(data).get("result") or []:
        if loc.get("location_type") != "City":
            continue
        name = (loc.get("location_name") or "").split(",")[0].strip().lower()
        if name == wanted:
            return loc.get("location_code")
    return None


class DataForSEOClient:
    """
    Thin async wrapper over the three endpoints the ranking check needs.

    Pass ``client`` to reuse a connection pool (or inject a mock transport).
    """

    def __init__(
        self,
        login: str,
        password: str,
        client: httpx.AsyncClient | None = None,
        timeout: float = 60.0,
    ):
        if not login or not password:
            raise ValueError(
                "DataForSEO not configured. Set DATAFORSEO_LOGIN and DATAFORSEO_PASSWORD."
            )
        self._headers = {
            "Authorization": _auth_header(login, password),
            "Content-Type": "application/json",
        }
        self._client = client
        self._timeout = timeout
        self._location_cache: dict[str, int] = {}

    @classmethod
    def from_settings(cls, settings: Settings, client: httpx.AsyncClient | None = None) -> "DataForSEOClient":
        return cls(settings.dataforseo_login, settings.dataforseo_password, client=client)

    async def _request(self, method: str, endpoint: str, payload: Any = None) -> dict[str, Any]:
        url = f"{BASE_URL}{endpoint}"
        if self._client is not None:
            response = await self._client.request(method, url, json=payload, headers=self._headers)
        else:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.request(method, url, json=payload, headers=self._headers)
        response.raise_for_status()
        return response.json()

    async def search_volumes(self, keywords: list[str], location_code: int = US_LOCATION_CODE) -> dict[str, int]:
        payload = [
            {
                "location_code": location_code,
                "keywords": keywords,
                "language_code": "en",
                "search_partners": False,
            }
        ]
        data = await self._request("POST", "/keywords_data/google_ads/search_volume/live", payload)
        return parse_search_volumes(data)

    async def serp(self, keyword: str, location_code: int = US_LOCATION_CODE) -> SerpResult:
        payload = [
            {
                "keyword": keyword,
                "location_code": location_code,
                "language_code": "en",
                "device": "desktop",
                "os": "windows",
            }
        ]
        data = await self._request("POST", "/serp/google/organic/live/regular", payload)
        return parse_serp(data)

    async def location_code(self, city: str) -> int:
        """City -> location code, falling back to the United States. Never raises."""
        key = _extract_city(city).lower()
        if key in self._location_cache:
            return self._location_cache[key]
        try:
            data = await self._request("GET", "/keywords_data/google_ads/locations/US")
            code = parse_location_code(data, city)
        except (httpx.HTTPError, DataForSEOError, ValueError) as e:
            logger.warning("Location lookup failed for %r: %s", city, e)
            return US_LOCATION_CODE
        if code is None:
            logger.info("No DataForSEO location for %r; using United States", city)
            code = US_LOCATION_CODE
        self._location_cache[key] = code
        return code
