import asyncio
import httpx
from typing import Any, Dict, Optional

from flightplan.config import settings, MarketConfig
from flightplan.obs.logger import log_event

SEARCH_PATH = "/node/flight/search"
ITINERARY_CREATE_PATH = "/itin/itinerary/create"

_RETRYABLE = (httpx.ReadTimeout, httpx.ConnectTimeout, httpx.ConnectError, httpx.RemoteProtocolError)


class FlightProviderClient:
    """Async HTTP client for the flight provider's search and itinerary endpoints."""

    def __init__(self, market: Optional[MarketConfig] = None,
                 search_timeout: Optional[float] = None,
                 review_timeout: Optional[float] = None,
                 retries: Optional[int] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.market = market or MarketConfig.from_settings(settings)
        self.search_timeout = search_timeout or settings.SEARCH_TIMEOUT_SECONDS
        self.review_timeout = review_timeout or settings.REVIEW_TIMEOUT_SECONDS
        self.retries = settings.PROVIDER_RETRIES if retries is None else retries
        # Persistent HTTP client with HTTP/2 and bounded timeouts
        self._http = httpx.AsyncClient(
            base_url=self.market.base_url,
            http2=transport is None,
            transport=transport,
            timeout=httpx.Timeout(connect=3.0, read=self.search_timeout,
                                  write=self.search_timeout, pool=5.0),
        )

    def _headers(self, **extra: str) -> Dict[str, str]:
        headers = {
            "accept": "application/json",
            "Content-Type": "application/json",
        }
        if self.market.referer:
            headers["referer"] = self.market.referer
        headers.update(extra)
        return headers

    async def search(self, params: Dict[str, str]) -> Any:
        log_event("provider_search_request", level="DEBUG", params=params)
        r = await self._request("GET", SEARCH_PATH, params=params, headers=self._headers(),
                                timeout=self.search_timeout)
        return r.json()

    async def create_itinerary(self, body: Dict[str, Any]) -> Dict[str, Any]:
        r = await self._request(
            "POST", ITINERARY_CREATE_PATH, json=body,
            headers=self._headers(**{"dc-flow": "ENABLED"}),
            timeout=self.review_timeout,
        )
        return r.json()

    async def _request(self, method: str, path: str, timeout: float, **kwargs: Any) -> httpx.Response:
        attempt = 0
        while True:
            try:
                r = await self._http.request(method, path, timeout=timeout, **kwargs)
                if r.status_code != 200:
                    log_event("provider_http_error", level="WARNING", path=path,
                              status=r.status_code, body=r.text[:300])
                r.raise_for_status()
                return r
            except httpx.HTTPStatusError as e:
                if 500 <= e.response.status_code < 600 and attempt < self.retries:
                    attempt += 1
                    await asyncio.sleep(0.5 * attempt)
                    continue
                raise
            except _RETRYABLE as e:
                log_event("provider_connection_error", level="WARNING", path=path,
                          error=f"{type(e).__name__}: {e}", attempt=attempt)
                if attempt < self.retries:
                    attempt += 1
                    await asyncio.sleep(0.5 * attempt)
                    continue
                raise

    async def aclose(self) -> None:
        await self._http.aclose()
