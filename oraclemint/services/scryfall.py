"""Scryfall API client with rate limiting, timeouts and backoff.

Every outbound call goes through one shared ``RateLimiter`` so that the
resolver and the bulk sync never exceed Scryfall's 10 requests/second,
no matter how many of them run at once.
"""
from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Callable, Dict, List, Optional

import httpx

from config import settings
from oraclemint.constants import AUTOCOMPLETE_MIN_QUERY_LENGTH, suggestion_cache
from oraclemint.models.cards import BulkDataInfo, BulkDataManifest, ScryfallCard, ScryfallRuling
from oraclemint.models.errors import RequestTimeout, ScryfallError
from oraclemint.services.rate_limiter import RateLimiter, RetryPolicy, Sleep
from oraclemint.utils.timeout_config import get_bulk_download_timeout, get_external_client

logger = logging.getLogger(__name__)

ClientFactory = Callable[[], httpx.AsyncClient]


class ScryfallClient:
    """Throttled, retrying access to the Scryfall REST API."""

    def __init__(
        self,
        rate_limiter: Optional[RateLimiter] = None,
        retry_policy: Optional[RetryPolicy] = None,
        client_factory: Optional[ClientFactory] = None,
        base_url: Optional[str] = None,
        sleep: Sleep = asyncio.sleep,
        request_timeout: Optional[float] = None,
    ):
        self.rate_limiter = rate_limiter or RateLimiter(settings.scryfall_min_request_interval)
        self.retry_policy = retry_policy or RetryPolicy(
            max_attempts=settings.scryfall_max_retries,
            base_delay=settings.scryfall_retry_delay,
            rate_limit_wait=settings.scryfall_rate_limit_wait,
        )
        self.base_url = (base_url or settings.scryfall_base_url).rstrip("/")
        self._client_factory = client_factory or get_external_client
        self._sleep = sleep
        # Bounds a whole request; httpx timeouts only bound each phase
        self.request_timeout = settings.external_api_timeout if request_timeout is None else request_timeout

    def _url(self, path: str) -> str:
        if path.startswith("http://") or path.startswith("https://"):
            return path
        return f"{self.base_url}/{path.lstrip('/')}"

    def _retry_after(self, response: httpx.Response) -> float:
        header = response.headers.get("Retry-After")
        if not header:
            return self.retry_policy.rate_limit_wait
        try:
            return max(float(header), 0.0)
        except ValueError:
            return self.retry_policy.rate_limit_wait

    async def fetch_with_backoff(self, path: str, params: Optional[Dict[str, Any]] = None) -> httpx.Response:
        """GET ``path`` with throttling, 429 handling and linear backoff.

        Returns the response for any status below 500 other than 429; the
        caller decides what 404 and other 4xx codes mean.
        """
        url = self._url(path)
        policy = self.retry_policy
        attempt = 0
        rate_limit_waits = 0

        while True:
            await self.rate_limiter.throttle()

            try:
                async with self._client_factory() as client:
                    response = await asyncio.wait_for(client.get(url, params=params), self.request_timeout)
            except (httpx.TimeoutException, asyncio.TimeoutError) as exc:
                logger.error(f"Scryfall request timed out: {url}")
                raise RequestTimeout(details=f"The request to {url} timed out") from exc
            except httpx.HTTPError as exc:
                attempt += 1
                if attempt >= policy.max_attempts:
                    logger.error(f"Scryfall request failed after {attempt} attempts: {url} ({exc})")
                    raise ScryfallError(
                        "Max retries exceeded", 503, f"Failed to fetch {url}: {exc}"
                    ) from exc
                delay = policy.delay_for(attempt)
                logger.warning(f"Scryfall request error ({exc}), retrying in {delay:.1f}s")
                await self._sleep(delay)
                continue

            if response.status_code == 429:
                rate_limit_waits += 1
                if rate_limit_waits > policy.max_rate_limit_waits:
                    raise ScryfallError("Rate limit exceeded", 429, f"Still throttled after {rate_limit_waits - 1} waits")
                wait = self._retry_after(response)
                logger.warning(f"Scryfall rate limit hit, waiting {wait}s...")
                await self._sleep(wait)
                continue

            if response.status_code >= 500:
                attempt += 1
                if attempt >= policy.max_attempts:
                    logger.error(f"Scryfall returned {response.status_code} after {attempt} attempts: {url}")
                    raise ScryfallError("Max retries exceeded", response.status_code, response.text)
                delay = policy.delay_for(attempt)
                logger.warning(f"Scryfall returned {response.status_code}, retrying in {delay:.1f}s")
                await self._sleep(delay)
                continue

            return response

    # ============ API Methods ============

    async def get_bulk_data_manifest(self) -> BulkDataManifest:
        """Get the bulk data manifest from Scryfall."""
        response = await self.fetch_with_backoff("/bulk-data")
        if not response.is_success:
            raise ScryfallError("Failed to fetch bulk data manifest", response.status_code, response.text)
        return BulkDataManifest.model_validate(response.json())

    async def get_bulk_data_info(self, bulk_type: str) -> BulkDataInfo:
        """Get the manifest entry for one bulk data type."""
        manifest = await self.get_bulk_data_manifest()
        for entry in manifest.data:
            if entry.type == bulk_type:
                return entry
        raise ScryfallError(f"Bulk data type '{bulk_type}' not found", 404)

    async def get_card_by_name(self, name: str, fuzzy: bool = True) -> Optional[ScryfallCard]:
        """Fetch a card by name (exact or fuzzy match). ``None`` when Scryfall has no match."""
        param = "fuzzy" if fuzzy else "exact"
        response = await self.fetch_with_backoff("/cards/named", params={param: name})

        if response.status_code == 404:
            return None
        if not response.is_success:
            raise ScryfallError("Failed to fetch card", response.status_code, response.text)

        return ScryfallCard.model_validate(response.json())

    async def get_rulings_by_card_id(self, card_id: str) -> List[ScryfallRuling]:
        """Fetch rulings for a card by its Scryfall ID."""
        response = await self.fetch_with_backoff(f"/cards/{card_id}/rulings")

        if response.status_code == 404:
            return []
        if not response.is_success:
            raise ScryfallError("Failed to fetch rulings", response.status_code, response.text)

        return [ScryfallRuling.model_validate(item) for item in response.json().get("data", [])]

    async def autocomplete(self, query: str) -> List[str]:
        """Fetch card name suggestions. Failures degrade to no suggestions."""
        if len(query) < AUTOCOMPLETE_MIN_QUERY_LENGTH:
            return []

        cache_key = f"autocomplete:{query.lower()}"
        if cache_key in suggestion_cache:
            return list(suggestion_cache[cache_key])

        response = await self.fetch_with_backoff("/cards/autocomplete", params={"q": query})
        if not response.is_success:
            logger.warning(f"Scryfall autocomplete returned {response.status_code} for '{query}'")
            return []

        suggestions = list(response.json().get("data", []))
        suggestion_cache[cache_key] = suggestions
        return suggestions

    @asynccontextmanager
    async def stream_bulk_data(self, download_url: str) -> AsyncIterator[AsyncIterator[bytes]]:
        """Open a bulk data download and yield its byte chunks.

        Usage::

            async with client.stream_bulk_data(url) as chunks:
                async for chunk in chunks:
                    ...
        """
        await self.rate_limiter.throttle()

        async with self._client_factory() as client:
            async with client.stream("GET", download_url, timeout=get_bulk_download_timeout()) as response:
                if not response.is_success:
                    raise ScryfallError(
                        "Failed to start bulk data download",
                        response.status_code,
                        "Response body is not available",
                    )
                logger.info(f"Streaming bulk data from {download_url}")
                yield response.aiter_bytes()


# Global singleton instance
_scryfall_client: Optional[ScryfallClient] = None


def get_scryfall_client() -> ScryfallClient:
    """Get the process-wide client (and with it the shared throttle)."""
    global _scryfall_client
    if _scryfall_client is None:
        _scryfall_client = ScryfallClient()
    return _scryfall_client
