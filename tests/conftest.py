import sys
from pathlib import Path
from typing import Callable, Dict, List, Optional

import httpx
import pytest
from fastapi.testclient import TestClient

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app import app
from oraclemint.constants import suggestion_cache
from oraclemint.services.card_store import SQLiteCardStore
from oraclemint.services.rate_limiter import RateLimiter, RetryPolicy
from oraclemint.services.scryfall import ScryfallClient

SCRYFALL_URL = "https://api.scryfall.test"

Responder = Callable[[httpx.Request], httpx.Response]


class FakeScryfall:
    """Answers Scryfall requests from registered responders and records them."""

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self.sleeps: List[float] = []
        self._routes: Dict[str, Responder] = {}

    def route(self, path: str, status: int = 200, json=None, headers: Optional[Dict[str, str]] = None) -> None:
        self._routes[path] = lambda request: httpx.Response(status, json=json, headers=headers)

    def route_handler(self, path: str, responder: Responder) -> None:
        self._routes[path] = responder

    def calls(self, path: str) -> int:
        return sum(1 for request in self.requests if request.url.path == path)

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        responder = self._routes.get(request.url.path)
        if responder is None:
            return httpx.Response(404, json={"object": "error", "status": 404, "details": "Not found"})
        return responder(request)

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)

    def client(
        self, retry_policy: Optional[RetryPolicy] = None, request_timeout: Optional[float] = None
    ) -> ScryfallClient:
        return ScryfallClient(
            rate_limiter=RateLimiter(min_interval=0),
            retry_policy=retry_policy or RetryPolicy(),
            client_factory=lambda: httpx.AsyncClient(transport=httpx.MockTransport(self.handler)),
            base_url=SCRYFALL_URL,
            sleep=self.sleep,
            request_timeout=request_timeout,
        )


@pytest.fixture(scope="session")
def client():
    """Shared TestClient for FastAPI app."""
    return TestClient(app)


@pytest.fixture
def store():
    """Throwaway in-memory card store."""
    card_store = SQLiteCardStore(":memory:")
    yield card_store
    card_store.close()


@pytest.fixture
def fake_scryfall():
    return FakeScryfall()


@pytest.fixture(autouse=True)
def reset_shared_state():
    suggestion_cache.clear()
    yield
    suggestion_cache.clear()
    app.dependency_overrides.clear()
