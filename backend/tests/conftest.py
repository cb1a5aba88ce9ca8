import httpx
import pytest
from fastapi.testclient import TestClient

from cryptopanel.config.settings import Settings
from cryptopanel.main import create_app
from cryptopanel.services.market_service import MarketService
from cryptopanel.services.provider import CoinGeckoClient
from cryptopanel.services.rate_limiter import FixedWindowRateLimiter, InMemoryCounterStore

BASE_URL = "https://api.test/api/v3"


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class Upstream:
    """Records calls and answers with whatever `handler` returns."""

    def __init__(self, handler):
        self.handler = handler
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.handler(request)


def make_provider(handler) -> CoinGeckoClient:
    transport = httpx.MockTransport(handler)
    return CoinGeckoClient(BASE_URL, client=httpx.AsyncClient(transport=transport))


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        COINGECKO_BASE_URL=BASE_URL,
        RATE_LIMIT_REQUESTS_PER_MINUTE=60,
        RATE_LIMIT_BACKEND="memory",
        LOG_LEVEL="DEBUG",
    )


@pytest.fixture
def build_client(settings, clock):
    def _build(handler, limit: int = 60):
        upstream = Upstream(handler)
        limiter = FixedWindowRateLimiter(limit, store=InMemoryCounterStore(), clock=clock)
        service = MarketService(make_provider(upstream), clock=clock)
        app = create_app(settings=settings, rate_limiter=limiter, market_service=service)
        return TestClient(app), upstream

    return _build
