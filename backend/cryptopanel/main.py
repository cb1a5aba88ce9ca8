from typing import Optional

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api import health, market
from .config.settings import Settings
from .services.market_service import MarketService
from .services.provider import CoinGeckoClient
from .services.rate_limiter import RateLimiter, build_rate_limiter
from .utils.logger import configure_logging, log


def create_app(
    settings: Optional[Settings] = None,
    rate_limiter: Optional[RateLimiter] = None,
    market_service: Optional[MarketService] = None,
) -> FastAPI:
    """
    Build the API with its collaborators wired in once.

    Anything not passed in is built from `settings`, which itself defaults
    to the process environment.
    """
    settings = settings or Settings()
    configure_logging(settings.LOG_LEVEL)

    app = FastAPI(
        title=settings.APP_NAME,
        description="Rate-limited spot price and history proxy for the CryptoPanel dashboard",
        version=settings.APP_VERSION,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ALLOW_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    app.state.settings = settings
    app.state.rate_limiter = rate_limiter or build_rate_limiter(settings)
    app.state.market_service = market_service or MarketService(
        CoinGeckoClient(settings.COINGECKO_BASE_URL, timeout=settings.PROVIDER_TIMEOUT_SECONDS)
    )

    # -----------------------------
    # Routes
    # -----------------------------
    app.include_router(market.router)
    app.include_router(health.router)

    # -----------------------------
    # Lifecycle
    # -----------------------------
    @app.on_event("startup")
    async def on_startup():
        log.info(
            f"{settings.APP_NAME} {settings.APP_VERSION} starting (env={settings.RUNTIME_ENV}, "
            f"provider={settings.COINGECKO_BASE_URL}, limit={settings.RATE_LIMIT_REQUESTS_PER_MINUTE}/min)"
        )

    @app.on_event("shutdown")
    async def on_shutdown():
        await app.state.market_service.close()
        close = getattr(app.state.rate_limiter, "close", None)
        if close is not None:
            await close()
        log.info("Shutdown complete")

    return app


app = create_app()


def run():
    settings = app.state.settings
    uvicorn.run(app, host=settings.HOST, port=settings.PORT)


if __name__ == "__main__":
    run()
