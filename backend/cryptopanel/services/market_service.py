import time
from typing import Callable, Dict
from ..models.market import SYMBOL_ID_MAP, HistoryQuery, HistoryResponse, PricesQuery, PriceTicker
from ..utils.logger import log
from .normaliser import normalise_history, normalise_spot_prices
from .provider import CoinGeckoClient

logger = log


class MarketService:
    """Upstream lookups plus normalisation for the market endpoints."""

    def __init__(self, provider: CoinGeckoClient, clock: Callable[[], float] = time.time):
        self.provider = provider
        self._clock = clock

    async def get_spot_prices(self, query: PricesQuery) -> Dict[str, PriceTicker]:
        ids = [SYMBOL_ID_MAP[s] for s in query.symbols]
        payload = await self.provider.fetch_spot_prices(ids, query.vs)
        tickers = normalise_spot_prices(payload, query.symbols, query.vs, now=self._clock())
        logger.debug(f"Spot prices {','.join(query.symbols)}/{query.vs}: {len(tickers)} tickers")
        return tickers

    async def get_history(self, query: HistoryQuery) -> HistoryResponse:
        coin_id = SYMBOL_ID_MAP[query.symbol]
        payload = await self.provider.fetch_market_chart(coin_id, query.vs, query.range)
        series = normalise_history(payload["prices"])
        logger.debug(f"History {query.symbol}/{query.vs}/{query.range.value}: {len(series)} points")
        return HistoryResponse(symbol=query.symbol, vs=query.vs, range=query.range, series=series)

    async def close(self):
        await self.provider.close()
