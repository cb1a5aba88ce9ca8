from typing import Any, Dict, Iterable, Optional
import httpx
from ..models.errors import ProviderError
from ..models.market import HistoryRange
from ..utils.logger import log

logger = log

# CoinGecko market_chart lookback per range. Only 24h asks for an explicit
# hourly interval; longer ranges use the provider's default granularity.
DAYS_BY_RANGE = {
    HistoryRange.H24: "1",
    HistoryRange.D7: "7",
    HistoryRange.D30: "30",
}
INTERVAL_BY_RANGE = {
    HistoryRange.H24: "hourly",
}


def market_chart_params(vs: str, range_: HistoryRange) -> Dict[str, str]:
    params = {"vs_currency": vs, "days": DAYS_BY_RANGE[range_]}
    interval = INTERVAL_BY_RANGE.get(range_)
    if interval:
        params["interval"] = interval
    return params


class CoinGeckoClient:
    """
    Thin read-only client for the CoinGecko REST API.

    One request per call: no caching and no retry. Every failure surfaces as
    `ProviderError` so callers never see raw upstream bodies.
    """

    def __init__(
        self,
        base_url: str = "https://api.coingecko.com/api/v3",
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 10.0,
    ):
        self.base = base_url.rstrip("/")
        self.client = client or httpx.AsyncClient(timeout=timeout)

    async def close(self):
        await self.client.aclose()

    async def fetch_json(self, path: str, params: Dict[str, str]) -> Any:
        url = f"{self.base}{path}"
        logger.debug(f"CoinGecko GET {path} {params}")
        try:
            r = await self.client.get(url, params=params, headers={"Accept": "application/json"})
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise ProviderError(
                detail=f"{type(e).__name__}: {e} ({url})",
                transport=True,
            ) from e

        if not r.is_success:
            raise ProviderError(
                status=r.status_code,
                detail=f"CoinGecko responded with {r.status_code}: {r.text[:500]} ({r.url})",
            )

        try:
            return r.json()
        except ValueError as e:
            raise ProviderError(
                "Provider returned an unreadable response",
                status=r.status_code,
                detail=f"Invalid JSON from {r.url}: {e}",
            ) from e

    async def fetch_spot_prices(self, ids: Iterable[str], vs: str) -> Dict[str, Any]:
        params = {
            "ids": ",".join(ids),
            "vs_currencies": vs,
            "include_last_updated_at": "true",
            "include_24hr_change": "true",
        }
        data = await self.fetch_json("/simple/price", params)
        if not isinstance(data, dict):
            raise ProviderError(
                "Provider response has an unexpected shape",
                detail=f"/simple/price returned {type(data).__name__}",
            )
        return data

    async def fetch_market_chart(self, coin_id: str, vs: str, range_: HistoryRange) -> Dict[str, Any]:
        data = await self.fetch_json(f"/coins/{coin_id}/market_chart", market_chart_params(vs, range_))
        if not isinstance(data, dict) or not isinstance(data.get("prices"), list):
            raise ProviderError(
                "Provider response missing price series",
                detail=f"/coins/{coin_id}/market_chart returned no 'prices' array",
            )
        return data
