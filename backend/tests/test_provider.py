import httpx
import pytest

from conftest import BASE_URL, Upstream, make_provider
from cryptopanel.models.errors import ProviderError
from cryptopanel.models.market import HistoryRange


@pytest.mark.asyncio
async def test_spot_price_request_shape():
    upstream = Upstream(lambda r: httpx.Response(200, json={"bitcoin": {"usd": 1}}))
    client = make_provider(upstream)

    data = await client.fetch_spot_prices(["bitcoin", "ethereum"], "usd")

    assert data == {"bitcoin": {"usd": 1}}
    request = upstream.requests[0]
    assert str(request.url).startswith(f"{BASE_URL}/simple/price?")
    assert dict(request.url.params) == {
        "ids": "bitcoin,ethereum",
        "vs_currencies": "usd",
        "include_last_updated_at": "true",
        "include_24hr_change": "true",
    }
    assert request.headers["accept"] == "application/json"


@pytest.mark.asyncio
async def test_market_chart_request_shape():
    upstream = Upstream(lambda r: httpx.Response(200, json={"prices": []}))
    client = make_provider(upstream)

    await client.fetch_market_chart("bitcoin", "usd", HistoryRange.H24)
    await client.fetch_market_chart("ethereum", "eur", HistoryRange.D7)

    first, second = upstream.requests
    assert first.url.path.endswith("/coins/bitcoin/market_chart")
    assert dict(first.url.params) == {"vs_currency": "usd", "days": "1", "interval": "hourly"}
    assert second.url.path.endswith("/coins/ethereum/market_chart")
    assert dict(second.url.params) == {"vs_currency": "eur", "days": "7"}


@pytest.mark.asyncio
async def test_non_2xx_is_provider_error():
    client = make_provider(lambda r: httpx.Response(429, text="slow down"))
    with pytest.raises(ProviderError) as exc:
        await client.fetch_spot_prices(["bitcoin"], "usd")
    assert exc.value.status == 429
    assert exc.value.transport is False
    assert "slow down" not in exc.value.message


@pytest.mark.asyncio
async def test_transport_failure_is_provider_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    client = make_provider(handler)
    with pytest.raises(ProviderError) as exc:
        await client.fetch_market_chart("bitcoin", "usd", HistoryRange.D30)
    assert exc.value.status is None
    assert exc.value.transport is True


@pytest.mark.asyncio
async def test_invalid_url_is_transport_failure():
    def handler(request):
        raise httpx.InvalidURL("Invalid non-printable ASCII character in URL")

    client = make_provider(handler)
    with pytest.raises(ProviderError) as exc:
        await client.fetch_spot_prices(["bitcoin"], "usd")
    assert exc.value.status is None
    assert exc.value.transport is True


@pytest.mark.asyncio
async def test_invalid_json_is_provider_error():
    client = make_provider(lambda r: httpx.Response(200, text="<html>oops</html>"))
    with pytest.raises(ProviderError):
        await client.fetch_spot_prices(["bitcoin"], "usd")


@pytest.mark.asyncio
@pytest.mark.parametrize("body", [{"total_volumes": []}, {"prices": "nope"}, [1, 2]])
async def test_market_chart_without_prices_array(body):
    client = make_provider(lambda r: httpx.Response(200, json=body))
    with pytest.raises(ProviderError, match="missing price series"):
        await client.fetch_market_chart("bitcoin", "usd", HistoryRange.D7)


@pytest.mark.asyncio
async def test_spot_payload_must_be_object():
    client = make_provider(lambda r: httpx.Response(200, json=[]))
    with pytest.raises(ProviderError):
        await client.fetch_spot_prices(["bitcoin"], "usd")
