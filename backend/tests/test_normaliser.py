import pytest

from cryptopanel.models.errors import ProviderError
from cryptopanel.services.normaliser import normalise_history, normalise_spot_prices


def test_history_sorted_and_invalid_pairs_dropped():
    series = normalise_history([[200, 100.5], [100, 99.2], [float("nan"), 5]])
    assert [p.model_dump() for p in series] == [
        {"t": 100, "p": 99.2},
        {"t": 200, "p": 100.5},
    ]


def test_history_truncates_timestamps_and_coerces_prices():
    series = normalise_history([[1700000000999.9, "42.5"], [1700000000000.2, 41]])
    assert [(p.t, p.p) for p in series] == [(1700000000000, 41.0), (1700000000999, 42.5)]


def test_history_drops_non_numeric_and_malformed_pairs():
    series = normalise_history([
        [300, None],
        ["abc", 1.0],
        [400, float("inf")],
        [500],
        "junk",
        [[1], 2],
        [600, 7],
    ])
    assert [(p.t, p.p) for p in series] == [(600, 7.0)]


def test_history_empty():
    assert normalise_history([]) == []
    assert normalise_history([[None, None]]) == []


def test_history_keeps_timestamps_beyond_int64():
    series = normalise_history([[1e300, 5.0], [100, 1.0], [10**20, 2.0]])
    assert [(p.t, p.p) for p in series] == [(100, 1.0), (10**20, 2.0), (int(1e300), 5.0)]


def test_spot_prices_convert_seconds_to_millis():
    payload = {"bitcoin": {"usd": 65000, "last_updated_at": 1700000000, "usd_24h_change": -1.5}}
    tickers = normalise_spot_prices(payload, ["btc"], "usd")

    btc = tickers["btc"]
    assert btc.price == 65000
    assert btc.last_updated == 1700000000000
    assert btc.change_24h == -1.5
    assert btc.to_wire() == {"price": 65000, "ts": 1700000000000}


def test_spot_prices_default_timestamp_is_now():
    tickers = normalise_spot_prices({"ethereum": {"eur": 3000.5}}, ["eth"], "eur", now=1700000123.7)
    assert tickers["eth"].last_updated == 1700000123000
    assert tickers["eth"].change_24h is None


@pytest.mark.parametrize(
    "payload",
    [
        {"bitcoin": {"usd": 65000}},
        {"bitcoin": {"usd": 65000}, "ethereum": {"eur": 3000}},
        {"bitcoin": {"usd": 65000}, "ethereum": {"usd": "3000"}},
        {"bitcoin": {"usd": 65000}, "ethereum": None},
    ],
)
def test_spot_prices_all_or_nothing(payload):
    with pytest.raises(ProviderError) as exc:
        normalise_spot_prices(payload, ["btc", "eth"], "usd")
    assert exc.value.message == "Missing data for symbol eth"
    assert exc.value.status_code == 502
