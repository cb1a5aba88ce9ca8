import math
import time
from typing import Any, Dict, List, Optional, Sequence

import numpy as np
import pandas as pd

from ..models.errors import ProviderError
from ..models.market import SYMBOL_ID_MAP, HistoryPoint, PriceTicker


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def _scalar(value: Any) -> Any:
    # nested containers cannot be coerced to numbers
    if isinstance(value, int) and not isinstance(value, bool):
        return float(value)
    return value if isinstance(value, (float, str)) else None


def normalise_spot_prices(
    payload: Dict[str, Any],
    symbols: Sequence[str],
    vs: str,
    now: Optional[float] = None,
) -> Dict[str, PriceTicker]:
    """
    Map a /simple/price payload onto one ticker per requested symbol.

    All or nothing: if any symbol is missing, or has no price under `vs`,
    the whole batch fails with `ProviderError`.
    """
    now = time.time() if now is None else now
    tickers: Dict[str, PriceTicker] = {}

    for symbol in symbols:
        coin_id = SYMBOL_ID_MAP[symbol]
        entry = payload.get(coin_id)
        if not isinstance(entry, dict) or not _is_number(entry.get(vs)):
            raise ProviderError(
                f"Missing data for symbol {symbol}",
                detail=f"No '{vs}' price for '{coin_id}' in /simple/price payload",
            )

        updated_at = entry.get("last_updated_at")
        if not _is_number(updated_at):
            updated_at = math.floor(now)

        change = entry.get(f"{vs}_24h_change")
        tickers[symbol] = PriceTicker(
            symbol=symbol,
            price=entry[vs],
            currency=vs,
            last_updated=int(updated_at * 1000),
            change_24h=change if _is_number(change) else None,
        )

    return tickers


def normalise_history(prices: List[Any]) -> List[HistoryPoint]:
    """
    Convert provider [timestamp_ms, price] pairs into sorted history points.

    Timestamps are truncated to integers and prices coerced to numbers;
    pairs where either value is not finite (or that are not pairs at all)
    are dropped. The provider does not guarantee ordering, so the result is
    sorted ascending by timestamp.
    """
    rows = [
        (_scalar(pair[0]), _scalar(pair[1]))
        for pair in prices
        if isinstance(pair, (list, tuple)) and len(pair) >= 2
    ]
    if not rows:
        return []

    frame = pd.DataFrame(rows, columns=["t", "p"], dtype=object)
    frame = frame.apply(pd.to_numeric, errors="coerce").astype("float64")
    frame = frame[np.isfinite(frame["t"]) & np.isfinite(frame["p"])]

    # t stays float64 until int(); an int64 cast wraps for values past 2**63
    frame = frame.assign(t=np.trunc(frame["t"]))
    frame = frame.sort_values("t", kind="stable")

    return [HistoryPoint(t=int(t), p=float(p)) for t, p in frame.itertuples(index=False)]
