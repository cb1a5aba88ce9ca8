# models/market.py

from enum import Enum
from typing import Annotated, List, Optional

from pydantic import BaseModel, Field, StringConstraints, field_validator

# Supported symbol -> CoinGecko coin id. Anything not listed here is rejected
# before a request reaches the provider.
SYMBOL_ID_MAP = {
    "btc": "bitcoin",
    "eth": "ethereum",
}


class HistoryRange(str, Enum):
    H24 = "24h"
    D7 = "7d"
    D30 = "30d"


MAX_SYMBOLS = 10
SYMBOL_PATTERN = r"^[a-z0-9]{3,10}$"
CURRENCY_PATTERN = r"^[a-z]{3,5}$"

Symbol = Annotated[str, StringConstraints(pattern=SYMBOL_PATTERN)]


def _check_supported(symbol: str) -> str:
    if symbol not in SYMBOL_ID_MAP:
        raise ValueError(f"Unsupported symbol: {symbol}")
    return symbol


class PricesQuery(BaseModel):
    symbols: List[Symbol] = Field(
        ...,
        min_length=1,
        max_length=MAX_SYMBOLS,
        description="Validated, mapped symbols, e.g. ['btc', 'eth']",
    )
    vs: str = Field("usd", pattern=CURRENCY_PATTERN, description="Target currency code")

    @field_validator("symbols")
    @classmethod
    def symbols_must_be_supported(cls, v):
        return [_check_supported(s) for s in v]


class HistoryQuery(BaseModel):
    symbol: Symbol = Field(..., description="Single validated symbol, e.g. btc")
    vs: str = Field("usd", pattern=CURRENCY_PATTERN, description="Target currency code")
    range: HistoryRange = Field(HistoryRange.H24, description="Lookback window")

    @field_validator("symbol")
    @classmethod
    def symbol_must_be_supported(cls, v):
        return _check_supported(v)


class PriceTicker(BaseModel):
    symbol: str = Field(..., description="Requested symbol, e.g. btc")
    price: float = Field(..., description="Spot price in the target currency")
    currency: str = Field(..., description="Target currency code")
    last_updated: int = Field(..., description="Provider update time in Unix milliseconds")
    change_24h: Optional[float] = Field(None, description="24 hour change in percent, if supplied")

    def to_wire(self) -> dict:
        return {"price": self.price, "ts": self.last_updated}

    class Config:
        json_schema_extra = {
            "example": {
                "symbol": "btc",
                "price": 65000.0,
                "currency": "usd",
                "last_updated": 1700000000000,
                "change_24h": -1.25,
            }
        }


class HistoryPoint(BaseModel):
    t: int = Field(..., description="Sample time in Unix milliseconds")
    p: float = Field(..., description="Price at t")


class HistoryResponse(BaseModel):
    symbol: str
    vs: str
    range: HistoryRange
    series: List[HistoryPoint]
