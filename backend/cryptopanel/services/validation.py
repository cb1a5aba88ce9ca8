"""
Query parameter validation for the market endpoints.

Raw query strings are split and trimmed here; the constraints themselves
live on the `PricesQuery` / `HistoryQuery` models. Any pydantic failure is
reported as `InvalidInput` with a message that is safe to return to the
caller. Nothing here touches the network.
"""

from typing import Iterable, List, Mapping, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from ..models.errors import InvalidInput
from ..models.market import MAX_SYMBOLS, HistoryQuery, HistoryRange, PricesQuery

MAX_QUERY_STRING_LENGTH = 1024
DEFAULT_SYMBOLS = ("btc", "eth")
DEFAULT_VS_CURRENCY = "usd"
DEFAULT_RANGE = HistoryRange.H24

SYMBOL_RULE = "Symbols must be lowercase alphanumeric (3-10 chars)"

# (field, pydantic error type) -> client message
ERROR_MESSAGES = {
    ("symbols", "string_pattern_mismatch"): SYMBOL_RULE,
    ("symbol", "string_pattern_mismatch"): SYMBOL_RULE,
    ("symbols", "too_short"): "At least one symbol is required",
    ("symbols", "too_long"): f"A maximum of {MAX_SYMBOLS} symbols is allowed",
    ("vs", "string_pattern_mismatch"): "Base currency must be a 3-5 letter ISO code",
    ("range", "enum"): "Range must be one of: " + ", ".join(r.value for r in HistoryRange),
}

Query = TypeVar("Query", bound=BaseModel)


def check_query_length(query: str):
    if len(query) > MAX_QUERY_STRING_LENGTH:
        raise InvalidInput(
            f"Query parameters must not exceed {MAX_QUERY_STRING_LENGTH} characters",
            error="Invalid query string length",
        )


def split_symbols(raw: Optional[str], default: Iterable[str] = DEFAULT_SYMBOLS) -> List[str]:
    """Split a comma separated list; an empty list falls back to `default`."""
    symbols = [s.strip().lower() for s in (raw or "").split(",")]
    return [s for s in symbols if s] or list(default)


def _clean_currency(raw: Optional[str]) -> str:
    return (raw if raw is not None else DEFAULT_VS_CURRENCY).strip().lower()


def _first_message(exc: ValidationError) -> str:
    err = exc.errors()[0]
    field = err["loc"][0] if err["loc"] else None
    if (field, err["type"]) in ERROR_MESSAGES:
        return ERROR_MESSAGES[(field, err["type"])]
    cause = err.get("ctx", {}).get("error")
    if isinstance(cause, ValueError):
        return str(cause)
    return err["msg"]


def build_query(model: Type[Query], **values) -> Query:
    try:
        return model(**values)
    except ValidationError as e:
        raise InvalidInput(_first_message(e)) from None


def parse_prices_query(params: Mapping[str, str], default_symbols: Iterable[str] = DEFAULT_SYMBOLS) -> PricesQuery:
    return build_query(
        PricesQuery,
        symbols=split_symbols(params.get("symbols"), default=default_symbols),
        vs=_clean_currency(params.get("vs")),
    )


def parse_history_query(params: Mapping[str, str]) -> HistoryQuery:
    raw_symbol = params.get("symbol")
    if not raw_symbol or not raw_symbol.strip():
        raise InvalidInput("Symbol parameter is required")

    symbols = split_symbols(raw_symbol, default=())
    if len(symbols) != 1:
        raise InvalidInput("Provide exactly one symbol for history queries")

    raw_range = params.get("range")
    return build_query(
        HistoryQuery,
        symbol=symbols[0],
        vs=_clean_currency(params.get("vs")),
        range=raw_range if raw_range is not None else DEFAULT_RANGE,
    )
