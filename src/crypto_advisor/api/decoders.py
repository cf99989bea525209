"""Decoders for backend payloads.

Each decoder enumerates the payload shapes the backend is known to send as a
tagged union (pydantic callable discriminator). A payload matching none of
them raises UnrecognizedResponseShape instead of silently decoding to empty.
"""
from typing import Annotated, Any, Union

import httpx
from pydantic import (BaseModel, Discriminator, Tag, TypeAdapter,
                      ValidationError)

from crypto_advisor.api.exceptions import UnrecognizedResponseShape
from crypto_advisor.schemas import (AdvisorAnswer, CoinPage, CoinQuote,
                                    HistorySeries, UserProfile)


def json_or_none(response: httpx.Response) -> Any:
    """Parsed JSON body, or None for an empty or non-JSON body."""
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return None


def error_from_payload(
    payload: Any, keys: tuple[str, ...] = ("detail", "error")
) -> str | None:
    """First non-empty error field of a JSON error body."""
    if not isinstance(payload, dict):
        return None
    for key in keys:
        value = payload.get(key)
        if value:
            return value if isinstance(value, str) else str(value)
    return None


def _decode(adapter: TypeAdapter, resource: str, payload: Any) -> Any:
    try:
        return adapter.validate_python(payload)
    except ValidationError as exc:
        raise UnrecognizedResponseShape(resource, payload) from exc


def _list_envelope_tag(value: Any) -> str | None:
    if isinstance(value, list):
        return "list"
    if isinstance(value, dict):
        for tag in ("results", "items", "data"):
            if isinstance(value.get(tag), list):
                return tag
    return None


# ---- Coin pages ----

class _ResultsPage(BaseModel):
    """Django REST framework pagination."""

    results: list[CoinQuote]
    count: int | None = None
    total_pages: int | None = None


class _ItemsPage(BaseModel):
    items: list[CoinQuote]
    count: int | None = None
    total_pages: int | None = None


class _DataPage(BaseModel):
    data: list[CoinQuote]
    count: int | None = None
    total_pages: int | None = None


_COIN_PAGE: TypeAdapter = TypeAdapter(
    Annotated[
        Union[
            Annotated[_ResultsPage, Tag("results")],
            Annotated[_ItemsPage, Tag("items")],
            Annotated[_DataPage, Tag("data")],
            Annotated[list[CoinQuote], Tag("list")],
        ],
        Discriminator(_list_envelope_tag),
    ]
)


def decode_coin_page(payload: Any) -> CoinPage:
    """Decode a latest-prices payload into a CoinPage."""
    parsed = _decode(_COIN_PAGE, "coin page", payload)
    if isinstance(parsed, list):
        return CoinPage(coins=parsed)
    if isinstance(parsed, _ResultsPage):
        coins = parsed.results
    elif isinstance(parsed, _ItemsPage):
        coins = parsed.items
    else:
        coins = parsed.data
    return CoinPage(coins=coins, count=parsed.count, total_pages=parsed.total_pages)


# ---- History ----

class _ResultsHistory(BaseModel):
    results: list[HistorySeries]


class _DataHistory(BaseModel):
    data: list[HistorySeries]


def _history_tag(value: Any) -> str | None:
    if isinstance(value, dict) and isinstance(value.get("points"), list):
        return "series"
    tag = _list_envelope_tag(value)
    return tag if tag != "items" else None


_HISTORY: TypeAdapter = TypeAdapter(
    Annotated[
        Union[
            Annotated[_ResultsHistory, Tag("results")],
            Annotated[_DataHistory, Tag("data")],
            Annotated[list[HistorySeries], Tag("list")],
            Annotated[HistorySeries, Tag("series")],
        ],
        Discriminator(_history_tag),
    ]
)


def decode_history(payload: Any) -> list[HistorySeries]:
    """Decode a history payload into series, each sorted oldest first."""
    parsed = _decode(_HISTORY, "history", payload)
    if isinstance(parsed, list):
        return parsed
    if isinstance(parsed, HistorySeries):
        return [parsed]
    if isinstance(parsed, _ResultsHistory):
        return parsed.results
    return parsed.data


def series_for(series: list[HistorySeries], symbol: str) -> HistorySeries:
    """The series for `symbol`; falls back to the first one, or an empty series."""
    wanted = symbol.upper()
    for item in series:
        if item.symbol is not None and item.symbol.upper() == wanted:
            return item
    if series:
        return series[0]
    return HistorySeries(symbol=wanted)


# ---- Profile ----

class _WrappedProfile(BaseModel):
    user: UserProfile


def _profile_tag(value: Any) -> str | None:
    if not isinstance(value, dict):
        return None
    if isinstance(value.get("user"), dict):
        return "wrapped"
    if "username" in value:
        return "profile"
    return None


_PROFILE: TypeAdapter = TypeAdapter(
    Annotated[
        Union[
            Annotated[_WrappedProfile, Tag("wrapped")],
            Annotated[UserProfile, Tag("profile")],
        ],
        Discriminator(_profile_tag),
    ]
)


def decode_profile(payload: Any) -> UserProfile:
    parsed = _decode(_PROFILE, "profile", payload)
    return parsed.user if isinstance(parsed, _WrappedProfile) else parsed


_ANSWER: TypeAdapter = TypeAdapter(AdvisorAnswer)


def decode_answer(payload: Any) -> AdvisorAnswer:
    if not isinstance(payload, dict) or "answer" not in payload:
        raise UnrecognizedResponseShape("advisor answer", payload)
    answer = _decode(_ANSWER, "advisor answer", payload)
    answer.answer = answer.answer.strip()
    return answer
