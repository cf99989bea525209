"""Coin list, search and detail views."""
import logging

from fastapi import APIRouter, Query, Request, Response

from crypto_advisor.api import (ApiError, ResultErrorMapper,
                                UnrecognizedResponseShape)
from crypto_advisor.deps import ApiSessionDep, CryptoQueriesDep
from crypto_advisor.query import CryptoPageView
from crypto_advisor.query.crypto_queries import clean_search_input
from crypto_advisor.routers.responses import forward_cookies, redirect
from crypto_advisor.schemas import (CoinDetailView, CoinQuote, HistorySeries,
                                    Redirect)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/coins", tags=["coins"])

DETAIL_HISTORY_INTERVAL = "7d"
DETAIL_HISTORY_LIMIT = 30

_coin_errors = ResultErrorMapper("Coin")
_search_errors = ResultErrorMapper("Coin search")


@router.get("", response_model=CryptoPageView)
async def list_coins(
    request: Request,
    response: Response,
    session: ApiSessionDep,
    queries: CryptoQueriesDep,
    page: int = Query(default=1, ge=1, description="1-based page number"),
):
    """One page of coins with a sparkline series per symbol.

    Backend failures are reported in the view's `error` field.
    """
    access = await session.access.require_auth()
    if isinstance(access.decision, Redirect):
        return redirect(request, access.decision.target, session)
    view = await queries.crypto_with_history(page)
    forward_cookies(session, request, response)
    return view


@router.get("/search", response_model=list[CoinQuote])
async def search_coins(
    request: Request,
    response: Response,
    session: ApiSessionDep,
    queries: CryptoQueriesDep,
    q: str = Query(default="", description="Symbol fragment, e.g. 'btc'"),
):
    access = await session.access.require_auth()
    if isinstance(access.decision, Redirect):
        return redirect(request, access.decision.target, session)
    query = clean_search_input(q)
    try:
        results = await queries.coin_search(query)
    except (ApiError, UnrecognizedResponseShape) as exc:
        _search_errors.raise_http(exc)
    forward_cookies(session, request, response)
    return results


@router.get("/{coin}", response_model=CoinDetailView)
async def coin_detail(
    coin: str,
    request: Request,
    response: Response,
    session: ApiSessionDep,
    queries: CryptoQueriesDep,
):
    """Latest quote plus 7-day history for one symbol."""
    access = await session.access.require_auth()
    if isinstance(access.decision, Redirect):
        return redirect(request, access.decision.target, session)

    symbol = coin.strip().upper()
    try:
        quote = await queries.coin_details(symbol)
    except (ApiError, UnrecognizedResponseShape) as exc:
        _coin_errors.raise_http(exc, symbol=symbol)
    if quote is None:
        _coin_errors.raise_http(ApiError("not found", status=404), symbol=symbol)

    try:
        history = await queries.coin_history(
            symbol, DETAIL_HISTORY_INTERVAL, DETAIL_HISTORY_LIMIT
        )
    except (ApiError, UnrecognizedResponseShape) as exc:
        logger.warning("History for %s unavailable: %s", symbol, exc)
        history = HistorySeries(symbol=symbol)

    forward_cookies(session, request, response)
    return CoinDetailView(coin=quote, history=history, change_percent=history.change_percent)
