"""FastAPI dependencies: resolve per-request objects from the app's container.

The container is attached to app.state by create_app(); an ApiSession is
built per request from the browser's cookies and closed afterwards.
"""
from collections.abc import AsyncIterator
from typing import Annotated

from fastapi import Depends, Request

from crypto_advisor.container import Container
from crypto_advisor.query import CryptoQueries, QueryClient
from crypto_advisor.session import ApiSession


def get_container(request: Request) -> Container:
    return request.app.state.container


async def get_api_session(request: Request) -> AsyncIterator[ApiSession]:
    """ApiSession carrying the incoming request's cookies."""
    session = get_container(request).api_session(cookies=dict(request.cookies))
    try:
        yield session
    finally:
        await session.close()


def get_query_client(request: Request) -> QueryClient:
    return get_container(request).query_client()


ApiSessionDep = Annotated[ApiSession, Depends(get_api_session)]
QueryClientDep = Annotated[QueryClient, Depends(get_query_client)]


def get_crypto_queries(session: ApiSessionDep, client: QueryClientDep) -> CryptoQueries:
    return CryptoQueries(client, session.crypto)


CryptoQueriesDep = Annotated[CryptoQueries, Depends(get_crypto_queries)]
