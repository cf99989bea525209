"""Main module for the crypto advisor web app."""
import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from crypto_advisor.config import get_log_level
from crypto_advisor.container import Container, init_container
from crypto_advisor.middleware import RouteGateMiddleware
from crypto_advisor.routers import (admin_router, advisor_router, auth_router,
                                    coins_router, pages_router)

logger = logging.getLogger(__name__)


def setup_logging() -> None:
    logging.basicConfig(
        level=get_log_level(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@asynccontextmanager
async def lifespan(fastapi_app: FastAPI):
    """Log the backend origin at startup; drop cached queries on shutdown."""
    container: Container = fastapi_app.state.container
    logger.info("Using backend API at %s", container.config.api_base_url())
    yield
    container.query_client().remove_queries()


def create_app(container: Container | None = None) -> FastAPI:
    """Build the app around `container` (a fresh one from the environment by default)."""
    container = container or init_container()
    fastapi_app = FastAPI(
        title="Crypto Advisor",
        description="Crypto prices, history and a premium AI advisor behind cookie auth",
        version="0.1.0",
        lifespan=lifespan,
    )
    fastapi_app.state.container = container

    fastapi_app.add_middleware(RouteGateMiddleware, gate=container.route_gate)

    fastapi_app.include_router(pages_router)
    fastapi_app.include_router(coins_router)
    fastapi_app.include_router(auth_router)
    fastapi_app.include_router(advisor_router)
    fastapi_app.include_router(admin_router)

    @fastapi_app.get("/")
    def health():
        """Return health check status."""
        return {"status": "ok"}

    return fastapi_app


app = create_app()


def run():
    """Run the server (uvicorn). Use for `poetry run start`."""
    setup_logging()
    uvicorn.run("crypto_advisor.main:app", host="127.0.0.1", port=8001)


def run_dev():
    """Run the development server with auto-reload."""
    setup_logging()
    uvicorn.run("crypto_advisor.main:app", host="0.0.0.0", port=3000, reload=True)
