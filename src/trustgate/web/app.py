"""FastAPI application factory for the TrustGate audit API."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI

from trustgate import __version__
from trustgate.config import TrustGateConfig
from trustgate.policy.loader import resolve_policy
from trustgate.storage.db import get_db

logger = logging.getLogger(__name__)


def create_app(
    config: TrustGateConfig | None = None,
    policy_path: str | Path | None = None,
) -> FastAPI:
    """Build the read-only audit API.

    The policy is resolved before the app exists, so a bad policy raises
    ConfigError here instead of after the server is listening. The audit
    database is opened for the lifetime of the app.
    """
    config = config or TrustGateConfig.load()
    policy = resolve_policy(config, policy_path)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        app.state.db = await get_db(config.db_path)
        logger.info("Audit API reading %s", config.db_path)
        try:
            yield
        finally:
            await app.state.db.close()

    app = FastAPI(
        title="TrustGate",
        version=__version__,
        docs_url="/api/docs",
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.policy = policy

    from trustgate.web.api.decisions import router as decisions_router
    from trustgate.web.api.policy import router as policy_router

    app.include_router(decisions_router, prefix="/api")
    app.include_router(policy_router, prefix="/api")
    return app
