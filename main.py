# main.py
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from adapters.entry.http.view.deployments import router as deployments_router
from adapters.entry.http.view.factory import router as factory_router
from adapters.entry.http.view.payments import router as payments_router
from config import get_settings
from core.use_cases.gate_context import GateContext


def configure_logging() -> None:
    s = get_settings()
    logging.basicConfig(
        level=getattr(logging, (s.LOG_LEVEL or "INFO").upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def build_lifespan(context: Optional[GateContext] = None):
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Runs once on startup (before the first request) and once on shutdown.

        The context owns the deployer wallet signer, so it is built exactly
        once and shared by every request.
        """
        app.state.gate = context or GateContext.from_settings()
        logging.getLogger(__name__).info(
            "TON gate ready on %s, factory %s",
            app.state.gate.network.value,
            app.state.gate.factory.raw_address,
        )
        yield
        app.state.gate = None

    return lifespan


def create_app(context: Optional[GateContext] = None) -> FastAPI:
    """
    Application factory for the TON channel gate API.

    `context` lets tests inject a pre-built GateContext (fake chain, fake clock).
    """
    app = FastAPI(
        title="TON Channel Gate API",
        version="0.1.0",
        lifespan=build_lifespan(context),
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(deployments_router, prefix="/api")
    app.include_router(payments_router, prefix="/api")
    app.include_router(factory_router, prefix="/api")

    return app


configure_logging()
app = create_app()
