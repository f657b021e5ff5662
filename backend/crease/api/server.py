"""FastAPI server: admin settlement routes, websocket feed and the sweep scheduler."""

import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager
from typing import Dict, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from crease import __version__
from crease.api.routes import admin_router, websocket_router
from crease.config import get_settings
from crease.database import close_db
from crease.engine import SettlementEngine, build_engine
from crease.scheduler import create_scheduler

logger = logging.getLogger(__name__)


def create_app(
    engine: Optional[SettlementEngine] = None,
    run_scheduler: bool = True,
) -> FastAPI:
    """
    Build the API application.

    With ``run_scheduler`` the four settlement sweeps and the broadcast drain
    run inside the server's event loop for its whole lifetime.
    """
    owns_engine = engine is None
    settings = engine.settings if engine is not None else get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if app.state.engine is None:
            app.state.engine = build_engine(settings)
        current: SettlementEngine = app.state.engine

        drain = asyncio.create_task(current.broadcaster.run())
        scheduler = None
        if run_scheduler:
            scheduler = create_scheduler(current)
            scheduler.start()
            logger.info(f"✓ Scheduler started with {len(scheduler.get_jobs())} jobs")

        logger.info("Crease API server startup complete")

        yield

        logger.info("Shutting down Crease API server")
        if scheduler is not None:
            scheduler.shutdown(wait=False)
        drain.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await drain
        if owns_engine:
            await close_db()

    app = FastAPI(
        title="Crease Settlement API",
        description="Settlement and result reconciliation for cricket markets",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.engine = engine

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.api.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health", tags=["Health"])
    async def health_check() -> Dict[str, str]:
        """Health of the service and its database."""
        db_connected = True
        try:
            async with app.state.engine.applier.session_factory() as session:
                await session.execute(text("SELECT 1"))
        except Exception as e:
            logger.warning(f"Health check database probe failed: {e}")
            db_connected = False

        return {
            "status": "healthy" if db_connected else "degraded",
            "service": "crease-api",
            "version": __version__,
            "database": "connected" if db_connected else "disconnected",
        }

    app.include_router(admin_router)
    app.include_router(websocket_router)

    return app
