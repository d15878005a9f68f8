"""
FastAPI application for yieldsync.
"""

from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI

from yieldsync import __version__
from yieldsync.services import SyncServices
from yieldsync.web.health import router as health_router
from yieldsync.web.lifespan import lifespan
from yieldsync.web.routes import admin, scrape

# Load .env before anything else
load_dotenv()


def create_app(services: Optional[SyncServices] = None) -> FastAPI:
    """Create the app; services are built in the lifespan unless supplied."""
    app = FastAPI(
        title="yieldsync",
        description="DeFi pool yield and TVL synchronization engine",
        version=__version__,
        lifespan=lifespan,
    )
    if services is not None:
        app.state.services = services

    app.include_router(health_router)
    app.include_router(scrape.router)
    app.include_router(admin.router, prefix="/admin")
    return app


app = create_app()
