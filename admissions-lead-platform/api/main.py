"""
Admissions Lead Platform API - Main Application.

FastAPI application with CORS enabled for frontend communication.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api import __version__
from api.dependencies import get_container, get_session_registry
from services.container import ServiceContainer

logger = logging.getLogger(__name__)


async def _start_realtime(container):
    """Follow remote table changes; returns the open channels."""
    from repositories.client import get_async_supabase
    from repositories.realtime import watch_collection
    from repositories.supabase_store import SupabaseCollection

    async_client = await get_async_supabase()
    channels = []
    for collection in container.collections:
        if isinstance(collection, SupabaseCollection):
            channels.append(await watch_collection(async_client, collection))
    return channels


def _resolve(app: FastAPI, dependency):
    return app.dependency_overrides.get(dependency, dependency)()


@asynccontextmanager
async def lifespan(app: FastAPI):
    container = _resolve(app, get_container)
    container.start_views()

    channels = []
    if container.settings.enable_realtime and container.settings.store_backend == "supabase":
        channels = await _start_realtime(container)

    yield

    for channel in channels:
        await channel.unsubscribe()
    _resolve(app, get_session_registry).teardown_all()
    container.stop_views()
    logger.info("API shut down", extra={"realtime_channels": len(channels)})


# Create FastAPI application
app = FastAPI(
    title="Admissions Lead Platform API",
    description="REST API for distributing, counseling and auditing student admission leads",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# Configure CORS - Allow all origins for development
# TODO: Restrict origins once the dashboard's production domain is fixed
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health", tags=["Health"])
def health_check(container: ServiceContainer = Depends(get_container)):
    """
    Health check endpoint.

    Returns the API status, version and whether the live views are current.
    """
    return {
        "status": "healthy",
        "version": __version__,
        "service": "admissions-lead-platform-api",
        "backend": container.settings.store_backend,
        "stale_views": [
            view.name for view in (container.lead_view, container.staff_view) if view.is_stale
        ],
    }


@app.get("/", tags=["Root"])
def root():
    """
    Root endpoint with API information.
    """
    return {
        "message": "Admissions Lead Platform API",
        "version": __version__,
        "docs": "/docs",
        "health": "/health"
    }


# Import and include routers
from api.routers import audits, calls, leads, reports, staff

app.include_router(leads.router, prefix="/api/v1", tags=["Leads"])
app.include_router(calls.router, prefix="/api/v1", tags=["Calls"])
app.include_router(audits.router, prefix="/api/v1", tags=["Audits"])
app.include_router(staff.router, prefix="/api/v1", tags=["Staff"])
app.include_router(reports.router, prefix="/api/v1", tags=["Reports"])
