# =============================================================================
# FastAPI Main Application
# =============================================================================
# Entry point for the build lens read-only webapp.
# =============================================================================

from fastapi import FastAPI

from app import __version__
from app.routers import builds, health, lens_health, migrations

# Application instance
app = FastAPI(
    title="Index Build Lens",
    description="Browse index build attempts, migration history and index model health.",
    version=__version__,
)

# Include routers
app.include_router(health.router)
app.include_router(builds.router)
app.include_router(migrations.router)
app.include_router(lens_health.router)
