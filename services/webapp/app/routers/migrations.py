# =============================================================================
# Migration Logs Router
# =============================================================================
# Endpoints for browsing index migration history and failed migrations.
# =============================================================================

from typing import Any, Optional

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel

from libs.errors import StoreUnavailable
from libs.models import MIGRATION_STATE_PRESENTATION

from app.config import get_settings
from app.services.lens_service import get_lens_service

router = APIRouter(prefix="/migrations", tags=["migrations"])


class MigrationSummaryItem(BaseModel):
    index_model: str
    latest_version: str
    latest_state: Optional[str]
    total: int
    last_migrated_at: Optional[str]


class MigrationDashboardResponse(BaseModel):
    items: list[MigrationSummaryItem]
    count: int


class MigrationItem(BaseModel):
    id: str
    short_id: str
    version: str
    state: str
    error: Optional[str]
    created_at: str


class MigrationHistoryResponse(BaseModel):
    index_model: str
    items: list[MigrationItem]
    count: int
    limit: int


class MigrationDetailResponse(BaseModel):
    migration: dict[str, Any]
    version: str
    color: str


def _unavailable(exc: StoreUnavailable) -> HTTPException:
    return HTTPException(status_code=503, detail=f"Document store unavailable: {exc}")


@router.get("/", response_model=MigrationDashboardResponse)
async def migration_dashboard() -> MigrationDashboardResponse:
    """Latest version and migration count for every index model."""
    lens = get_lens_service()
    try:
        summaries = lens.queries.migration_summaries()
    except StoreUnavailable as exc:
        raise _unavailable(exc) from exc

    items = [
        MigrationSummaryItem(
            index_model=s.index_model,
            latest_version=s.latest_version,
            latest_state=s.latest_state.value if s.latest_state else None,
            total=s.total,
            last_migrated_at=s.last_migrated_at.isoformat() if s.last_migrated_at else None,
        )
        for s in summaries
    ]
    return MigrationDashboardResponse(items=items, count=len(items))


@router.get("/records/{migration_id}", response_model=MigrationDetailResponse)
async def migration_detail(migration_id: str) -> MigrationDetailResponse:
    """Migration record by full id or id prefix."""
    lens = get_lens_service()
    try:
        migration = lens.queries.find_migration(migration_id)
    except StoreUnavailable as exc:
        raise _unavailable(exc) from exc

    if migration is None:
        raise HTTPException(
            status_code=404, detail=f"Migration log not found: {migration_id}"
        )

    return MigrationDetailResponse(
        migration=migration.model_dump(mode="json"),
        version=migration.version,
        color=MIGRATION_STATE_PRESENTATION[migration.state].color,
    )


@router.get("/{index_model}", response_model=MigrationHistoryResponse)
async def migration_history(
    index_model: str,
    limit: Optional[int] = Query(None, ge=1, le=500, description="Maximum results"),
) -> MigrationHistoryResponse:
    """Migration history for an index model, highest version first."""
    limit = limit or get_settings().default_limit
    lens = get_lens_service()
    try:
        migrations = lens.queries.migration_history(index_model, limit=limit)
    except StoreUnavailable as exc:
        raise _unavailable(exc) from exc

    items = [
        MigrationItem(
            id=m.id or "",
            short_id=m.short_id,
            version=m.version,
            state=m.state.value,
            error=m.error,
            created_at=m.created_at.isoformat(),
        )
        for m in migrations
    ]
    return MigrationHistoryResponse(
        index_model=index_model.strip().lower(),
        items=items,
        count=len(items),
        limit=limit,
    )
