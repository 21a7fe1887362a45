# =============================================================================
# Build Logs Router
# =============================================================================
# Endpoints for browsing and debugging index build attempts.
# =============================================================================

from typing import Any, Optional

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel

from libs.errors import StoreUnavailable
from libs.models import BuildRecord, build_state_presentation

from app.config import get_settings
from app.services.lens_service import get_lens_service

router = APIRouter(prefix="/builds", tags=["builds"])


class BuildSummaryItem(BaseModel):
    index_model: str
    failed: int
    skipped: int
    success: int
    total: int


class BuildDashboardResponse(BaseModel):
    """Response for the build dashboard (one row per index model)."""

    items: list[BuildSummaryItem]
    count: int


class FailedBuildItem(BaseModel):
    id: str
    short_id: str
    model_id: str
    state: str
    state_name: str
    snippet: str
    updated_at: Optional[str]


class FailedBuildsResponse(BaseModel):
    """Response for failed builds of one index model."""

    index_model: str
    items: list[FailedBuildItem]
    count: int
    limit: int


class BuildDetailResponse(BaseModel):
    """Response for a single build record with its log history."""

    build: dict[str, Any]
    state_name: str
    color: str


def _unavailable(exc: StoreUnavailable) -> HTTPException:
    return HTTPException(status_code=503, detail=f"Document store unavailable: {exc}")


@router.get("/", response_model=BuildDashboardResponse)
async def build_dashboard() -> BuildDashboardResponse:
    """Failed / skipped / success / total counts for every index model."""
    lens = get_lens_service()
    try:
        summaries = lens.queries.build_summaries()
    except StoreUnavailable as exc:
        raise _unavailable(exc) from exc

    items = [
        BuildSummaryItem(
            index_model=s.index_model,
            failed=s.errors,
            skipped=s.skips,
            success=s.success,
            total=s.total,
        )
        for s in summaries
    ]
    return BuildDashboardResponse(items=items, count=len(items))


@router.get("/records/{build_id}", response_model=BuildDetailResponse)
async def build_detail(build_id: str) -> BuildDetailResponse:
    """
    Full build record by id.

    Short ids (first characters of the id) are matched on a best-effort
    basis; if prefix lookups are disabled they are not found.
    """
    lens = get_lens_service()
    try:
        build: Optional[BuildRecord] = lens.queries.find_build(build_id)
    except StoreUnavailable as exc:
        raise _unavailable(exc) from exc

    if build is None:
        raise HTTPException(status_code=404, detail=f"Build not found: {build_id}")

    presentation = build_state_presentation(build.state)
    return BuildDetailResponse(
        build=build.model_dump(mode="json"),
        state_name=presentation.label,
        color=presentation.color,
    )


@router.get("/{index_model}", response_model=FailedBuildsResponse)
async def failed_builds(
    index_model: str,
    limit: Optional[int] = Query(None, ge=1, le=500, description="Maximum results"),
) -> FailedBuildsResponse:
    """Most recent failed builds for an index model."""
    limit = limit or get_settings().default_limit
    lens = get_lens_service()
    try:
        builds = lens.queries.failed_builds(index_model, limit=limit)
    except StoreUnavailable as exc:
        raise _unavailable(exc) from exc

    items = [
        FailedBuildItem(
            id=b.id or "",
            short_id=b.short_id,
            model_id=b.model_id,
            state=b.state.value,
            state_name=b.state_name,
            snippet=b.error_snippet(),
            updated_at=b.updated_at.isoformat() if b.updated_at else None,
        )
        for b in builds
    ]
    resolved = builds[0].index_model if builds else index_model
    return FailedBuildsResponse(
        index_model=resolved, items=items, count=len(items), limit=limit
    )
