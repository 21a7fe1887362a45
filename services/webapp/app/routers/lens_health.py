# =============================================================================
# Lens Health Router
# =============================================================================
# Full health check of an index model and its base model.
# =============================================================================

from fastapi import APIRouter, HTTPException

from libs.errors import AmbiguousIdentifier, RecordNotFound
from libs.models import HealthReport

from app.services.lens_service import get_lens_service

router = APIRouter(prefix="/lens-health", tags=["lens-health"])


@router.get("/{model}", response_model=HealthReport)
async def model_health(model: str) -> HealthReport:
    """
    Health report for a model name or index-model identifier.

    A registered identifier is checked directly. Anything else is qualified
    through the model registry first; several candidates yield 409 with the
    list to choose from.
    """
    lens = get_lens_service()

    if lens.registry.get(model) is not None:
        return lens.health.check(model)

    try:
        return lens.health.check_model(model)
    except AmbiguousIdentifier as exc:
        raise HTTPException(
            status_code=409,
            detail={
                "message": "Found multiple models with the same name",
                "matches": exc.matches,
            },
        ) from exc
    except RecordNotFound as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
