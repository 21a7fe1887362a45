# =============================================================================
# Services Module
# =============================================================================
# Service wrappers around the tracking engine stores.
# =============================================================================

from app.services.lens_service import LensService, get_lens_service, load_registry

__all__ = [
    "LensService",
    "get_lens_service",
    "load_registry",
]
