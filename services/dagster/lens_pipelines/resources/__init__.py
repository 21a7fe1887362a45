"""Dagster Resources - External Service Connections."""

from .build_lens_resource import BuildLensResource

__all__ = [
    "BuildLensResource",
]
