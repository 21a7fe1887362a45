# =============================================================================
# Index Build Lens Shared Libraries
# =============================================================================
# Build & migration state tracking for the search-index pipeline.
# See individual sub-packages for detailed documentation.
# =============================================================================

"""
Index build lens shared libraries.

Sub-packages:
- models: Pydantic data models and settings
- stores: MongoDB stores for build and migration records
"""

__version__ = "0.1.0"
