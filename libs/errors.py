# =============================================================================
# Build Lens Errors
# =============================================================================
# Exception taxonomy shared by the stores, the health aggregator and the
# service adapters.
# =============================================================================

"""Exceptions raised by the build and migration tracking engine."""

__all__ = [
    "BuildLensError",
    "RecordNotFound",
    "AmbiguousIdentifier",
    "WriteFailure",
    "InvalidVersion",
    "StoreUnavailable",
]


class BuildLensError(Exception):
    """Base class for all tracking engine errors."""


class RecordNotFound(BuildLensError):
    """A lookup by id (or model name) matched nothing."""

    def __init__(self, record_id: str, kind: str = "record") -> None:
        self.record_id = record_id
        self.kind = kind
        super().__init__(f"{kind.capitalize()} not found: {record_id}")


class AmbiguousIdentifier(BuildLensError):
    """
    Model qualification found more than one candidate type.

    Callers must pick one of ``matches`` and retry with the fully qualified
    name. This is a precondition failure, not a health-check outcome.
    """

    def __init__(self, name: str, matches: list[str]) -> None:
        self.name = name
        self.matches = list(matches)
        super().__init__(
            f"Found multiple models named '{name}': {', '.join(self.matches)}"
        )


class WriteFailure(BuildLensError):
    """The document store rejected a write or the write timed out."""


class InvalidVersion(BuildLensError):
    """Migration version fields are missing, malformed or move backwards."""


class StoreUnavailable(BuildLensError):
    """Connection-level failure: the document store cannot be reached at all."""
