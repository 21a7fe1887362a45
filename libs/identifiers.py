# =============================================================================
# Index Model Identifiers
# =============================================================================
# Derives stable index-model identifiers from qualified type names and keeps
# the explicit registry of indexable model types:
# - resolve_index_model: qualified type name -> snake_case identifier
# - sanitize_index_model_name: normalize identifiers typed by users
# - ModelRegistry: startup registry replacing dynamic class lookups
# =============================================================================

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Literal, Optional

from .errors import AmbiguousIdentifier, RecordNotFound

__all__ = [
    "resolve_index_model",
    "sanitize_index_model_name",
    "split_qualified_name",
    "ConfigRule",
    "RegisteredModel",
    "Qualification",
    "ModelRegistry",
]

logger = logging.getLogger(__name__)

_SEPARATORS = re.compile(r"[\\.]")
_INTERNAL_UPPER = re.compile(r"(?<!^)([A-Z])")

# (base_model, model_id) -> domain object
BaseLoader = Callable[[str, str], Any]


# =============================================================================
# Identifier Resolution
# =============================================================================


def split_qualified_name(qualified_name: str) -> list[str]:
    """Split a PHP-style (``\\``) or Python-style (``.``) qualified name."""
    if not isinstance(qualified_name, str):
        raise TypeError(
            f"Qualified name must be a string, got {type(qualified_name).__name__}"
        )
    parts = [part for part in _SEPARATORS.split(qualified_name.strip()) if part]
    if not parts:
        raise ValueError("Qualified name cannot be empty")
    return parts


def _snake(name: str) -> str:
    return _INTERNAL_UPPER.sub(r"_\1", name).lower()


def resolve_index_model(qualified_name: str) -> str:
    """
    Derive the index-model identifier for a qualified type name.

    The simple type name is snake-cased. When the name has at least two
    namespace segments, the immediately enclosing segment is snake-cased and
    appended as a suffix, unless the identifier already contains it.

    Examples:
        >>> resolve_index_model("Modules\\\\HelpCenter\\\\Topic")
        'topic_help_center'
        >>> resolve_index_model("Modules\\\\Faq\\\\Topic")
        'topic_faq'
        >>> resolve_index_model("App\\\\Topic")
        'topic'

    Two types sharing both the simple name and the enclosing segment still
    resolve to the same identifier.
    """
    parts = split_qualified_name(qualified_name)
    basename = parts.pop()
    identifier = _snake(basename)

    if len(parts) >= 2:
        namespace = _snake(parts[-1])
        if namespace not in identifier:
            identifier = f"{identifier}_{namespace}"

    return identifier


def sanitize_index_model_name(name: str) -> str:
    """
    Normalize an index-model name typed by a user.

    Qualified names and bare CamelCase type names are resolved. Anything
    already containing an underscore is taken as an identifier and only
    trimmed and lower-cased.
    """
    value = name.strip()
    if _SEPARATORS.search(value) or (
        "_" not in value and any(ch.isupper() for ch in value)
    ):
        return resolve_index_model(value)
    return value.lower()


# =============================================================================
# Model Registry
# =============================================================================


@dataclass(frozen=True)
class ConfigRule:
    """
    Caller-declared index configuration check.

    ``check`` receives the registered model and returns True when the
    configuration is acceptable.
    """

    name: str
    severity: Literal["critical", "warning"]
    check: Callable[["RegisteredModel"], bool]
    help: list[str] = field(default_factory=list)


@dataclass
class RegisteredModel:
    """An indexable model type known to the registry."""

    qualified_name: str
    index_model: str
    base_model: Optional[str] = None
    observers: list[str] = field(default_factory=list)
    field_map: dict[str, Any] = field(default_factory=dict)
    config_rules: list[ConfigRule] = field(default_factory=list)
    settings: dict[str, Any] = field(default_factory=dict)

    @property
    def simple_name(self) -> str:
        return split_qualified_name(self.qualified_name)[-1]


@dataclass
class Qualification:
    """Result of qualifying a short model name against the registry."""

    name: str
    qualified: Optional[str]
    matches: list[str]
    not_found: list[str]

    @property
    def is_ambiguous(self) -> bool:
        return len(self.matches) > 1

    def require(self) -> str:
        """Return the single qualified name or raise."""
        if self.is_ambiguous:
            raise AmbiguousIdentifier(self.name, self.matches)
        if self.qualified is None:
            raise RecordNotFound(self.name, kind="model")
        return self.qualified


class ModelRegistry:
    """
    Explicit registry of indexable model types.

    Built once at startup from caller declarations. ``namespaces`` maps each
    candidate model namespace to its index namespace and drives the
    short-name qualification used by dashboards and health checks.
    """

    def __init__(self, namespaces: Optional[dict[str, str]] = None) -> None:
        self.namespaces: dict[str, str] = dict(namespaces or {})
        self._by_name: dict[str, RegisteredModel] = {}
        self._by_index: dict[str, RegisteredModel] = {}
        self._known_types: set[str] = set()

    def register(
        self,
        qualified_name: str,
        *,
        base_model: Optional[str] = None,
        observers: Optional[list[str]] = None,
        field_map: Optional[dict[str, Any]] = None,
        config_rules: Optional[list[ConfigRule]] = None,
        settings: Optional[dict[str, Any]] = None,
        index_model: Optional[str] = None,
    ) -> RegisteredModel:
        """Register an indexable model and return its registry entry."""
        qualified_name = qualified_name.strip()
        entry = RegisteredModel(
            qualified_name=qualified_name,
            index_model=index_model or resolve_index_model(qualified_name),
            base_model=base_model,
            observers=list(observers or []),
            field_map=dict(field_map or {}),
            config_rules=list(config_rules or []),
            settings=dict(settings or {}),
        )

        existing = self._by_index.get(entry.index_model)
        if existing is not None and existing.qualified_name != qualified_name:
            logger.warning(
                f"Index model identifier collision: '{qualified_name}' and "
                f"'{existing.qualified_name}' both resolve to '{entry.index_model}'"
            )

        self._by_name[qualified_name] = entry
        self._by_index[entry.index_model] = entry
        self._known_types.add(qualified_name)
        return entry

    def add_type(self, qualified_name: str) -> None:
        """Declare a domain type (e.g. a base model) that exists."""
        self._known_types.add(qualified_name.strip())

    def exists(self, qualified_name: str) -> bool:
        return qualified_name in self._known_types

    def get(self, index_model: str) -> Optional[RegisteredModel]:
        return self._by_index.get(index_model)

    def get_by_name(self, qualified_name: str) -> Optional[RegisteredModel]:
        return self._by_name.get(qualified_name)

    def index_models(self) -> list[str]:
        return sorted(self._by_index)

    def base_of(self, index_model: str, model_id: Any, loader: BaseLoader) -> Any:
        """
        Load the domain object paired with an index document.

        The registry only decides which base type to load; ``loader`` receives
        ``(base_model, model_id)`` and performs the fetch.

        Raises:
            RecordNotFound: The index model is unregistered or has no base model
        """
        entry = self.get(index_model)
        if entry is None or entry.base_model is None:
            raise RecordNotFound(index_model, kind="base model")
        return loader(entry.base_model, str(model_id))

    def as_base(
        self, index_model: str, model_ids: Iterable[Any], loader: BaseLoader
    ) -> list[Any]:
        return [self.base_of(index_model, model_id, loader) for model_id in model_ids]

    def qualify(self, name: str) -> Qualification:
        """
        Resolve a short or fully qualified model name.

        A name that is already a known qualified type is returned as-is.
        Otherwise every configured namespace is tried; the result carries all
        matches so ambiguity can be reported to the caller.
        """
        name = name.strip()
        if _SEPARATORS.search(name) and self.exists(name):
            return Qualification(name=name, qualified=name, matches=[name], not_found=[])

        found: list[str] = []
        not_found: list[str] = []
        for namespace in self.namespaces:
            separator = "\\" if "\\" in namespace or "." not in namespace else "."
            candidate = f"{namespace}{separator}{name}"
            if self.exists(candidate):
                found.append(candidate)
            else:
                not_found.append(candidate)

        return Qualification(
            name=name,
            qualified=found[0] if len(found) == 1 else None,
            matches=found,
            not_found=not_found,
        )
