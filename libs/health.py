# =============================================================================
# Health Aggregator
# =============================================================================
# Combines index status, base-model status, build statistics and config
# status into one severity-ranked report for an index model.
# =============================================================================

"""
Health checks for index models.

Each section yields a ``StatusCheck``; the overall status is the most severe
section. Model qualification (short name -> qualified type) happens before a
check runs, and ambiguity there is a precondition failure rather than a
health outcome.
"""

import logging
from typing import Any, Callable, Optional

from .errors import StoreUnavailable
from .identifiers import ModelRegistry, RegisteredModel, resolve_index_model
from .models.health import (
    ConfigFinding,
    ConfigFindings,
    HealthReport,
    HealthStatus,
    StatusCheck,
    most_severe,
)
from .models.migration import MigrationState
from .stores.build_store import BuildStore
from .stores.migration_store import MigrationStore

__all__ = ["HealthAggregator", "field_paths"]

logger = logging.getLogger(__name__)

IndexInspector = Callable[[str], bool]


def field_paths(mapping: dict[str, Any], prefix: str = "") -> set[str]:
    """
    Flatten a field map or schema snapshot into dotted leaf paths.

    ``properties`` wrappers are transparent and a dict carrying ``type`` is a
    field definition, so a declared map ``{"address": {"city": "keyword"}}``
    and a snapshot ``{"properties": {"address": {"properties": {"city":
    {"type": "keyword"}}}}}`` both yield ``{"address.city"}``.
    """
    paths: set[str] = set()
    for key, value in mapping.items():
        if key == "properties" and isinstance(value, dict):
            paths |= field_paths(value, prefix)
            continue
        path = f"{prefix}{key}"
        if isinstance(value, dict) and "properties" in value:
            paths |= field_paths(value["properties"], f"{path}.")
        elif isinstance(value, dict) and value and "type" not in value:
            paths |= field_paths(value, f"{path}.")
        else:
            paths.add(path)
    return paths


def _yes_no(value: bool) -> str:
    return "Yes" if value else "No"


class HealthAggregator:
    """
    Synthesizes a HealthReport from the registry and both stores.

    Args:
        registry: Explicit model registry (declared field maps, observers,
            config rules)
        builds: Build record store
        migrations: Migration record store
        index_inspector: Optional callable telling whether the backing search
            index exists; without it existence is inferred from a successful
            migration
    """

    def __init__(
        self,
        registry: ModelRegistry,
        builds: BuildStore,
        migrations: MigrationStore,
        index_inspector: Optional[IndexInspector] = None,
    ) -> None:
        self.registry = registry
        self.builds = builds
        self.migrations = migrations
        self.index_inspector = index_inspector

    def check_model(self, name: str) -> HealthReport:
        """
        Qualify a model name through the registry, then check it.

        Raises:
            AmbiguousIdentifier: Several registered types match ``name``
            RecordNotFound: No registered type matches ``name``
        """
        qualified = self.registry.qualify(name).require()
        entry = self.registry.get_by_name(qualified)
        index_model = entry.index_model if entry else resolve_index_model(qualified)
        return self.check(index_model, qualified_name=qualified)

    def check(self, index_model: str, qualified_name: Optional[str] = None) -> HealthReport:
        """Run all four checks for a resolved index-model identifier."""
        entry = self.registry.get(index_model)
        if qualified_name is None and entry is not None:
            qualified_name = entry.qualified_name

        index_status, index_data = self._index_status(index_model, entry)
        model_status, model_data, observers = self._model_status(index_model, entry)
        build_status, build_data = self._build_status(index_model)
        config_status, config_data, findings = self._config_status(entry)

        overall = most_severe(
            check.status
            for check in (index_status, model_status, build_status, config_status)
        )
        title = entry.simple_name if entry else index_model

        return HealthReport(
            title=f"{title} Health",
            index_model=index_model,
            qualified_name=qualified_name,
            overall=overall,
            index_status=index_status,
            model_status=model_status,
            build_status=build_status,
            config_status=config_status,
            index_data=index_data,
            model_data=model_data,
            build_data=build_data,
            config_data=config_data,
            observers=observers,
            config_findings=findings,
        )

    # ------------------------------------------------------------------
    # Sections
    # ------------------------------------------------------------------

    def _index_status(
        self, index_model: str, entry: Optional[RegisteredModel]
    ) -> tuple[StatusCheck, dict[str, Any]]:
        declared = entry.field_map if entry else {}
        data: dict[str, Any] = {
            "Index Model": index_model,
            "Declared Fields": len(field_paths(declared)),
        }

        try:
            latest = self.migrations.latest(index_model)
            successful = (
                latest
                if latest is not None and latest.state == MigrationState.SUCCESS
                else self.migrations.latest_successful(index_model)
            )
        except StoreUnavailable as e:
            return _unavailable(e), data

        if self.index_inspector is not None:
            try:
                exists = bool(self.index_inspector(index_model))
            except Exception as e:
                logger.exception(f"Index inspector raised for {index_model}")
                data["Index Exists"] = "Unknown"
                return (
                    StatusCheck(
                        status=HealthStatus.CRITICAL,
                        title="Index status unavailable",
                        detail=str(e) or type(e).__name__,
                        help=["Check the search engine connection"],
                    ),
                    data,
                )
        else:
            exists = successful is not None

        data["Index Exists"] = _yes_no(exists)
        data["Latest Migration"] = latest.version if latest else "N/A"
        data["Migration State"] = latest.state.value if latest else "N/A"

        if latest is not None and latest.state == MigrationState.FAILED:
            return (
                StatusCheck(
                    status=HealthStatus.CRITICAL,
                    title="Latest migration failed",
                    detail=latest.error or "Unknown error",
                    help=[f"Inspect migration {latest.short_id} and re-run the migration"],
                ),
                data,
            )

        if not exists:
            return (
                StatusCheck(
                    status=HealthStatus.CRITICAL,
                    title="Index not found",
                    detail=f"No index exists for {index_model}",
                    help=[f"Run the migration for {index_model} to create the index"],
                ),
                data,
            )

        if latest is not None and latest.state == MigrationState.UNDEFINED:
            return (
                StatusCheck(
                    status=HealthStatus.WARNING,
                    title="Latest migration state undefined",
                    detail=f"Migration {latest.version} has no recorded outcome",
                    help=["Re-run the migration to record a definite outcome"],
                ),
                data,
            )

        if not declared:
            return (
                StatusCheck(
                    status=HealthStatus.INFO,
                    title="No field map declared",
                    detail="Index schema consistency was not checked",
                ),
                data,
            )

        if successful is None:
            # Index exists but its schema was never recorded
            return (
                StatusCheck(
                    status=HealthStatus.WARNING,
                    title="No schema snapshot recorded",
                    detail=f"{index_model} has no successful migration",
                    help=[f"Run the migration for {index_model} to record its schema"],
                ),
                data,
            )

        expected = field_paths(declared)
        live = field_paths(successful.map)
        missing = sorted(expected - live)
        extra = sorted(live - expected)
        data["Indexed Fields"] = len(live)

        if missing:
            return (
                StatusCheck(
                    status=HealthStatus.WARNING,
                    title="Index schema out of sync",
                    detail=f"{len(missing)} declared field(s) missing from the index",
                    help=[f"Missing: {', '.join(missing)}", "Run a migration to update the index"],
                ),
                data,
            )
        if extra:
            return (
                StatusCheck(
                    status=HealthStatus.INFO,
                    title="Index has undeclared fields",
                    detail=f"{len(extra)} indexed field(s) not in the field map",
                    help=[f"Undeclared: {', '.join(extra)}"],
                ),
                data,
            )

        return (
            StatusCheck(
                status=HealthStatus.OK,
                title="Index OK",
                detail=f"Schema matches migration {successful.version}",
            ),
            data,
        )

    def _model_status(
        self, index_model: str, entry: Optional[RegisteredModel]
    ) -> tuple[StatusCheck, dict[str, Any], list[dict[str, str]]]:
        if entry is None:
            return (
                StatusCheck(
                    status=HealthStatus.CRITICAL,
                    title="Model not registered",
                    detail=f"No indexable model resolves to {index_model}",
                    help=["Register the model with the model registry at startup"],
                ),
                {"Index Model": index_model},
                [],
            )

        observers = [{"key": name, "value": "observer"} for name in entry.observers]
        base_exists = entry.base_model is not None and self.registry.exists(entry.base_model)
        data = {
            "Qualified Name": entry.qualified_name,
            "Base Model": entry.base_model or "N/A",
            "Base Model Exists": _yes_no(base_exists),
            "Observers": len(observers),
        }

        if not base_exists:
            return (
                StatusCheck(
                    status=HealthStatus.CRITICAL,
                    title="Base model not found",
                    detail=f"{entry.base_model or 'No base model'} could not be resolved",
                    help=["Declare the base model type in the registry"],
                ),
                data,
                observers,
            )

        if not observers:
            return (
                StatusCheck(
                    status=HealthStatus.WARNING,
                    title="No observers found",
                    detail=f"Changes to {entry.base_model} will not trigger builds",
                ),
                data,
                observers,
            )

        return (
            StatusCheck(status=HealthStatus.OK, title="Base model OK", detail=entry.base_model),
            data,
            observers,
        )

    def _build_status(self, index_model: str) -> tuple[StatusCheck, dict[str, Any]]:
        try:
            summary = self.builds.summary(index_model)
        except StoreUnavailable as e:
            return _unavailable(e), {}

        data = {
            "Total Builds": summary.total,
            "Successful": summary.success,
            "Skipped": summary.skips,
            "Failed": summary.errors,
        }

        if summary.total == 0:
            return StatusCheck(status=HealthStatus.OK, title="No builds recorded"), data

        if summary.errors:
            return (
                StatusCheck(
                    status=HealthStatus.WARNING,
                    title="Failed builds",
                    detail=f"{summary.errors} of {summary.total} builds failed",
                    help=[f"Inspect the failed builds for {index_model}"],
                ),
                data,
            )

        return (
            StatusCheck(
                status=HealthStatus.OK,
                title="Builds OK",
                detail=f"{summary.total} builds, none failed",
            ),
            data,
        )

    def _config_status(
        self, entry: Optional[RegisteredModel]
    ) -> tuple[StatusCheck, dict[str, Any], ConfigFindings]:
        findings = ConfigFindings()
        rules = entry.config_rules if entry else []

        for rule in rules:
            try:
                passed = bool(rule.check(entry))
                help_lines = list(rule.help)
            except Exception as e:
                logger.exception(f"Config rule '{rule.name}' raised")
                passed = False
                help_lines = [*rule.help, f"Rule raised: {e}"]
            if passed:
                continue
            finding = ConfigFinding(name=rule.name, help=help_lines)
            if rule.severity == "critical":
                findings.critical.append(finding)
            else:
                findings.warning.append(finding)

        data: dict[str, Any] = dict(entry.settings) if entry else {}
        data["Rules Checked"] = len(rules)

        status = findings.status
        if status == HealthStatus.CRITICAL:
            check = StatusCheck(
                status=status,
                title="Config errors",
                detail=f"{len(findings.critical)} critical, {len(findings.warning)} warning",
            )
        elif status == HealthStatus.WARNING:
            check = StatusCheck(
                status=status,
                title="Config recommendations",
                detail=f"{len(findings.warning)} warning",
            )
        else:
            check = StatusCheck(status=status, title="Config OK")

        return check, data, findings


def _unavailable(error: StoreUnavailable) -> StatusCheck:
    return StatusCheck(
        status=HealthStatus.CRITICAL,
        title="Document store unavailable",
        detail=str(error),
        help=["Check the document store connection"],
    )
