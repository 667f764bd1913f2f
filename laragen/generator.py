# File: laragen/generator.py
"""
Laragen - CRUD Generation Pipeline (Orchestrator)
===================================================

Connects every phase of ``generate-crud``:

    Config → Model stub → Field inference → Relationship detection
        → Relation merge → Requests → Repository → Controller → Route

Workflow::

    1. Write the model class and a create-table migration (unless present).
    2. Read ``$fillable`` from the model; fall back to the migration columns.
    3. Detect relationships (live schema first, migrations second), add the
       ``--relations`` tokens, and merge them into the model class.
    4. Write the Store / Update form requests.
    5. Write the repository interface + implementation and bind them.
    6. Write the controller.
    7. Append a ``Route::resource`` line when asked to.

Error handling strategy:
    - Each step is timed and recorded, successful or not.
    - A failed write is recorded and the remaining steps still run.
    - The final report gives a clear pass/fail verdict.

Also home to configuration loading (``laragen.yaml`` / ``laragen.json``) and
the ``add-model-relation`` operation.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import yaml
from pydantic import ValidationError as PydanticValidationError

from laragen.classifier import Detection, RelationshipClassifier
from laragen.exporters import FileRecord, ProjectExporter
from laragen.merger import MergeReport, SourceMerger
from laragen.migrations import MigrationParser, parse_fillable, parse_table_override
from laragen.models import (
    ConfigurationError,
    LaragenConfig,
    MalformedRelationToken,
    ModelTarget,
    RelationshipRecord,
    TargetNotFound,
)
from laragen.schema_reader import SchemaReader, build_schema_reader
from laragen.templates import TemplateGenerator
from laragen.utils import Timer, model_to_table, read_file, to_pascal_case
from laragen.validators import parse_relation_tokens, validate_model_name

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("laragen.generator")

# Prompt callback: (question, default answer) → answer.
ConfirmCallback = Callable[[str, bool], bool]

CONFIG_FILENAMES: List[str] = ["laragen.yaml", "laragen.yml", "laragen.json"]

# Nested sections of the package config file, flattened on load.
_CONFIG_SECTIONS = ("make_crud", "model_relations")


def _default_confirm(question: str, default: bool) -> bool:
    return default


# ---------------------------------------------------------------------------
# Generation report
# ---------------------------------------------------------------------------


@dataclass(frozen=False, slots=True)
class GenerationStepMetric:
    """Timing and outcome for a single pipeline step."""

    step_name: str = ""
    success: bool = True
    elapsed_seconds: float = 0.0
    detail: str = ""


@dataclass(frozen=False, slots=True)
class GenerationReport:
    """
    Report produced by ``CrudGenerator.generate()``.

    Lists the files written, the fields and relationships that drove them,
    and any warnings or errors met on the way.
    """

    success: bool = False
    model_name: str = ""
    project_root: str = ""

    fields: List[str] = field(default_factory=list)
    relationships: List[str] = field(default_factory=list)
    relation_source: str = "none"
    files: List[FileRecord] = field(default_factory=list)
    total_elapsed_seconds: float = 0.0

    step_metrics: List[GenerationStepMetric] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    def summary(self) -> str:
        """Return a human-readable summary string."""
        lines: List[str] = []
        status: str = "✅ SUCCESS" if self.success else "❌ FAILED"
        lines.append(f"{'='*60}")
        lines.append("  Laragen — CRUD Generation Report")
        lines.append(f"{'='*60}")
        lines.append(f"  Status:           {status}")
        lines.append(f"  Model:            {self.model_name}")
        lines.append(f"  Project:          {self.project_root}")
        lines.append(f"  Fields:           {', '.join(self.fields) or '-'}")
        lines.append(
            f"  Relationships:    {', '.join(self.relationships) or '-'}"
            f" ({self.relation_source})"
        )
        lines.append(f"  Files written:    {len(self.files)}")
        lines.append(f"  Total time:       {self.total_elapsed_seconds:.3f}s")
        lines.append(f"{'─'*60}")

        if self.step_metrics:
            lines.append("  Pipeline Steps:")
            for step in self.step_metrics:
                icon: str = "✓" if step.success else "✗"
                lines.append(
                    f"    {icon} {step.step_name:<24s} "
                    f"{step.elapsed_seconds:>7.3f}s  "
                    f"{step.detail}"
                )

        if self.files:
            lines.append(f"{'─'*60}")
            lines.append("  Files:")
            for record in self.files:
                lines.append(f"    • {record.relative_path} ({record.line_count} lines)")

        if self.warnings:
            lines.append(f"{'─'*60}")
            lines.append(f"  Warnings ({len(self.warnings)}):")
            for warn in self.warnings:
                lines.append(f"    ⚠ {warn}")

        if self.errors:
            lines.append(f"{'─'*60}")
            lines.append(f"  Errors ({len(self.errors)}):")
            for err in self.errors:
                lines.append(f"    ✗ {err}")

        lines.append(f"{'='*60}")
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# Configuration loading
# ---------------------------------------------------------------------------


def _load_json_file(path: Path) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"Invalid JSON in {path}: {exc}") from exc


def _load_yaml_file(path: Path) -> Any:
    try:
        return yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Invalid YAML in {path}: {exc}") from exc


def load_config_file(path: Path) -> Dict[str, Any]:
    """
    Load a configuration file (YAML or JSON) into a flat option mapping.

    Both the flat form (``generate_repository: false``) and the sectioned
    form of the package config (``make_crud: {generate_repository: false}``)
    are accepted.  An empty file yields an empty mapping.

    Raises:
        ConfigurationError: If the file is missing or cannot be parsed.
    """
    path = Path(path)
    if not path.is_file():
        raise ConfigurationError(f"Config file not found: {path}")

    try:
        if path.suffix.lower() == ".json":
            data: Any = _load_json_file(path)
        else:
            data = _load_yaml_file(path)
    except OSError as exc:
        raise ConfigurationError(f"Cannot read config file {path}: {exc}") from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Expected a mapping at top level of {path}, got {type(data).__name__}."
        )

    flat: Dict[str, Any] = {}
    for key, value in data.items():
        if key in _CONFIG_SECTIONS:
            if not isinstance(value, dict):
                raise ConfigurationError(f"Section '{key}' in {path} must be a mapping.")
            flat.update(value)
        else:
            flat[key] = value
    logger.debug("Loaded %d option(s) from %s", len(flat), path)
    return flat


def find_config_file(project_root: Path) -> Optional[Path]:
    for name in CONFIG_FILENAMES:
        candidate: Path = project_root / name
        if candidate.is_file():
            return candidate
    return None


def resolve_config(
    project_root: Optional[Path] = None,
    config_path: Optional[Path] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> LaragenConfig:
    """
    Build the effective configuration.

    Precedence, lowest first: built-in defaults, the config file (explicit
    *config_path* or ``laragen.yaml`` found at the project root), then
    *overrides* whose value is not ``None``.
    """
    root: Path = Path(project_root) if project_root is not None else Path(".")
    path: Optional[Path] = Path(config_path) if config_path is not None else find_config_file(root)

    data: Dict[str, Any] = load_config_file(path) if path is not None else {}
    data.setdefault("project_root", root)
    if project_root is not None:
        data["project_root"] = root
    for key, value in (overrides or {}).items():
        if value is not None:
            data[key] = value

    try:
        config = LaragenConfig.model_validate(data)
    except PydanticValidationError as exc:
        source: str = str(path) if path is not None else "options"
        raise ConfigurationError(f"Invalid configuration in {source}: {exc}") from exc

    logger.debug("Resolved configuration: %s", config.model_dump())
    return config


# ---------------------------------------------------------------------------
# CrudGenerator — generate-crud orchestrator
# ---------------------------------------------------------------------------


class CrudGenerator:
    """
    Pipeline orchestrator for ``generate-crud``.

    Usage::

        generator = CrudGenerator(resolve_config(Path("/srv/app")))
        report = generator.generate("Post", api=True, relations="user:belongsTo")
        print(report.summary())

    *reader* is the schema source used for relationship detection; when
    omitted it is built from the configuration (snapshot file or database
    URL).  *confirm* answers the "overwrite existing model?" question.
    """

    def __init__(
        self,
        config: LaragenConfig,
        reader: Optional[SchemaReader] = None,
        *,
        confirm: Optional[ConfirmCallback] = None,
    ) -> None:
        self._config: LaragenConfig = config
        self._reader: Optional[SchemaReader] = (
            reader if reader is not None else build_schema_reader(config)
        )
        self._confirm: ConfirmCallback = confirm or _default_confirm
        self._templates: TemplateGenerator = TemplateGenerator(config)
        self._merger: SourceMerger = SourceMerger(self._templates)

        logger.debug("CrudGenerator initialised: reader=%r.", self._reader)

    # -----------------------------------------------------------------
    # Public
    # -----------------------------------------------------------------

    def generate(
        self,
        name: str,
        *,
        api: Optional[bool] = None,
        routes: Optional[bool] = None,
        force: bool = False,
        relations: Optional[str] = None,
        repository: Optional[bool] = None,
    ) -> GenerationReport:
        """
        Generate the CRUD slice of model *name*.

        ``None`` options take their value from the configuration.
        """
        model_name: str = to_pascal_case(name)
        api = self._config.api_controller if api is None else api
        routes = self._config.add_routes if routes is None else routes
        repository = self._config.generate_repository if repository is None else repository

        exporter = ProjectExporter(self._config, force=force)
        report = GenerationReport(model_name=model_name, project_root=str(exporter.root))

        check = validate_model_name(model_name)
        if not check.is_valid:
            report.errors.extend(e.message for e in check.errors)
            logger.error("%s", check.summary())
            return report

        logger.info("Creating CRUD for: %s", model_name)
        parser = MigrationParser(exporter.migrations_dir)
        classifier = RelationshipClassifier(self._reader, parser)
        target: ModelTarget = exporter.model_target(model_name)

        with Timer("pipeline") as total:
            # ---- Step 1: Model & migration ----
            with Timer("model") as t:
                detail: str = self._write_model(exporter, parser, target, force)
            self._record_step(report, "model_and_migration", t, bool(target.exists), detail)

            source: str = read_file(target.file_path) if target.exists else ""
            table: str = parse_table_override(source) or model_to_table(model_name)

            # ---- Step 2: Fields ----
            with Timer("fields") as t:
                report.fields = self._infer_fields(parser, source, table, report)
            self._record_step(report, "field_inference", t, True, f"{len(report.fields)} field(s)")

            # ---- Step 3: Relationships ----
            with Timer("relationships") as t:
                records: List[RelationshipRecord] = self._relationships(
                    exporter, classifier, target, table, relations, report
                )
            self._record_step(
                report,
                "relationships",
                t,
                True,
                f"{len(report.relationships)} relation(s) from {report.relation_source}",
            )
            relation_names: List[str] = self._templates.relation_names(records)

            # ---- Step 4: Form requests ----
            with Timer("requests") as t:
                written: int = 0
                for prefix, is_update in (("Store", False), ("Update", True)):
                    class_name: str = f"{prefix}{model_name}Request"
                    content: str = self._templates.generate_request(class_name, report.fields, is_update)
                    if exporter.write_file(exporter.requests_dir / f"{class_name}.php", content):
                        written += 1
            self._record_step(report, "requests", t, written == 2, f"{written} file(s)")

            # ---- Step 5: Repository ----
            if repository:
                with Timer("repository") as t:
                    ok: bool = self._write_repository(exporter, model_name, relation_names)
                self._record_step(report, "repository", t, ok, "interface + implementation")

            # ---- Step 6: Controller ----
            with Timer("controller") as t:
                controller: str = self._templates.generate_controller(
                    model_name, relation_names, use_repository=repository, api=api
                )
                controller_path: Path = exporter.controllers_dir / f"{model_name}Controller.php"
                ok = exporter.write_file(controller_path, controller) is not None
            self._record_step(report, "controller", t, ok, "api" if api else "web")

            # ---- Step 7: Route ----
            if routes:
                with Timer("routes") as t:
                    changed: bool = exporter.append_route(self._templates.route_line(model_name), api=api)
                self._record_step(
                    report, "routes", t, True, "added" if changed else "unchanged"
                )

        report.files = list(exporter.records)
        report.warnings.extend(exporter.warnings)
        report.errors.extend(exporter.errors)
        report.total_elapsed_seconds = total.elapsed
        report.success = not report.errors

        if report.success:
            logger.info("Done! Your CRUD for '%s' is ready.", model_name)
        else:
            logger.error("CRUD for '%s' finished with %d error(s).", model_name, len(report.errors))
        return report

    # -----------------------------------------------------------------
    # Steps
    # -----------------------------------------------------------------

    def _write_model(
        self,
        exporter: ProjectExporter,
        parser: MigrationParser,
        target: ModelTarget,
        force: bool,
    ) -> str:
        model_name: str = target.model_name
        if target.exists and not force:
            question: str = f"Model {model_name} already exists. Do you want to overwrite it?"
            if not self._confirm(question, False):
                logger.info("Skipping model creation.")
                return "kept existing model"

        if exporter.write_file(target.file_path, self._templates.generate_model(model_name)) is None:
            return "model write failed"

        table: str = model_to_table(model_name)
        if parser.find_migration_file(table) is not None:
            logger.info("Migration for %s already exists, skipped", table)
            return "model written"
        exporter.write_file(
            exporter.new_migration_path(table), self._templates.generate_migration(table)
        )
        logger.info("Model and migration created.")
        return "model + migration written"

    @staticmethod
    def _infer_fields(
        parser: MigrationParser,
        source: str,
        table: str,
        report: GenerationReport,
    ) -> List[str]:
        fields: List[str] = parse_fillable(source)
        if not fields:
            logger.warning("No fillable fields found. Looking for migrations to infer fields...")
            fields = parser.infer_fields(table)

        if not fields:
            message: str = "No fields could be determined. Form requests will have empty validation rules."
            report.warnings.append(message)
            logger.warning(message)
        else:
            logger.info("Found fields: %s", ", ".join(fields))
        return fields

    def _relationships(
        self,
        exporter: ProjectExporter,
        classifier: RelationshipClassifier,
        target: ModelTarget,
        table: str,
        relations: Optional[str],
        report: GenerationReport,
    ) -> List[RelationshipRecord]:
        records: List[RelationshipRecord] = []
        detection = Detection()
        if self._config.detect_relationships:
            detection = classifier.detect(target.model_name, table, exporter.list_models())
            records.extend(detection.direct)
            report.relation_source = detection.source

        tokens, result = parse_relation_tokens(relations, target.model_name)
        report.warnings.extend(w.message for w in result.warnings)
        records.extend(tokens)

        report.relationships = self._templates.relation_names(records)
        if records:
            logger.info("Detected relationships: %d", len(report.relationships))
            merge: MergeReport = self._merger.merge(target, records)
            if merge.error is not None:
                report.errors.append(str(merge.error))

        for suggestion in self._merger.propose_suggestions(target.model_name, detection.suggestions):
            logger.info(
                "In %s model, you might want to add:\n    %s",
                suggestion.target_model,
                suggestion.code,
            )
        return records

    def _write_repository(
        self,
        exporter: ProjectExporter,
        model_name: str,
        relation_names: List[str],
    ) -> bool:
        interface_path: Path = (
            exporter.repositories_dir / "Interfaces" / f"{model_name}RepositoryInterface.php"
        )
        repository_path: Path = exporter.repositories_dir / f"{model_name}Repository.php"

        ok: bool = (
            exporter.write_file(interface_path, self._templates.generate_repository_interface(model_name))
            is not None
        )
        ok = (
            exporter.write_file(
                repository_path, self._templates.generate_repository(model_name, relation_names)
            )
            is not None
        ) and ok
        if ok:
            exporter.register_binding(model_name, self._templates.binding_line(model_name))
        return ok

    @staticmethod
    def _record_step(
        report: GenerationReport,
        step_name: str,
        timer: Timer,
        success: bool,
        detail: str,
    ) -> None:
        report.step_metrics.append(
            GenerationStepMetric(
                step_name=step_name,
                success=success,
                elapsed_seconds=timer.elapsed,
                detail=detail,
            )
        )

    def __repr__(self) -> str:
        return f"<CrudGenerator root={self._config.project_root}>"


# ---------------------------------------------------------------------------
# add-model-relation
# ---------------------------------------------------------------------------


def add_model_relations(
    config: LaragenConfig,
    model_name: str,
    relations: Optional[str],
) -> MergeReport:
    """
    Add the relations described by *relations* to an existing model.

    Raises:
        TargetNotFound: The model class file does not exist.
        MalformedRelationToken: No token of *relations* could be parsed.
        LaragenError: The merge itself failed.
    """
    name: str = to_pascal_case(model_name)
    exporter = ProjectExporter(config)
    target: ModelTarget = exporter.model_target(name)
    if not target.exists:
        raise TargetNotFound(name, target.file_path)

    records, _ = parse_relation_tokens(relations, name)
    if not records:
        raise MalformedRelationToken(
            "No valid relationships specified. Use --relations option with "
            "format 'model:type,model:type'"
        )

    report: MergeReport = SourceMerger(TemplateGenerator(config)).merge(target, records)
    if report.error is not None:
        raise report.error
    logger.info("Relationships successfully added to %s model", name)
    return report


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "CONFIG_FILENAMES",
    "ConfirmCallback",
    "CrudGenerator",
    "GenerationReport",
    "GenerationStepMetric",
    "add_model_relations",
    "find_config_file",
    "load_config_file",
    "resolve_config",
]

logger.debug("laragen.generator loaded — %d public symbols.", len(__all__))
