# File: laragen/sync.py
"""
Laragen - Relationship Synchronizer
=====================================
Backend of ``sync-model-relations``.  Works in three phases:

    1. Direct pass: every selected model is analysed and its own
       relationships are merged into its class file.  The reverse of each
       relationship is collected, not written.
    2. Reciprocal pass: the collected reverses are merged, one merge per
       target model, after *all* direct writes are done.
    3. Suggestions: polymorphic ``morphMany`` proposals are committed when
       ``--morph-targets`` was given, otherwise each one is confirmed.

Phase 2 must not start before phase 1 ends: two source models may both add
reverses to the same related model, and a single merge per target keeps
those from overwriting each other.  Every write is idempotent, so an
interrupted run can simply be repeated.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from laragen.classifier import Detection, RelationshipClassifier
from laragen.exporters import ProjectExporter
from laragen.generator import ConfirmCallback
from laragen.merger import MergeReport, SourceMerger, Suggestion
from laragen.migrations import MigrationParser, parse_table_override
from laragen.models import LaragenConfig, ModelTarget, TargetNotFound
from laragen.reciprocity import ReciprocityResolver
from laragen.schema_reader import SchemaReader, build_schema_reader
from laragen.templates import TemplateGenerator
from laragen.utils import model_to_table, read_file, to_pascal_case

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("laragen.sync")


def _accept_default(question: str, default: bool) -> bool:
    return default


# ---------------------------------------------------------------------------
# Report
# ---------------------------------------------------------------------------


@dataclass
class SyncReport:
    """Outcome of one synchronisation run."""

    models: List[str] = field(default_factory=list)
    merges: List[MergeReport] = field(default_factory=list)
    skipped_models: List[str] = field(default_factory=list)
    suggestions_added: List[str] = field(default_factory=list)
    suggestions_declined: List[str] = field(default_factory=list)

    @property
    def writes(self) -> Dict[str, int]:
        """Number of times each model file was written."""
        counts: Dict[str, int] = {}
        for merge in self.merges:
            if merge.written:
                counts[merge.target] = counts.get(merge.target, 0) + 1
        return counts

    @property
    def errors(self) -> List[str]:
        return [str(m.error) for m in self.merges if m.error is not None]

    @property
    def success(self) -> bool:
        return not self.errors

    def added_to(self, model_name: str) -> List[str]:
        added: List[str] = []
        for merge in self.merges:
            if merge.target == model_name:
                added.extend(merge.added)
        return added

    def summary(self) -> str:
        lines: List[str] = [f"Synchronized relations for {len(self.models)} models"]
        for merge in self.merges:
            if merge.added or merge.error is not None:
                lines.append(f"  {merge.summary()}")
        if self.skipped_models:
            lines.append(f"  skipped: {', '.join(self.skipped_models)}")
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# Synchronizer
# ---------------------------------------------------------------------------


class RelationSynchronizer:
    """
    Detects and writes relationships for one model or the whole project.

    *morph_targets* restricts the models offered polymorphic suggestions and
    commits those suggestions without asking.  Without it every model is a
    candidate and *confirm* decides per suggestion (default: accept).
    """

    def __init__(
        self,
        config: LaragenConfig,
        reader: Optional[SchemaReader] = None,
        *,
        morph_targets: Optional[Sequence[str]] = None,
        confirm: Optional[ConfirmCallback] = None,
    ) -> None:
        self._config: LaragenConfig = config
        self._exporter: ProjectExporter = ProjectExporter(config)
        reader = reader if reader is not None else build_schema_reader(config)
        self._classifier: RelationshipClassifier = RelationshipClassifier(
            reader, MigrationParser(self._exporter.migrations_dir)
        )
        self._merger: SourceMerger = SourceMerger(TemplateGenerator(config))
        self._morph_targets: Optional[List[str]] = (
            [to_pascal_case(m.strip()) for m in morph_targets if m.strip()]
            if morph_targets
            else None
        )
        self._confirm: ConfirmCallback = confirm or _accept_default

    # -----------------------------------------------------------------
    # Public
    # -----------------------------------------------------------------

    def sync_model(self, model_name: str) -> SyncReport:
        """
        Synchronise a single model and the reverses it implies.

        Raises:
            TargetNotFound: The model class file does not exist.
        """
        name: str = to_pascal_case(model_name)
        target: ModelTarget = self._exporter.model_target(name)
        if not target.exists:
            raise TargetNotFound(name, target.file_path)
        return self._run([name])

    def sync_all(self) -> SyncReport:
        """Synchronise every model found in the models directory."""
        models: List[str] = self._exporter.list_models()
        report: SyncReport = self._run(models)
        logger.info("Synchronized relations for %d models", len(report.models))
        return report

    # -----------------------------------------------------------------
    # Phases
    # -----------------------------------------------------------------

    def _run(self, models: Sequence[str]) -> SyncReport:
        report = SyncReport()
        resolver = ReciprocityResolver()
        suggestions: List[Suggestion] = []

        # Phase 1: direct relationships
        for name in models:
            target: ModelTarget = self._exporter.model_target(name)
            if not target.exists:
                report.skipped_models.append(name)
                logger.warning("Model %s not found at %s", name, target.file_path)
                continue

            detection: Optional[Detection] = self._detect(target)
            if detection is None:
                report.skipped_models.append(name)
                continue
            report.models.append(name)
            if not detection:
                continue
            report.merges.append(self._merger.merge(target, detection.direct))
            resolver.collect(name, detection.direct)
            suggestions.extend(self._merger.propose_suggestions(name, detection.suggestions))

        # Phase 2: reverse relationships, one merge per target
        if resolver.pending:
            logger.info("Adding reverse relationships to related models...")
        for related_name, reverses in resolver.pending.items():
            related: ModelTarget = self._exporter.model_target(related_name)
            if not related.exists:
                logger.warning(
                    "Model %s not found, skipping reverse relationship.", related_name
                )
                continue
            report.merges.append(self._merger.merge(related, reverses))

        # Phase 3: polymorphic suggestions
        self._apply_suggestions(suggestions, report)
        return report

    def _detect(self, target: ModelTarget) -> Optional[Detection]:
        try:
            source: str = read_file(target.file_path)
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning("Cannot read model %s, skipping: %s", target.model_name, exc)
            return None
        table: str = parse_table_override(source) or model_to_table(target.model_name)
        logger.info("Analyzing relationships for model: %s", target.model_name)
        return self._classifier.detect(target.model_name, table, self._candidates())

    def _candidates(self) -> List[str]:
        if self._morph_targets is None:
            return self._exporter.list_models()

        logger.info("Using specified morph targets: %s", ", ".join(self._morph_targets))
        candidates: List[str] = []
        for name in self._morph_targets:
            if not self._exporter.model_target(name).exists:
                logger.warning("Target model %s not found, skipping", name)
                continue
            candidates.append(name)
        return candidates

    def _apply_suggestions(self, suggestions: List[Suggestion], report: SyncReport) -> None:
        if not suggestions:
            return
        logger.info("Processing polymorphic relationships for related models:")
        auto: bool = self._morph_targets is not None

        for suggestion in suggestions:
            label: str = f"{suggestion.target_model}.{suggestion.method_name}"
            logger.info(
                "In %s model, you might want to add:\n    %s",
                suggestion.target_model,
                suggestion.code,
            )
            question: str = (
                f"Do you want to add this relationship to the {suggestion.target_model} model?"
            )
            if not auto and not self._confirm(question, True):
                report.suggestions_declined.append(label)
                continue

            merge: MergeReport = self._merger.commit(
                suggestion, self._exporter.model_target(suggestion.target_model)
            )
            report.merges.append(merge)
            if merge.added:
                report.suggestions_added.append(label)
                logger.info(
                    "Added '%s' relationship to %s model",
                    suggestion.method_name,
                    suggestion.target_model,
                )

    def __repr__(self) -> str:
        return f"<RelationSynchronizer root={self._exporter.root}>"


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "RelationSynchronizer",
    "SyncReport",
]

logger.debug("laragen.sync loaded — %d public symbols.", len(__all__))
