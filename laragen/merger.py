# File: laragen/merger.py
"""
Laragen - Source Merger
=========================
Splices relation methods into an existing model class.

The merge is a textual anchor insertion, not an AST edit: the file is read
once, every accepted method is rendered, and the batch is inserted right
before the class's final closing brace with the file's trailing whitespace
preserved.  A method is skipped when ``public function <name>()`` already
appears anywhere in the file, even inside a comment.  Running the same merge
twice therefore leaves the file unchanged the second time.

Writes go through :func:`laragen.utils.write_file` (temp file + rename), so
either every accepted method lands or none does.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional, Set, Tuple

from laragen.models import (
    LaragenError,
    ModelTarget,
    RelationshipRecord,
    TargetNotFound,
    WriteFailure,
)
from laragen.templates import TemplateGenerator
from laragen.utils import read_file, write_file

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("laragen.merger")

_CLOSING_BRACE_RE: re.Pattern[str] = re.compile(r"}(\s*)$")


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------


@dataclass
class MergeReport:
    """Outcome of one merge into one model file."""

    target: str
    path: Path
    added: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    deferred: List[RelationshipRecord] = field(default_factory=list)
    written: bool = False
    error: Optional[LaragenError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def summary(self) -> str:
        parts: List[str] = [f"{self.target}: {len(self.added)} added"]
        if self.skipped:
            parts.append(f"{len(self.skipped)} skipped")
        if self.deferred:
            parts.append(f"{len(self.deferred)} deferred")
        if self.error is not None:
            parts.append(f"error: {self.error}")
        return ", ".join(parts)


@dataclass
class Suggestion:
    """A polymorphic relation proposed for a model other than the one analysed."""

    source_model: str
    target_model: str
    method_name: str
    code: str
    record: RelationshipRecord


# ---------------------------------------------------------------------------
# Text helpers
# ---------------------------------------------------------------------------


def declares_method(source: str, method_name: str) -> bool:
    return f"public function {method_name}()" in source


def splice_before_closing_brace(source: str, code: str) -> Optional[str]:
    """Insert *code* before the last ``}``; ``None`` when there is no such brace."""
    match = _CLOSING_BRACE_RE.search(source)
    if match is None:
        return None
    return source[: match.start()] + code + "\n}" + match.group(1)


# ---------------------------------------------------------------------------
# Merger
# ---------------------------------------------------------------------------


class SourceMerger:
    """Idempotent writer of relation methods into model class files."""

    def __init__(self, templates: Optional[TemplateGenerator] = None) -> None:
        self.templates: TemplateGenerator = templates or TemplateGenerator()

    def merge(
        self,
        target: ModelTarget,
        records: Iterable[RelationshipRecord],
    ) -> MergeReport:
        """
        Add every record not yet declared in *target*.

        ``suggestedMorph`` records are returned in ``deferred`` untouched;
        they go through :meth:`propose_suggestions` / :meth:`commit`.
        """
        report = MergeReport(target=target.model_name, path=target.file_path)
        source: Optional[str] = self._read(target, report)
        if source is None:
            return report

        rendered: List[Tuple[str, str]] = []
        batch: Set[str] = set()
        for record in records:
            if record.is_suggestion:
                report.deferred.append(record)
                continue
            name: str = record.method_name
            if name in batch:
                logger.debug("Duplicate %s() in batch for %s dropped", name, target.model_name)
                continue
            batch.add(name)
            rendered.append((name, self.templates.render_relation_method(target.model_name, record)))

        self._apply(target, source, rendered, report)
        return report

    # -- Suggestions ---------------------------------------------------------

    def propose_suggestions(
        self,
        source_model: str,
        records: Iterable[RelationshipRecord],
    ) -> List[Suggestion]:
        suggestions: List[Suggestion] = []
        for record in records:
            if not record.is_suggestion:
                continue
            suggestions.append(
                Suggestion(
                    source_model=source_model,
                    target_model=record.related_model,
                    method_name=record.method_name,
                    code=record.suggested_code or "",
                    record=record,
                )
            )
        return suggestions

    def commit(self, suggestion: Suggestion, target: ModelTarget) -> MergeReport:
        """Write one accepted suggestion into *target*."""
        report = MergeReport(target=target.model_name, path=target.file_path)
        source: Optional[str] = self._read(target, report)
        if source is None:
            return report

        rendered = [
            (
                suggestion.method_name,
                self.templates.render_relation_method(target.model_name, suggestion.record),
            )
        ]
        self._apply(target, source, rendered, report)
        return report

    # -- Internals -----------------------------------------------------------

    @staticmethod
    def _read(target: ModelTarget, report: MergeReport) -> Optional[str]:
        if not target.exists:
            report.error = TargetNotFound(target.model_name, target.file_path)
            logger.warning("%s", report.error)
            return None
        try:
            return read_file(target.file_path)
        except (OSError, UnicodeDecodeError) as exc:
            report.error = WriteFailure(target.file_path, f"cannot read: {exc}")
            logger.error("%s", report.error)
            return None

    @staticmethod
    def _apply(
        target: ModelTarget,
        source: str,
        rendered: List[Tuple[str, str]],
        report: MergeReport,
    ) -> None:
        accepted: List[str] = []
        chunks: List[str] = []
        for name, code in rendered:
            if declares_method(source, name):
                report.skipped.append(name)
                logger.warning(
                    "Relationship method '%s' already exists in %s model - skipping",
                    name,
                    target.model_name,
                )
                continue
            accepted.append(name)
            chunks.append(code)

        if not chunks:
            logger.info("No new relationships were added to %s model", target.model_name)
            return

        updated: Optional[str] = splice_before_closing_brace(source, "".join(chunks))
        if updated is None:
            report.error = WriteFailure(target.file_path, "no closing brace to insert before")
            logger.error("%s", report.error)
            return

        try:
            write_file(target.file_path, updated)
        except OSError as exc:
            report.error = WriteFailure(target.file_path, str(exc))
            logger.error("%s", report.error)
            return

        report.added.extend(accepted)
        report.written = True
        logger.info("Added %d relationships to %s model", len(accepted), target.model_name)


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "MergeReport",
    "Suggestion",
    "SourceMerger",
    "declares_method",
    "splice_before_closing_brace",
]

logger.debug("laragen.merger loaded — %d public symbols.", len(__all__))
