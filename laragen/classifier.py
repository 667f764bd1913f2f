# File: laragen/classifier.py
"""
Laragen - Relationship Classifier
===================================
Turns raw :class:`~laragen.models.ForeignKeyFact` evidence into typed
:class:`~laragen.models.RelationshipRecord` objects for one model.

Classification rules, in order:

1. every outgoing key (this table references another) → ``belongsTo``;
2. every incoming key (another table references this one) → ``hasOne`` when
   the referencing column is unique, otherwise ``hasMany``.  When uniqueness
   cannot be determined the result is ``hasMany``, logged at INFO;
3. a two-segment table such as ``post_tag``, one segment being the singular
   of this table, whose keys reference both this table and the plural of the
   other segment → ``belongsToMany`` through that pivot;
4. polymorphic columns (migration path only) → one ``morphTo`` per morph base
   plus one ``suggestedMorph`` per candidate model.

The live schema wins over migrations.  Migrations are parsed only when the
table is missing from the database or the schema yields no relationships.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Set, Tuple

from laragen.migrations import MigrationParser
from laragen.models import ForeignKeyFact, RelationKind, RelationshipRecord
from laragen.schema_reader import SchemaReader
from laragen.utils import to_camel_case, to_pascal_case, to_plural, to_singular

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("laragen.classifier")

SOURCE_SCHEMA: str = "schema"
SOURCE_MIGRATIONS: str = "migrations"
SOURCE_NONE: str = "none"


@dataclass
class Detection:
    """Relationships found for one model and where the evidence came from."""

    records: List[RelationshipRecord] = field(default_factory=list)
    source: str = SOURCE_NONE

    @property
    def direct(self) -> List[RelationshipRecord]:
        """Records to merge into the model's own class."""
        return [r for r in self.records if not r.is_suggestion]

    @property
    def suggestions(self) -> List[RelationshipRecord]:
        return [r for r in self.records if r.is_suggestion]

    def __bool__(self) -> bool:
        return bool(self.records)


def suggested_morph_code(model_name: str, morph_name: str) -> Tuple[str, str]:
    """Method name and body proposed for a model that owns *model_name* polymorphically."""
    method: str = to_camel_case(to_plural(model_name.lower()))
    code: str = (
        f"public function {method}()\n"
        f"    {{\n"
        f"        return $this->morphMany({model_name}::class, '{morph_name}');\n"
        f"    }}"
    )
    return method, code


class RelationshipClassifier:
    """
    Classifies foreign-key evidence for a table.

    Both collaborators are optional: without a reader only migrations are
    consulted; without a parser only the live schema is.
    """

    def __init__(
        self,
        reader: Optional[SchemaReader] = None,
        parser: Optional[MigrationParser] = None,
    ) -> None:
        self.reader: Optional[SchemaReader] = reader
        self.parser: Optional[MigrationParser] = parser

    # -- Steps 1-3 -----------------------------------------------------------

    def classify(
        self,
        table: str,
        facts: Iterable[ForeignKeyFact],
        reverse_facts: Iterable[Tuple[str, ForeignKeyFact]],
        all_tables: Iterable[str],
    ) -> List[RelationshipRecord]:
        records: List[RelationshipRecord] = []

        for fact in facts:
            record = RelationshipRecord(
                kind=RelationKind.BELONGS_TO,
                local_field=fact.column,
                foreign_field=fact.referenced_column,
                foreign_table=fact.referenced_table,
            )
            logger.info(
                "Found belongsTo relationship: %s belongs to %s via %s",
                table,
                record.related_model,
                fact.column,
            )
            records.append(record)

        for source_table, fact in reverse_facts:
            if source_table == table:
                continue
            kind: RelationKind = (
                RelationKind.HAS_ONE
                if self._is_unique(source_table, fact)
                else RelationKind.HAS_MANY
            )
            record = RelationshipRecord(
                kind=kind,
                local_field=fact.referenced_column,
                foreign_field=fact.column,
                foreign_table=source_table,
            )
            logger.info(
                "Found %s relationship: %s %s %s via %s",
                kind.value,
                table,
                kind.value,
                record.related_model,
                fact.column,
            )
            records.append(record)

        records.extend(self._detect_pivots(table, all_tables))
        return _unique_by_method(records)

    def _is_unique(self, source_table: str, fact: ForeignKeyFact) -> bool:
        if fact.unique is not None:
            return fact.unique
        reader = self.reader
        if reader is not None and reader.available and reader.has_table(source_table):
            return reader.is_unique(source_table, fact.column)
        logger.info(
            "Uniqueness of %s.%s unknown, assuming hasMany",
            source_table,
            fact.column,
        )
        return False

    def _detect_pivots(self, table: str, all_tables: Iterable[str]) -> List[RelationshipRecord]:
        if self.reader is None:
            return []

        singular: str = to_singular(table)
        records: List[RelationshipRecord] = []
        for candidate in sorted(all_tables):
            if candidate == table:
                continue
            parts: List[str] = candidate.split("_")
            if len(parts) != 2 or singular not in parts:
                continue

            other: str = parts[1] if parts[0] == singular else parts[0]
            other_table: str = to_plural(other)
            referenced: Set[str] = {
                f.referenced_table for f in self.reader.foreign_keys_of(candidate)
            }
            if table not in referenced or other_table not in referenced:
                continue

            record = RelationshipRecord(
                kind=RelationKind.BELONGS_TO_MANY,
                pivot_table=candidate,
                related_table=other_table,
                related_model=to_pascal_case(to_singular(other)),
                method_name=to_camel_case(to_plural(other)),
            )
            logger.info(
                "Found belongsToMany relationship: %s belongsToMany %s via %s",
                table,
                record.related_model,
                candidate,
            )
            records.append(record)
        return records

    # -- Step 4 --------------------------------------------------------------

    def classify_polymorphic(
        self,
        model_name: str,
        morph_names: Iterable[str],
        candidate_models: Sequence[str],
    ) -> List[RelationshipRecord]:
        records: List[RelationshipRecord] = []
        owner_alias: str = f"{model_name.lower()}able"

        for morph in morph_names:
            records.append(
                RelationshipRecord(
                    kind=RelationKind.MORPH_TO,
                    morph_name=morph,
                    method_name=morph,
                )
            )
            logger.info("Found polymorphic relationship: %s morphTo via %s", model_name, morph)

            method, code = suggested_morph_code(model_name, morph)
            for candidate in candidate_models:
                if candidate == model_name:
                    continue
                for alias in (owner_alias, morph):
                    logger.info(
                        "Checking if %s has a polymorphic relation '%s' to %s",
                        candidate,
                        alias,
                        model_name,
                    )
                records.append(
                    RelationshipRecord(
                        kind=RelationKind.SUGGESTED_MORPH,
                        morph_name=morph,
                        related_model=candidate,
                        method_name=method,
                        suggested_code=code,
                    )
                )
        return records

    # -- Detection with source tie-break -------------------------------------

    def detect(
        self,
        model_name: str,
        table_name: str,
        candidate_models: Sequence[str] = (),
    ) -> Detection:
        """
        Relationships of one model, live schema first, migrations second.

        *candidate_models* feeds the polymorphic suggestions and should only
        hold models whose class files exist.
        """
        reader = self.reader
        if reader is not None:
            if reader.has_table(table_name):
                records = self.detect_from_schema(table_name)
                if records:
                    return Detection(records=records, source=SOURCE_SCHEMA)
                logger.info(
                    "No database relationships found for %s, trying migration files",
                    model_name,
                )
            elif reader.available:
                logger.warning(
                    "Table '%s' not found in database, looking in migration files",
                    table_name,
                )

        if self.parser is not None:
            records = self.detect_from_migrations(model_name, table_name, candidate_models)
            if records:
                return Detection(records=records, source=SOURCE_MIGRATIONS)

        logger.info("No relationships found for %s", model_name)
        return Detection()

    def detect_from_schema(self, table: str) -> List[RelationshipRecord]:
        if self.reader is None:
            return []
        return self.classify(
            table,
            self.reader.foreign_keys_of(table),
            self.reader.foreign_keys_referencing(table),
            self.reader.list_tables(),
        )

    def detect_from_migrations(
        self,
        model_name: str,
        table: str,
        candidate_models: Sequence[str] = (),
    ) -> List[RelationshipRecord]:
        if self.parser is None:
            return []
        path: Optional[Path] = self.parser.find_migration_file(table)
        if path is None:
            logger.warning("Could not find migration file for %s table", table)
            return []

        source: Optional[str] = self.parser.read_source(path)
        if source is None:
            return []
        records: List[RelationshipRecord] = self.classify_polymorphic(
            model_name,
            self.parser.parse_morph_columns(source),
            candidate_models,
        )
        records.extend(
            self.classify(
                table,
                self.parser.parse_create_table(source),
                self.parser.reverse_scan(table, exclude=path),
                (),
            )
        )
        return records

    def __repr__(self) -> str:
        return f"<RelationshipClassifier reader={self.reader!r} parser={self.parser!r}>"


def _unique_by_method(records: List[RelationshipRecord]) -> List[RelationshipRecord]:
    """Drop records repeating an earlier method name; first seen wins."""
    seen: Set[str] = set()
    unique: List[RelationshipRecord] = []
    for record in records:
        if record.method_name in seen:
            logger.debug("Duplicate relation %s() dropped", record.method_name)
            continue
        seen.add(record.method_name)
        unique.append(record)
    return unique


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "Detection",
    "RelationshipClassifier",
    "suggested_morph_code",
    "SOURCE_SCHEMA",
    "SOURCE_MIGRATIONS",
    "SOURCE_NONE",
]

logger.debug("laragen.classifier loaded — %d public symbols.", len(__all__))
