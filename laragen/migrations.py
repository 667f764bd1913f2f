# File: laragen/migrations.py
"""
Laragen - Migration Parser
============================
Text-pattern extraction over Laravel migration files, used when the live
database cannot answer (no connection, or the table was never migrated).

Recognised foreign-key idioms, after PHP comments are stripped:

1. ``$table->foreignId('user_id')->constrained('users')`` (also
   ``foreignUuid`` / ``foreignUlid``, with any modifiers in the chain and an
   optional second ``constrained`` argument naming the referenced column);
2. ``$table->foreign('user_id')->references('id')->on('users')``, chained
   calls possibly spread over several lines;
3. ``$table->foreignIdFor(User::class)->constrained()``, whose column is
   ``user_id`` unless a second argument names it and whose target is the
   model's table;
4. idiom 1 without an explicit table, in which case the target is derived
   by stripping ``_id`` and pluralising.  Pluralisation is the only guess
   made here, so irregular nouns produce wrong targets.

Polymorphic columns are recognised through the ``*morphs('name')`` family.
Everything is regex based and intentionally forgiving: it reads source that
Laravel developers wrote by hand, not a grammar.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import List, Optional, Set, Tuple

from laragen.models import ForeignKeyFact
from laragen.utils import model_to_table, read_file, to_plural, to_snake_case

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("laragen.migrations")

# ---------------------------------------------------------------------------
# Pre-compiled patterns
# ---------------------------------------------------------------------------

# String literals are matched first so comment markers inside them survive.
_PHP_COMMENT_OR_STRING_RE: re.Pattern[str] = re.compile(
    r"'(?:\\.|[^'\\])*'"
    r'|"(?:\\.|[^"\\])*"'
    r"|//[^\n]*"
    r"|#(?!\[)[^\n]*"
    r"|/\*.*?\*/",
    re.DOTALL,
)

_FOREIGN_ID_RE: re.Pattern[str] = re.compile(
    r"\$\w+\s*->\s*(?:foreignId|foreignUuid|foreignUlid)\s*\(\s*['\"](\w+)['\"][^)]*\)"
    r"([^;]*);"
)
# $table->foreignIdFor(User::class) or foreignIdFor(\App\Models\User::class, 'author_id')
_FOREIGN_ID_FOR_RE: re.Pattern[str] = re.compile(
    r"\$\w+\s*->\s*foreignIdFor\s*\(\s*\\?(?:\w+\\)*(\w+)::class"
    r"(?:\s*,\s*['\"](\w+)['\"])?\s*\)([^;]*);"
)
_FOREIGN_RE: re.Pattern[str] = re.compile(
    r"\$\w+\s*->\s*foreign\s*\(\s*['\"](\w+)['\"]\s*\)([^;]*);"
)
_CONSTRAINED_RE: re.Pattern[str] = re.compile(
    r"->\s*constrained\s*\(\s*(?:['\"](\w+)['\"](?:\s*,\s*['\"](\w+)['\"])?)?"
)
_REFERENCES_RE: re.Pattern[str] = re.compile(r"->\s*references\s*\(\s*['\"](\w+)['\"]")
_ON_RE: re.Pattern[str] = re.compile(r"->\s*on\s*\(\s*['\"](\w+)['\"]")
_UNIQUE_CHAIN_RE: re.Pattern[str] = re.compile(r"->\s*unique\s*\(")

MORPH_METHODS: Tuple[str, ...] = (
    "morphs",
    "nullableMorphs",
    "uuidMorphs",
    "ulidMorphs",
    "nullableUuidMorphs",
    "nullableUlidMorphs",
)
_MORPHS_RE: re.Pattern[str] = re.compile(
    r"\$\w+\s*->\s*(" + "|".join(MORPH_METHODS) + r")\s*\(\s*['\"](\w+)['\"]"
)

_COLUMN_CALL_RE: re.Pattern[str] = re.compile(
    r"\$(?!this\b)\w+\s*->\s*([a-zA-Z]+)\s*\(\s*['\"](\w+)['\"]"
)
_CREATE_FILE_RE: re.Pattern[str] = re.compile(r"create_([a-z0-9_]+)_table")

# protected $fillable = ['name', 'email'];
_FILLABLE_RE: re.Pattern[str] = re.compile(
    r"protected\s+\$fillable\s*=\s*\[([^\]]*)\]", re.DOTALL
)
# protected $table = 'users';
_TABLE_NAME_RE: re.Pattern[str] = re.compile(
    r"protected\s+\$table\s*=\s*['\"](\w+)['\"]"
)
_ARRAY_ITEM_RE: re.Pattern[str] = re.compile(r"['\"](\w+)['\"]")

# Columns never offered for mass assignment
_NON_FILLABLE_COLUMNS: Set[str] = {"id", "created_at", "updated_at", "deleted_at"}

# Blueprint calls that take a column name but do not declare a column
_NON_COLUMN_METHODS: Set[str] = {
    "foreign",
    "index",
    "unique",
    "primary",
    "fullText",
    "spatialIndex",
    "rawIndex",
    "dropColumn",
    "dropForeign",
    "dropIndex",
    "dropUnique",
    "dropPrimary",
    "renameColumn",
    "comment",
}


# ---------------------------------------------------------------------------
# Source helpers
# ---------------------------------------------------------------------------


def strip_php_comments(source: str) -> str:
    """Blank out PHP comments, keeping string literals and line numbers intact."""

    def _replace(match: re.Match[str]) -> str:
        token: str = match.group(0)
        if token[0] in ("'", '"'):
            return token
        return re.sub(r"[^\n]", " ", token)

    return _PHP_COMMENT_OR_STRING_RE.sub(_replace, source)


def parse_fillable(model_source: str) -> List[str]:
    """Entries of ``protected $fillable = [...]`` in a model file."""
    match = _FILLABLE_RE.search(strip_php_comments(model_source))
    if not match:
        return []
    return _ARRAY_ITEM_RE.findall(match.group(1))


def parse_table_override(model_source: str) -> Optional[str]:
    """Value of ``protected $table = '...'`` if the model declares one."""
    match = _TABLE_NAME_RE.search(strip_php_comments(model_source))
    return match.group(1) if match else None


def implicit_target(column: str) -> str:
    """``author_id`` → ``authors``: the convention-based target of a column."""
    base: str = column[:-3] if column.endswith("_id") else column
    return to_plural(base)


def _constrained_key(
    column: str,
    chain: str,
    default_table: str,
) -> Optional[Tuple[ForeignKeyFact, bool]]:
    """
    Foreign key declared by a ``foreignId``-style column and its method chain.

    ``->on('x')`` and ``constrained('x')`` name the target explicitly; a bare
    ``constrained()`` falls back to *default_table*.  Without either the
    column carries no constraint and ``None`` is returned.
    """
    unique: Optional[bool] = True if _UNIQUE_CHAIN_RE.search(chain) else None
    on = _ON_RE.search(chain)
    if on:
        references = _REFERENCES_RE.search(chain)
        fact = ForeignKeyFact(
            column=column,
            referenced_table=on.group(1),
            referenced_column=references.group(1) if references else "id",
            unique=unique,
        )
        return fact, True

    constrained = _CONSTRAINED_RE.search(chain)
    if constrained:
        fact = ForeignKeyFact(
            column=column,
            referenced_table=constrained.group(1) or default_table,
            referenced_column=constrained.group(2) or "id",
            unique=unique,
        )
        return fact, constrained.group(1) is not None

    logger.debug("Column '%s' declared without a constraint, ignored", column)
    return None


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


class MigrationParser:
    """
    Reads ``create_<table>_table`` migrations from one directory.

    All operations are read-only and tolerate a missing directory by
    returning empty results.
    """

    def __init__(self, migrations_dir: Path) -> None:
        self.migrations_dir: Path = Path(migrations_dir)

    def migration_files(self) -> List[Path]:
        if not self.migrations_dir.is_dir():
            return []
        return sorted(p for p in self.migrations_dir.iterdir() if p.suffix == ".php")

    def find_migration_file(self, table: str) -> Optional[Path]:
        """First migration (by file name) creating *table*, or ``None``."""
        needle: str = f"create_{table}_table"
        for path in self.migration_files():
            if needle in path.name:
                return path
        logger.debug("No migration found for table '%s'", table)
        return None

    def read_source(self, path: Path) -> Optional[str]:
        """Text of one migration, or ``None`` (logged) when it cannot be read."""
        try:
            return read_file(path)
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning("Skipping unreadable migration %s: %s", path.name, exc)
            return None

    # -- Foreign keys --------------------------------------------------------

    def _scan(self, source: str) -> List[Tuple[ForeignKeyFact, bool]]:
        """Every foreign key in *source* with a flag telling if its target was explicit."""
        text: str = strip_php_comments(source)
        found: List[Tuple[ForeignKeyFact, bool]] = []

        for match in _FOREIGN_ID_RE.finditer(text):
            column, chain = match.group(1), match.group(2)
            scanned = _constrained_key(column, chain, implicit_target(column))
            if scanned is not None:
                found.append(scanned)

        for match in _FOREIGN_ID_FOR_RE.finditer(text):
            model, column, chain = match.group(1), match.group(2), match.group(3)
            column = column or f"{to_snake_case(model)}_id"
            scanned = _constrained_key(column, chain, model_to_table(model))
            if scanned is not None:
                found.append(scanned)

        for match in _FOREIGN_RE.finditer(text):
            column, chain = match.group(1), match.group(2)
            references = _REFERENCES_RE.search(chain)
            on = _ON_RE.search(chain)
            if not references or not on:
                logger.debug("Incomplete foreign() chain for '%s', ignored", column)
                continue
            fact = ForeignKeyFact(
                column=column,
                referenced_table=on.group(1),
                referenced_column=references.group(1),
                unique=True if _UNIQUE_CHAIN_RE.search(chain) else None,
            )
            found.append((fact, True))

        return found

    def parse_create_table(self, source: str) -> List[ForeignKeyFact]:
        """Foreign keys declared in one migration's source text."""
        facts: List[ForeignKeyFact] = []
        seen: Set[str] = set()
        for fact, _explicit in self._scan(source):
            if fact.column in seen:
                continue
            seen.add(fact.column)
            facts.append(fact)
        return facts

    def parse_morph_columns(self, source: str) -> List[str]:
        """Base names of polymorphic columns, in declaration order."""
        names: List[str] = []
        for _method, name in _MORPHS_RE.findall(strip_php_comments(source)):
            if name not in names:
                names.append(name)
        return names

    def reverse_scan(
        self,
        table: str,
        exclude: Optional[Path] = None,
    ) -> List[Tuple[str, ForeignKeyFact]]:
        """
        Foreign keys in *other* create migrations that point at *table*.

        A file is searched for explicit references only when it mentions the
        quoted table name somewhere, so unrelated identifiers containing the
        name may still produce false positives.  Convention-based keys whose
        derived target equals *table* are collected from every file.
        """
        quoted: Tuple[str, str] = (f"'{table}'", f'"{table}"')
        incoming: List[Tuple[str, ForeignKeyFact]] = []

        for path in self.migration_files():
            if exclude is not None and path == exclude:
                continue
            name_match = _CREATE_FILE_RE.search(path.name)
            if not name_match:
                continue
            other_table: str = name_match.group(1)
            if other_table == table:
                continue

            source: Optional[str] = self.read_source(path)
            if source is None:
                continue
            mentions: bool = any(q in source for q in quoted)
            for fact, explicit in self._scan(source):
                if fact.referenced_table != table:
                    continue
                if explicit and not mentions:
                    continue
                incoming.append((other_table, fact))
                logger.debug("Reverse scan: %s.%s → %s", other_table, fact.column, table)

        return incoming

    # -- Fields --------------------------------------------------------------

    def infer_fields(self, table: str) -> List[str]:
        """
        Fillable-field guess from the create migration of *table*.

        Skips the primary key, timestamps and soft-delete columns as well as
        index and constraint helpers.  Morph columns expand to their
        ``_id`` / ``_type`` pair.
        """
        path: Optional[Path] = self.find_migration_file(table)
        if path is None:
            return []

        source: Optional[str] = self.read_source(path)
        if source is None:
            return []
        text: str = strip_php_comments(source)
        fields: List[str] = []
        for method, name in _COLUMN_CALL_RE.findall(text):
            if method in _NON_COLUMN_METHODS:
                continue
            if method in MORPH_METHODS:
                candidates: List[str] = [f"{name}_id", f"{name}_type"]
            else:
                candidates = [name]
            for column in candidates:
                if column in _NON_FILLABLE_COLUMNS or column in fields:
                    continue
                fields.append(column)

        logger.debug("Inferred %d fields for '%s' from %s", len(fields), table, path.name)
        return fields

    def __repr__(self) -> str:
        return f"<MigrationParser {self.migrations_dir}>"


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "MORPH_METHODS",
    "MigrationParser",
    "implicit_target",
    "parse_fillable",
    "parse_table_override",
    "strip_php_comments",
]

logger.debug("laragen.migrations loaded — %d public symbols.", len(__all__))
