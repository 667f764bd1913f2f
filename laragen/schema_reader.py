# File: laragen/schema_reader.py
"""
Laragen - Schema Reader
=========================
Reads foreign-key and uniqueness metadata from a relational database.

Two implementations share the :class:`SchemaReader` contract:

* :class:`DatabaseSchemaReader` talks to a live database through a SQLAlchemy
  engine and dispatches on ``engine.dialect.name`` to information-schema
  queries (MySQL / MariaDB, PostgreSQL) or ``PRAGMA`` statements (SQLite).
* :class:`SnapshotSchemaReader` answers the same questions from a
  :class:`~laragen.models.SchemaSnapshot`, typically loaded from a YAML file,
  so detection can run offline.

A reader never raises on connection or query failure.  It returns an empty
result, stores the condition in ``reader.unavailable`` and logs a warning; the
classifier then falls back to migration parsing.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Set, Tuple, Union

import yaml
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from laragen.models import (
    ConfigurationError,
    DatabaseDialect,
    ForeignKeyFact,
    LaragenConfig,
    SchemaSnapshot,
    SchemaUnavailable,
)

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("laragen.schema_reader")


# ---------------------------------------------------------------------------
# Contract
# ---------------------------------------------------------------------------


class SchemaReader:
    """
    Read-only view of a database schema.

    Subclasses implement :meth:`list_tables`, :meth:`foreign_keys_of` and
    :meth:`is_unique`; the remaining operations are derived from those.
    """

    def __init__(self) -> None:
        self.unavailable: Optional[SchemaUnavailable] = None

    @property
    def available(self) -> bool:
        return self.unavailable is None

    def list_tables(self) -> Set[str]:
        raise NotImplementedError

    def has_table(self, table: str) -> bool:
        return table in self.list_tables()

    def foreign_keys_of(self, table: str) -> List[ForeignKeyFact]:
        raise NotImplementedError

    def foreign_keys_referencing(self, table: str) -> List[Tuple[str, ForeignKeyFact]]:
        """Foreign keys of *other* tables pointing at *table*."""
        incoming: List[Tuple[str, ForeignKeyFact]] = []
        for source in sorted(self.list_tables()):
            if source == table:
                continue
            for fact in self.foreign_keys_of(source):
                if fact.referenced_table == table:
                    incoming.append((source, fact))
        return incoming

    def is_unique(self, table: str, column: str) -> bool:
        raise NotImplementedError

    def _mark_unavailable(self, reason: str) -> None:
        if self.unavailable is None:
            logger.warning("Schema unavailable: %s", reason)
        self.unavailable = SchemaUnavailable(reason)


# ---------------------------------------------------------------------------
# Dialect-specific SQL
# ---------------------------------------------------------------------------

_MYSQL_TABLES: str = """
    SELECT TABLE_NAME AS table_name
    FROM information_schema.TABLES
    WHERE TABLE_SCHEMA = DATABASE()
        AND TABLE_TYPE = 'BASE TABLE'
"""

_MYSQL_FOREIGN_KEYS: str = """
    SELECT
        COLUMN_NAME AS column_name,
        REFERENCED_TABLE_NAME AS referenced_table,
        REFERENCED_COLUMN_NAME AS referenced_column
    FROM information_schema.KEY_COLUMN_USAGE
    WHERE TABLE_SCHEMA = DATABASE()
        AND TABLE_NAME = :table
        AND REFERENCED_TABLE_NAME IS NOT NULL
    ORDER BY ORDINAL_POSITION
"""

_MYSQL_REFERENCING: str = """
    SELECT
        TABLE_NAME AS source_table,
        COLUMN_NAME AS column_name,
        REFERENCED_TABLE_NAME AS referenced_table,
        REFERENCED_COLUMN_NAME AS referenced_column
    FROM information_schema.KEY_COLUMN_USAGE
    WHERE TABLE_SCHEMA = DATABASE()
        AND REFERENCED_TABLE_NAME = :table
        AND TABLE_NAME <> :table
    ORDER BY TABLE_NAME, ORDINAL_POSITION
"""

_MYSQL_UNIQUE: str = """
    SELECT COUNT(*) AS hits
    FROM information_schema.TABLE_CONSTRAINTS tc
    JOIN information_schema.KEY_COLUMN_USAGE kcu
        ON tc.CONSTRAINT_NAME = kcu.CONSTRAINT_NAME
        AND tc.TABLE_SCHEMA = kcu.TABLE_SCHEMA
        AND tc.TABLE_NAME = kcu.TABLE_NAME
    WHERE tc.CONSTRAINT_TYPE IN ('UNIQUE', 'PRIMARY KEY')
        AND tc.TABLE_SCHEMA = DATABASE()
        AND tc.TABLE_NAME = :table
        AND kcu.COLUMN_NAME = :column
        AND (
            SELECT COUNT(*)
            FROM information_schema.KEY_COLUMN_USAGE k2
            WHERE k2.CONSTRAINT_NAME = tc.CONSTRAINT_NAME
                AND k2.TABLE_SCHEMA = tc.TABLE_SCHEMA
                AND k2.TABLE_NAME = tc.TABLE_NAME
        ) = 1
"""

_PG_TABLES: str = """
    SELECT table_name
    FROM information_schema.tables
    WHERE table_schema = current_schema()
        AND table_type = 'BASE TABLE'
"""

_PG_FOREIGN_KEYS: str = """
    SELECT
        kcu.column_name AS column_name,
        ccu.table_name AS referenced_table,
        ccu.column_name AS referenced_column
    FROM information_schema.table_constraints AS tc
    JOIN information_schema.key_column_usage AS kcu
        ON tc.constraint_name = kcu.constraint_name
        AND tc.table_schema = kcu.table_schema
    JOIN information_schema.constraint_column_usage AS ccu
        ON ccu.constraint_name = tc.constraint_name
        AND ccu.table_schema = tc.table_schema
    WHERE tc.constraint_type = 'FOREIGN KEY'
        AND tc.table_schema = current_schema()
        AND tc.table_name = :table
    ORDER BY kcu.ordinal_position
"""

_PG_REFERENCING: str = """
    SELECT
        tc.table_name AS source_table,
        kcu.column_name AS column_name,
        ccu.table_name AS referenced_table,
        ccu.column_name AS referenced_column
    FROM information_schema.table_constraints AS tc
    JOIN information_schema.key_column_usage AS kcu
        ON tc.constraint_name = kcu.constraint_name
        AND tc.table_schema = kcu.table_schema
    JOIN information_schema.constraint_column_usage AS ccu
        ON ccu.constraint_name = tc.constraint_name
        AND ccu.table_schema = tc.table_schema
    WHERE tc.constraint_type = 'FOREIGN KEY'
        AND tc.table_schema = current_schema()
        AND ccu.table_name = :table
        AND tc.table_name <> :table
    ORDER BY tc.table_name, kcu.ordinal_position
"""

_PG_UNIQUE: str = """
    SELECT COUNT(*) AS hits
    FROM information_schema.table_constraints AS tc
    JOIN information_schema.key_column_usage AS kcu
        ON tc.constraint_name = kcu.constraint_name
        AND tc.table_schema = kcu.table_schema
        AND tc.table_name = kcu.table_name
    WHERE tc.constraint_type IN ('UNIQUE', 'PRIMARY KEY')
        AND tc.table_schema = current_schema()
        AND tc.table_name = :table
        AND kcu.column_name = :column
        AND (
            SELECT COUNT(*)
            FROM information_schema.key_column_usage AS k2
            WHERE k2.constraint_name = tc.constraint_name
                AND k2.table_schema = tc.table_schema
                AND k2.table_name = tc.table_name
        ) = 1
"""

_SQLITE_TABLES: str = (
    "SELECT name FROM sqlite_master WHERE type = 'table' AND name NOT LIKE 'sqlite_%'"
)


def _quote_sqlite(identifier: str) -> str:
    """Quote an identifier for use inside a ``PRAGMA`` statement."""
    return '"' + identifier.replace('"', '""') + '"'


def _fact_from_row(row: Mapping[str, Any]) -> ForeignKeyFact:
    return ForeignKeyFact(
        column=row["column_name"],
        referenced_table=row["referenced_table"],
        referenced_column=row.get("referenced_column") or "id",
    )


# ---------------------------------------------------------------------------
# Live database reader
# ---------------------------------------------------------------------------


class DatabaseSchemaReader(SchemaReader):
    """
    Schema reader backed by a SQLAlchemy engine.

    The engine is created lazily from *url* on first use, so constructing a
    reader never touches the network.  Results are cached per reader; a new
    reader should be built for each command invocation.
    """

    def __init__(
        self,
        url: Optional[str] = None,
        engine: Optional[Engine] = None,
    ) -> None:
        super().__init__()
        if url is None and engine is None:
            raise ValueError("DatabaseSchemaReader needs either a URL or an engine.")
        self._url: Optional[str] = url
        self._engine: Optional[Engine] = engine
        self._tables: Optional[Set[str]] = None
        self._fk_cache: Dict[str, List[ForeignKeyFact]] = {}
        self._unique_cache: Dict[Tuple[str, str], bool] = {}

    # -- Engine & dialect ----------------------------------------------------

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            self._engine = create_engine(self._url)
            logger.debug("Created engine for dialect '%s'", self._engine.dialect.name)
        return self._engine

    @property
    def dialect(self) -> Optional[DatabaseDialect]:
        try:
            name: str = self.engine.dialect.name
        except (SQLAlchemyError, ImportError) as exc:
            self._mark_unavailable(f"cannot create engine: {exc}")
            return None
        if name in (DatabaseDialect.MYSQL.value, DatabaseDialect.MARIADB.value):
            return DatabaseDialect.MYSQL
        if name == DatabaseDialect.POSTGRESQL.value:
            return DatabaseDialect.POSTGRESQL
        if name == DatabaseDialect.SQLITE.value:
            return DatabaseDialect.SQLITE
        self._mark_unavailable(f"unsupported dialect '{name}'")
        return None

    def _fetch(self, sql: str, params: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        """Run one statement; any SQLAlchemy error yields an empty result."""
        try:
            with self.engine.connect() as conn:
                result = conn.execute(text(sql), params or {})
                return [dict(row) for row in result.mappings().all()]
        except SQLAlchemyError as exc:
            self._mark_unavailable(str(exc).splitlines()[0])
            return []

    # -- Contract ------------------------------------------------------------

    def list_tables(self) -> Set[str]:
        if self._tables is not None:
            return self._tables

        dialect: Optional[DatabaseDialect] = self.dialect
        rows: List[Dict[str, Any]]
        if dialect == DatabaseDialect.MYSQL:
            rows = self._fetch(_MYSQL_TABLES)
            tables = {r["table_name"] for r in rows}
        elif dialect == DatabaseDialect.POSTGRESQL:
            rows = self._fetch(_PG_TABLES)
            tables = {r["table_name"] for r in rows}
        elif dialect == DatabaseDialect.SQLITE:
            rows = self._fetch(_SQLITE_TABLES)
            tables = {r["name"] for r in rows}
        else:
            return set()

        if self.available:
            self._tables = tables
            logger.debug("Database lists %d tables", len(tables))
        return tables

    def foreign_keys_of(self, table: str) -> List[ForeignKeyFact]:
        if table in self._fk_cache:
            return self._fk_cache[table]

        dialect: Optional[DatabaseDialect] = self.dialect
        facts: List[ForeignKeyFact] = []
        if dialect == DatabaseDialect.MYSQL:
            facts = [_fact_from_row(r) for r in self._fetch(_MYSQL_FOREIGN_KEYS, {"table": table})]
        elif dialect == DatabaseDialect.POSTGRESQL:
            facts = [_fact_from_row(r) for r in self._fetch(_PG_FOREIGN_KEYS, {"table": table})]
        elif dialect == DatabaseDialect.SQLITE:
            rows = self._fetch(f"PRAGMA foreign_key_list({_quote_sqlite(table)})")
            facts = [
                ForeignKeyFact(
                    column=r["from"],
                    referenced_table=r["table"],
                    referenced_column=r.get("to") or "id",
                )
                for r in rows
            ]

        if self.available:
            self._fk_cache[table] = facts
        return facts

    def foreign_keys_referencing(self, table: str) -> List[Tuple[str, ForeignKeyFact]]:
        dialect: Optional[DatabaseDialect] = self.dialect
        if dialect == DatabaseDialect.MYSQL:
            rows = self._fetch(_MYSQL_REFERENCING, {"table": table})
        elif dialect == DatabaseDialect.POSTGRESQL:
            rows = self._fetch(_PG_REFERENCING, {"table": table})
        else:
            # SQLite has no catalogue of incoming keys; walk every table.
            return super().foreign_keys_referencing(table)
        return [(r["source_table"], _fact_from_row(r)) for r in rows]

    def is_unique(self, table: str, column: str) -> bool:
        key: Tuple[str, str] = (table, column)
        if key in self._unique_cache:
            return self._unique_cache[key]

        dialect: Optional[DatabaseDialect] = self.dialect
        unique: bool = False
        if dialect == DatabaseDialect.MYSQL:
            rows = self._fetch(_MYSQL_UNIQUE, {"table": table, "column": column})
            unique = bool(rows) and int(rows[0]["hits"]) > 0
        elif dialect == DatabaseDialect.POSTGRESQL:
            rows = self._fetch(_PG_UNIQUE, {"table": table, "column": column})
            unique = bool(rows) and int(rows[0]["hits"]) > 0
        elif dialect == DatabaseDialect.SQLITE:
            unique = self._sqlite_is_unique(table, column)

        self._unique_cache[key] = unique
        return unique

    def _sqlite_is_unique(self, table: str, column: str) -> bool:
        quoted: str = _quote_sqlite(table)

        pk_columns: List[str] = [
            r["name"] for r in self._fetch(f"PRAGMA table_info({quoted})") if r["pk"]
        ]
        if pk_columns == [column]:
            return True

        for index in self._fetch(f"PRAGMA index_list({quoted})"):
            if not index["unique"]:
                continue
            info = self._fetch(f"PRAGMA index_info({_quote_sqlite(index['name'])})")
            if [r["name"] for r in info] == [column]:
                return True
        return False

    def __repr__(self) -> str:
        target: str = self._url or repr(self._engine)
        return f"<DatabaseSchemaReader {target}>"


# ---------------------------------------------------------------------------
# Offline snapshot reader
# ---------------------------------------------------------------------------


class SnapshotSchemaReader(SchemaReader):
    """Schema reader over an in-memory :class:`SchemaSnapshot`."""

    def __init__(self, snapshot: SchemaSnapshot) -> None:
        super().__init__()
        self.snapshot: SchemaSnapshot = snapshot

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SnapshotSchemaReader":
        payload: Dict[str, Any] = data if "tables" in data else {"tables": data}
        return cls(SchemaSnapshot.model_validate(payload))

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "SnapshotSchemaReader":
        """
        Load a snapshot from a YAML (or JSON) file.

        Raises :class:`ConfigurationError` when the file cannot be read or does
        not describe a schema.
        """
        file_path: Path = Path(path)
        try:
            raw_text: str = file_path.read_text(encoding="utf-8")
            data: Any = yaml.safe_load(raw_text)
        except (OSError, yaml.YAMLError) as exc:
            raise ConfigurationError(f"Cannot read schema file {file_path}: {exc}") from exc

        if not isinstance(data, dict):
            raise ConfigurationError(
                f"Schema file {file_path} must contain a mapping, got {type(data).__name__}"
            )
        try:
            reader = cls.from_dict(data)
        except PydanticValidationError as exc:
            raise ConfigurationError(f"Invalid schema file {file_path}: {exc}") from exc

        logger.info(
            "Loaded schema snapshot from %s (%d tables)",
            file_path,
            len(reader.snapshot.tables),
        )
        return reader

    def list_tables(self) -> Set[str]:
        return set(self.snapshot.tables)

    def foreign_keys_of(self, table: str) -> List[ForeignKeyFact]:
        spec = self.snapshot.tables.get(table)
        return list(spec.foreign_keys) if spec is not None else []

    def is_unique(self, table: str, column: str) -> bool:
        spec = self.snapshot.tables.get(table)
        return spec is not None and column in spec.unique_columns

    def __repr__(self) -> str:
        return f"<SnapshotSchemaReader {len(self.snapshot.tables)} tables>"


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


def build_schema_reader(config: LaragenConfig) -> Optional[SchemaReader]:
    """
    Pick a reader for *config*: a schema file wins over a database URL.

    Returns ``None`` when neither is configured, in which case detection
    relies on migration files alone.
    """
    if config.schema_file is not None:
        schema_path: Path = Path(config.schema_file)
        if not schema_path.is_absolute():
            schema_path = Path(config.project_root) / schema_path
        return SnapshotSchemaReader.from_file(schema_path)
    if config.database_url:
        return DatabaseSchemaReader(url=config.database_url)
    logger.info("No database configured; relationship detection uses migrations only")
    return None


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "SchemaReader",
    "DatabaseSchemaReader",
    "SnapshotSchemaReader",
    "build_schema_reader",
]

logger.debug("laragen.schema_reader loaded — %d public symbols.", len(__all__))
