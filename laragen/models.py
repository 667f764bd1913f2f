# File: laragen/models.py
"""
Laragen - Core Data Models
============================
Pydantic V2 models representing the evidence, the relationship records and
the configuration that flow through the relationship-inference pipeline:

    Schema Reader / Migration Parser → ForeignKeyFact
        → Relationship Classifier → RelationshipRecord
        → Reciprocity Resolver / Source Merger → generated model files

There is no persisted relationship store: records live for a single command
invocation and the generated PHP source files *are* the persisted state.
"""

from __future__ import annotations

import logging
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from laragen.utils import table_to_model, to_camel_case, to_plural, to_singular

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("laragen.models")

# ---------------------------------------------------------------------------
# Enums — fixed sets used across the entire project
# ---------------------------------------------------------------------------


class RelationKind(str, Enum):
    """Eloquent association kinds.  Values double as CLI relation-token types."""

    BELONGS_TO = "belongsTo"
    HAS_ONE = "hasOne"
    HAS_MANY = "hasMany"
    BELONGS_TO_MANY = "belongsToMany"
    MORPH_TO = "morphTo"
    SUGGESTED_MORPH = "suggestedMorph"


# Kinds a user may request explicitly via ``--relations``.
TOKEN_KINDS: List[str] = [
    RelationKind.BELONGS_TO.value,
    RelationKind.HAS_MANY.value,
    RelationKind.HAS_ONE.value,
    RelationKind.BELONGS_TO_MANY.value,
]


class DatabaseDialect(str, Enum):
    """Database dialects the schema reader knows how to introspect."""

    MYSQL = "mysql"
    MARIADB = "mariadb"
    POSTGRESQL = "postgresql"
    SQLITE = "sqlite"


# ---------------------------------------------------------------------------
# Error taxonomy
# ---------------------------------------------------------------------------


class LaragenError(Exception):
    """Base class for every error the CLI maps to a non-zero exit code."""


class TargetNotFound(LaragenError):
    """A model class or its source file does not exist."""

    def __init__(self, model_name: str, path: Optional[Path] = None) -> None:
        self.model_name: str = model_name
        self.path: Optional[Path] = path
        where: str = f" at {path}" if path is not None else ""
        super().__init__(f"Model {model_name} not found{where}")


class SchemaUnavailable(LaragenError):
    """The live database could not be queried; callers fall back to migrations."""


class MalformedRelationToken(LaragenError):
    """A ``model:type`` relation token could not be parsed."""


class ConfigurationError(LaragenError):
    """A configuration or schema-snapshot file is missing or invalid."""


class WriteFailure(LaragenError):
    """Writing a generated file failed."""

    def __init__(self, path: Path, reason: str) -> None:
        self.path: Path = path
        self.reason: str = reason
        super().__init__(f"Could not write {path}: {reason}")


# ---------------------------------------------------------------------------
# Shared model configuration
# ---------------------------------------------------------------------------

_SHARED_CONFIG: ConfigDict = ConfigDict(
    strict=False,
    populate_by_name=True,
    validate_assignment=True,
    use_enum_values=True,
    frozen=False,
    extra="forbid",
)

_RECORD_CONFIG: ConfigDict = ConfigDict(
    strict=False,
    populate_by_name=True,
    use_enum_values=True,
    frozen=True,
    extra="forbid",
)


# ---------------------------------------------------------------------------
# Evidence
# ---------------------------------------------------------------------------


class ForeignKeyFact(BaseModel):
    """
    One raw foreign-key observation scoped to a single source table.

    Produced by the schema reader or the migration parser, consumed
    immediately by the classifier.
    """

    model_config = _RECORD_CONFIG

    column: str = Field(..., min_length=1, description="Referencing column.")
    referenced_table: str = Field(..., min_length=1, description="Target table.")
    referenced_column: str = Field(default="id", min_length=1, description="Target column.")
    unique: Optional[bool] = Field(
        default=None,
        description="Uniqueness of the referencing column when the evidence states it.",
    )

    def __repr__(self) -> str:
        return f"<FK {self.column} → {self.referenced_table}.{self.referenced_column}>"


# ---------------------------------------------------------------------------
# Relationship record
# ---------------------------------------------------------------------------


class RelationshipRecord(BaseModel):
    """
    One detected association edge, destined for a single model class.

    ``related_model`` and ``method_name`` are derived from table naming when
    not supplied explicitly.  ``pivot_table`` + ``related_table`` are used by
    belongsToMany; every other table-based kind uses ``foreign_table``.
    """

    model_config = _RECORD_CONFIG

    kind: RelationKind = Field(..., description="Association kind.")
    local_field: Optional[str] = Field(default=None, description="Key on the owning side.")
    foreign_field: Optional[str] = Field(default=None, description="Key on the other side.")
    foreign_table: Optional[str] = Field(default=None, description="Other table.")
    related_table: Optional[str] = Field(
        default=None, description="Other table of a many-to-many association."
    )
    related_model: str = Field(default="", description="Studly model name of the other side.")
    method_name: str = Field(default="", description="Accessor method to generate.")
    pivot_table: Optional[str] = Field(default=None, description="Pivot table (belongsToMany).")
    morph_name: Optional[str] = Field(default=None, description="Morph base name.")
    suggested_code: Optional[str] = Field(
        default=None, description="Proposed method body (suggestedMorph only)."
    )

    @model_validator(mode="before")
    @classmethod
    def _derive_names(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        values: Dict[str, Any] = dict(data)
        kind: RelationKind = RelationKind(values.get("kind"))
        table: Optional[str] = values.get("foreign_table") or values.get("related_table")

        if not values.get("related_model") and table:
            values["related_model"] = table_to_model(table)

        if not values.get("method_name"):
            if kind == RelationKind.MORPH_TO:
                values["method_name"] = values.get("morph_name") or ""
            elif table and kind in (RelationKind.BELONGS_TO, RelationKind.HAS_ONE):
                values["method_name"] = to_camel_case(to_singular(table))
            elif table and kind in (RelationKind.HAS_MANY, RelationKind.BELONGS_TO_MANY):
                values["method_name"] = to_camel_case(to_plural(table))
        return values

    @model_validator(mode="after")
    def _check_kind_invariants(self) -> "RelationshipRecord":
        kind: RelationKind = RelationKind(self.kind)
        if kind == RelationKind.BELONGS_TO_MANY:
            if not self.pivot_table or not self.related_table:
                raise ValueError("belongsToMany requires 'pivot_table' and 'related_table'.")
        elif kind in (RelationKind.MORPH_TO, RelationKind.SUGGESTED_MORPH):
            if not self.morph_name:
                raise ValueError(f"{kind.value} requires 'morph_name'.")
            if kind == RelationKind.SUGGESTED_MORPH and not self.suggested_code:
                raise ValueError("suggestedMorph requires 'suggested_code'.")
        elif not self.foreign_table:
            raise ValueError(f"{kind.value} requires 'foreign_table'.")

        if not self.method_name:
            raise ValueError(f"Could not derive a method name for {kind.value} record.")
        return self

    @property
    def is_suggestion(self) -> bool:
        return self.kind == RelationKind.SUGGESTED_MORPH

    def __repr__(self) -> str:
        return f"<Relationship {self.method_name}() {self.kind} → {self.related_model}>"


class ModelTarget(BaseModel):
    """A generated model class to mutate."""

    model_config = _SHARED_CONFIG

    model_name: str = Field(..., min_length=1)
    file_path: Path = Field(...)

    @property
    def exists(self) -> bool:
        return self.file_path.is_file()

    def __repr__(self) -> str:
        return f"<ModelTarget {self.model_name} @ {self.file_path}>"


# ---------------------------------------------------------------------------
# Offline schema snapshot
# ---------------------------------------------------------------------------


class TableSnapshot(BaseModel):
    """Foreign keys and single-column unique keys of one table."""

    model_config = _SHARED_CONFIG

    foreign_keys: List[ForeignKeyFact] = Field(default_factory=list)
    unique_columns: List[str] = Field(default_factory=list)


class SchemaSnapshot(BaseModel):
    """
    A frozen picture of a database schema.

    Lets relationship detection run without a live connection, e.g. from a
    YAML file checked into the project.
    """

    model_config = _SHARED_CONFIG

    tables: Dict[str, TableSnapshot] = Field(default_factory=dict)

    @field_validator("tables", mode="before")
    @classmethod
    def _allow_empty_tables(cls, v: Any) -> Any:
        if v is None:
            return {}
        if isinstance(v, dict):
            return {name: (spec or {}) for name, spec in v.items()}
        return v


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class ProjectPaths(BaseModel):
    """Locations of generated artefacts, relative to the project root."""

    model_config = _SHARED_CONFIG

    models: str = Field(default="app/Models")
    controllers: str = Field(default="app/Http/Controllers")
    requests: str = Field(default="app/Http/Requests")
    repositories: str = Field(default="app/Repositories")
    migrations: str = Field(default="database/migrations")
    routes: str = Field(default="routes")
    service_provider: str = Field(default="app/Providers/AppServiceProvider.php")


class LaragenConfig(BaseModel):
    """
    Command defaults.  Explicit CLI flags always override these values.
    """

    model_config = _SHARED_CONFIG

    generate_repository: bool = Field(
        default=True, description="Generate a repository + interface per CRUD."
    )
    api_controller: bool = Field(
        default=False, description="Generate JSON API controllers."
    )
    add_routes: bool = Field(
        default=False, description="Append a Route::resource line."
    )
    detect_relationships: bool = Field(
        default=True, description="Infer relationships while generating CRUD."
    )
    project_root: Path = Field(default=Path("."), description="Laravel project root.")
    database_url: Optional[str] = Field(
        default=None, description="SQLAlchemy URL of the application database."
    )
    schema_file: Optional[Path] = Field(
        default=None, description="Offline schema snapshot (YAML/JSON)."
    )
    paths: ProjectPaths = Field(default_factory=ProjectPaths)


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "RelationKind",
    "TOKEN_KINDS",
    "DatabaseDialect",
    "LaragenError",
    "TargetNotFound",
    "SchemaUnavailable",
    "MalformedRelationToken",
    "WriteFailure",
    "ConfigurationError",
    "ForeignKeyFact",
    "RelationshipRecord",
    "ModelTarget",
    "TableSnapshot",
    "SchemaSnapshot",
    "ProjectPaths",
    "LaragenConfig",
]

logger.debug("laragen.models loaded — %d public symbols.", len(__all__))
