# File: laragen/__init__.py
"""
Laragen — Laravel CRUD Scaffolding & Relationship Inference
=============================================================

Generates the CRUD slice of a Laravel model (model, form requests,
repository, controller, route) and keeps Eloquent relation methods in sync
with the database schema, in both directions.

Architecture overview::

    ┌──────────────┐     ┌────────────────────┐     ┌──────────────────┐
    │  CLI / Entry │────▶│ CrudGenerator /    │────▶│ TemplateGenerator│
    │   (cli.py)   │     │ RelationSynchronizer│    │  (templates.py)  │
    └──────────────┘     └─────────┬──────────┘     └──────────────────┘
                                   │
          ┌──────────────┬─────────┼──────────────┬──────────────┐
          ▼              ▼         ▼              ▼              ▼
    ┌────────────┐ ┌──────────┐ ┌──────────┐ ┌────────────┐ ┌───────────┐
    │schema_reader│ │migrations│ │classifier│ │reciprocity │ │  merger   │
    └────────────┘ └──────────┘ └──────────┘ └────────────┘ └───────────┘

Usage::

    # As a library
    from laragen import RelationSynchronizer, resolve_config
    config = resolve_config(Path("/srv/app"), overrides={"database_url": url})
    print(RelationSynchronizer(config).sync_all().summary())

    # From the command line
    laragen generate-crud Post --api --routes --relations="user:belongsTo"

Public API:
    - CrudGenerator          — generate-crud orchestrator
    - RelationSynchronizer   — sync-model-relations orchestrator
    - add_model_relations    — add-model-relation operation
    - RelationshipClassifier — foreign keys → relationship records
    - SourceMerger           — idempotent relation-method insertion
"""

from __future__ import annotations

__version__: str = "1.0.0"
__author__: str = "Laragen Team"
__license__: str = "MIT"

from laragen.models import (
    ConfigurationError,
    DatabaseDialect,
    ForeignKeyFact,
    LaragenConfig,
    LaragenError,
    MalformedRelationToken,
    ModelTarget,
    ProjectPaths,
    RelationKind,
    RelationshipRecord,
    SchemaSnapshot,
    SchemaUnavailable,
    TargetNotFound,
    WriteFailure,
)
from laragen.validators import ValidationResult, parse_relation_tokens
from laragen.utils import (
    Timer,
    to_camel_case,
    to_pascal_case,
    to_plural,
    to_singular,
    to_snake_case,
)
from laragen.schema_reader import (
    DatabaseSchemaReader,
    SchemaReader,
    SnapshotSchemaReader,
    build_schema_reader,
)
from laragen.migrations import MigrationParser
from laragen.classifier import Detection, RelationshipClassifier
from laragen.reciprocity import ReciprocityResolver, reverse_of
from laragen.templates import TemplateGenerator
from laragen.merger import MergeReport, SourceMerger, Suggestion
from laragen.exporters import ProjectExporter
from laragen.generator import (
    CrudGenerator,
    GenerationReport,
    add_model_relations,
    load_config_file,
    resolve_config,
)
from laragen.sync import RelationSynchronizer, SyncReport

# ---------------------------------------------------------------------------
# Public API surface
# ---------------------------------------------------------------------------

__all__: list[str] = [
    # Version info
    "__version__",
    "__author__",
    "__license__",
    # Orchestrators
    "CrudGenerator",
    "GenerationReport",
    "RelationSynchronizer",
    "SyncReport",
    "add_model_relations",
    "load_config_file",
    "resolve_config",
    # Models
    "ConfigurationError",
    "DatabaseDialect",
    "ForeignKeyFact",
    "LaragenConfig",
    "LaragenError",
    "MalformedRelationToken",
    "ModelTarget",
    "ProjectPaths",
    "RelationKind",
    "RelationshipRecord",
    "SchemaSnapshot",
    "SchemaUnavailable",
    "TargetNotFound",
    "WriteFailure",
    # Evidence
    "SchemaReader",
    "DatabaseSchemaReader",
    "SnapshotSchemaReader",
    "build_schema_reader",
    "MigrationParser",
    # Inference
    "Detection",
    "RelationshipClassifier",
    "ReciprocityResolver",
    "reverse_of",
    # Output
    "TemplateGenerator",
    "MergeReport",
    "SourceMerger",
    "Suggestion",
    "ProjectExporter",
    # Validation
    "ValidationResult",
    "parse_relation_tokens",
    # Utilities
    "Timer",
    "to_snake_case",
    "to_pascal_case",
    "to_camel_case",
    "to_plural",
    "to_singular",
]
