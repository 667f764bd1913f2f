# File: laragen/validators.py
"""
Laragen - Input Validators
============================
Validation of everything a user types: the ``--relations`` token string,
model names, and configuration values.

Validators never raise for bad input.  They accumulate
:class:`ValidationError` items in a :class:`ValidationResult` and let the
caller decide; a malformed relation token, for instance, is a warning that
drops that token only.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from pydantic import ValidationError as PydanticValidationError

from laragen.models import TOKEN_KINDS, LaragenConfig, RelationKind, RelationshipRecord
from laragen.utils import to_pascal_case, to_plural, to_singular, to_snake_case

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("laragen.validators")

# ---------------------------------------------------------------------------
# Validation result container
# ---------------------------------------------------------------------------


class ValidationError:
    """Lightweight error descriptor (no Pydantic overhead)."""

    __slots__ = ("level", "code", "message", "context")

    def __init__(
        self,
        level: str,
        code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.level: str = level  # "error" | "warning" | "info"
        self.code: str = code
        self.message: str = message
        self.context: Dict[str, Any] = context or {}

    @property
    def is_error(self) -> bool:
        return self.level == "error"

    @property
    def is_warning(self) -> bool:
        return self.level == "warning"

    def __repr__(self) -> str:
        return f"[{self.level.upper()}] {self.code}: {self.message}"

    def __str__(self) -> str:
        return self.__repr__()


class ValidationResult:
    """Accumulates ``ValidationError`` instances."""

    __slots__ = ("_items",)

    def __init__(self) -> None:
        self._items: List[ValidationError] = []

    # -- Mutation -----------------------------------------------------------

    def add_error(self, code: str, message: str, context: Optional[Dict[str, Any]] = None) -> None:
        self._items.append(ValidationError("error", code, message, context))

    def add_warning(self, code: str, message: str, context: Optional[Dict[str, Any]] = None) -> None:
        self._items.append(ValidationError("warning", code, message, context))

    def merge(self, other: "ValidationResult") -> None:
        self._items.extend(other._items)

    # -- Query --------------------------------------------------------------

    @property
    def errors(self) -> List[ValidationError]:
        return [e for e in self._items if e.is_error]

    @property
    def warnings(self) -> List[ValidationError]:
        return [e for e in self._items if e.is_warning]

    @property
    def codes(self) -> List[str]:
        return [e.code for e in self._items]

    @property
    def has_errors(self) -> bool:
        return any(e.is_error for e in self._items)

    @property
    def is_valid(self) -> bool:
        return not self.has_errors

    def summary(self) -> str:
        return (
            f"Validation: {len(self.errors)} error(s), "
            f"{len(self.warnings)} warning(s)."
        )

    def __repr__(self) -> str:
        return f"<ValidationResult {self.summary()}>"

    def __bool__(self) -> bool:
        """Truthy when there are NO errors (i.e. valid)."""
        return self.is_valid

    def __len__(self) -> int:
        return len(self._items)


# ---------------------------------------------------------------------------
# Regex patterns
# ---------------------------------------------------------------------------

_PHP_CLASS_RE: re.Pattern[str] = re.compile(r"^[A-Z][a-zA-Z0-9]*$")
_TOKEN_NAME_RE: re.Pattern[str] = re.compile(r"^[A-Za-z][A-Za-z0-9_]*$")

_PHP_RESERVED: frozenset = frozenset(
    {
        "abstract", "and", "array", "as", "break", "callable", "case", "catch",
        "class", "clone", "const", "continue", "declare", "default", "do",
        "echo", "else", "empty", "enum", "eval", "exit", "extends", "final",
        "finally", "fn", "for", "foreach", "function", "global", "goto", "if",
        "implements", "include", "instanceof", "insteadof", "interface",
        "isset", "list", "match", "namespace", "new", "or", "print", "private",
        "protected", "public", "readonly", "require", "return", "static",
        "switch", "throw", "trait", "try", "unset", "use", "var", "while",
        "xor", "yield",
    }
)


# ---------------------------------------------------------------------------
# Relation tokens
# ---------------------------------------------------------------------------


def pivot_table_name(first_model: str, second_model: str) -> str:
    """Conventional pivot name: singular snake names sorted and joined with ``_``."""
    names: List[str] = sorted(
        [to_snake_case(to_singular(first_model)), to_snake_case(to_singular(second_model))]
    )
    return "_".join(names)


def _record_for_token(current_model: str, related: str, kind: str) -> RelationshipRecord:
    related_model: str = to_pascal_case(related)
    table: str = to_snake_case(to_plural(related_model))

    if kind == RelationKind.BELONGS_TO.value:
        return RelationshipRecord(
            kind=kind,
            local_field=f"{to_snake_case(to_singular(related_model))}_id",
            foreign_field="id",
            foreign_table=table,
        )
    if kind in (RelationKind.HAS_MANY.value, RelationKind.HAS_ONE.value):
        return RelationshipRecord(
            kind=kind,
            local_field="id",
            foreign_field=f"{to_snake_case(to_singular(current_model))}_id",
            foreign_table=table,
        )
    return RelationshipRecord(
        kind=kind,
        pivot_table=pivot_table_name(current_model, related_model),
        related_table=table,
    )


def parse_relation_tokens(
    relations: Optional[str],
    current_model: str,
) -> Tuple[List[RelationshipRecord], ValidationResult]:
    """
    Parse ``"model:type,model:type"`` into relationship records.

    Each bad token yields a warning and is skipped; the remaining tokens are
    still parsed.  An empty or missing *relations* yields no records and no
    warnings.

    >>> records, _ = parse_relation_tokens("user:belongsTo", "Post")
    >>> records[0].method_name, records[0].local_field
    ('user', 'user_id')
    """
    result = ValidationResult()
    records: List[RelationshipRecord] = []
    if relations is None or not relations.strip():
        return records, result

    for raw in relations.split(","):
        token: str = raw.strip()
        parts: List[str] = token.split(":")
        if len(parts) != 2 or not _TOKEN_NAME_RE.match(parts[0].strip()):
            result.add_warning(
                "malformed_relation_token",
                f"Invalid relationship format: '{token}'. Expected format: model:type",
                {"token": token},
            )
            logger.warning("Invalid relationship format: %s. Expected format: model:type", token)
            continue

        related: str = parts[0].strip()
        kind: str = parts[1].strip()
        if kind not in TOKEN_KINDS:
            result.add_warning(
                "unknown_relation_type",
                f"Invalid relationship type: '{kind}'. Supported types: {', '.join(TOKEN_KINDS)}",
                {"token": token},
            )
            logger.warning(
                "Invalid relationship type: %s. Supported types: %s",
                kind,
                ", ".join(TOKEN_KINDS),
            )
            continue

        try:
            records.append(_record_for_token(current_model, related, kind))
        except PydanticValidationError as exc:
            result.add_warning("malformed_relation_token", str(exc), {"token": token})
            logger.warning("Could not build relationship from '%s': %s", token, exc)

    return records, result


# ---------------------------------------------------------------------------
# Names & configuration
# ---------------------------------------------------------------------------


def validate_model_name(name: str) -> ValidationResult:
    """A model name must be a StudlyCase PHP class name that is not a keyword."""
    result = ValidationResult()
    if not name:
        result.add_error("empty_model_name", "Model name must not be empty.")
        return result
    if not _PHP_CLASS_RE.match(name):
        result.add_error(
            "invalid_model_name",
            f"Model name '{name}' must be StudlyCase (letters and digits, leading capital).",
            {"name": name},
        )
    if name.lower() in _PHP_RESERVED:
        result.add_error(
            "reserved_model_name",
            f"Model name '{name}' is a reserved PHP word.",
            {"name": name},
        )
    return result


def validate_config(config: LaragenConfig) -> ValidationResult:
    """Semantic checks pydantic cannot express on its own."""
    result = ValidationResult()
    root: Path = Path(config.project_root)

    if not root.is_dir():
        result.add_error(
            "missing_project_root",
            f"Project root '{root}' does not exist or is not a directory.",
            {"project_root": str(root)},
        )
        return result

    if not (root / config.paths.models).is_dir():
        result.add_warning(
            "missing_models_dir",
            f"Models directory '{config.paths.models}' not found under {root}.",
        )
    if config.schema_file is not None and config.database_url:
        result.add_warning(
            "schema_source_conflict",
            "Both a schema file and a database URL are configured; the schema file wins.",
        )
    if config.database_url and "://" not in config.database_url:
        result.add_error(
            "invalid_database_url",
            f"Database URL '{config.database_url}' is not a SQLAlchemy URL.",
        )
    return result


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "ValidationError",
    "ValidationResult",
    "parse_relation_tokens",
    "pivot_table_name",
    "validate_config",
    "validate_model_name",
]

logger.debug("laragen.validators loaded — %d public symbols.", len(__all__))
