"""
tests/test_validators.py
Unit tests for laragen.validators module.

Tests cover:
- Relation token parsing (well-formed, malformed and unknown kinds)
- Pivot table naming
- Model name validation
- Configuration sanity checks
- ValidationResult accumulation
"""

from __future__ import annotations

import pathlib

import pytest

from laragen.models import LaragenConfig, RelationKind
from laragen.validators import (
    ValidationResult,
    parse_relation_tokens,
    pivot_table_name,
    validate_config,
    validate_model_name,
)


# ===========================================================================
# Relation tokens
# ===========================================================================


class TestParseRelationTokens:
    """Tests for the ``model:type,model:type`` parser."""

    def test_belongs_to_token(self) -> None:
        records, result = parse_relation_tokens("user:belongsTo", "Post")
        assert result.is_valid
        assert len(result) == 0
        record = records[0]
        assert record.kind == RelationKind.BELONGS_TO
        assert record.related_model == "User"
        assert record.method_name == "user"
        assert record.local_field == "user_id"
        assert record.foreign_field == "id"

    def test_has_many_token_uses_current_model_key(self) -> None:
        records, _ = parse_relation_tokens("comment:hasMany", "Post")
        assert records[0].method_name == "comments"
        assert records[0].foreign_field == "post_id"
        assert records[0].local_field == "id"

    def test_has_one_token(self) -> None:
        records, _ = parse_relation_tokens("profile:hasOne", "User")
        assert records[0].kind == RelationKind.HAS_ONE
        assert records[0].method_name == "profile"

    def test_belongs_to_many_token_builds_pivot(self) -> None:
        records, _ = parse_relation_tokens("tag:belongsToMany", "Post")
        assert records[0].pivot_table == "post_tag"
        assert records[0].related_table == "tags"
        assert records[0].method_name == "tags"

    def test_several_tokens_with_whitespace(self) -> None:
        records, result = parse_relation_tokens(" user:belongsTo , tag:belongsToMany ", "Post")
        assert [r.method_name for r in records] == ["user", "tags"]
        assert result.is_valid

    def test_malformed_token_skipped(self) -> None:
        records, result = parse_relation_tokens("user,tag:belongsToMany", "Post")
        assert [r.method_name for r in records] == ["tags"]
        assert result.codes == ["malformed_relation_token"]
        assert result.is_valid

    def test_too_many_segments(self) -> None:
        records, result = parse_relation_tokens("user:belongsTo:extra", "Post")
        assert records == []
        assert result.codes == ["malformed_relation_token"]

    def test_unknown_kind_skipped(self) -> None:
        records, result = parse_relation_tokens("user:hasManyThrough,user:belongsTo", "Post")
        assert len(records) == 1
        assert result.codes == ["unknown_relation_type"]
        assert "Supported types" in result.warnings[0].message

    def test_morph_kinds_not_accepted_as_tokens(self) -> None:
        records, result = parse_relation_tokens("image:morphTo", "Post")
        assert records == []
        assert result.codes == ["unknown_relation_type"]

    @pytest.mark.parametrize("spec", [None, "", "   "])
    def test_empty_input(self, spec) -> None:
        records, result = parse_relation_tokens(spec, "Post")
        assert records == []
        assert len(result) == 0

    def test_pivot_table_name_sorted(self) -> None:
        assert pivot_table_name("Tag", "Post") == "post_tag"
        assert pivot_table_name("Role", "User") == "role_user"
        assert pivot_table_name("OrderItem", "Product") == "order_item_product"


# ===========================================================================
# Model names
# ===========================================================================


class TestValidateModelName:
    """StudlyCase, non-reserved class names."""

    @pytest.mark.parametrize("name", ["Post", "OrderItem", "V2Report"])
    def test_valid_names(self, name: str) -> None:
        assert validate_model_name(name).is_valid

    @pytest.mark.parametrize("name", ["post", "order_item", "Order-Item", "2Fast"])
    def test_invalid_names(self, name: str) -> None:
        result = validate_model_name(name)
        assert not result.is_valid
        assert "invalid_model_name" in result.codes

    def test_reserved_word(self) -> None:
        assert validate_model_name("Class").codes == ["reserved_model_name"]

    def test_empty(self) -> None:
        assert validate_model_name("").codes == ["empty_model_name"]


# ===========================================================================
# Configuration
# ===========================================================================


class TestValidateConfig:
    """Semantic configuration checks."""

    def test_valid_tree(self, laravel_tree) -> None:
        result = validate_config(laravel_tree.config())
        assert result.is_valid
        assert len(result) == 0

    def test_missing_root(self, tmp_path: pathlib.Path) -> None:
        result = validate_config(LaragenConfig(project_root=tmp_path / "absent"))
        assert result.codes == ["missing_project_root"]

    def test_missing_models_dir_is_a_warning(self, tmp_path: pathlib.Path) -> None:
        result = validate_config(LaragenConfig(project_root=tmp_path))
        assert result.is_valid
        assert result.codes == ["missing_models_dir"]

    def test_schema_source_conflict(self, laravel_tree) -> None:
        config = laravel_tree.config(
            schema_file=pathlib.Path("schema.yaml"), database_url="sqlite:///db.sqlite"
        )
        result = validate_config(config)
        assert result.is_valid
        assert result.codes == ["schema_source_conflict"]

    def test_invalid_database_url(self, laravel_tree) -> None:
        result = validate_config(laravel_tree.config(database_url="localhost/db"))
        assert not result.is_valid
        assert result.codes == ["invalid_database_url"]


# ===========================================================================
# ValidationResult
# ===========================================================================


class TestValidationResult:
    """Accumulation semantics."""

    def test_truthiness_follows_errors(self) -> None:
        result = ValidationResult()
        assert result
        result.add_warning("w", "warning only")
        assert result
        result.add_error("e", "an error")
        assert not result

    def test_merge_and_summary(self) -> None:
        first = ValidationResult()
        first.add_error("a", "first")
        second = ValidationResult()
        second.add_warning("b", "second")
        first.merge(second)
        assert first.codes == ["a", "b"]
        assert first.summary() == "Validation: 1 error(s), 1 warning(s)."
        assert "[ERROR] a: first" == str(first.errors[0])
