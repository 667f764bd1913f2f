"""
tests/test_merger.py
Tests for laragen.merger: idempotent splicing of relation methods into model
class files.
"""

from __future__ import annotations

import pathlib

from laragen.merger import SourceMerger, declares_method, splice_before_closing_brace
from laragen.models import ModelTarget, RelationshipRecord, TargetNotFound, WriteFailure


def _target(tree, name: str) -> ModelTarget:
    return ModelTarget(model_name=name, file_path=tree.model_path(name))


def _posts() -> RelationshipRecord:
    return RelationshipRecord(
        kind="hasMany", local_field="id", foreign_field="user_id", foreign_table="posts"
    )


def _profile() -> RelationshipRecord:
    return RelationshipRecord(
        kind="hasOne", local_field="id", foreign_field="user_id", foreign_table="profiles"
    )


def _images_suggestion() -> RelationshipRecord:
    return RelationshipRecord(
        kind="suggestedMorph",
        morph_name="imageable",
        related_model="Post",
        method_name="images",
        suggested_code=(
            "public function images()\n"
            "    {\n"
            "        return $this->morphMany(Image::class, 'imageable');\n"
            "    }"
        ),
    )


# ===========================================================================
# Text helpers
# ===========================================================================


class TestTextHelpers:
    """Anchor insertion and declaration checks."""

    def test_splice_keeps_trailing_whitespace(self) -> None:
        assert splice_before_closing_brace("class A {\n}\n\n", "X") == "class A {\nX\n}\n\n"

    def test_splice_without_brace(self) -> None:
        assert splice_before_closing_brace("<?php\n", "X") is None

    def test_declares_method(self) -> None:
        assert declares_method("public function posts()\n{}", "posts")
        assert not declares_method("public function postsCount()", "posts")


# ===========================================================================
# Merging
# ===========================================================================


class TestMerge:
    """Merging records into existing model files."""

    def test_adds_methods_before_closing_brace(self, laravel_tree, count_methods) -> None:
        laravel_tree.add_model("User", ["name"])
        report = SourceMerger().merge(_target(laravel_tree, "User"), [_posts(), _profile()])

        assert report.ok
        assert report.written
        assert report.added == ["posts", "profile"]
        source = laravel_tree.read_model("User")
        assert count_methods(source, "posts") == 1
        assert "return $this->hasMany(Post::class, 'user_id', 'id');" in source
        assert "return $this->hasOne(Profile::class, 'user_id', 'id');" in source
        assert source.rstrip().endswith("}")
        assert source.endswith("}\n")

    def test_second_merge_is_a_no_op(self, laravel_tree) -> None:
        laravel_tree.add_model("User", ["name"])
        merger = SourceMerger()
        target = _target(laravel_tree, "User")
        merger.merge(target, [_posts()])
        before = laravel_tree.read_model("User")

        report = merger.merge(target, [_posts()])
        assert report.added == []
        assert report.skipped == ["posts"]
        assert not report.written
        assert laravel_tree.read_model("User") == before

    def test_existing_declaration_in_comment_counts(self, laravel_tree) -> None:
        laravel_tree.add_model("User", extra="    // public function posts() is defined elsewhere")
        report = SourceMerger().merge(_target(laravel_tree, "User"), [_posts(), _profile()])
        assert report.skipped == ["posts"]
        assert report.added == ["profile"]

    def test_duplicates_within_batch_dropped(self, laravel_tree, count_methods) -> None:
        laravel_tree.add_model("User")
        report = SourceMerger().merge(_target(laravel_tree, "User"), [_posts(), _posts()])
        assert report.added == ["posts"]
        assert count_methods(laravel_tree.read_model("User"), "posts") == 1

    def test_suggestions_are_deferred(self, laravel_tree) -> None:
        laravel_tree.add_model("Post")
        before = laravel_tree.read_model("Post")
        report = SourceMerger().merge(_target(laravel_tree, "Post"), [_images_suggestion()])
        assert len(report.deferred) == 1
        assert not report.written
        assert laravel_tree.read_model("Post") == before

    def test_missing_target(self, laravel_tree) -> None:
        report = SourceMerger().merge(_target(laravel_tree, "Ghost"), [_posts()])
        assert not report.ok
        assert isinstance(report.error, TargetNotFound)
        assert not laravel_tree.model_path("Ghost").exists()

    def test_file_without_closing_brace(self, laravel_tree) -> None:
        path = laravel_tree.model_path("Broken")
        path.write_text("<?php\n", encoding="utf-8")
        report = SourceMerger().merge(_target(laravel_tree, "Broken"), [_posts()])
        assert isinstance(report.error, WriteFailure)
        assert path.read_text(encoding="utf-8") == "<?php\n"

    def test_undecodable_target(self, laravel_tree) -> None:
        path = laravel_tree.add_model("User")
        path.write_bytes(path.read_bytes().replace(b"<?php", b"<?php // caf\xe9", 1))
        original = path.read_bytes()
        report = SourceMerger().merge(_target(laravel_tree, "User"), [_posts()])
        assert isinstance(report.error, WriteFailure)
        assert not report.written
        assert path.read_bytes() == original

    def test_summary(self, laravel_tree) -> None:
        laravel_tree.add_model("User")
        report = SourceMerger().merge(_target(laravel_tree, "User"), [_posts()])
        assert report.summary() == "User: 1 added"


# ===========================================================================
# Suggestions
# ===========================================================================


class TestSuggestions:
    """Proposal and commit of polymorphic suggestions."""

    def test_propose_only_suggestions(self) -> None:
        suggestions = SourceMerger().propose_suggestions("Image", [_posts(), _images_suggestion()])
        assert len(suggestions) == 1
        assert suggestions[0].source_model == "Image"
        assert suggestions[0].target_model == "Post"
        assert suggestions[0].method_name == "images"

    def test_commit_writes_suggested_code(self, laravel_tree, count_methods) -> None:
        laravel_tree.add_model("Post")
        merger = SourceMerger()
        suggestion = merger.propose_suggestions("Image", [_images_suggestion()])[0]
        report = merger.commit(suggestion, _target(laravel_tree, "Post"))
        assert report.added == ["images"]
        source = laravel_tree.read_model("Post")
        assert "return $this->morphMany(Image::class, 'imageable');" in source
        assert count_methods(source, "images") == 1

        again = merger.commit(suggestion, _target(laravel_tree, "Post"))
        assert again.skipped == ["images"]

    def test_commit_to_missing_model(self, tmp_path: pathlib.Path) -> None:
        merger = SourceMerger()
        suggestion = merger.propose_suggestions("Image", [_images_suggestion()])[0]
        report = merger.commit(suggestion, ModelTarget(model_name="Post", file_path=tmp_path / "Post.php"))
        assert isinstance(report.error, TargetNotFound)
