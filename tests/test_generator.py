"""
tests/test_generator.py
Integration tests for laragen.generator — configuration loading, the full
generate-crud pipeline and add-model-relation.
"""

from __future__ import annotations

import json
import pathlib
from typing import List, Tuple

import pytest
import yaml

from laragen.generator import (
    CrudGenerator,
    GenerationReport,
    add_model_relations,
    find_config_file,
    load_config_file,
    resolve_config,
)
from laragen.models import ConfigurationError, MalformedRelationToken, TargetNotFound
from laragen.schema_reader import DatabaseSchemaReader


# ===========================================================================
# Configuration loading
# ===========================================================================


class TestConfigLoading:
    """laragen.yaml / laragen.json handling."""

    def test_sectioned_yaml_is_flattened(self, tmp_path: pathlib.Path) -> None:
        path = tmp_path / "laragen.yaml"
        path.write_text(
            yaml.safe_dump(
                {
                    "make_crud": {"generate_repository": False, "api_controller": True},
                    "model_relations": {"detect_relationships": False},
                    "database_url": "sqlite:///app.sqlite",
                }
            ),
            encoding="utf-8",
        )
        assert load_config_file(path) == {
            "generate_repository": False,
            "api_controller": True,
            "detect_relationships": False,
            "database_url": "sqlite:///app.sqlite",
        }

    def test_json_file(self, tmp_path: pathlib.Path) -> None:
        path = tmp_path / "laragen.json"
        path.write_text(json.dumps({"add_routes": True}), encoding="utf-8")
        assert load_config_file(path) == {"add_routes": True}

    def test_empty_file(self, tmp_path: pathlib.Path) -> None:
        path = tmp_path / "laragen.yaml"
        path.write_text("", encoding="utf-8")
        assert load_config_file(path) == {}

    @pytest.mark.parametrize(
        "name, content",
        [
            ("laragen.yaml", "- a\n- b\n"),
            ("laragen.yaml", "make_crud: [1, 2]\n"),
            ("laragen.yaml", "key: [unclosed\n"),
            ("laragen.json", "{not json"),
        ],
    )
    def test_invalid_files(self, tmp_path: pathlib.Path, name: str, content: str) -> None:
        path = tmp_path / name
        path.write_text(content, encoding="utf-8")
        with pytest.raises(ConfigurationError):
            load_config_file(path)

    def test_missing_file(self, tmp_path: pathlib.Path) -> None:
        with pytest.raises(ConfigurationError):
            load_config_file(tmp_path / "laragen.yaml")

    def test_find_config_file(self, tmp_path: pathlib.Path) -> None:
        assert find_config_file(tmp_path) is None
        (tmp_path / "laragen.json").write_text("{}", encoding="utf-8")
        assert find_config_file(tmp_path).name == "laragen.json"
        (tmp_path / "laragen.yaml").write_text("", encoding="utf-8")
        assert find_config_file(tmp_path).name == "laragen.yaml"

    def test_resolve_precedence(self, tmp_path: pathlib.Path) -> None:
        (tmp_path / "laragen.yaml").write_text(
            "make_crud:\n  api_controller: true\n  add_routes: true\n", encoding="utf-8"
        )
        config = resolve_config(tmp_path, overrides={"add_routes": False, "api_controller": None})
        assert config.api_controller is True
        assert config.add_routes is False
        assert config.project_root == tmp_path

    def test_explicit_config_path(self, tmp_path: pathlib.Path) -> None:
        other = tmp_path / "custom.yml"
        other.write_text("generate_repository: false\n", encoding="utf-8")
        config = resolve_config(tmp_path, config_path=other)
        assert config.generate_repository is False

    def test_unknown_option_rejected(self, tmp_path: pathlib.Path) -> None:
        (tmp_path / "laragen.yaml").write_text("generate_repositories: true\n", encoding="utf-8")
        with pytest.raises(ConfigurationError):
            resolve_config(tmp_path)


# ===========================================================================
# generate-crud
# ===========================================================================


def _generate(tree, reader=None, answers: List[Tuple[str, bool]] = None, **kwargs) -> GenerationReport:
    def confirm(question: str, default: bool) -> bool:
        if answers is not None:
            answers.append((question, default))
        return default

    return CrudGenerator(tree.config(), reader, confirm=confirm).generate(**kwargs)


class TestGenerateCrud:
    """End-to-end generate-crud runs against temporary Laravel trees."""

    def test_existing_model_with_schema(self, blog_tree, blog_db_url: str, count_methods) -> None:
        answers: List[Tuple[str, bool]] = []
        report = _generate(blog_tree, DatabaseSchemaReader(url=blog_db_url), answers, name="Post")

        assert report.success, report.summary()
        assert answers == [("Model Post already exists. Do you want to overwrite it?", False)]
        assert report.fields == ["title", "body", "user_id"]
        assert report.relation_source == "schema"
        assert set(report.relationships) == {"user", "comments", "postTags", "tags"}

        source = blog_tree.read_model("Post")
        assert "protected $fillable = ['title', 'body', 'user_id'];" in source
        for method in ("user", "comments", "postTags", "tags"):
            assert count_methods(source, method) == 1
        assert "return $this->belongsToMany(Tag::class, 'post_tag');" in source

    def test_generated_files(self, blog_tree, blog_db_url: str) -> None:
        _generate(blog_tree, DatabaseSchemaReader(url=blog_db_url), name="Post")
        root = blog_tree.root
        requests = root / "app" / "Http" / "Requests"
        assert "'title' => 'required|string|max:255'," in (requests / "StorePostRequest.php").read_text(
            encoding="utf-8"
        )
        assert "'user_id' => 'sometimes|required|integer'," in (
            requests / "UpdatePostRequest.php"
        ).read_text(encoding="utf-8")

        repositories = root / "app" / "Repositories"
        assert (repositories / "Interfaces" / "PostRepositoryInterface.php").is_file()
        repository = (repositories / "PostRepository.php").read_text(encoding="utf-8")
        assert "$query->with(['user', 'comments', 'postTags', 'tags']);" in repository

        controller = (root / "app" / "Http" / "Controllers" / "PostController.php").read_text(
            encoding="utf-8"
        )
        assert "PostRepositoryInterface $postRepository" in controller
        assert "PostRepositoryInterface::class" in blog_tree.provider.read_text(encoding="utf-8")

    def test_existing_migration_not_duplicated(self, blog_tree) -> None:
        before = sorted(p.name for p in blog_tree.migrations_dir.iterdir())
        _generate(blog_tree, name="Post", force=True)
        assert sorted(p.name for p in blog_tree.migrations_dir.iterdir()) == before

    def test_force_rewrites_model_and_infers_fields(self, blog_tree) -> None:
        report = _generate(blog_tree, name="Post", force=True)
        assert report.fields == ["user_id", "title", "body"]
        assert report.relation_source == "migrations"
        source = blog_tree.read_model("Post")
        assert "use HasFactory;" in source
        assert "$fillable" not in source
        assert "public function user()" in source

    def test_new_model_with_tokens_and_routes(self, laravel_tree) -> None:
        report = _generate(
            laravel_tree,
            name="video",
            relations="user:belongsTo,bogus",
            api=True,
            routes=True,
            repository=False,
        )
        assert report.success, report.summary()
        assert report.model_name == "Video"
        assert report.relationships == ["user"]
        assert report.relation_source == "none"
        assert any("Invalid relationship format" in w for w in report.warnings)
        assert any("No fields could be determined" in w for w in report.warnings)

        migrations = [p.name for p in laravel_tree.migrations_dir.iterdir()]
        assert len(migrations) == 1
        assert migrations[0].endswith("_create_videos_table.php")
        assert "return $this->belongsTo(User::class, 'user_id');" in laravel_tree.read_model("Video")
        assert "Route::resource('videos'" in (laravel_tree.routes_dir / "api.php").read_text(
            encoding="utf-8"
        )
        assert not (laravel_tree.root / "app" / "Repositories").exists()
        assert "Repository" not in laravel_tree.provider.read_text(encoding="utf-8")

    def test_morph_suggestions_are_not_written(self, blog_tree) -> None:
        report = _generate(blog_tree, name="Image")
        assert report.relationships == ["imageable"]
        assert "public function imageable()" in blog_tree.read_model("Image")
        assert "public function images()" not in blog_tree.read_model("Post")

    def test_detection_disabled(self, blog_tree) -> None:
        generator = CrudGenerator(blog_tree.config(detect_relationships=False))
        report = generator.generate("Comment")
        assert report.relationships == []
        assert "public function post()" not in blog_tree.read_model("Comment")

    def test_invalid_name(self, laravel_tree) -> None:
        report = _generate(laravel_tree, name="class")
        assert not report.success
        assert report.errors
        assert list(laravel_tree.models_dir.iterdir()) == []

    def test_second_run_is_idempotent(self, blog_tree, blog_db_url: str) -> None:
        reader = DatabaseSchemaReader(url=blog_db_url)
        _generate(blog_tree, reader, name="Post")
        first = blog_tree.read_model("Post")
        _generate(blog_tree, reader, name="Post")
        assert blog_tree.read_model("Post") == first

    def test_summary_mentions_model(self, blog_tree) -> None:
        summary = _generate(blog_tree, name="Comment").summary()
        assert "Model:            Comment" in summary
        assert "SUCCESS" in summary


# ===========================================================================
# add-model-relation
# ===========================================================================


class TestAddModelRelations:
    """Explicit relation tokens merged into an existing model."""

    def test_adds_relations(self, blog_tree, count_methods) -> None:
        report = add_model_relations(blog_tree.config(), "Post", "comment:hasMany,tag:belongsToMany")
        assert report.added == ["comments", "tags"]
        source = blog_tree.read_model("Post")
        assert "return $this->hasMany(Comment::class, 'post_id', 'id');" in source
        assert count_methods(source, "tags") == 1

    def test_repeat_is_a_no_op(self, blog_tree) -> None:
        add_model_relations(blog_tree.config(), "Post", "user:belongsTo")
        before = blog_tree.read_model("Post")
        report = add_model_relations(blog_tree.config(), "Post", "user:belongsTo")
        assert report.skipped == ["user"]
        assert blog_tree.read_model("Post") == before

    def test_missing_model(self, laravel_tree) -> None:
        with pytest.raises(TargetNotFound):
            add_model_relations(laravel_tree.config(), "Ghost", "user:belongsTo")

    @pytest.mark.parametrize("relations", [None, "", "user", "user:hasManyThrough"])
    def test_no_valid_tokens(self, blog_tree, relations) -> None:
        before = blog_tree.read_model("Post")
        with pytest.raises(MalformedRelationToken):
            add_model_relations(blog_tree.config(), "Post", relations)
        assert blog_tree.read_model("Post") == before
