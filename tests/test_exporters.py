"""
tests/test_exporters.py
Tests for laragen.exporters: generated-file writes, route appends and
service-provider bindings.
"""

from __future__ import annotations

from datetime import datetime

from laragen.exporters import ProjectExporter
from laragen.models import LaragenConfig
from laragen.templates import TemplateGenerator


class TestPathsAndModels:
    """Project layout helpers."""

    def test_directories_follow_config(self, laravel_tree) -> None:
        exporter = ProjectExporter(laravel_tree.config())
        assert exporter.models_dir == laravel_tree.models_dir.resolve()
        assert exporter.controllers_dir.parts[-3:] == ("app", "Http", "Controllers")

    def test_list_models_sorted(self, blog_tree) -> None:
        exporter = ProjectExporter(blog_tree.config())
        assert exporter.list_models() == ["Comment", "Image", "Post", "Profile", "Tag", "User"]

    def test_list_models_without_directory(self, tmp_path) -> None:
        assert ProjectExporter(LaragenConfig(project_root=tmp_path)).list_models() == []

    def test_model_target(self, blog_tree) -> None:
        target = ProjectExporter(blog_tree.config()).model_target("Post")
        assert target.exists
        assert target.file_path.name == "Post.php"

    def test_new_migration_path(self, laravel_tree) -> None:
        path = ProjectExporter(laravel_tree.config()).new_migration_path(
            "posts", now=datetime(2024, 5, 1, 12, 30, 15)
        )
        assert path.name == "2024_05_01_123015_create_posts_table.php"


class TestWriteFile:
    """Atomic generated-file writes."""

    def test_records_written_file(self, laravel_tree) -> None:
        exporter = ProjectExporter(laravel_tree.config())
        record = exporter.write_file(exporter.controllers_dir / "PostController.php", "<?php\n")
        assert record is not None
        assert record.relative_path.endswith("PostController.php")
        assert record.line_count == 1
        assert exporter.records == [record]

    def test_existing_file_kept_without_overwrite(self, laravel_tree) -> None:
        exporter = ProjectExporter(laravel_tree.config())
        path = exporter.models_dir / "Post.php"
        path.write_text("original", encoding="utf-8")
        assert exporter.write_file(path, "new", overwrite=False) is None
        assert path.read_text(encoding="utf-8") == "original"
        assert exporter.warnings

    def test_force_overrides_overwrite_flag(self, laravel_tree) -> None:
        exporter = ProjectExporter(laravel_tree.config(), force=True)
        path = exporter.models_dir / "Post.php"
        path.write_text("original", encoding="utf-8")
        assert exporter.write_file(path, "new", overwrite=False) is not None
        assert path.read_text(encoding="utf-8") == "new"

    def test_failure_collected(self, laravel_tree) -> None:
        exporter = ProjectExporter(laravel_tree.config())
        blocker = exporter.root / "blocker"
        blocker.write_text("", encoding="utf-8")
        assert exporter.write_file(blocker / "Nested.php", "x") is None
        assert len(exporter.errors) == 1


class TestRoutes:
    """Route::resource appends."""

    def test_append_to_web(self, laravel_tree) -> None:
        exporter = ProjectExporter(laravel_tree.config())
        line = TemplateGenerator.route_line("Post")
        assert exporter.append_route(line)
        content = (laravel_tree.routes_dir / "web.php").read_text(encoding="utf-8")
        assert content.endswith(line + "\n")
        assert content.startswith("<?php")

    def test_append_to_api(self, laravel_tree) -> None:
        exporter = ProjectExporter(laravel_tree.config())
        assert exporter.append_route(TemplateGenerator.route_line("Post"), api=True)
        assert "Route::resource('posts'" in (laravel_tree.routes_dir / "api.php").read_text(
            encoding="utf-8"
        )

    def test_append_is_idempotent(self, laravel_tree) -> None:
        exporter = ProjectExporter(laravel_tree.config())
        line = TemplateGenerator.route_line("Post")
        exporter.append_route(line)
        assert not exporter.append_route(line)
        content = (laravel_tree.routes_dir / "web.php").read_text(encoding="utf-8")
        assert content.count(line) == 1

    def test_undecodable_routes_file(self, laravel_tree) -> None:
        web = laravel_tree.routes_dir / "web.php"
        web.write_bytes(b"<?php // caf\xe9\n")
        exporter = ProjectExporter(laravel_tree.config())
        assert not exporter.append_route(TemplateGenerator.route_line("Post"))
        assert len(exporter.errors) == 1
        assert web.read_bytes() == b"<?php // caf\xe9\n"

    def test_missing_routes_file_is_a_warning(self, laravel_tree) -> None:
        (laravel_tree.routes_dir / "web.php").unlink()
        exporter = ProjectExporter(laravel_tree.config())
        assert not exporter.append_route(TemplateGenerator.route_line("Post"))
        assert exporter.warnings == ["Route file web.php not found"]
        assert exporter.errors == []


class TestBindings:
    """Repository bindings in AppServiceProvider::register()."""

    def test_binding_inserted_in_register(self, laravel_tree) -> None:
        exporter = ProjectExporter(laravel_tree.config())
        line = TemplateGenerator.binding_line("Post")
        assert exporter.register_binding("Post", line)
        content = laravel_tree.provider.read_text(encoding="utf-8")
        register_at = content.index("public function register(): void")
        boot_at = content.index("public function boot(): void")
        assert register_at < content.index(line) < boot_at

    def test_binding_is_idempotent(self, laravel_tree) -> None:
        exporter = ProjectExporter(laravel_tree.config())
        line = TemplateGenerator.binding_line("Post")
        exporter.register_binding("Post", line)
        assert not exporter.register_binding("Post", line)
        assert laravel_tree.provider.read_text(encoding="utf-8").count(line) == 1

    def test_provider_without_register(self, laravel_tree) -> None:
        laravel_tree.provider.write_text("<?php\nclass AppServiceProvider {}\n", encoding="utf-8")
        exporter = ProjectExporter(laravel_tree.config())
        assert not exporter.register_binding("Post", TemplateGenerator.binding_line("Post"))
        assert exporter.warnings == ["No register() method found in AppServiceProvider.php"]

    def test_missing_provider_is_a_warning(self, laravel_tree) -> None:
        laravel_tree.provider.unlink()
        exporter = ProjectExporter(laravel_tree.config())
        assert not exporter.register_binding("Post", TemplateGenerator.binding_line("Post"))
        assert len(exporter.warnings) == 1
        assert exporter.errors == []
