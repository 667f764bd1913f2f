"""
tests/conftest.py
Shared fixtures for the laragen test suite.

No external mocking libraries are used; real file I/O is performed inside
temporary Laravel project trees managed by pytest's tmp_path fixture, and
schema introspection runs against real SQLite databases built with
SQLAlchemy.
"""

from __future__ import annotations

import logging
import pathlib
import textwrap
from typing import Callable, Dict, Iterable, List, Sequence

import pytest
from sqlalchemy import create_engine, text

from laragen.models import LaragenConfig


# ---------------------------------------------------------------------------
# Laravel project tree builder
# ---------------------------------------------------------------------------

PROVIDER_SOURCE: str = textwrap.dedent(
    """\
    <?php

    namespace App\\Providers;

    use Illuminate\\Support\\ServiceProvider;

    class AppServiceProvider extends ServiceProvider
    {
        /**
         * Register any application services.
         */
        public function register(): void
        {
            //
        }

        /**
         * Bootstrap any application services.
         */
        public function boot(): void
        {
            //
        }
    }
    """
)


def model_source(name: str, fillable: Sequence[str] = (), extra: str = "") -> str:
    """PHP source of a plain Eloquent model."""
    lines: List[str] = [
        "<?php",
        "",
        "namespace App\\Models;",
        "",
        "use Illuminate\\Database\\Eloquent\\Model;",
        "",
        f"class {name} extends Model",
        "{",
    ]
    if fillable:
        items: str = ", ".join(f"'{f}'" for f in fillable)
        lines.append(f"    protected $fillable = [{items}];")
    if extra:
        lines.append(extra)
    lines.extend(["}", ""])
    return "\n".join(lines)


def migration_source(table: str, columns: Iterable[str]) -> str:
    """PHP source of a create-table migration with the given column lines."""
    body: str = "\n".join(f"            {c}" for c in columns)
    return (
        "<?php\n\n"
        "use Illuminate\\Database\\Migrations\\Migration;\n"
        "use Illuminate\\Database\\Schema\\Blueprint;\n"
        "use Illuminate\\Support\\Facades\\Schema;\n\n"
        "return new class extends Migration\n"
        "{\n"
        "    public function up(): void\n"
        "    {\n"
        f"        Schema::create('{table}', function (Blueprint $table) {{\n"
        "            $table->id();\n"
        f"{body}\n"
        "            $table->timestamps();\n"
        "        });\n"
        "    }\n\n"
        "    public function down(): void\n"
        "    {\n"
        f"        Schema::dropIfExists('{table}');\n"
        "    }\n"
        "};\n"
    )


class LaravelTree:
    """A throwaway Laravel project rooted at a temporary directory."""

    def __init__(self, root: pathlib.Path) -> None:
        self.root: pathlib.Path = root
        self.models_dir: pathlib.Path = root / "app" / "Models"
        self.migrations_dir: pathlib.Path = root / "database" / "migrations"
        self.routes_dir: pathlib.Path = root / "routes"
        self.provider: pathlib.Path = root / "app" / "Providers" / "AppServiceProvider.php"
        self._migration_count: int = 0

        self.models_dir.mkdir(parents=True)
        self.migrations_dir.mkdir(parents=True)
        self.routes_dir.mkdir(parents=True)
        self.provider.parent.mkdir(parents=True)

    def add_model(self, name: str, fillable: Sequence[str] = (), extra: str = "") -> pathlib.Path:
        path = self.models_dir / f"{name}.php"
        path.write_text(model_source(name, fillable, extra), encoding="utf-8")
        return path

    def model_path(self, name: str) -> pathlib.Path:
        return self.models_dir / f"{name}.php"

    def read_model(self, name: str) -> str:
        return self.model_path(name).read_text(encoding="utf-8")

    def add_migration(self, table: str, columns: Iterable[str]) -> pathlib.Path:
        stamp: str = f"2024_01_01_{self._migration_count:06d}"
        self._migration_count += 1
        path = self.migrations_dir / f"{stamp}_create_{table}_table.php"
        path.write_text(migration_source(table, columns), encoding="utf-8")
        return path

    def add_routes(self) -> None:
        (self.routes_dir / "web.php").write_text(
            "<?php\n\nuse Illuminate\\Support\\Facades\\Route;\n\n"
            "Route::get('/', function () {\n    return view('welcome');\n});\n",
            encoding="utf-8",
        )
        (self.routes_dir / "api.php").write_text(
            "<?php\n\nuse Illuminate\\Support\\Facades\\Route;\n",
            encoding="utf-8",
        )

    def add_provider(self) -> None:
        self.provider.write_text(PROVIDER_SOURCE, encoding="utf-8")

    def config(self, **overrides: object) -> LaragenConfig:
        return LaragenConfig(project_root=self.root, **overrides)


# ---------------------------------------------------------------------------
# SQLite helpers
# ---------------------------------------------------------------------------

BLOG_DDL: List[str] = [
    "CREATE TABLE users (id INTEGER PRIMARY KEY, name VARCHAR(255), email VARCHAR(255))",
    "CREATE TABLE posts (id INTEGER PRIMARY KEY, "
    "user_id INTEGER NOT NULL REFERENCES users(id), title VARCHAR(255), body TEXT)",
    "CREATE TABLE tags (id INTEGER PRIMARY KEY, name VARCHAR(255))",
    "CREATE TABLE post_tag (id INTEGER PRIMARY KEY, "
    "post_id INTEGER NOT NULL REFERENCES posts(id), "
    "tag_id INTEGER NOT NULL REFERENCES tags(id))",
    "CREATE TABLE comments (id INTEGER PRIMARY KEY, "
    "post_id INTEGER NOT NULL REFERENCES posts(id), body TEXT)",
    "CREATE TABLE profiles (id INTEGER PRIMARY KEY, "
    "user_id INTEGER NOT NULL UNIQUE REFERENCES users(id), bio TEXT)",
]


def create_sqlite(path: pathlib.Path, statements: Iterable[str]) -> str:
    """Create a SQLite database at *path* and return its SQLAlchemy URL."""
    url: str = f"sqlite:///{path}"
    engine = create_engine(url)
    try:
        with engine.begin() as conn:
            for statement in statements:
                conn.execute(text(statement))
    finally:
        engine.dispose()
    return url


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_laragen_logger():
    """Undo the handler/propagation changes the CLI makes to the laragen logger."""
    yield
    root_logger = logging.getLogger("laragen")
    root_logger.handlers.clear()
    root_logger.setLevel(logging.NOTSET)
    root_logger.propagate = True


@pytest.fixture()
def laravel_tree(tmp_path: pathlib.Path) -> LaravelTree:
    """Empty Laravel skeleton with routes files and a service provider."""
    tree = LaravelTree(tmp_path / "app_root")
    tree.add_routes()
    tree.add_provider()
    return tree


@pytest.fixture()
def blog_tree(laravel_tree: LaravelTree) -> LaravelTree:
    """
    Blog project with matching models and migrations:

    users ←─ posts ←─ comments, posts ←→ tags via post_tag, users ←─ profiles
    (unique), images polymorphic via ``imageable``.
    """
    tree = laravel_tree
    tree.add_model("User", ["name", "email"])
    tree.add_model("Post", ["title", "body", "user_id"])
    tree.add_model("Tag", ["name"])
    tree.add_model("Comment", ["body", "post_id"])
    tree.add_model("Profile", ["bio", "user_id"])
    tree.add_model("Image")

    tree.add_migration("users", ["$table->string('name');", "$table->string('email')->unique();"])
    tree.add_migration(
        "posts",
        [
            "$table->foreignId('user_id')->constrained()->cascadeOnDelete();",
            "$table->string('title');",
            "$table->text('body');",
        ],
    )
    tree.add_migration("tags", ["$table->string('name');"])
    tree.add_migration(
        "post_tag",
        [
            "$table->foreignId('post_id')->constrained();",
            "$table->foreignId('tag_id')->constrained();",
        ],
    )
    tree.add_migration(
        "comments",
        ["$table->foreignId('post_id')->constrained();", "$table->text('body');"],
    )
    tree.add_migration(
        "profiles",
        ["$table->foreignId('user_id')->unique()->constrained();", "$table->text('bio');"],
    )
    tree.add_migration(
        "images",
        ["$table->string('url');", "$table->morphs('imageable');"],
    )
    return tree


@pytest.fixture()
def blog_db_url(tmp_path: pathlib.Path) -> str:
    """SQLite database mirroring the blog migrations (without images)."""
    return create_sqlite(tmp_path / "blog.sqlite", BLOG_DDL)


@pytest.fixture()
def blog_snapshot() -> Dict[str, object]:
    """Offline schema snapshot of the blog database."""
    return {
        "tables": {
            "users": {},
            "posts": {"foreign_keys": [{"column": "user_id", "referenced_table": "users"}]},
            "tags": None,
            "post_tag": {
                "foreign_keys": [
                    {"column": "post_id", "referenced_table": "posts"},
                    {"column": "tag_id", "referenced_table": "tags"},
                ]
            },
            "comments": {"foreign_keys": [{"column": "post_id", "referenced_table": "posts"}]},
            "profiles": {
                "foreign_keys": [{"column": "user_id", "referenced_table": "users"}],
                "unique_columns": ["user_id"],
            },
        }
    }


def method_count(source: str, method_name: str) -> int:
    return source.count(f"public function {method_name}()")


@pytest.fixture()
def count_methods():
    """Count ``public function <name>()`` declarations in a source string."""
    return method_count


@pytest.fixture()
def make_tree(tmp_path: pathlib.Path) -> Callable[[str], LaravelTree]:
    """Factory for additional, independent Laravel trees."""

    def _make(name: str) -> LaravelTree:
        tree = LaravelTree(tmp_path / name)
        tree.add_routes()
        tree.add_provider()
        return tree

    return _make


@pytest.fixture()
def make_sqlite(tmp_path: pathlib.Path) -> Callable[[str, Sequence[str]], str]:
    """Factory creating SQLite databases from DDL statements; returns the URL."""

    def _make(name: str, statements: Sequence[str]) -> str:
        return create_sqlite(tmp_path / f"{name}.sqlite", statements)

    return _make
