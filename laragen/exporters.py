# File: laragen/exporters.py
"""
Laragen - Project Exporter (File-System Manager)
==================================================

Owns every path inside the Laravel project tree and every write that is not
a relation merge:

    1. Resolving model targets and listing existing models.
    2. Writing generated files atomically (write-to-temp then rename),
       honouring ``--force`` for files that already exist.
    3. Appending ``Route::resource`` lines to the routes file.
    4. Registering repository bindings in ``AppServiceProvider::register()``.

Every operation is idempotent: appending a route or a binding that is already
present is a no-op.  Failures are collected in ``errors`` rather than raised,
so one bad file never aborts the rest of a CRUD generation.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from laragen.models import LaragenConfig, ModelTarget
from laragen.utils import count_lines, read_file, sha256_hex, write_file

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("laragen.exporters")

_REGISTER_RE: re.Pattern[str] = re.compile(
    r"public\s+function\s+register\s*\(\s*\)(?:\s*:\s*void)?\s*\{"
)


# ---------------------------------------------------------------------------
# Data classes for export results
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FileRecord:
    """Immutable record of a single written file."""

    relative_path: str
    absolute_path: str
    size_bytes: int
    line_count: int
    sha256: str


# ---------------------------------------------------------------------------
# ProjectExporter class
# ---------------------------------------------------------------------------


class ProjectExporter:
    """
    File-system side of code generation for one Laravel project.

    Usage::

        exporter = ProjectExporter(config, force=True)
        exporter.write_file(exporter.controllers_dir / "PostController.php", php)
        exporter.append_route(templates.route_line("Post"), api=True)

    Not thread-safe.  Use one exporter per command invocation.
    """

    def __init__(self, config: LaragenConfig, *, force: bool = False) -> None:
        self._config: LaragenConfig = config
        self._root: Path = Path(config.project_root).resolve()
        self._force: bool = force

        self.errors: List[str] = []
        self.warnings: List[str] = []
        self.records: List[FileRecord] = []

        logger.debug("ProjectExporter initialised: root=%s, force=%s.", self._root, force)

    # -----------------------------------------------------------------
    # Paths
    # -----------------------------------------------------------------

    @property
    def root(self) -> Path:
        return self._root

    def _path(self, relative: str) -> Path:
        return self._root / relative

    @property
    def models_dir(self) -> Path:
        return self._path(self._config.paths.models)

    @property
    def controllers_dir(self) -> Path:
        return self._path(self._config.paths.controllers)

    @property
    def requests_dir(self) -> Path:
        return self._path(self._config.paths.requests)

    @property
    def repositories_dir(self) -> Path:
        return self._path(self._config.paths.repositories)

    @property
    def migrations_dir(self) -> Path:
        return self._path(self._config.paths.migrations)

    @property
    def routes_dir(self) -> Path:
        return self._path(self._config.paths.routes)

    @property
    def service_provider(self) -> Path:
        return self._path(self._config.paths.service_provider)

    def model_target(self, model_name: str) -> ModelTarget:
        return ModelTarget(model_name=model_name, file_path=self.models_dir / f"{model_name}.php")

    def list_models(self) -> List[str]:
        """Class names of every ``*.php`` file in the models directory, sorted."""
        if not self.models_dir.is_dir():
            return []
        return sorted(p.stem for p in self.models_dir.iterdir() if p.suffix == ".php")

    def new_migration_path(self, table_name: str, now: Optional[datetime] = None) -> Path:
        stamp: str = (now or datetime.now()).strftime("%Y_%m_%d_%H%M%S")
        return self.migrations_dir / f"{stamp}_create_{table_name}_table.php"

    def _relative(self, path: Path) -> str:
        try:
            return str(path.relative_to(self._root))
        except ValueError:
            return str(path)

    def _read(self, path: Path) -> Optional[str]:
        try:
            return read_file(path)
        except (OSError, UnicodeDecodeError) as exc:
            message: str = f"Failed to read {self._relative(path)}: {type(exc).__name__}: {exc}"
            self.errors.append(message)
            logger.error(message)
            return None

    # -----------------------------------------------------------------
    # Generated files
    # -----------------------------------------------------------------

    def write_file(self, path: Path, content: str, *, overwrite: bool = True) -> Optional[FileRecord]:
        """
        Write one generated file.

        Existing files are replaced unless *overwrite* is False and the
        exporter was not built with ``force``.  Returns ``None`` when the file
        was skipped or the write failed.
        """
        rel_path: str = self._relative(path)
        if path.exists() and not overwrite and not self._force:
            self.warnings.append(f"{rel_path} already exists, skipped")
            logger.warning("%s already exists, skipped", rel_path)
            return None

        try:
            size_bytes: int = write_file(path, content)
        except OSError as exc:
            message: str = f"Failed to write {rel_path}: {type(exc).__name__}: {exc}"
            self.errors.append(message)
            logger.error(message)
            return None

        record = FileRecord(
            relative_path=rel_path,
            absolute_path=str(path),
            size_bytes=size_bytes,
            line_count=count_lines(content),
            sha256=sha256_hex(content),
        )
        self.records.append(record)
        logger.info("Generated: %s", rel_path)
        return record

    # -----------------------------------------------------------------
    # Routes
    # -----------------------------------------------------------------

    def append_route(self, route_line: str, *, api: bool = False) -> bool:
        """
        Append *route_line* to ``routes/api.php`` (API) or ``routes/web.php``.

        Returns True when the file changed.  A missing routes file is
        reported as a warning.
        """
        route_file: Path = self.routes_dir / ("api.php" if api else "web.php")
        if not route_file.is_file():
            message: str = f"Route file {route_file.name} not found"
            self.warnings.append(message)
            logger.error(message)
            return False

        content: Optional[str] = self._read(route_file)
        if content is None:
            return False
        if route_line in content:
            logger.warning("Route already exists in %s", route_file.name)
            return False

        separator: str = "" if not content or content.endswith("\n") else "\n"
        if self.write_file(route_file, content + separator + route_line + "\n") is None:
            return False
        logger.info("Routes added to %s", route_file.name)
        return True

    # -----------------------------------------------------------------
    # Service provider
    # -----------------------------------------------------------------

    def register_binding(self, model_name: str, binding_line: str) -> bool:
        """
        Insert *binding_line* at the top of ``register()``.

        Skipped when the provider already mentions the model's repository
        interface.  Returns True when the file changed.
        """
        provider: Path = self.service_provider
        if not provider.is_file():
            message: str = f"Service provider {self._relative(provider)} not found"
            self.warnings.append(message)
            logger.error(message)
            return False

        content = self._read(provider)
        if content is None:
            return False
        if f"{model_name}RepositoryInterface::class" in content:
            logger.info("Repository binding already exists in %s", provider.name)
            return False

        match = _REGISTER_RE.search(content)
        if match is None:
            message = f"No register() method found in {provider.name}"
            self.warnings.append(message)
            logger.warning(message)
            return False

        updated: str = content[: match.end()] + "\n        " + binding_line + content[match.end():]
        if self.write_file(provider, updated) is None:
            return False
        logger.info("Repository binding added to %s", provider.name)
        return True

    def __repr__(self) -> str:
        return f"<ProjectExporter {self._root}>"


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "FileRecord",
    "ProjectExporter",
]

logger.debug("laragen.exporters loaded.")
