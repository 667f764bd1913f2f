# File: laragen/cli.py
"""
Laragen - Command-Line Interface
==================================

Built with the standard-library ``argparse`` module.

Usage examples::

    # Full CRUD slice with an API controller and a route
    laragen generate-crud Post --api --routes --relations="user:belongsTo,tag:belongsToMany"

    # Add relations to an existing model
    laragen add-model-relation Post --relations="comment:hasMany"

    # Detect relations for every model from a live database
    laragen --database-url sqlite:///database/database.sqlite sync-model-relations --all

    # Offline, from a schema snapshot, committing morph suggestions to Post
    laragen --schema-file schema.yaml sync-model-relations Comment --morph-targets=Post

Exit codes:
    0 — success
    1 — failure (missing model, no valid relations, invalid configuration)
    2 — argument error
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, NoReturn, Optional, Sequence

from laragen.generator import (
    ConfirmCallback,
    CrudGenerator,
    GenerationReport,
    add_model_relations,
    resolve_config,
)
from laragen.models import LaragenConfig, LaragenError
from laragen.sync import RelationSynchronizer, SyncReport
from laragen.validators import validate_config

# ---------------------------------------------------------------------------
# Logger (configured in _setup_logging)
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("laragen")


# ---------------------------------------------------------------------------
# Exit codes
# ---------------------------------------------------------------------------

EXIT_SUCCESS: int = 0
EXIT_FAILURE: int = 1
EXIT_USAGE_ERROR: int = 2


# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------


def _setup_logging(verbosity: int) -> None:
    """
    Configure the laragen logger based on verbosity level.

    Args:
        verbosity: -1 = silent, 0 = WARNING, 1 = INFO, 2+ = DEBUG.
    """
    if verbosity < 0:
        level = logging.CRITICAL + 1
    elif verbosity >= 2:
        level = logging.DEBUG
    elif verbosity >= 1:
        level = logging.INFO
    else:
        level = logging.WARNING

    handler: logging.StreamHandler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)

    fmt: str = "%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s"
    datefmt: str = "%H:%M:%S"
    handler.setFormatter(logging.Formatter(fmt, datefmt=datefmt))

    root_logger: logging.Logger = logging.getLogger("laragen")
    root_logger.setLevel(level)

    # Remove existing handlers to prevent duplication
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.propagate = False


# ---------------------------------------------------------------------------
# Interactive confirmation
# ---------------------------------------------------------------------------


def confirm(question: str, default: bool, *, interactive: bool = True) -> bool:
    """
    Ask a yes/no *question* on stdin.

    Returns *default* on an empty answer, when *interactive* is False, when
    stdin is not a terminal, or at end of input.
    """
    if not interactive or not sys.stdin.isatty():
        return default

    hint: str = "[Y/n]" if default else "[y/N]"
    while True:
        try:
            answer: str = input(f"{question} {hint} ").strip().lower()
        except EOFError:
            return default
        if not answer:
            return default
        if answer in ("y", "yes"):
            return True
        if answer in ("n", "no"):
            return False
        print("Please answer 'yes' or 'no'.", file=sys.stderr)


def _confirm_callback(args: argparse.Namespace) -> ConfirmCallback:
    interactive: bool = not args.no_interaction

    def _ask(question: str, default: bool) -> bool:
        return confirm(question, default, interactive=interactive)

    return _ask


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------


def _build_parser() -> argparse.ArgumentParser:
    """Build and return the argument parser."""
    from laragen import __version__

    parser: argparse.ArgumentParser = argparse.ArgumentParser(
        prog="laragen",
        description=(
            "Laragen — Laravel CRUD scaffolding and relationship inference.\n\n"
            "Generates models, requests, repositories, controllers and routes, "
            "and keeps Eloquent relation methods in sync with the database schema."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  %(prog)s generate-crud Post --api --routes\n"
            "  %(prog)s add-model-relation Post --relations=user:belongsTo\n"
            "  %(prog)s --database-url sqlite:///db.sqlite sync-model-relations --all\n"
        ),
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"Laragen v{__version__}",
    )

    # --- Project & configuration ---
    config_group = parser.add_argument_group("project & configuration")
    config_group.add_argument(
        "--project-root",
        type=str,
        default=None,
        metavar="DIR",
        help="Laravel project root (default: current directory).",
    )
    config_group.add_argument(
        "--config",
        type=str,
        default=None,
        metavar="PATH",
        help="Config file (YAML or JSON). Default: laragen.yaml at the project root.",
    )
    config_group.add_argument(
        "--database-url",
        type=str,
        default=None,
        metavar="URL",
        help="SQLAlchemy URL of the application database.",
    )
    config_group.add_argument(
        "--schema-file",
        type=str,
        default=None,
        metavar="PATH",
        help="Offline schema snapshot used instead of a live database.",
    )
    config_group.add_argument(
        "-n", "--no-interaction",
        action="store_true",
        default=False,
        help="Never prompt; use the default answer to every question.",
    )

    # --- Verbosity ---
    verbosity_group = parser.add_argument_group("verbosity")
    verbosity_group.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (-v for INFO, -vv for DEBUG).",
    )
    verbosity_group.add_argument(
        "-q", "--quiet",
        action="store_true",
        default=False,
        help="Suppress all log output.",
    )

    commands = parser.add_subparsers(dest="command", metavar="COMMAND")
    commands.required = True

    # --- generate-crud ---
    crud = commands.add_parser(
        "generate-crud",
        help="Generate model, requests, repository, controller and route for a model.",
    )
    crud.add_argument("name", help="Model name, e.g. Post.")
    crud.add_argument("--api", action="store_true", default=None, help="Generate an API controller.")
    crud.add_argument("--routes", action="store_true", default=None, help="Add a resource route.")
    crud.add_argument("--force", action="store_true", default=False, help="Overwrite existing files.")
    crud.add_argument(
        "--relations",
        type=str,
        default=None,
        metavar="SPEC",
        help='Relationships to add, format "model:type,model:type".',
    )
    repo_group = crud.add_mutually_exclusive_group()
    repo_group.add_argument(
        "--repository",
        dest="repository",
        action="store_true",
        default=None,
        help="Generate a repository and interface.",
    )
    repo_group.add_argument(
        "--no-repository",
        dest="repository",
        action="store_false",
        help="Skip the repository layer.",
    )

    # --- add-model-relation ---
    relation = commands.add_parser(
        "add-model-relation",
        help="Add relationship methods to an existing model.",
    )
    relation.add_argument("name", help="Model name, e.g. Post.")
    relation.add_argument(
        "--relations",
        type=str,
        default=None,
        metavar="SPEC",
        help='Relationships to add, format "model:type,model:type".',
    )

    # --- sync-model-relations ---
    sync = commands.add_parser(
        "sync-model-relations",
        help="Detect relationships from the schema and write them, both directions.",
    )
    sync.add_argument("name", nargs="?", default=None, help="Model to synchronise.")
    sync.add_argument("--all", action="store_true", default=False, help="Synchronise every model.")
    sync.add_argument(
        "--morph-targets",
        type=str,
        default=None,
        metavar="MODELS",
        help="Comma-separated models that receive polymorphic relations without prompting.",
    )

    return parser


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


def _build_config_overrides(args: argparse.Namespace) -> Dict[str, Any]:
    """Build a config override dictionary from CLI arguments."""
    overrides: Dict[str, Any] = {}

    if args.database_url is not None:
        overrides["database_url"] = args.database_url

    if args.schema_file is not None:
        overrides["schema_file"] = Path(args.schema_file)

    return overrides


def _load_config(args: argparse.Namespace) -> LaragenConfig:
    root: Optional[Path] = Path(args.project_root) if args.project_root else None
    config_path: Optional[Path] = Path(args.config) if args.config else None
    config: LaragenConfig = resolve_config(root, config_path, _build_config_overrides(args))

    check = validate_config(config)
    for warning in check.warnings:
        logger.warning("%s", warning.message)
    if not check.is_valid:
        for error in check.errors:
            logger.error("%s", error.message)
        raise LaragenError(check.summary())
    return config


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def _run_generate_crud(config: LaragenConfig, args: argparse.Namespace) -> int:
    generator = CrudGenerator(config, confirm=_confirm_callback(args))
    report: GenerationReport = generator.generate(
        args.name,
        api=args.api,
        routes=args.routes,
        force=args.force,
        relations=args.relations,
        repository=args.repository,
    )
    print(report.summary())
    return EXIT_SUCCESS if report.success else EXIT_FAILURE


def _run_add_model_relation(config: LaragenConfig, args: argparse.Namespace) -> int:
    report = add_model_relations(config, args.name, args.relations)
    print(report.summary())
    return EXIT_SUCCESS


def _run_sync(config: LaragenConfig, args: argparse.Namespace) -> int:
    if not args.all and not args.name:
        logger.error(
            'Not enough arguments (missing: "name"). Use --all option to sync all '
            "models or provide a specific model name."
        )
        return EXIT_FAILURE

    morph_targets: Optional[List[str]] = (
        args.morph_targets.split(",") if args.morph_targets else None
    )
    synchronizer = RelationSynchronizer(
        config,
        morph_targets=morph_targets,
        confirm=_confirm_callback(args),
    )
    report: SyncReport = synchronizer.sync_all() if args.all else synchronizer.sync_model(args.name)
    print(report.summary())
    return EXIT_SUCCESS


_COMMANDS = {
    "generate-crud": _run_generate_crud,
    "add-model-relation": _run_add_model_relation,
    "sync-model-relations": _run_sync,
}


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------


def run(argv: Optional[Sequence[str]] = None) -> int:
    """Parse *argv*, run the selected command and return its exit code."""
    parser: argparse.ArgumentParser = _build_parser()
    args: argparse.Namespace = parser.parse_args(argv)

    _setup_logging(-1 if args.quiet else args.verbose)

    try:
        config: LaragenConfig = _load_config(args)
        return _COMMANDS[args.command](config, args)
    except LaragenError as exc:
        logger.error("%s", exc)
        return EXIT_FAILURE
    except (OSError, UnicodeDecodeError) as exc:
        logger.error("Cannot read project file: %s", exc)
        return EXIT_FAILURE


def cli_main(argv: Optional[Sequence[str]] = None) -> NoReturn:
    """
    Main CLI entry point.

    Can be called from ``__main__.py`` or directly for testing.

    Args:
        argv: Optional argument list (defaults to sys.argv[1:]).
    """
    sys.exit(run(argv))


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "cli_main",
    "confirm",
    "run",
    "EXIT_SUCCESS",
    "EXIT_FAILURE",
    "EXIT_USAGE_ERROR",
]

logger.debug("laragen.cli loaded.")
