"""CLI entrypoints for docpilot commands."""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

from dotenv import load_dotenv

from .config import CONFIG_FILENAME, DocPilotConfig, load_config
from .errors import ConfigError, ConnectionCheckError, GenerationError
from .git.hooks import find_git_root, install_pre_commit_hook
from .llm.runner import check_api_key
from .logging import configure_logging
from .models import ChangeSet
from .orchestrator import Orchestrator

EXIT_FAILURE = 1
EXIT_CONFIG = 3
EXIT_CONNECTION = 4


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    kwargs: dict[str, object] = {
        "action": "store_true",
        "help": "Increase log verbosity for troubleshooting.",
    }
    if suppress_default:
        kwargs["default"] = argparse.SUPPRESS
    else:
        kwargs["default"] = False
    parser.add_argument(
        "-v",
        "--verbose",
        **kwargs,
    )


def _add_config_option(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config",
        default=".",
        help=f"Docs root or path to {CONFIG_FILENAME} (defaults to current directory).",
    )


def _add_changes_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--modules",
        help="Comma-separated changed modules (defaults to CHANGED_MODULES).",
    )
    parser.add_argument(
        "--types-changed",
        action="store_true",
        help="Treat the generated types file as changed (defaults to TYPES_CHANGED).",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="docpilot",
        description="Generate, enhance and publish module documentation for an entity-driven app.",
    )
    _add_verbose_option(parser)
    parser.add_argument(
        "--log-file",
        type=Path,
        help="Also write log records to this file (useful with watch).",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    generate_parser = subparsers.add_parser(
        "generate",
        help="Regenerate every documentation page and docs.json.",
    )
    _add_verbose_option(generate_parser, suppress_default=True)
    _add_config_option(generate_parser)

    enhance_parser = subparsers.add_parser(
        "enhance",
        help="Enrich existing pages for changed modules with AI.",
    )
    _add_verbose_option(enhance_parser, suppress_default=True)
    _add_config_option(enhance_parser)
    _add_changes_options(enhance_parser)

    update_parser = subparsers.add_parser(
        "update",
        help="Detect changes, regenerate, enhance and commit.",
    )
    _add_verbose_option(update_parser, suppress_default=True)
    _add_config_option(update_parser)
    _add_changes_options(update_parser)
    update_parser.add_argument(
        "--source-repo",
        help="Source repository to diff when --modules/--types-changed are not given.",
    )
    update_parser.add_argument(
        "--diff-base",
        default="origin/main",
        help="Commit or ref to compare against when computing diffs.",
    )
    update_parser.add_argument(
        "--no-enhance",
        action="store_true",
        help="Skip the AI enhancement step.",
    )
    update_parser.add_argument(
        "--no-commit",
        action="store_true",
        help="Leave regenerated files uncommitted.",
    )
    update_parser.add_argument(
        "--push",
        action="store_true",
        help="Push the documentation commit (also enabled by AUTO_PUSH=true).",
    )

    watch_parser = subparsers.add_parser(
        "watch",
        help="Watch the source tree and update documentation continuously.",
    )
    _add_verbose_option(watch_parser, suppress_default=True)
    _add_config_option(watch_parser)

    test_parser = subparsers.add_parser(
        "test-connection",
        help="Check the API key and check that the text-generation service responds.",
    )
    _add_verbose_option(test_parser, suppress_default=True)
    _add_config_option(test_parser)

    hook_parser = subparsers.add_parser(
        "install-hook",
        help="Install a pre-commit hook in the source repository that regenerates docs.",
    )
    _add_verbose_option(hook_parser, suppress_default=True)
    _add_config_option(hook_parser)
    hook_parser.add_argument(
        "--repo",
        help="Source repository root (defaults to the Git root above the source tree).",
    )

    serve_parser = subparsers.add_parser(
        "serve",
        help="Run the HTTP service.",
    )
    _add_verbose_option(serve_parser, suppress_default=True)
    _add_config_option(serve_parser)
    serve_parser.add_argument("--host", default="0.0.0.0", help="Interface to bind.")
    serve_parser.add_argument("--port", type=int, default=8000, help="Port to bind.")

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for docpilot commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(verbose=bool(args.verbose), log_file=args.log_file)

    config_path = Path(args.config)
    load_dotenv(_config_root(config_path) / ".env", override=False)

    try:
        config = load_config(config_path)
    except ConfigError as exc:
        parser.exit(EXIT_CONFIG, f"Invalid configuration: {exc}\n")

    try:
        _dispatch(parser, args, config)
    except ConnectionCheckError as exc:
        parser.exit(EXIT_CONNECTION, f"{exc}\n")
    except ConfigError as exc:
        parser.exit(EXIT_CONFIG, f"docpilot {args.command} failed: {exc}\n")
    except GenerationError as exc:
        details = "".join(f"  {failure.path}: {failure.detail}\n" for failure in exc.failures)
        parser.exit(
            EXIT_FAILURE,
            f"docpilot {args.command} failed: {exc}\n{details}Run with --verbose for more details.\n",
        )
    except RuntimeError as exc:
        parser.exit(
            EXIT_FAILURE,
            f"docpilot {args.command} failed: {exc}\nRun with --verbose for more details.\n",
        )


def _dispatch(parser: argparse.ArgumentParser, args: argparse.Namespace, config: DocPilotConfig) -> None:
    orchestrator = Orchestrator(config)

    if args.command == "generate":
        result = orchestrator.run_generate()
        print(
            f"Generated {len(result.pages)} pages in {_relativize(config.paths.docs_root)} "
            f"({len(result.written)} written, {len(result.unchanged)} unchanged)"
        )
    elif args.command == "enhance":
        changes = _changes_from_args(args, orchestrator)
        report = orchestrator.run_enhance(changes)
        print(
            f"AI enhancement: {len(report.enhanced)} enhanced, "
            f"{len(report.skipped)} skipped, {len(report.failed)} failed"
        )
        for page in report.api_pages:
            print(f"API page affected by type changes: {page}")
    elif args.command == "update":
        if args.modules is not None or args.types_changed or not args.source_repo:
            changes = _changes_from_args(args, orchestrator)
        else:
            changes = orchestrator.changes_from_diff(args.source_repo, args.diff_base)
        outcome = orchestrator.run_update(
            changes,
            enhance=not args.no_enhance,
            commit=False if args.no_commit else None,
            push=True if args.push else None,
        )
        print(f"Documentation updated ({changes.describe()})")
        if outcome.enhancement_skipped:
            print(f"AI enhancement skipped: {outcome.enhancement_skipped}")
        print("Changes committed" if outcome.committed else "No commit created")
    elif args.command == "watch":
        try:
            asyncio.run(orchestrator.run_watch())
        except KeyboardInterrupt:
            print("Watcher stopped")
    elif args.command == "test-connection":
        for warning in check_api_key(config.ai.api_key):
            print(f"Warning: {warning}")
        orchestrator.enhancer.test_connection()
        print("Connection successful")
    elif args.command == "install-hook":
        repo = Path(args.repo) if args.repo else find_git_root(config.paths.source_root)
        if repo is None:
            parser.exit(EXIT_FAILURE, "Could not find a Git repository; pass --repo.\n")
        hook = install_pre_commit_hook(repo, config.paths.docs_root)
        print(f"Pre-commit hook installed at {_relativize(hook)}")
    elif args.command == "serve":
        from .service import run_service

        run_service(host=args.host, port=args.port, config_path=Path(args.config))
    else:  # pragma: no cover - argparse enforces choices
        parser.exit(EXIT_FAILURE, "Unknown command\n")


def _changes_from_args(args: argparse.Namespace, orchestrator: Orchestrator) -> ChangeSet:
    if args.modules is None and not args.types_changed:
        return orchestrator.changes_from_env()
    modules = [item.strip() for item in (args.modules or "").split(",") if item.strip()]
    return ChangeSet.of(modules, types_changed=bool(args.types_changed))


def _config_root(config_path: Path) -> Path:
    return config_path if config_path.is_dir() else config_path.parent


def _relativize(path: Path) -> str:
    try:
        return str(path.relative_to(Path.cwd()))
    except ValueError:
        return str(path)


if __name__ == "__main__":
    main(sys.argv[1:])
