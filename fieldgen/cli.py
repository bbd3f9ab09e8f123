# File: fieldgen/cli.py
"""
fieldgen - Command-Line Interface
==================================

CLI built with the standard-library ``argparse`` module.

Usage examples::

    # Generate one field, by id or by display name
    fieldgen -c fieldgen.yaml --field customfield_10010
    fieldgen -c fieldgen.yaml --field "Story Points"

    # Generate every custom field (asks for confirmation first)
    fieldgen -c fieldgen.yaml --all

    # Non-interactive bulk run, DEBUG logging
    fieldgen -c fieldgen.yaml --all --yes -vv

    # Render and compare only; write nothing
    fieldgen -c fieldgen.yaml --all --yes --dry-run

    # Check the mapping configuration only
    fieldgen -c fieldgen.yaml --validate-only

Exit codes:
    0 — success
    1 — at least one field failed to generate
    2 — invalid invocation options
    3 — configuration error (bad config, bad template entry, corrupt map)
    4 — field not found or ambiguous
    5 — interrupted (confirmation declined or Ctrl-C)
    6 — remote field service error
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, NoReturn, Optional, Sequence

from fieldgen.client import JiraFieldService
from fieldgen.errors import (
    AmbiguousFieldError,
    ConfigurationError,
    FieldServiceError,
    GenerationInterrupted,
    ResolutionError,
)
from fieldgen.generator import (
    FieldGenerator,
    load_config,
    run_configuration_pass,
)
from fieldgen.models import ConnectionSettings, FieldDescriptor, MappingConfig
from fieldgen.resolver import FieldResolver

# ---------------------------------------------------------------------------
# Logger (configured in _setup_logging)
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("fieldgen")


# ---------------------------------------------------------------------------
# Exit codes
# ---------------------------------------------------------------------------

EXIT_SUCCESS: int = 0
EXIT_GENERATION_ERROR: int = 1
EXIT_INVALID_OPTIONS: int = 2
EXIT_CONFIGURATION_ERROR: int = 3
EXIT_FIELD_NOT_FOUND: int = 4
EXIT_INTERRUPTED: int = 5
EXIT_REMOTE_ERROR: int = 6


# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------


def _setup_logging(verbosity: int) -> None:
    """
    Configure the root fieldgen logger based on verbosity level.

    Args:
        verbosity: 0 = WARNING, 1 = INFO, 2+ = DEBUG.
    """
    if verbosity >= 2:
        level = logging.DEBUG
    elif verbosity >= 1:
        level = logging.INFO
    else:
        level = logging.WARNING

    handler: logging.StreamHandler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)

    fmt: str = "%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s"
    formatter: logging.Formatter = logging.Formatter(fmt, datefmt="%H:%M:%S")
    handler.setFormatter(formatter)

    root_logger: logging.Logger = logging.getLogger("fieldgen")
    root_logger.setLevel(level)
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.propagate = False


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------


def _build_parser() -> argparse.ArgumentParser:
    """Build and return the argument parser."""
    from fieldgen import __version__

    parser: argparse.ArgumentParser = argparse.ArgumentParser(
        prog="fieldgen",
        description=(
            "fieldgen — generate one class per remote custom field.\n\n"
            "Reads field definitions from the remote REST API, picks the "
            "template bound to each field and writes only what changed."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  %(prog)s -c fieldgen.yaml --field customfield_10010\n"
            "  %(prog)s -c fieldgen.yaml --field \"Story Points\"\n"
            "  %(prog)s -c fieldgen.yaml --all --yes -v\n"
            "  %(prog)s -c fieldgen.yaml --validate-only\n"
        ),
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"fieldgen v{__version__}",
    )

    parser.add_argument(
        "-c", "--config",
        type=str,
        required=True,
        metavar="PATH",
        help="Path to the mapping configuration file (YAML or JSON).",
    )

    # --- Modes ---
    mode_group = parser.add_argument_group("operation modes")
    target = mode_group.add_mutually_exclusive_group()
    target.add_argument(
        "-f", "--field",
        type=str,
        default=None,
        metavar="ID_OR_NAME",
        help="Generate a single field, by id (customfield_NNNNN) or display name.",
    )
    target.add_argument(
        "-a", "--all",
        dest="all_fields",
        action="store_true",
        default=False,
        help="Generate every remote custom field.",
    )
    target.add_argument(
        "--validate-only",
        action="store_true",
        default=False,
        help="Only validate the mapping configuration.",
    )
    mode_group.add_argument(
        "--dry-run",
        action="store_true",
        default=False,
        help="Render and compare, but write neither artifacts nor the map.",
    )
    mode_group.add_argument(
        "-y", "--yes",
        action="store_true",
        default=False,
        help="Do not ask for confirmation before a bulk run.",
    )

    # --- Config overrides ---
    config_group = parser.add_argument_group("configuration overrides")
    config_group.add_argument(
        "-o", "--output",
        type=str,
        default=None,
        metavar="DIR",
        help="Override target.directory.",
    )
    config_group.add_argument(
        "--namespace",
        type=str,
        default=None,
        metavar="NS",
        help="Override target.namespace.",
    )
    config_group.add_argument(
        "--base-url",
        type=str,
        default=None,
        metavar="URL",
        help="Override connection.base_url.",
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
        help="Suppress all output except the final report.",
    )

    return parser


# ---------------------------------------------------------------------------
# Collaborators (module-level so tests can replace them)
# ---------------------------------------------------------------------------


def _build_service(settings: ConnectionSettings) -> JiraFieldService:
    return JiraFieldService(settings)


def _confirm_bulk(fields: Sequence[FieldDescriptor], output_dir: str) -> bool:
    """Interactive yes/no gate before a bulk run."""
    prompt: str = (
        f"Generate artifacts for {len(fields)} field(s) into {output_dir}? [y/N] "
    )
    try:
        answer: str = input(prompt)
    except EOFError:
        return False
    return answer.strip().lower() in {"y", "yes"}


def _apply_overrides(config: MappingConfig, args: argparse.Namespace) -> None:
    if args.output is not None:
        config.target.directory = str(Path(args.output).resolve())
    if args.namespace is not None:
        config.target.namespace = args.namespace
    if args.base_url is not None:
        config.connection.base_url = args.base_url


# ---------------------------------------------------------------------------
# Validate-only mode
# ---------------------------------------------------------------------------


def _run_validate_only(config: MappingConfig) -> int:
    config_pass = run_configuration_pass(config, check_connection=True)
    result = config_pass.validation

    print(f"\n{'='*50}")
    print("  Mapping Configuration Report")
    print(f"{'='*50}")
    print(f"  Templates:     {len(config_pass.bindings.templates)}")
    print(f"  Field binds:   {len(config_pass.bindings.field_bindings)}")
    print(f"  Type binds:    {len(config_pass.bindings.type_bindings)}")
    print(f"  Skip rules:    {len(config_pass.skip_evaluator.rules)}")
    print(f"  Valid:         {'Yes' if result.is_valid else 'No'}")
    if len(result):
        print()
        print(result.format_report())
    print(f"{'='*50}\n")

    return EXIT_SUCCESS if result.is_valid else EXIT_CONFIGURATION_ERROR


# ---------------------------------------------------------------------------
# Generation mode
# ---------------------------------------------------------------------------


def _run_generation(config: MappingConfig, args: argparse.Namespace) -> int:
    if not config.connection.base_url:
        logger.error("connection.base_url is not configured (use --base-url).")
        return EXIT_CONFIGURATION_ERROR

    with _build_service(config.connection) as service:
        generator: FieldGenerator = FieldGenerator.from_config(
            config,
            service,
            dry_run=args.dry_run,
            check_connection=True,
        )

        if args.field is not None:
            descriptor: FieldDescriptor = FieldResolver(service).resolve_one(args.field)
            ok: bool = generator.generate_field(descriptor)
        else:
            output_dir: str = generator.report.output_directory
            confirm = None if args.yes else (
                lambda fields: _confirm_bulk(fields, output_dir)
            )
            ok = generator.generate_all(confirm=confirm)

    report = generator.report
    print(report.summary())

    if not ok:
        return EXIT_GENERATION_ERROR
    if report.has_configuration_errors:
        return EXIT_CONFIGURATION_ERROR
    return EXIT_SUCCESS


def _run(args: argparse.Namespace) -> int:
    config_path: Path = Path(args.config).resolve()
    if not config_path.is_file():
        logger.error("Configuration file not found: %s", config_path)
        return EXIT_INVALID_OPTIONS

    try:
        config: MappingConfig = load_config(config_path)
        _apply_overrides(config, args)

        if args.validate_only:
            return _run_validate_only(config)
        return _run_generation(config, args)

    except ConfigurationError as exc:
        logger.error("%s", exc)
        return EXIT_CONFIGURATION_ERROR
    except AmbiguousFieldError as exc:
        logger.error("%s", exc)
        print(f"Field name '{exc.query}' is ambiguous. Candidates:", file=sys.stderr)
        for field_id, name in exc.candidates:
            print(f"  {field_id}  {name}", file=sys.stderr)
        return EXIT_FIELD_NOT_FOUND
    except ResolutionError as exc:
        logger.error("%s", exc)
        return EXIT_FIELD_NOT_FOUND
    except FieldServiceError as exc:
        logger.error("Remote field service error: %s", exc)
        return EXIT_REMOTE_ERROR
    except GenerationInterrupted as exc:
        logger.warning("%s", exc)
        return EXIT_INTERRUPTED


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------


def cli_main(argv: Optional[Sequence[str]] = None) -> NoReturn:
    """
    Main CLI entry point.

    Can be called from ``__main__.py`` or directly for testing.

    Args:
        argv: Optional argument list (defaults to sys.argv[1:]).
    """
    parser: argparse.ArgumentParser = _build_parser()
    args: argparse.Namespace = parser.parse_args(argv)

    if not (args.field or args.all_fields or args.validate_only):
        parser.print_usage(sys.stderr)
        print("fieldgen: error: one of --field, --all or --validate-only is required",
              file=sys.stderr)
        sys.exit(EXIT_INVALID_OPTIONS)

    if args.quiet:
        logging.disable(logging.CRITICAL)
        verbosity: int = -1
    else:
        verbosity = args.verbose
    _setup_logging(verbosity)

    try:
        exit_code: int = _run(args)
    except KeyboardInterrupt:
        logger.warning("Interrupted.")
        exit_code = EXIT_INTERRUPTED

    if exit_code == EXIT_SUCCESS:
        logger.info("fieldgen completed successfully.")
    else:
        logger.error("fieldgen finished with exit code %d.", exit_code)

    sys.exit(exit_code)


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "cli_main",
    "EXIT_SUCCESS",
    "EXIT_GENERATION_ERROR",
    "EXIT_INVALID_OPTIONS",
    "EXIT_CONFIGURATION_ERROR",
    "EXIT_FIELD_NOT_FOUND",
    "EXIT_INTERRUPTED",
    "EXIT_REMOTE_ERROR",
]

logger.debug("fieldgen.cli loaded.")
