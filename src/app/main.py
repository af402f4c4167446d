from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence, TextIO

from core.app_version import get_app_version
from core.config import AppConfig, default_base_dir, load_app_config
from core.export import EXPORT_FORMAT_JSON, export_programs, render_console
from core.logging import configure_logging, get_logger
from extractors.exceptions import ConfigurationError, ExtractorError
from extractors.system.registry import (
    UNINSTALL_ROOTS,
    HiveFileSource,
    ProgramEnumerator,
    RegistrySource,
    ScanResult,
    UninstallRoot,
    WinregSource,
)

LOGGER = get_logger("app.main")

DESCRIPTION = """\
WinClone is a simple tool that scans the Windows registry to find
all installed programs and displays them in a clean, organized list.

It shows:
- Program name
- Version number (if available)
- Installation path (if available)

The tool scans both 64-bit and 32-bit programs from the Windows registry."""

EXAMPLES = """\
examples:
  winclone scan                      # Display programs on screen
  winclone scan -o programs.json     # Save as JSON file
  winclone scan -o programs.txt      # Save as text file
  winclone scan --hive SOFTWARE      # Scan an offline SOFTWARE hive"""

SCAN_DESCRIPTION = """\
Scan the Windows registry to find all installed programs.

The registry locations scanned:
- SOFTWARE\\Microsoft\\Windows\\CurrentVersion\\Uninstall (64-bit programs)
- SOFTWARE\\WOW6432Node\\Microsoft\\Windows\\CurrentVersion\\Uninstall (32-bit programs)

Output options:
- Display on screen (default): shows programs in a numbered list
- JSON file (.json): saves structured data for programming/APIs
- Text file (any other extension): saves human-readable format"""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="winclone",
        description=DESCRIPTION,
        epilog=EXAMPLES,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--version", action="version", version=f"WinClone {get_app_version()}")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log debug output to stderr")
    parser.add_argument("--config", type=Path, metavar="PATH", help="Path to config.yml")

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")
    scan = subparsers.add_parser(
        "scan",
        help="Scan and list all installed programs",
        description=SCAN_DESCRIPTION,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    scan.add_argument(
        "-o", "--output",
        type=Path,
        metavar="FILE",
        help="Save results to file (JSON: .json, Text: .txt)",
    )
    scan.add_argument(
        "--hive",
        type=Path,
        metavar="PATH",
        help="Read an offline SOFTWARE hive instead of the live registry",
    )
    return parser


def _setup_logging(app_config: AppConfig, verbose: bool) -> None:
    level = logging.DEBUG if verbose else getattr(logging, app_config.logging.level, logging.INFO)
    try:
        configure_logging(
            app_config.logs_dir,
            level=level,
            max_bytes=app_config.logging.log_max_mb * 1024 * 1024,
            backup_count=app_config.logging.log_backup_count,
            console=verbose,
        )
    except OSError as exc:
        print(f"Warning: file logging disabled: {exc}", file=sys.stderr)


def create_source(hive_path: Optional[Path] = None) -> RegistrySource:
    """Return the offline hive source when a path is given, else the live registry."""
    if hive_path is not None:
        return HiveFileSource(hive_path)
    return WinregSource()


def prepare_output_stream(stream: TextIO) -> TextIO:
    """Replace characters the console encoding cannot represent instead of failing."""
    reconfigure = getattr(stream, "reconfigure", None)
    if reconfigure is not None:
        reconfigure(errors="replace")
    return stream


def print_scan_status(result: ScanResult, roots: Sequence[UninstallRoot], out: TextIO) -> None:
    """Print per-root progress lines in scan order."""
    warnings_by_root = {warning.root.label: warning for warning in result.warnings}
    for step, root in enumerate(roots, start=1):
        prefix = "\n" if step > 1 else ""
        out.write(f"{prefix}Step {step}: Scanning {root.label} programs...\n")
        out.write(f"Location: {root.path}\n")
        warning = warnings_by_root.get(root.label)
        if warning is not None:
            out.write(f"Warning: {warning}\n")
        else:
            out.write(f"Found {result.root_counts.get(root.label, 0)} {root.label} programs\n")


def run_scan(
    output: Optional[Path],
    hive: Optional[Path],
    app_config: AppConfig,
    out: TextIO,
    source: Optional[RegistrySource] = None,
) -> int:
    """Run the scan subcommand; returns the process exit status."""
    out.write("WinClone - Scanning installed programs...\n")
    out.write("==========================================\n")

    try:
        source = source or create_source(hive)
    except ExtractorError as exc:
        LOGGER.error("Cannot open registry source: %s", exc)
        out.write(f"Error scanning programs: {exc}\n")
        return 1

    enumerator = ProgramEnumerator(
        source,
        UNINSTALL_ROOTS,
        progress_interval=app_config.scan.progress_interval,
    )
    result = enumerator.enumerate_all()
    print_scan_status(result, enumerator.roots, out)

    if output is None:
        render_console(result.programs, out)
        return 0

    export = export_programs(result.programs, output)
    label = "JSON" if export.export_format == EXPORT_FORMAT_JSON else "text"
    if not export.success:
        # Export failures are reported but do not change the exit status
        out.write(f"Error saving to {label}: {export.error_message}\n")
        return 0

    out.write(f"\nResults saved to {label}: {output}\n")
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    if args.config is not None and not args.config.is_file():
        print(f"Error: config file not found: {args.config}", file=sys.stderr)
        return 1

    try:
        app_config = load_app_config(default_base_dir(), args.config)
    except ConfigurationError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    _setup_logging(app_config, args.verbose)
    LOGGER.debug("Configuration: %s", app_config.to_json())

    return run_scan(args.output, args.hive, app_config, prepare_output_stream(sys.stdout))


if __name__ == "__main__":
    sys.exit(main())
