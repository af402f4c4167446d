"""
Rendering and export of scan results.

Three outputs are supported:

- Console listing (no destination given)
- JSON export (destination ends in ``.json``): an indented array of
  ``{"Name", "Version", "Path"}`` objects without any envelope
- Text export (any other destination): header block followed by the same
  per-program blocks as the console listing

Export destinations are created or truncated. A failed export leaves no
partial file behind and is reported through ``ExportResult``.
"""
from __future__ import annotations

import json
import re
import sys
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import List, Optional, Sequence, TextIO

from extractors.system.registry.enumerator import InstalledProgram

from .logging import get_logger

LOGGER = get_logger("core.export")

SEPARATOR = "=" * 50
TEXT_REPORT_TITLE = "WinClone - Installed Programs List"
JSON_SUFFIX = ".json"

EXPORT_FORMAT_JSON = "json"
EXPORT_FORMAT_TEXT = "text"

_LONE_SURROGATE = re.compile("[\ud800-\udfff]")
_JSON_HTML_ESCAPES = {"<": "\\u003c", ">": "\\u003e", "&": "\\u0026"}


@dataclass
class ExportResult:
    """
    Result of export operation.

    Attributes:
        success: True if the file was written completely
        export_path: Destination file
        export_format: "json" or "text"
        program_count: Number of programs written
        error_message: Error message if failed (None if succeeded)
    """
    success: bool
    export_path: Optional[Path] = None
    export_format: str = EXPORT_FORMAT_TEXT
    program_count: int = 0
    error_message: Optional[str] = None


def format_program_block(index: int, program: InstalledProgram) -> str:
    """
    Format one numbered program entry.

    ``1. Alpha (v1.0)``, an optional ``   Path: ...`` line, then a blank line.
    """
    lines = [f"{index}. {program.name}"]
    if program.version:
        lines[0] += f" (v{program.version})"
    if program.install_path:
        lines.append(f"   Path: {program.install_path}")
    return "\n".join(lines) + "\n\n"


def format_program_list(programs: Sequence[InstalledProgram]) -> str:
    return "".join(
        format_program_block(index, program)
        for index, program in enumerate(programs, start=1)
    )


def render_console(programs: Sequence[InstalledProgram], stream: Optional[TextIO] = None) -> None:
    """Print the scan summary and numbered listing."""
    out = stream if stream is not None else sys.stdout
    out.write(f"\n{SEPARATOR}\n")
    out.write("SCAN COMPLETE!\n")
    out.write(f"Found {len(programs)} installed programs:\n")
    out.write(f"{SEPARATOR}\n\n")
    out.write(format_program_list(programs))


def render_json(programs: Sequence[InstalledProgram]) -> str:
    """
    Serialize programs as a 2-space indented JSON array with trailing newline.

    ``<``, ``>`` and ``&`` are written as unicode escapes.
    """
    text = json.dumps([program.to_dict() for program in programs], indent=2, ensure_ascii=False)
    for char, escaped in _JSON_HTML_ESCAPES.items():
        text = text.replace(char, escaped)
    return text + "\n"


def render_text_report(programs: Sequence[InstalledProgram], generated_on: Optional[date] = None) -> str:
    """Build the plain-text report: header block, then one block per program."""
    generated_on = generated_on or date.today()
    header = (
        f"{TEXT_REPORT_TITLE}\n"
        f"Generated on: {generated_on.isoformat()}\n"
        f"Total programs found: {len(programs)}\n"
        f"{SEPARATOR}\n\n"
    )
    return header + format_program_list(programs)


def is_json_destination(dest_path: Path) -> bool:
    return dest_path.suffix.lower() == JSON_SUFFIX


def export_programs(
    programs: Sequence[InstalledProgram],
    dest_path: Path,
    *,
    generated_on: Optional[date] = None,
) -> ExportResult:
    """
    Write programs to ``dest_path``, choosing the format by file extension.

    The destination's parent directory must already exist.

    Returns:
        ExportResult with success status; never raises for I/O errors
    """
    dest_path = Path(dest_path)
    if is_json_destination(dest_path):
        export_format = EXPORT_FORMAT_JSON
        content = render_json(programs)
    else:
        export_format = EXPORT_FORMAT_TEXT
        content = render_text_report(programs, generated_on)
    # Unpaired UTF-16 surrogates from the registry cannot be encoded
    content = _LONE_SURROGATE.sub("\ufffd", content)

    LOGGER.info("Exporting %d programs as %s to %s", len(programs), export_format, dest_path)

    created = False
    try:
        with dest_path.open("w", encoding="utf-8", newline="\n") as handle:
            created = True
            handle.write(content)
    except (OSError, UnicodeError) as exc:
        error_msg = f"failed to write {dest_path}: {exc}"
        LOGGER.error(error_msg)
        if created and dest_path.exists():
            try:
                dest_path.unlink()
                LOGGER.info("Cleaned up partial export file: %s", dest_path)
            except OSError as cleanup_exc:
                LOGGER.warning("Could not remove partial export %s: %s", dest_path, cleanup_exc)
        return ExportResult(
            success=False,
            export_path=dest_path,
            export_format=export_format,
            error_message=error_msg,
        )

    return ExportResult(
        success=True,
        export_path=dest_path,
        export_format=export_format,
        program_count=len(programs),
    )


def load_programs_json(path: Path) -> List[InstalledProgram]:
    """
    Read a JSON export back into programs.

    Raises:
        ValueError: If the document is not an array of program objects
    """
    with Path(path).open("r", encoding="utf-8") as handle:
        data = json.load(handle)
    if not isinstance(data, list):
        raise ValueError(f"{path} does not contain a JSON array")
    try:
        return [InstalledProgram.from_dict(item) for item in data]
    except (KeyError, TypeError, AttributeError) as exc:
        raise ValueError(f"{path} contains an invalid program entry: {exc}") from exc
