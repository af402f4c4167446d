"""
Unit tests for scan result rendering and export (src/core/export.py).

Tests cover:
- Per-program block formatting
- Console listing
- JSON export layout and round trip
- Text report header and body
- Format selection by extension
- Error conditions (unwritable destination)
"""
from __future__ import annotations

import io
import json
from datetime import date
from pathlib import Path

import pytest

from core.export import (
    EXPORT_FORMAT_JSON,
    EXPORT_FORMAT_TEXT,
    SEPARATOR,
    export_programs,
    format_program_block,
    is_json_destination,
    load_programs_json,
    render_console,
    render_json,
    render_text_report,
)
from extractors.system.registry.enumerator import InstalledProgram


@pytest.fixture
def programs() -> list[InstalledProgram]:
    return [
        InstalledProgram(name="Alpha", version="1.0", install_path="C:\\Alpha"),
        InstalledProgram(name="Beta"),
    ]


class TestFormatProgramBlock:
    def test_full_block(self):
        block = format_program_block(1, InstalledProgram("Alpha", "1.0", "C:\\Alpha"))

        assert block == "1. Alpha (v1.0)\n   Path: C:\\Alpha\n\n"

    def test_name_only(self):
        assert format_program_block(2, InstalledProgram("Beta")) == "2. Beta\n\n"

    def test_path_without_version(self):
        block = format_program_block(3, InstalledProgram("Gamma", install_path="D:\\Gamma"))

        assert block == "3. Gamma\n   Path: D:\\Gamma\n\n"


class TestConsole:
    def test_render_console(self, programs):
        stream = io.StringIO()

        render_console(programs, stream)

        output = stream.getvalue()
        assert "SCAN COMPLETE!" in output
        assert "Found 2 installed programs:" in output
        assert output.endswith("1. Alpha (v1.0)\n   Path: C:\\Alpha\n\n2. Beta\n\n")
        assert output.count(SEPARATOR) == 2

    def test_render_console_empty(self):
        stream = io.StringIO()

        render_console([], stream)

        assert "Found 0 installed programs:" in stream.getvalue()


class TestJsonExport:
    def test_render_json_layout(self, programs):
        text = render_json(programs)

        assert text.endswith("]\n")
        assert text.startswith('[\n  {\n    "Name": "Alpha",')
        assert json.loads(text) == [
            {"Name": "Alpha", "Version": "1.0", "Path": "C:\\Alpha"},
            {"Name": "Beta", "Version": "", "Path": ""},
        ]

    def test_render_json_empty(self):
        assert render_json([]) == "[]\n"

    def test_render_json_escapes_html_characters(self):
        program = InstalledProgram("R&D <Tools>", "1.0", "")

        text = render_json([program])

        assert "R\\u0026D \\u003cTools\\u003e" in text
        assert json.loads(text)[0]["Name"] == "R&D <Tools>"

    def test_export_json(self, tmp_path, programs):
        dest = tmp_path / "programs.json"

        result = export_programs(programs, dest)

        assert result.success
        assert result.export_format == EXPORT_FORMAT_JSON
        assert result.program_count == 2
        data = json.loads(dest.read_text(encoding="utf-8"))
        assert isinstance(data, list)
        assert len(data) == 2

    def test_json_round_trip(self, tmp_path):
        originals = [
            InstalledProgram(f"App {i}", f"{i}.0" if i % 2 else "", f"C:\\App{i}" if i % 3 else "")
            for i in range(25)
        ]
        originals.append(InstalledProgram("Ünïcode Prögram™", "1.0", "C:\\Program Files\\Ü"))
        dest = tmp_path / "round.json"

        export_programs(originals, dest)

        assert load_programs_json(dest) == originals

    def test_uppercase_extension_is_json(self, tmp_path, programs):
        dest = tmp_path / "PROGRAMS.JSON"

        result = export_programs(programs, dest)

        assert result.export_format == EXPORT_FORMAT_JSON
        assert json.loads(dest.read_text(encoding="utf-8"))[1]["Name"] == "Beta"

    def test_load_rejects_non_array(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text('{"programs": []}', encoding="utf-8")

        with pytest.raises(ValueError):
            load_programs_json(path)

    def test_load_rejects_entry_without_name(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text('[{"Version": "1"}]', encoding="utf-8")

        with pytest.raises(ValueError):
            load_programs_json(path)


class TestTextExport:
    def test_render_text_report(self, programs):
        report = render_text_report(programs, generated_on=date(2025, 1, 14))

        lines = report.split("\n")
        assert lines[0] == "WinClone - Installed Programs List"
        assert lines[1] == "Generated on: 2025-01-14"
        assert lines[2] == "Total programs found: 2"
        assert lines[3] == "=" * 50
        assert lines[4] == ""
        assert lines[5] == "1. Alpha (v1.0)"
        assert lines[6] == "   Path: C:\\Alpha"
        assert lines[8] == "2. Beta"

    def test_default_date_is_today(self, programs):
        report = render_text_report(programs)

        assert f"Generated on: {date.today().isoformat()}" in report

    def test_export_text(self, tmp_path, programs):
        dest = tmp_path / "programs.txt"

        result = export_programs(programs, dest, generated_on=date(2025, 1, 14))

        assert result.success
        assert result.export_format == EXPORT_FORMAT_TEXT
        content = dest.read_text(encoding="utf-8")
        assert "Total programs found: 2" in content
        assert content.index("1. Alpha") < content.index("2. Beta")

    @pytest.mark.parametrize("name", ["report.log", "report", "report.json.txt"])
    def test_other_extensions_are_text(self, tmp_path, programs, name):
        result = export_programs(programs, tmp_path / name)

        assert result.export_format == EXPORT_FORMAT_TEXT

    def test_existing_file_truncated(self, tmp_path, programs):
        dest = tmp_path / "programs.txt"
        dest.write_text("x" * 10_000, encoding="utf-8")

        export_programs(programs[:1], dest)

        content = dest.read_text(encoding="utf-8")
        assert "x" not in content
        assert "Total programs found: 1" in content


class TestExportErrors:
    def test_missing_parent_directory(self, tmp_path, programs):
        dest = tmp_path / "missing" / "programs.json"

        result = export_programs(programs, dest)

        assert not result.success
        assert result.error_message
        assert not dest.exists()
        assert not dest.parent.exists()

    def test_destination_is_directory(self, tmp_path, programs):
        dest = tmp_path / "out.txt"
        dest.mkdir()

        result = export_programs(programs, dest)

        assert not result.success
        assert dest.is_dir()

    def test_lone_surrogate_is_replaced(self, tmp_path):
        dest = tmp_path / "programs.json"

        result = export_programs([InstalledProgram("Bad\ud800Name", "1.0", "")], dest)

        assert result.success
        assert json.loads(dest.read_text(encoding="utf-8"))[0]["Name"] == "Bad\ufffdName"

    def test_lone_surrogate_in_text_report(self, tmp_path):
        dest = tmp_path / "programs.txt"

        result = export_programs([InstalledProgram("Tool", "", "C:\\\udcff")], dest)

        assert result.success
        assert "   Path: C:\\\ufffd" in dest.read_text(encoding="utf-8")

    def test_write_failure_removes_partial_file(self, tmp_path, programs, monkeypatch):
        """A file created before the write fails is deleted."""
        dest = tmp_path / "programs.txt"
        real_open = Path.open

        class _FullDiskHandle:
            def __init__(self, handle):
                self._handle = handle

            def __enter__(self):
                return self

            def __exit__(self, *exc_info):
                self._handle.close()
                return False

            def write(self, text):
                raise OSError(28, "No space left on device")

        monkeypatch.setattr(
            Path, "open", lambda self, *args, **kwargs: _FullDiskHandle(real_open(self, *args, **kwargs))
        )

        result = export_programs(programs, dest)

        assert not result.success
        assert "No space left on device" in result.error_message
        assert not dest.exists()


def test_is_json_destination():
    assert is_json_destination(Path("a.json"))
    assert is_json_destination(Path("a.Json"))
    assert not is_json_destination(Path("a.txt"))
    assert not is_json_destination(Path("json"))


def test_end_to_end_exports(tmp_path, sample_registry):
    """Scan the sample registry, then export to JSON and to text."""
    from extractors.system.registry import enumerate_all

    programs = enumerate_all(sample_registry).programs
    json_path = tmp_path / "programs.json"
    text_path = tmp_path / "programs.txt"

    assert export_programs(programs, json_path).success
    assert export_programs(programs, text_path).success

    assert len(json.loads(json_path.read_text(encoding="utf-8"))) == 2
    text = text_path.read_text(encoding="utf-8")
    assert "Total programs found: 2" in text
    assert "1. Alpha (v1.0)\n   Path: C:\\Alpha\n\n2. Beta\n\n" in text
