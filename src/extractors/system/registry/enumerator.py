"""
Installed program enumeration.

Walks the 64-bit and 32-bit Uninstall keys of a registry source and turns
each subkey that carries a DisplayName into an ``InstalledProgram``.

Two failure classes are kept apart:

- Root failures (the Uninstall key cannot be opened or listed) become a
  ``ScanWarning``; that root contributes no programs and the other root is
  still scanned.
- Entry failures (subkey cannot be opened, DisplayName missing) are routine
  for system components and patches. They are skipped without a warning.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from core.logging import get_logger
from extractors.exceptions import KeyListError, RegistryAccessError

from .sources import RegistryKeyHandle, RegistrySource

LOGGER = get_logger("extractors.system.registry.enumerator")

# Registry values read from each Uninstall subkey
DISPLAY_NAME = "DisplayName"
DISPLAY_VERSION = "DisplayVersion"
INSTALL_LOCATION = "InstallLocation"

DEFAULT_PROGRESS_INTERVAL = 50


@dataclass(frozen=True, slots=True)
class UninstallRoot:
    """One Uninstall key scanned independently of the others."""

    label: str
    path: str


UNINSTALL_ROOTS = (
    UninstallRoot(
        label="64-bit",
        path="SOFTWARE\\Microsoft\\Windows\\CurrentVersion\\Uninstall",
    ),
    # 32-bit programs on 64-bit Windows (WOW64 = Windows on Windows 64-bit)
    UninstallRoot(
        label="32-bit",
        path="SOFTWARE\\WOW6432Node\\Microsoft\\Windows\\CurrentVersion\\Uninstall",
    ),
)


@dataclass(slots=True)
class InstalledProgram:
    """An installed application as listed in Programs and Features."""

    name: str
    version: str = ""
    install_path: str = ""

    def to_dict(self) -> Dict[str, str]:
        """Serialized projection used by the JSON export."""
        return {
            "Name": self.name,
            "Version": self.version,
            "Path": self.install_path,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, str]) -> "InstalledProgram":
        return cls(
            name=data["Name"],
            version=data.get("Version") or "",
            install_path=data.get("Path") or "",
        )


@dataclass(slots=True)
class ScanWarning:
    """A root that could not be scanned."""

    root: UninstallRoot
    stage: str  # "open" or "list"
    message: str

    def __str__(self) -> str:
        return f"Could not scan {self.root.label} programs: {self.message}"


@dataclass
class ScanResult:
    """
    Outcome of a scan.

    Attributes:
        programs: Programs of every root, concatenated in root order
        warnings: One entry per root that failed to open or list
        root_counts: Number of programs contributed by each root label
    """

    programs: List[InstalledProgram] = field(default_factory=list)
    warnings: List[ScanWarning] = field(default_factory=list)
    root_counts: Dict[str, int] = field(default_factory=dict)


class ProgramEnumerator:
    """
    Enumerates installed programs from a registry source.

    Holds no state between calls; ``enumerate_all`` may be called repeatedly
    and each call re-reads the source.
    """

    def __init__(
        self,
        source: RegistrySource,
        roots: Sequence[UninstallRoot] = UNINSTALL_ROOTS,
        progress_interval: int = DEFAULT_PROGRESS_INTERVAL,
    ) -> None:
        self.source = source
        self.roots = tuple(roots)
        self.progress_interval = max(1, progress_interval)

    def enumerate_all(self) -> ScanResult:
        """Scan every root in order and collect programs and root warnings."""
        result = ScanResult()

        for root in self.roots:
            LOGGER.info("Scanning %s programs in %s\\%s", root.label, self.source.describe(), root.path)
            try:
                programs = self.scan_root(root)
            except RegistryAccessError as exc:
                stage = "list" if isinstance(exc, KeyListError) else "open"
                warning = ScanWarning(root=root, stage=stage, message=str(exc))
                LOGGER.warning("%s", warning)
                result.warnings.append(warning)
                result.root_counts[root.label] = 0
                continue

            LOGGER.info("Found %d %s programs", len(programs), root.label)
            result.root_counts[root.label] = len(programs)
            result.programs.extend(programs)

        LOGGER.info(
            "Scan complete: %d programs, %d warnings",
            len(result.programs), len(result.warnings),
        )
        return result

    def scan_root(self, root: UninstallRoot) -> List[InstalledProgram]:
        """
        Read every program below one Uninstall key.

        Raises:
            KeyOpenError: If the root key cannot be opened
            KeyListError: If the subkeys of the root cannot be listed
        """
        programs: List[InstalledProgram] = []

        with self.source.open_root(root.path) as root_key:
            subkey_names = root_key.list_children()
            total = len(subkey_names)
            LOGGER.debug("Found %d subkeys to process under %s", total, root.path)

            for index, subkey_name in enumerate(subkey_names):
                if index and index % self.progress_interval == 0:
                    LOGGER.debug("Processed %d/%d entries", index, total)

                program = read_program(root_key, subkey_name)
                if program is not None:
                    programs.append(program)

        return programs


def read_program(parent: RegistryKeyHandle, subkey_name: str) -> Optional[InstalledProgram]:
    """
    Read one Uninstall subkey.

    Returns None when the subkey cannot be opened or has no DisplayName.
    A DisplayName of only whitespace is kept and yields an empty name.
    """
    try:
        subkey = parent.open_child(subkey_name)
    except RegistryAccessError as exc:
        LOGGER.debug("Skipping %s: %s", subkey_name, exc)
        return None

    with subkey:
        try:
            raw_name = subkey.read_string(DISPLAY_NAME)
        except RegistryAccessError:
            # System components and updates have no DisplayName
            return None

        if not raw_name:
            return None

        return InstalledProgram(
            name=raw_name.strip(),
            version=_read_optional(subkey, DISPLAY_VERSION),
            install_path=_read_optional(subkey, INSTALL_LOCATION),
        )


def _read_optional(key: RegistryKeyHandle, value_name: str) -> str:
    try:
        return key.read_string(value_name).strip()
    except RegistryAccessError:
        return ""


def enumerate_all(
    source: RegistrySource,
    roots: Sequence[UninstallRoot] = UNINSTALL_ROOTS,
    progress_interval: int = DEFAULT_PROGRESS_INTERVAL,
) -> ScanResult:
    """Convenience wrapper around ``ProgramEnumerator.enumerate_all``."""
    return ProgramEnumerator(source, roots, progress_interval).enumerate_all()
