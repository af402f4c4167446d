"""
Registry sources for the installed-program scan.

A source exposes three read-only capabilities: open a key, list the names of
its subkeys, and read a named string value. The enumerator depends on nothing
else, so the live Windows registry, an offline hive file and the in-memory
fake used by the tests are interchangeable.

Every handle is a context manager and must be closed by whoever opened it.
Failures are raised as ``RegistryAccessError`` subclasses carrying the key
path, never as backend-specific exceptions.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from core.logging import get_logger
from extractors.exceptions import (
    KeyListError,
    KeyOpenError,
    MissingToolError,
    RegistryAccessError,
    ValueReadError,
)

LOGGER = get_logger("extractors.system.registry.sources")

# Offline SOFTWARE hives are rooted at what the live registry calls HKLM\SOFTWARE
SOFTWARE_HIVE_PREFIX = "software"


def join_key_path(parent: str, child: str) -> str:
    """Join registry path components with a single backslash."""
    if not parent:
        return child
    return parent.rstrip("\\") + "\\" + child


def split_key_path(path: str) -> List[str]:
    """Split a registry path into components, accepting ``/`` as a separator."""
    return [part for part in path.replace("/", "\\").split("\\") if part]


class RegistryKeyHandle(ABC):
    """An open, read-only registry key."""

    path: str

    @abstractmethod
    def open_child(self, name: str) -> "RegistryKeyHandle":
        """Open the immediate subkey ``name``. Raises KeyOpenError."""

    @abstractmethod
    def list_children(self) -> List[str]:
        """Return immediate subkey names in source order. Raises KeyListError."""

    @abstractmethod
    def read_string(self, name: str) -> str:
        """Return the string value ``name``. Raises ValueReadError."""

    def close(self) -> None:
        pass

    def __enter__(self) -> "RegistryKeyHandle":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class RegistrySource(ABC):
    """Read-only access to a registry tree."""

    @abstractmethod
    def open_root(self, path: str) -> RegistryKeyHandle:
        """Open ``path`` below the source's top-level key. Raises KeyOpenError."""

    @abstractmethod
    def describe(self) -> str:
        """Human-readable description used in status output."""


# =============================================================================
# Live registry (winreg)
# =============================================================================

class WinregKeyHandle(RegistryKeyHandle):
    """Wraps a ``winreg`` HKEY."""

    def __init__(self, winreg_module: Any, hkey: Any, path: str, access: int) -> None:
        self._winreg = winreg_module
        self._hkey = hkey
        self._access = access
        self.path = path

    def open_child(self, name: str) -> "WinregKeyHandle":
        child_path = join_key_path(self.path, name)
        try:
            hkey = self._winreg.OpenKey(self._hkey, name, 0, self._access)
        except OSError as exc:
            raise KeyOpenError(child_path, str(exc)) from exc
        return WinregKeyHandle(self._winreg, hkey, child_path, self._access)

    def list_children(self) -> List[str]:
        try:
            subkey_count = self._winreg.QueryInfoKey(self._hkey)[0]
            return [self._winreg.EnumKey(self._hkey, i) for i in range(subkey_count)]
        except OSError as exc:
            raise KeyListError(self.path, str(exc)) from exc

    def read_string(self, name: str) -> str:
        value_path = join_key_path(self.path, name)
        try:
            value, value_type = self._winreg.QueryValueEx(self._hkey, name)
        except OSError as exc:
            raise ValueReadError(value_path, str(exc)) from exc

        # REG_EXPAND_SZ is returned unexpanded
        if value_type not in (self._winreg.REG_SZ, self._winreg.REG_EXPAND_SZ) or not isinstance(value, str):
            raise ValueReadError(value_path, f"unexpected value type {value_type}")
        return value

    def close(self) -> None:
        if self._hkey is None:
            return
        hkey, self._hkey = self._hkey, None
        try:
            self._winreg.CloseKey(hkey)
        except OSError as exc:
            LOGGER.debug("Failed to close key %s: %s", self.path, exc)


class WinregSource(RegistrySource):
    """
    The live registry of the local machine, read through ``winreg``.

    Keys are opened in the 64-bit view so a 32-bit interpreter on 64-bit
    Windows is not redirected to WOW6432Node when opening the 64-bit root.
    """

    def __init__(self, winreg_module: Any = None) -> None:
        if winreg_module is None:
            try:
                import winreg as winreg_module  # type: ignore[import-not-found,no-redef]
            except ImportError as exc:
                raise MissingToolError(
                    "winreg",
                    "The live registry can only be read on Windows. "
                    "Use --hive to scan an offline SOFTWARE hive instead.",
                ) from exc
        self._winreg = winreg_module
        self._access = winreg_module.KEY_READ | winreg_module.KEY_WOW64_64KEY

    def open_root(self, path: str) -> WinregKeyHandle:
        try:
            hkey = self._winreg.OpenKey(self._winreg.HKEY_LOCAL_MACHINE, path, 0, self._access)
        except OSError as exc:
            raise KeyOpenError(path, str(exc)) from exc
        return WinregKeyHandle(self._winreg, hkey, path, self._access)

    def describe(self) -> str:
        return "HKEY_LOCAL_MACHINE"


# =============================================================================
# Offline hive (regipy)
# =============================================================================

class HiveKeyHandle(RegistryKeyHandle):
    """Wraps a regipy ``NKRecord``; subkeys are indexed on first use."""

    def __init__(self, key: Any, path: str) -> None:
        self._key = key
        self._subkeys: Optional[Dict[str, Any]] = None
        self._subkey_names: List[str] = []
        self.path = path

    def _index_subkeys(self) -> Dict[str, Any]:
        if self._subkeys is None:
            subkeys: Dict[str, Any] = {}
            names: List[str] = []
            try:
                for subkey in self._key.iter_subkeys():
                    names.append(subkey.name)
                    subkeys.setdefault(subkey.name.lower(), subkey)
            except Exception as exc:
                raise KeyListError(self.path, str(exc)) from exc
            self._subkeys = subkeys
            self._subkey_names = names
        return self._subkeys

    def open_child(self, name: str) -> "HiveKeyHandle":
        child_path = join_key_path(self.path, name)
        try:
            subkeys = self._index_subkeys()
        except KeyListError as exc:
            raise KeyOpenError(child_path, exc.reason) from exc
        subkey = subkeys.get(name.lower())
        if subkey is None:
            raise KeyOpenError(child_path, "key not found")
        return HiveKeyHandle(subkey, child_path)

    def list_children(self) -> List[str]:
        self._index_subkeys()
        return list(self._subkey_names)

    def read_string(self, name: str) -> str:
        value_path = join_key_path(self.path, name)
        try:
            value = self._key.get_value(name)
        except Exception as exc:
            raise ValueReadError(value_path, str(exc)) from exc

        if value is None:
            raise ValueReadError(value_path, "value not found")
        if not isinstance(value, str):
            raise ValueReadError(value_path, f"unexpected value type {type(value).__name__}")
        return value


class HiveFileSource(RegistrySource):
    """
    An offline SOFTWARE hive parsed with regipy.

    Root paths are given in live-registry form
    (``SOFTWARE\\Microsoft\\...``); the leading ``SOFTWARE`` component is the
    hive root itself and is dropped before lookup.

    Note:
        Lookups use manual case-insensitive traversal because regipy's
        ``hive.get_key()`` silently redirects WOW6432Node paths to the
        non-WOW path, which would report 64-bit programs twice.
    """

    def __init__(self, hive_path: Path, hive_factory: Optional[Callable[[str], Any]] = None) -> None:
        if hive_factory is None:
            try:
                from regipy.registry import RegistryHive  # type: ignore
            except ImportError as exc:
                raise MissingToolError("regipy", "Install it with: pip install regipy") from exc
            hive_factory = RegistryHive

        self.hive_path = Path(hive_path)
        if not self.hive_path.is_file():
            raise RegistryAccessError(str(self.hive_path), "hive file not found")

        try:
            self._hive = hive_factory(str(self.hive_path))
        except Exception as exc:
            raise RegistryAccessError(str(self.hive_path), f"cannot parse hive: {exc}") from exc
        LOGGER.info("Opened offline hive %s", self.hive_path)

    def open_root(self, path: str) -> HiveKeyHandle:
        parts = split_key_path(path)
        if parts and parts[0].lower() == SOFTWARE_HIVE_PREFIX:
            parts = parts[1:]

        try:
            handle = HiveKeyHandle(self._hive.root, "")
        except Exception as exc:
            raise KeyOpenError(path, f"cannot read hive root: {exc}") from exc

        for part in parts:
            try:
                handle = handle.open_child(part)
            except KeyOpenError as exc:
                raise KeyOpenError(path, f"failed at '{part}': {exc.reason}") from exc

        handle.path = path
        return handle

    def describe(self) -> str:
        return f"offline hive {self.hive_path}"
