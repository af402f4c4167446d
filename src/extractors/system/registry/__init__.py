"""
Installed Programs Registry Scanner

Enumerates installed programs from the Windows Uninstall registry keys.

Features:
- 64-bit and 32-bit (WOW6432Node) Uninstall keys
- Live registry (winreg) or offline SOFTWARE hive (regipy)
- Per-root warnings; entries without a DisplayName are skipped silently
"""

from .enumerator import (
    UNINSTALL_ROOTS,
    InstalledProgram,
    ProgramEnumerator,
    ScanResult,
    ScanWarning,
    UninstallRoot,
    enumerate_all,
)
from .sources import HiveFileSource, RegistryKeyHandle, RegistrySource, WinregSource

__all__ = [
    "UNINSTALL_ROOTS",
    "InstalledProgram",
    "ProgramEnumerator",
    "ScanResult",
    "ScanWarning",
    "UninstallRoot",
    "enumerate_all",
    "HiveFileSource",
    "RegistryKeyHandle",
    "RegistrySource",
    "WinregSource",
]
