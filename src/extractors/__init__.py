"""
Registry extractors for the installed program scanner.

Folder Structure:
- system/          Windows system artifacts (registry Uninstall keys)
- exceptions.py    Error hierarchy shared by sources and the enumerator
"""

from .exceptions import (
    ConfigurationError,
    ExtractorError,
    KeyListError,
    KeyOpenError,
    MissingToolError,
    RegistryAccessError,
    ValueReadError,
)
