"""
Exceptions for extractor modules.
"""


class ExtractorError(Exception):
    """Base exception for extractor errors."""
    pass


class ConfigurationError(ExtractorError):
    """Raised when extractor configuration is invalid."""
    pass


class MissingToolError(ExtractorError):
    """Raised when a required registry backend is not available."""

    def __init__(self, tool_name: str, install_hint: str = ""):
        self.tool_name = tool_name
        self.install_hint = install_hint
        message = f"Required tool '{tool_name}' not found"
        if install_hint:
            message += f"\n{install_hint}"
        super().__init__(message)


class RegistryAccessError(ExtractorError):
    """Base exception for failures talking to a registry source."""

    def __init__(self, path: str, reason: str = ""):
        self.path = path
        self.reason = reason
        message = f"{path}: {reason}" if reason else path
        super().__init__(message)


class KeyOpenError(RegistryAccessError):
    """Raised when a registry key cannot be opened for reading."""
    pass


class KeyListError(RegistryAccessError):
    """Raised when the subkeys of an opened key cannot be enumerated."""
    pass


class ValueReadError(RegistryAccessError):
    """Raised when a named value is missing or is not a string."""
    pass
