"""Passkey plugin error vocabulary.

Native passkey plugins reject with a string ``code`` from a fixed
vocabulary. ``map_plugin_error`` turns any such rejection into a
``PasskeyError`` carrying the WebAuthn-style exception name alongside
the original plugin code.
"""

from enum import Enum
from typing import Any, Optional


class PluginErrorCode(str, Enum):
    """Error codes reported by the native passkey plugin."""

    UNKNOWN_ERROR = "UNKNOWN_ERROR"
    CANCELLED = "CANCELLED"
    DOM_ERROR = "DOM_ERROR"
    PLATFORM_ERROR = "PLATFORM_ERROR"
    UNSUPPORTED_ERROR = "UNSUPPORTED_ERROR"
    TIMEOUT = "TIMEOUT"
    NO_CREDENTIAL = "NO_CREDENTIAL"
    INVALID_INPUT = "INVALID_INPUT"
    RPID_VALIDATION_ERROR = "RPID_VALIDATION_ERROR"
    PROVIDER_CONFIG_ERROR = "PROVIDER_CONFIG_ERROR"
    INTERRUPTED = "INTERRUPTED"
    NO_ACTIVITY = "NO_ACTIVITY"


ERROR_NAME_MAP: dict[PluginErrorCode, str] = {
    PluginErrorCode.UNKNOWN_ERROR: "UnknownError",
    PluginErrorCode.CANCELLED: "NotAllowedError",
    PluginErrorCode.DOM_ERROR: "NotAllowedError",
    PluginErrorCode.PLATFORM_ERROR: "NotAllowedError",
    PluginErrorCode.UNSUPPORTED_ERROR: "NotSupportedError",
    PluginErrorCode.TIMEOUT: "AbortError",
    PluginErrorCode.NO_CREDENTIAL: "NotAllowedError",
    PluginErrorCode.INVALID_INPUT: "TypeError",
    PluginErrorCode.RPID_VALIDATION_ERROR: "SecurityError",
    PluginErrorCode.PROVIDER_CONFIG_ERROR: "InvalidStateError",
    PluginErrorCode.INTERRUPTED: "AbortError",
    PluginErrorCode.NO_ACTIVITY: "InvalidStateError",
}

DEFAULT_MESSAGE = "Passkey operation failed"


class PasskeyError(Exception):
    """A failed passkey ceremony, tagged with the plugin error code."""

    def __init__(self, name: str, message: str, plugin_error_code: str):
        self.name = name
        self.message = message
        self.plugin_error_code = plugin_error_code
        super().__init__(message)

    def __repr__(self) -> str:
        return f"PasskeyError(name={self.name!r}, code={self.plugin_error_code!r})"


def to_plugin_error_code(value: Any) -> Optional[PluginErrorCode]:
    """Parse a plugin error code, returning None for anything unrecognized."""
    if not isinstance(value, str):
        return None
    try:
        return PluginErrorCode(value)
    except ValueError:
        return None


def _field(error: Any, name: str) -> Any:
    if isinstance(error, dict):
        return error.get(name)
    return getattr(error, name, None)


def map_plugin_error(error: Any) -> PasskeyError:
    """Normalize a raw plugin rejection into a PasskeyError."""
    if isinstance(error, PasskeyError):
        return error

    code = to_plugin_error_code(_field(error, "code")) or PluginErrorCode.UNKNOWN_ERROR
    name = ERROR_NAME_MAP.get(code, "UnknownError")

    message = _field(error, "message")
    if not isinstance(message, str):
        message = str(error) if isinstance(error, Exception) and error.args else DEFAULT_MESSAGE

    return PasskeyError(name, message, code.value)
