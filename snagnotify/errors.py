"""Exception types raised and reported by snagnotify."""

from typing import Any, Dict, Mapping, Optional


class SnagnotifyError(Exception):
    """Base class for snagnotify errors."""


class ConfigurationError(SnagnotifyError):
    """Raised when no Bugsnag API key can be resolved from any source."""


class StructuredError(SnagnotifyError):
    """
    Exception carrying a structured payload attached at raise time.

    Reports built from a StructuredError group by message instead of by
    class name, and include ``data`` in the event metadata.

    Example:
        raise StructuredError("payment declined", {"order_id": 42})
    """

    def __init__(self, message: str, data: Optional[Mapping[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.data: Dict[str, Any] = dict(data or {})

    def __str__(self) -> str:
        return self.message
