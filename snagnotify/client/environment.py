"""Ambient facts used to enrich reports: revision, hostname and API key."""

import socket
import subprocess
from functools import lru_cache
from typing import Dict, Optional

import structlog

from ..config import Settings
from ..errors import ConfigurationError

logger = structlog.get_logger(__name__)

API_KEY_ENV_VAR = "BUGSNAG_KEY"
API_KEY_PROPERTY = "bugsnagKey"

GIT_REVISION_UNAVAILABLE = "git revision not available"
HOSTNAME_UNAVAILABLE = "Hostname could not be resolved"

# Process-wide properties, the last place an API key is looked up
_process_properties: Dict[str, str] = {}


def set_process_property(name: str, value: Optional[str]) -> None:
    """Set (or clear, with None) a process-level property."""
    if value is None:
        _process_properties.pop(name, None)
    else:
        _process_properties[name] = value


def get_process_property(name: str) -> Optional[str]:
    """Return a process-level property, or None if unset."""
    return _process_properties.get(name)


def load_api_key(api_key: Optional[str] = None) -> str:
    """
    Resolve the Bugsnag API key.

    Precedence: explicit value, then the ``BUGSNAG_KEY`` environment
    variable, then the ``bugsnagKey`` process property.

    Args:
        api_key: Explicit key passed by the caller

    Returns:
        The resolved key

    Raises:
        ConfigurationError: If no source provides a key
    """
    if api_key:
        return api_key

    env_key = Settings().bugsnag_key
    if env_key:
        return env_key

    prop_key = get_process_property(API_KEY_PROPERTY)
    if prop_key:
        return prop_key

    raise ConfigurationError(
        f"Bugsnag API key not found: pass api_key, set the {API_KEY_ENV_VAR} "
        f"environment variable or the {API_KEY_PROPERTY} process property"
    )


def get_git_revision() -> str:
    """Return the current git HEAD, or a placeholder if git is unavailable."""
    try:
        result = subprocess.run(
            ["git", "rev-parse", "HEAD"],
            capture_output=True,
            text=True,
            check=True,
        )
        return result.stdout.strip()
    except (OSError, subprocess.SubprocessError) as e:
        logger.debug("git_revision_unavailable", error=str(e))
        return GIT_REVISION_UNAVAILABLE


@lru_cache(maxsize=None)
def git_revision() -> str:
    """Memoized :func:`get_git_revision`, computed once per process."""
    return get_git_revision()


def get_hostname() -> str:
    """Attempt to get the current hostname."""
    try:
        return socket.gethostname()
    except OSError as e:
        logger.debug("hostname_unavailable", error=str(e))
        return HOSTNAME_UNAVAILABLE
